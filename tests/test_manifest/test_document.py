"""
Tests for cargoedit.document module.

Coverage targets:
- TomlDocument parse/render round-trip
- Table navigation and creation by path
- remove_table cleanup of implicit parents
- Canonical inline rendering and value sorting
"""
from __future__ import annotations

import textwrap

import pytest
import tomlkit

from cargoedit.document import (
    TomlDocument,
    format_key,
    is_sorted,
    render_inline,
    sort_values,
    value_keys,
)
from cargoedit.errors import NonExistentTable, ParseDocument


# =============================================================================
# Parsing and Rendering
# =============================================================================

class TestRoundTrip:
    """Tests for TomlDocument.parse / render."""

    def test_unedited_document_is_byte_identical(self, sample_full_manifest):
        """Comments, spacing and quoting survive a parse/render cycle."""
        assert TomlDocument.parse(sample_full_manifest).render() == sample_full_manifest

    def test_crlf_line_endings_survive(self):
        """Windows line endings are kept as they are."""
        text = '[package]\r\nname = "x"\r\n'
        assert TomlDocument.parse(text).render() == text

    def test_invalid_toml_raises(self):
        """Malformed TOML raises ParseDocument naming the file."""
        with pytest.raises(ParseDocument) as info:
            TomlDocument.parse("[package\nname = 1", path="Cargo.toml")
        assert "Cargo.toml" in str(info.value)


# =============================================================================
# Navigation
# =============================================================================

class TestTables:
    """Tests for get_table, get_or_insert_table and remove_table."""

    def test_get_table_missing_segment(self, sample_full_manifest):
        """The first missing segment is named in the error."""
        doc = TomlDocument.parse(sample_full_manifest)
        with pytest.raises(NonExistentTable) as info:
            doc.get_table(["target", "cfg(windows)", "dependencies"])
        assert info.value.table == "cfg(windows)"

    def test_get_table_rejects_values(self, sample_full_manifest):
        """A path segment naming a value is not a table."""
        doc = TomlDocument.parse(sample_full_manifest)
        with pytest.raises(NonExistentTable):
            doc.get_table(["package", "name"])

    def test_insert_target_table(self, sample_package_manifest):
        """Intermediate tables are implicit; only the leaf gets a header."""
        doc = TomlDocument.parse(sample_package_manifest)
        doc.get_or_insert_table(["target", "cfg(unix)", "dependencies"])["libc"] = "0.2"

        text = doc.render()
        assert "[target.'cfg(unix)'.dependencies]" in text or '[target."cfg(unix)".dependencies]' in text
        assert "[target]" not in text
        parsed = tomlkit.parse(text).unwrap()
        assert parsed["target"]["cfg(unix)"]["dependencies"] == {"libc": "0.2"}

    def test_insert_returns_existing_table(self, sample_full_manifest):
        """An existing table is returned rather than replaced."""
        doc = TomlDocument.parse(sample_full_manifest)
        table = doc.get_or_insert_table(["dependencies"])
        assert "anyhow" in table

    def test_remove_table_drops_empty_parents(self, sample_full_manifest):
        """Removing the only target table removes `target` too."""
        doc = TomlDocument.parse(sample_full_manifest)
        doc.remove_table(["target", "cfg(unix)", "dependencies"])

        parsed = tomlkit.parse(doc.render()).unwrap()
        assert "target" not in parsed
        assert "# runtime dependencies" in doc.render()  # unrelated comment kept


# =============================================================================
# Rendering helpers
# =============================================================================

class TestRendering:
    """Tests for inline rendering and key formatting."""

    def test_render_inline_is_canonical(self):
        """Inline tables use `{ k = v, ... }` spacing."""
        table = render_inline([("version", "1.0"), ("features", ["a", "b"]), ("optional", True)])
        assert table.as_string() == '{ version = "1.0", features = ["a", "b"], optional = true }'

    def test_format_key_quotes_when_needed(self):
        """Bare keys stay bare; others are quoted."""
        assert format_key("serde_json") == "serde_json"
        assert format_key("cfg(unix)") == '"cfg(unix)"'


# =============================================================================
# Sorting
# =============================================================================

class TestSorting:
    """Tests for is_sorted and sort_values."""

    def test_sub_tables_are_ignored(self, sample_full_manifest):
        """Only value entries count toward key order."""
        deps = TomlDocument.parse(sample_full_manifest).get_table(["dependencies"])
        assert value_keys(deps) == ["anyhow", "clap", "log", "serde_json"]
        assert is_sorted(deps)

    def test_missing_table_is_sorted(self):
        assert is_sorted(None)

    def test_sort_values_keeps_comments(self):
        """Each entry keeps its trailing comment when moved."""
        doc = TomlDocument.parse(textwrap.dedent('''
            [dependencies]
            zip = "0.6"  # archives
            anyhow = "1"
        ''').lstrip())
        table = doc.get_table(["dependencies"])
        sort_values(table)

        assert value_keys(table) == ["anyhow", "zip"]
        assert 'zip = "0.6"  # archives' in doc.render()
