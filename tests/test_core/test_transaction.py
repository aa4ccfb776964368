"""
Tests for cargoedit.core.transaction module.

Coverage targets:
- load: one object per manifest, require_package bookkeeping
- commit: writes, dry runs, no-op commits, restore on failure
- rollback and double finishing
"""
from __future__ import annotations

from pathlib import Path

import pytest

from cargoedit.core import ManifestTransaction
from cargoedit.errors import VirtualWorkspace


@pytest.fixture
def manifests(tmp_workspace: Path) -> tuple[Path, Path]:
    crates = tmp_workspace / "crates"
    return crates / "a" / "Cargo.toml", crates / "b" / "Cargo.toml"


class TestLoad:
    """Tests for ManifestTransaction.load."""

    def test_same_object(self, manifests):
        """
        Loading a manifest twice returns the same object so edits accumulate.
        """
        a, _ = manifests
        transaction = ManifestTransaction()
        assert transaction.load(a) is transaction.load(a.parent / ".." / "a" / "Cargo.toml")

    def test_modified_tracks_edits(self, manifests):
        a, b = manifests
        transaction = ManifestTransaction()
        transaction.load(a)
        transaction.load(b).set_package_version("0.2.0")

        # Only the edited manifest is pending
        assert [m.path for m in transaction.modified] == [b.resolve()]
        assert '+version = "0.2.0"' in transaction.preview()


class TestCommit:
    """Tests for ManifestTransaction.commit."""

    def test_writes_every_modified_manifest(self, manifests):
        a, b = manifests
        transaction = ManifestTransaction()
        transaction.load(a).set_package_version("1.0.0")
        transaction.load(b).set_package_version("1.0.0")

        result = transaction.commit()

        assert result
        assert len(result) == 2
        assert set(result.files_changed) == {a.resolve(), b.resolve()}
        assert 'version = "1.0.0"' in a.read_text()
        assert 'version = "1.0.0"' in b.read_text()

    def test_dry_run_writes_nothing(self, manifests):
        """
        A dry-run commit returns the diffs and leaves the files alone.
        """
        _, b = manifests
        before = b.read_text()
        transaction = ManifestTransaction(dry_run=True)
        transaction.load(b).set_package_version("0.3.0")

        result = transaction.commit()

        assert result
        assert b.read_text() == before
        assert list(result)[0].message == "[DRY RUN] Would update 1 manifest(s)"
        assert '+version = "0.3.0"' in result.diff

    def test_nothing_to_write(self, manifests):
        a, _ = manifests
        transaction = ManifestTransaction()
        transaction.load(a)
        result = transaction.commit()
        assert result
        assert result.files_changed == []

    def test_failed_write_restores_earlier_manifests(self, tmp_workspace: Path, manifests):
        """
        When one write fails, manifests already written get their old text back.
        """
        a, b = manifests
        root = tmp_workspace / "Cargo.toml"
        before_a = a.read_text()
        transaction = ManifestTransaction()
        transaction.load(a).set_package_version("9.0.0")
        # Virtual root loaded as a package manifest: its write is refused
        transaction.load(root).set_workspace_version("9.0.0")

        result = transaction.commit()

        assert not result
        (error,) = result.failed
        assert isinstance(error.exception, VirtualWorkspace)
        assert a.read_text() == before_a

    def test_virtual_root_allowed_when_requested(self, tmp_workspace: Path):
        root = tmp_workspace / "Cargo.toml"
        transaction = ManifestTransaction()
        transaction.load(root, require_package=False).set_workspace_version("2.0.0")

        assert transaction.commit()
        assert "[workspace.package]" in root.read_text()

    def test_commit_twice(self, manifests):
        transaction = ManifestTransaction()
        transaction.commit()
        second = transaction.commit()
        assert not second
        assert second.failed[0].message == "Transaction already finished"


class TestRollback:
    """Tests for ManifestTransaction.rollback."""

    def test_discards_edits(self, manifests):
        _, b = manifests
        before = b.read_text()
        transaction = ManifestTransaction()
        transaction.load(b).set_package_version("0.9.0")

        result = transaction.rollback()

        assert result.message == "Discarded 1 pending manifest edit(s)"
        assert b.read_text() == before
        # Nothing left to commit afterwards
        assert not transaction.commit()
