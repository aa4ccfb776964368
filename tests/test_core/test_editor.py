"""
Tests for cargoedit.core.editor module.

The CargoEdit facade runs each command against a manifest and reports the
outcome as a Result; errors come back as ErrorResult objects.

Coverage targets:
- Construction from a directory or a manifest path
- add / remove / upgrade / set_version results, messages and data
- Dry-run diffs for every command
- Error results for failing commands
"""
from __future__ import annotations

from pathlib import Path

import tomlkit
from semver import Version

from conftest import LATEST, FakeResolver, RecordingPrinter
from cargoedit import CargoEdit, DepRequest, DepTable
from cargoedit.core.results import ErrorResult
from cargoedit.errors import Downgrade, NonExistentDependency, VirtualWorkspace
from cargoedit.sources import ResolvedCrate
from cargoedit.version import Absolute, BumpLevel, Relative


def data(path: Path) -> dict:
    return tomlkit.parse(path.read_text(encoding="utf-8")).unwrap()


# =============================================================================
# Construction
# =============================================================================

class TestConstruction:
    """Tests for CargoEdit initialisation."""

    def test_directory_means_its_manifest(self, tmp_package: Path):
        """
        Passing the package directory targets its Cargo.toml.
        """
        editor = CargoEdit(tmp_package.parent)

        assert editor.manifest_path == tmp_package.resolve()
        assert editor.root == tmp_package.parent.resolve()

    def test_workspace_is_discovered(self, tmp_workspace: Path):
        """
        Without an explicit workspace the members are found on disk.
        """
        editor = CargoEdit(tmp_workspace / "crates" / "a")
        assert [m.name for m in editor.workspace.members()] == ["a", "b"]


# =============================================================================
# add
# =============================================================================

class TestAdd:
    """Tests for CargoEdit.add."""

    def test_add_by_name(self, tmp_package: Path):
        """
        A crate name string is accepted as a request and written at the latest version.
        """
        result = CargoEdit(tmp_package, resolver=FakeResolver(), printer=RecordingPrinter()).add("serde")

        assert result
        assert result.message == "Added serde to dependencies"
        assert [d.name for d in result.data] == ["serde"]
        assert result.files_changed == [tmp_package.resolve()]
        assert data(tmp_package)["dependencies"] == {"serde": LATEST}

    def test_dry_run_returns_diff(self, tmp_package: Path):
        """
        A dry run writes nothing but returns the diff it would apply.
        """
        before = tmp_package.read_text()
        editor = CargoEdit(tmp_package, dry_run=True, resolver=FakeResolver(), printer=RecordingPrinter())

        result = editor.add(DepRequest("serde", features=["derive"]), section=DepTable("dev-dependencies"))

        assert result
        assert result.message == "[DRY RUN] Would add serde to dev-dependencies"
        assert tmp_package.read_text() == before
        assert "+[dev-dependencies]" in result.diff
        assert f'+serde = {{ version = "{LATEST}", features = ["derive"] }}' in result.diff

    def test_relative_path_from_cwd(self, tmp_path: Path, tmp_package: Path):
        """
        Crate paths are resolved against cwd, defaulting to the manifest directory.
        """
        (tmp_path / "libs" / "dep").mkdir(parents=True)
        (tmp_path / "libs" / "dep" / "Cargo.toml").write_text('[package]\nname = "dep"\nversion = "0.3.0"\n')
        editor = CargoEdit(tmp_package, resolver=FakeResolver(), printer=RecordingPrinter())

        result = editor.add("dep", cwd=tmp_path / "libs")

        assert result
        assert data(tmp_package)["dependencies"]["dep"] == {"version": "0.3.0", "path": "../libs/dep"}

    def test_error_becomes_result(self, tmp_workspace: Path):
        """
        Adding to a virtual manifest fails without raising.
        """
        editor = CargoEdit(tmp_workspace, resolver=FakeResolver(), printer=RecordingPrinter())

        result = editor.add("serde")

        assert isinstance(result, ErrorResult)
        assert isinstance(result.exception, VirtualWorkspace)
        assert result.operation == "add"
        assert result.exit_code == 1


# =============================================================================
# remove
# =============================================================================

class TestRemove:
    """Tests for CargoEdit.remove."""

    def test_remove(self, tmp_full_package: Path):
        result = CargoEdit(tmp_full_package, printer=RecordingPrinter()).remove("anyhow", "clap")

        assert result
        assert result.message == "Removed anyhow, clap from dependencies"
        assert result.data == ["anyhow", "clap"]
        assert "anyhow" not in data(tmp_full_package)["dependencies"]

    def test_missing_dependency(self, tmp_full_package: Path):
        """
        Removing an absent dependency returns an ErrorResult and writes nothing.
        """
        before = tmp_full_package.read_text()
        result = CargoEdit(tmp_full_package, printer=RecordingPrinter()).remove("tokio")

        assert not result
        assert isinstance(result.exception, NonExistentDependency)
        assert tmp_full_package.read_text() == before

    def test_dry_run_diff(self, tmp_full_package: Path):
        result = CargoEdit(tmp_full_package, dry_run=True, printer=RecordingPrinter()).remove(
            "cc", section=DepTable("build-dependencies")
        )

        assert result.message == "[DRY RUN] Would remove cc from build-dependencies"
        assert "-[build-dependencies]" in result.diff
        assert '-cc = "1.0"' in result.diff


# =============================================================================
# upgrade
# =============================================================================

class TestUpgrade:
    """Tests for CargoEdit.upgrade."""

    def test_all_members(self, tmp_workspace: Path):
        """
        all_members upgrades every workspace member's registry dependencies.
        """
        crates = tmp_workspace / "crates"
        (crates / "b" / "Cargo.toml").write_text(
            '[package]\nname = "b"\nversion = "0.1.0"\n\n[dependencies]\nserde = "0.9"\n'
        )
        resolver = FakeResolver({"serde": ResolvedCrate("serde", "1.0.188")})

        result = CargoEdit(crates / "a", resolver=resolver, printer=RecordingPrinter()).upgrade(all_members=True)

        assert result
        assert [p.name for p in result.data] == ["serde"]
        assert result.files_changed == [(crates / "b" / "Cargo.toml").resolve()]
        assert data(crates / "b" / "Cargo.toml")["dependencies"]["serde"] == "1.0"

    def test_dry_run_reports_plan(self, tmp_full_package: Path):
        before = tmp_full_package.read_text()
        resolver = FakeResolver({"clap": ResolvedCrate("clap", "4.4.6")})

        result = CargoEdit(tmp_full_package, dry_run=True, resolver=resolver, printer=RecordingPrinter()).upgrade("clap")

        assert result
        assert [(p.old_req, p.new_req) for p in result.data] == [("3.0", "4.4")]
        assert tmp_full_package.read_text() == before


# =============================================================================
# set_version
# =============================================================================

class TestSetVersion:
    """Tests for CargoEdit.set_version."""

    def test_this_package_only(self, tmp_workspace: Path):
        """
        Without packages or all_members only the editor's package moves.
        """
        crates = tmp_workspace / "crates"
        result = CargoEdit(crates / "b", printer=RecordingPrinter()).set_version(Absolute(Version.parse("0.2.0")))

        assert result
        assert result.message == "Set version of b 0.2.0"
        assert data(crates / "b" / "Cargo.toml")["package"]["version"] == "0.2.0"
        assert data(crates / "a" / "Cargo.toml")["dependencies"]["b"]["version"] == "0.2"
        assert set(result.files_changed) == {
            (crates / "a" / "Cargo.toml").resolve(),
            (crates / "b" / "Cargo.toml").resolve(),
        }

    def test_downgrade_is_refused(self, tmp_workspace: Path):
        """
        A lower absolute version returns Downgrade and writes nothing.
        """
        b = tmp_workspace / "crates" / "b" / "Cargo.toml"
        before = b.read_text()

        result = CargoEdit(b, printer=RecordingPrinter()).set_version(Absolute(Version.parse("0.0.1")))

        assert not result
        assert isinstance(result.exception, Downgrade)
        assert result.operation == "set_version"
        assert b.read_text() == before

    def test_dry_run_all_members(self, tmp_workspace: Path):
        """
        A dry run over every member returns one diff per manifest.
        """
        crates = tmp_workspace / "crates"
        editor = CargoEdit(crates / "a", dry_run=True, printer=RecordingPrinter())

        result = editor.set_version(Relative(BumpLevel.MINOR), all_members=True)

        assert result
        assert result.message == "[DRY RUN] Would set version of a 0.2.0, b 0.2.0"
        assert len(result.diffs) == 2
        assert data(crates / "a" / "Cargo.toml")["package"]["version"] == "0.1.0"

    def test_unknown_package(self, tmp_workspace: Path):
        result = CargoEdit(tmp_workspace / "crates" / "a", printer=RecordingPrinter()).set_version(packages=["zzz"])
        assert not result
        assert "zzz" in result.message
