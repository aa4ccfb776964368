"""
Tests for workspace discovery.

Coverage targets:
- FilesystemWorkspace.discover walking up to the workspace root
- Member expansion from globs, exclusions and a root package
- Inherited package versions
- StaticWorkspace
"""
from __future__ import annotations

from pathlib import Path

import pytest

from conftest import write_manifest
from cargoedit.errors import InvalidManifest
from cargoedit.workspace import FilesystemWorkspace, StaticWorkspace, WorkspaceMember


class TestDiscover:
    """Tests for FilesystemWorkspace.discover."""

    def test_member_finds_root(self, tmp_workspace: Path):
        workspace = FilesystemWorkspace.discover(tmp_workspace / "crates" / "a" / "Cargo.toml")
        assert workspace.root_manifest == (tmp_workspace / "Cargo.toml").resolve()

    def test_lone_package(self, tmp_package: Path):
        """A package outside any workspace is its own root."""
        workspace = FilesystemWorkspace.discover(tmp_package)
        assert workspace.root_manifest == tmp_package.resolve()
        assert [m.name for m in workspace.members()] == ["x"]


class TestMembers:
    """Tests for FilesystemWorkspace.members."""

    def test_glob_members_in_order(self, tmp_workspace: Path):
        members = FilesystemWorkspace(tmp_workspace / "Cargo.toml").members()

        assert [m.name for m in members] == ["a", "b"]
        assert members[1] == WorkspaceMember(
            "b", "0.1.0", (tmp_workspace / "crates" / "b" / "Cargo.toml").resolve()
        )
        assert members[0].root == (tmp_workspace / "crates" / "a").resolve()

    def test_exclude(self, tmp_workspace: Path):
        write_manifest(tmp_workspace, '''
            [workspace]
            members = ["crates/*"]
            exclude = ["crates/b"]
        ''')
        members = FilesystemWorkspace(tmp_workspace / "Cargo.toml").members()
        assert [m.name for m in members] == ["a"]

    def test_root_package_comes_first(self, tmp_path: Path):
        write_manifest(tmp_path, '''
            [package]
            name = "root"
            version = "1.0.0"

            [workspace]
            members = ["sub"]
        ''')
        write_manifest(tmp_path / "sub", '''
            [package]
            name = "sub"
            version = "0.1.0"
        ''')
        members = FilesystemWorkspace(tmp_path / "Cargo.toml").members()
        assert [m.name for m in members] == ["root", "sub"]

    def test_inherited_version(self, tmp_path: Path):
        """Members with `version.workspace = true` report the workspace version."""
        write_manifest(tmp_path, '''
            [workspace]
            members = ["m"]

            [workspace.package]
            version = "3.1.4"
        ''')
        write_manifest(tmp_path / "m", '''
            [package]
            name = "m"
            version.workspace = true
        ''')
        (member,) = FilesystemWorkspace(tmp_path / "Cargo.toml").members()
        assert member.version == "3.1.4"

    def test_directories_without_manifest_are_skipped(self, tmp_workspace: Path):
        (tmp_workspace / "crates" / "docs").mkdir()
        members = FilesystemWorkspace(tmp_workspace / "Cargo.toml").members()
        assert len(members) == 2

    def test_malformed_members(self, tmp_path: Path):
        write_manifest(tmp_path, '''
            [workspace]
            members = "crates/*"
        ''')
        with pytest.raises(InvalidManifest):
            FilesystemWorkspace(tmp_path / "Cargo.toml").members()


class TestStaticWorkspace:
    """Tests for StaticWorkspace."""

    def test_members_are_copied(self, static_workspace: StaticWorkspace):
        members = static_workspace.members()
        members.clear()
        assert len(static_workspace.members()) == 2
