"""
Tests for registry URL lookup from Cargo config files.

Coverage targets:
- crates.io default and source replacement
- Named registries from nearer and farther config files
- Missing registries, missing sources and replacement cycles
"""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from cargoedit.errors import InvalidCargoConfig, NoSuchRegistry, NoSuchSource, SourceReplacementCycle
from cargoedit.sources import CRATES_IO_INDEX, registry_url
from cargoedit.sources.registry import cargo_home


def write_config(directory: Path, content: str) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "config.toml").write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A manifest path under tmp_path/work/app, with an empty Cargo home."""
    (tmp_path / "work" / "app").mkdir(parents=True)
    (tmp_path / "home").mkdir()
    return tmp_path / "work" / "app" / "Cargo.toml"


def lookup(project: Path, registry: str | None = None) -> str:
    return registry_url(project, registry, home=project.parents[2] / "home")


class TestRegistryUrl:
    """Tests for registry_url."""

    def test_crates_io_default(self, project: Path):
        assert lookup(project) == CRATES_IO_INDEX
        assert lookup(project, CRATES_IO_INDEX) == CRATES_IO_INDEX

    def test_crates_io_replaced(self, project: Path):
        """`replace-with` on crates-io redirects to a mirror."""
        write_config(project.parent / ".cargo", '''
            [source.crates-io]
            replace-with = "mirror"

            [source.mirror]
            registry = "https://mirror.example/index"
        ''')
        assert lookup(project) == "https://mirror.example/index"

    def test_named_registry_in_home(self, project: Path):
        write_config(project.parents[2] / "home", '''
            [registries.corp]
            index = "https://corp.example/index"
        ''')
        assert lookup(project, "corp") == "https://corp.example/index"

    def test_nearer_config_wins(self, project: Path):
        """The config closest to the manifest takes precedence."""
        write_config(project.parents[1] / ".cargo", '''
            [registries.corp]
            index = "https://far.example/index"
        ''')
        write_config(project.parent / ".cargo", '''
            [registries.corp]
            index = "https://near.example/index"
        ''')
        assert lookup(project, "corp") == "https://near.example/index"

    def test_unknown_registry(self, project: Path):
        with pytest.raises(NoSuchRegistry) as info:
            lookup(project, "corp")
        assert info.value.name == "corp"

    def test_unknown_replacement(self, project: Path):
        write_config(project.parent / ".cargo", '''
            [source.crates-io]
            replace-with = "vendored"
        ''')
        with pytest.raises(NoSuchSource):
            lookup(project)

    def test_replacement_cycle(self, project: Path):
        write_config(project.parent / ".cargo", '''
            [source.crates-io]
            replace-with = "a"

            [source.a]
            replace-with = "b"

            [source.b]
            replace-with = "a"
        ''')
        with pytest.raises(SourceReplacementCycle) as info:
            lookup(project)
        assert info.value.chain == ["crates-io", "a", "b", "a"]

    def test_malformed_config(self, project: Path):
        (project.parent / ".cargo").mkdir()
        (project.parent / ".cargo" / "config").write_text("[registries\n", encoding="utf-8")
        with pytest.raises(InvalidCargoConfig):
            lookup(project)


class TestCargoHome:
    """Tests for cargo_home."""

    def test_environment_override(self, tmp_path: Path):
        assert cargo_home({"CARGO_HOME": str(tmp_path)}) == tmp_path

    def test_default(self):
        assert cargo_home({}) == Path.home() / ".cargo"
