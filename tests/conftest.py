"""
Shared pytest fixtures for the cargoedit test suite.

This module provides:
- Sample manifest contents
- Temporary packages and workspaces on disk
- In-memory fakes for the resolver and printer collaborators

Fixture Naming Convention:
- tmp_* : Fixtures that create temporary directories/files
- sample_* : Fixtures that provide sample content strings
- fake_* / recording_* : In-memory collaborator implementations
"""
from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from cargoedit.dependency import Dependency, PathSource
from cargoedit.printer import Tone
from cargoedit.sources.resolver import ResolvedCrate, path_features
from cargoedit.workspace import StaticWorkspace, WorkspaceMember

LATEST = "99999.0.0"


def write_manifest(directory: Path, content: str) -> Path:
    """Write ``content`` (dedented) as ``directory/Cargo.toml``."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "Cargo.toml"
    path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8", newline="")
    return path


# =============================================================================
# Collaborator Fakes
# =============================================================================

class FakeResolver:
    """SourceResolver answering from a dict; unknown crates resolve to LATEST."""

    def __init__(self, crates: dict[str, ResolvedCrate] | None = None) -> None:
        self.crates = crates or {}
        self.queries: list[tuple[str, str | None]] = []

    def latest(self, name, registry=None, version_req=None):
        self.queries.append((name, registry))
        if name in self.crates:
            return self.crates[name]
        for crate in self.crates.values():
            if crate.name.replace("_", "-") == name.replace("_", "-"):
                return crate
        return ResolvedCrate(name, LATEST)

    def features(self, dependency: Dependency):
        if isinstance(dependency.source, PathSource):
            return path_features(dependency)
        crate = self.crates.get(dependency.name)
        return dict(crate.features) if crate else {}


class RecordingPrinter:
    """Printer that keeps every line for later assertions."""

    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []
        self.features: list[tuple[list[str], list[str]]] = []

    def status(self, verb, message, tone=Tone.ACTION):
        self.lines.append((verb, message))

    def warn(self, message):
        self.lines.append(("warning", message))

    def note(self, message):
        self.lines.append(("note", message))

    def deprecated(self, message):
        self.lines.append(("deprecated", message))

    def feature_list(self, activated, deactivated):
        self.features.append((list(activated), list(deactivated)))

    def messages(self, verb: str) -> list[str]:
        return [message for v, message in self.lines if v == verb]


@pytest.fixture
def fake_resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture
def recording_printer() -> RecordingPrinter:
    return RecordingPrinter()


# =============================================================================
# Sample Manifests
# =============================================================================

@pytest.fixture
def sample_package_manifest() -> str:
    """The smallest real package manifest."""
    return textwrap.dedent('''
        [package]
        name = "x"
        version = "0.1.0"
    ''').lstrip()


@pytest.fixture
def sample_full_manifest() -> str:
    """
    A manifest exercising every dependency table.

    Contains:
    - A comment that must survive edits
    - Short-form, inline and block dependency entries
    - A renamed dependency and a target-specific table
    - A features table referencing an optional dependency
    """
    return textwrap.dedent('''
        [package]
        name = "demo"
        version = "0.3.1"
        edition = "2021"

        # runtime dependencies
        [dependencies]
        anyhow = "1.0"
        clap = { version = "3.0", features = ["derive"] }
        log = { version = "0.4", optional = true }
        serde_json = { version = "1.0", package = "serde-json-fork" }

        [dependencies.regex]
        version = "1.5"
        default-features = false

        [dev-dependencies]
        pretty_assertions = "1"

        [build-dependencies]
        cc = "1.0"

        [target.'cfg(unix)'.dependencies]
        libc = "0.2"

        [features]
        default = ["log"]
        tracing = ["log/std", "regex/unicode"]
    ''').lstrip()


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================

@pytest.fixture
def tmp_package(tmp_path: Path, sample_package_manifest: str) -> Path:
    """
    Create a single package.

    Structure:
    tmp_path/x/Cargo.toml   (sample_package_manifest)

    Returns the manifest path.
    """
    return write_manifest(tmp_path / "x", sample_package_manifest)


@pytest.fixture
def tmp_full_package(tmp_path: Path, sample_full_manifest: str) -> Path:
    """Create a package from sample_full_manifest; returns the manifest path."""
    return write_manifest(tmp_path / "demo", sample_full_manifest)


@pytest.fixture
def tmp_workspace(tmp_path: Path) -> Path:
    """
    Create a virtual workspace of two packages.

    Structure:
    tmp_path/
    ├── Cargo.toml          ([workspace] members = ["crates/*"])
    └── crates/
        ├── a/Cargo.toml    (depends on b via path, version "0.1")
        └── b/Cargo.toml    (version 0.1.0, feature "extra")

    Returns the workspace root directory.
    """
    write_manifest(tmp_path, '''
        [workspace]
        members = ["crates/*"]
    ''')
    write_manifest(tmp_path / "crates" / "a", '''
        [package]
        name = "a"
        version = "0.1.0"

        [dependencies]
        b = { path = "../b", version = "0.1" }
    ''')
    write_manifest(tmp_path / "crates" / "b", '''
        [package]
        name = "b"
        version = "0.1.0"

        [features]
        extra = []
    ''')
    return tmp_path


@pytest.fixture
def static_workspace(tmp_workspace: Path) -> StaticWorkspace:
    """The members of tmp_workspace, listed explicitly."""
    crates = tmp_workspace / "crates"
    return StaticWorkspace(
        tmp_workspace / "Cargo.toml",
        [
            WorkspaceMember("a", "0.1.0", (crates / "a" / "Cargo.toml").resolve()),
            WorkspaceMember("b", "0.1.0", (crates / "b" / "Cargo.toml").resolve()),
        ],
    )
