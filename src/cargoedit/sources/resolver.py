"""Interface to whatever knows which crate versions exist."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from cargoedit.dependency import Dependency, PathSource
from cargoedit.errors import CrateNotFound
from cargoedit.manifest.manifest import Manifest


@dataclass(frozen=True)
class ResolvedCrate:
    """The answer to a "latest version" query.

    ``name`` is the canonical spelling of the crate, which may differ from
    the query in ``-`` versus ``_``.
    """

    name: str
    version: str
    features: dict[str, list[str]] = field(default_factory=dict)


class SourceResolver(Protocol):
    """Supplies latest versions and feature lists."""

    def latest(
        self, name: str, registry: str | None = None, version_req: str | None = None
    ) -> ResolvedCrate:
        """The newest usable version of ``name``.

        Raises
        ------
        CrateNotFound
            If the crate is unknown or has no usable version.
        """

    def features(self, dependency: Dependency) -> dict[str, list[str]]:
        """Features offered by the crate ``dependency`` points at."""


def path_features(dependency: Dependency) -> dict[str, list[str]]:
    """Features of a path dependency, read from its own manifest."""
    assert isinstance(dependency.source, PathSource)
    return Manifest.load(dependency.source.path / "Cargo.toml").features()


class OfflineResolver:
    """A resolver with no registry; only path dependencies are answered."""

    def latest(
        self, name: str, registry: str | None = None, version_req: str | None = None
    ) -> ResolvedCrate:
        raise CrateNotFound(name, "no registry index is configured")

    def features(self, dependency: Dependency) -> dict[str, list[str]]:
        if isinstance(dependency.source, PathSource):
            return path_features(dependency)
        return {}
