"""Resolve crate versions from a registry index checked out on disk.

The index layout is the one used by crates.io: one file per crate holding
one JSON record per published version. Files live under ``1/``, ``2/``,
``3/<first char>/`` or ``<chars 0-2>/<chars 2-4>/`` depending on the
length of the name.
"""
from __future__ import annotations

import itertools
import json
import logging
from pathlib import Path
from typing import Any

from semver import Version

from cargoedit.dependency import Dependency, GitSource, PathSource, RegistrySource
from cargoedit.errors import CrateNotFound, InvalidVersion
from cargoedit.sources.resolver import ResolvedCrate, path_features
from cargoedit.version import VersionReq, parse_version

logger = logging.getLogger(__name__)

MAX_FUZZY_SEPARATORS = 10


def index_path(name: str) -> Path:
    """Relative location of ``name`` inside an index.

    Examples
    --------
    >>> index_path("serde").as_posix()
    'se/rd/serde'
    >>> index_path("cc").as_posix()
    '2/cc'
    """
    name = name.lower()
    if len(name) <= 2:
        return Path(str(len(name))) / name
    if len(name) == 3:
        return Path("3") / name[0] / name
    return Path(name[:2]) / name[2:4] / name


def fuzzy_names(name: str) -> list[str]:
    """Every spelling of ``name`` with ``-`` and ``_`` swapped, the input first."""
    positions = [i for i, char in enumerate(name) if char in "-_"][:MAX_FUZZY_SEPARATORS]
    names = [name]
    for combo in itertools.product("-_", repeat=len(positions)):
        chars = list(name)
        for position, char in zip(positions, combo):
            chars[position] = char
        candidate = "".join(chars)
        if candidate not in names:
            names.append(candidate)
    return names


class LocalIndexResolver:
    """A :class:`~cargoedit.sources.resolver.SourceResolver` over index checkouts.

    Parameters
    ----------
    index_root : Path
        Checkout of the default registry index.
    registries : dict[str, Path] | None
        Checkouts of named alternative registries.
    allow_prerelease : bool
        Consider pre-release versions when picking the latest.
    """

    def __init__(
        self,
        index_root: Path,
        registries: dict[str, Path] | None = None,
        allow_prerelease: bool = False,
    ) -> None:
        self.index_root = Path(index_root)
        self.registries = {k: Path(v) for k, v in (registries or {}).items()}
        self.allow_prerelease = allow_prerelease
        self._cache: dict[tuple[Path, str], list[dict[str, Any]]] = {}

    def _root(self, registry: str | None) -> Path:
        if registry is None:
            return self.index_root
        if registry not in self.registries:
            raise CrateNotFound(registry, f"no index for registry `{registry}`")
        return self.registries[registry]

    def _records(self, root: Path, name: str) -> list[dict[str, Any]]:
        key = (root, name)
        if key not in self._cache:
            path = root / index_path(name)
            if not path.is_file():
                self._cache[key] = []
            else:
                logger.debug("Reading index file %s", path)
                lines = path.read_text(encoding="utf-8").splitlines()
                self._cache[key] = [json.loads(line) for line in lines if line.strip()]
        return self._cache[key]

    def _lookup(self, name: str, registry: str | None) -> tuple[str, list[dict[str, Any]]]:
        root = self._root(registry)
        for candidate in fuzzy_names(name):
            records = self._records(root, candidate)
            if records:
                return str(records[0].get("name", candidate)), records
        raise CrateNotFound(name)

    def _pick(
        self, name: str, records: list[dict[str, Any]], version_req: str | None
    ) -> tuple[Version, dict[str, Any]]:
        req = VersionReq.parse(version_req) if version_req else None
        best: tuple[Version, dict[str, Any]] | None = None
        for record in records:
            if record.get("yanked"):
                continue
            try:
                version = parse_version(str(record.get("vers", "")))
            except InvalidVersion:
                continue
            if req is not None:
                if not req.matches(version):
                    continue
            elif version.prerelease and not self.allow_prerelease:
                continue
            if best is None or version > best[0]:
                best = (version, record)
        if best is None:
            raise CrateNotFound(name, "no matching versions available")
        return best

    @staticmethod
    def _features(record: dict[str, Any]) -> dict[str, list[str]]:
        features: dict[str, list[str]] = {}
        for table in (record.get("features") or {}, record.get("features2") or {}):
            for feature, activations in table.items():
                features.setdefault(feature, []).extend(activations)
        return features

    def latest(
        self, name: str, registry: str | None = None, version_req: str | None = None
    ) -> ResolvedCrate:
        canonical, records = self._lookup(name, registry)
        version, record = self._pick(canonical, records, version_req)
        logger.debug("Resolved %s to %s %s", name, canonical, version)
        return ResolvedCrate(canonical, str(version), self._features(record))

    def features(self, dependency: Dependency) -> dict[str, list[str]]:
        source = dependency.source
        if isinstance(source, PathSource):
            return path_features(dependency)
        if isinstance(source, GitSource) or source is None:
            return {}
        if isinstance(source, RegistrySource):
            return self.latest(dependency.name, source.registry, source.version).features
        raise AssertionError(f"unhandled source {source!r}")
