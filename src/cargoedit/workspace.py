"""Workspace membership.

Commands that touch more than one package see the workspace through the
:class:`WorkspaceView` protocol. :class:`FilesystemWorkspace` answers it
by expanding the ``workspace.members`` globs of the root manifest.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

from cargoedit.document import is_table_like
from cargoedit.errors import CargoEditError, InvalidManifest
from cargoedit.manifest.manifest import Manifest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkspaceMember:
    """One package of a workspace."""

    name: str
    version: str | None
    manifest_path: Path

    @property
    def root(self) -> Path:
        return self.manifest_path.parent


class WorkspaceView(Protocol):
    """Enumerates the packages of a workspace."""

    @property
    def root_manifest(self) -> Path:
        """Manifest holding the ``[workspace]`` table."""

    def members(self) -> list[WorkspaceMember]:
        """Every member package, each listed once."""


class StaticWorkspace:
    """A workspace given as an explicit list of members."""

    def __init__(self, root_manifest: Path, members: Sequence[WorkspaceMember] = ()) -> None:
        self._root_manifest = Path(root_manifest)
        self._members = list(members)

    @property
    def root_manifest(self) -> Path:
        return self._root_manifest

    def members(self) -> list[WorkspaceMember]:
        return list(self._members)


def _string_list(value: object, what: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise InvalidManifest(f"`{what}` must be an array of strings")
    return [str(v) for v in value]


class FilesystemWorkspace:
    """Discover members by reading manifests on disk.

    Parameters
    ----------
    root_manifest : Path
        The workspace root ``Cargo.toml``. A manifest without a
        ``[workspace]`` table is a workspace of one.

    Examples
    --------
    >>> ws = FilesystemWorkspace.discover(Path("crates/a/Cargo.toml"))  # doctest: +SKIP
    >>> [m.name for m in ws.members()]  # doctest: +SKIP
    ['a', 'b']
    """

    def __init__(self, root_manifest: Path) -> None:
        self._root_manifest = Path(root_manifest).resolve()
        self._members: list[WorkspaceMember] | None = None

    @classmethod
    def discover(cls, manifest_path: Path) -> FilesystemWorkspace:
        """Find the workspace containing ``manifest_path``.

        Walks up from the manifest's directory to the nearest manifest
        with a ``[workspace]`` table.
        """
        manifest_path = Path(manifest_path).resolve()
        for directory in [manifest_path.parent, *manifest_path.parent.parents]:
            candidate = directory / "Cargo.toml"
            if not candidate.is_file():
                continue
            try:
                manifest = Manifest.load(candidate)
            except CargoEditError:
                logger.debug("Skipping unreadable manifest %s", candidate)
                continue
            if "workspace" in manifest.data:
                return cls(candidate)
        return cls(manifest_path)

    @property
    def root_manifest(self) -> Path:
        return self._root_manifest

    def members(self) -> list[WorkspaceMember]:
        if self._members is None:
            self._members = self._load_members()
        return list(self._members)

    def _load_members(self) -> list[WorkspaceMember]:
        root = Manifest.load(self._root_manifest)
        root_dir = self._root_manifest.parent
        workspace_version = root.workspace_version()

        paths: list[Path] = []
        if root.package_table() is not None:
            paths.append(self._root_manifest)

        workspace = root.data.get("workspace")
        if is_table_like(workspace):
            excluded = {
                (root_dir / p).resolve()
                for p in _string_list(workspace.get("exclude"), "workspace.exclude")
            }
            for pattern in _string_list(workspace.get("members"), "workspace.members"):
                for directory in sorted(root_dir.glob(pattern)):
                    manifest_path = (directory / "Cargo.toml").resolve()
                    if directory.resolve() in excluded or not manifest_path.is_file():
                        continue
                    if manifest_path not in paths:
                        paths.append(manifest_path)

        members = []
        for path in paths:
            manifest = root if path == self._root_manifest else Manifest.load(path)
            version = manifest.package_version()
            if version is None and manifest.is_version_inherited():
                version = workspace_version
            members.append(WorkspaceMember(manifest.package_name(), version, path))
        logger.debug("Workspace %s has %d members", self._root_manifest, len(members))
        return members
