"""Command flows: add, remove, upgrade and set-version.

Each flow takes already-opened manifests (or a workspace) plus its
collaborators, raises :class:`~cargoedit.errors.CargoEditError` on failure
and writes only once everything succeeded.
"""
from cargoedit.ops.add import DepRequest, add, resolve_dependency
from cargoedit.ops.remove import remove
from cargoedit.ops.set_version import VersionChange, set_version
from cargoedit.ops.upgrade import PlannedUpgrade, upgrade

__all__ = [
    "DepRequest",
    "PlannedUpgrade",
    "VersionChange",
    "add",
    "remove",
    "resolve_dependency",
    "set_version",
    "upgrade",
]
