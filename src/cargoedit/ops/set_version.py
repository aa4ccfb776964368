"""Change package versions and keep workspace dependents in step."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from semver import Version

from cargoedit.core.transaction import ManifestTransaction
from cargoedit.document import is_table_like
from cargoedit.errors import CrateNotFound, InvalidManifest
from cargoedit.printer import LogPrinter, Printer
from cargoedit.version import TargetVersion, bump, parse_version, upgrade_requirement
from cargoedit.workspace import WorkspaceMember, WorkspaceView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionChange:
    """A package moved from ``old`` to ``new``."""

    name: str
    old: Version
    new: Version


def select_members(
    workspace: WorkspaceView,
    packages: Iterable[str] | None = None,
    manifest_path: Path | None = None,
    exclude: Iterable[str] = (),
) -> list[WorkspaceMember]:
    """Pick the packages to re-version.

    Parameters
    ----------
    workspace : WorkspaceView
        All members.
    packages : Iterable[str] | None
        Names to select; None selects every member, or only the package
        at ``manifest_path`` when that is given.
    manifest_path : Path | None
        Manifest of the package to select when ``packages`` is None.
    exclude : Iterable[str]
        Names removed from the selection.

    Raises
    ------
    CrateNotFound
        If a requested name is not a member.
    """
    members = workspace.members()
    excluded = set(exclude)
    if packages is not None:
        by_name = {m.name: m for m in members}
        selected = []
        for name in packages:
            if name not in by_name:
                raise CrateNotFound(name, "package is not a workspace member")
            selected.append(by_name[name])
    elif manifest_path is not None:
        target = Path(manifest_path).resolve()
        selected = [m for m in members if m.manifest_path.resolve() == target]
    else:
        selected = members
    return [m for m in selected if m.name not in excluded]


def _points_at(crate_root: Path, entry: object, package_root: Path) -> bool:
    if not is_table_like(entry) or "version" not in entry:
        return False
    path = entry.get("path")
    if not isinstance(path, str):
        return False
    return os.path.realpath(crate_root / path) == os.path.realpath(package_root)


def update_dependents(
    transaction: ManifestTransaction,
    workspace: WorkspaceView,
    package_root: Path,
    version: Version,
    printer: Printer,
) -> None:
    """Rewrite every path requirement on ``package_root`` to admit ``version``.

    Entries without a ``version`` key, and requirements that already admit
    the new version, are left alone.
    """
    for member in workspace.members():
        manifest = transaction.load(member.manifest_path)
        for table in manifest.get_dependency_tables_mut():
            for key in list(table.keys()):
                entry = table[key]
                if not _points_at(manifest.crate_root, entry, package_root):
                    continue
                old_req = entry["version"]
                old_req = str(old_req) if isinstance(old_req, str) else "*"
                new_req = upgrade_requirement(old_req, version)
                if new_req is None:
                    continue
                printer.status("Updated dependency", f"{member.name} from {old_req} to {new_req}")
                entry["version"] = new_req


def set_version(
    workspace: WorkspaceView,
    target: TargetVersion | None = None,
    packages: Iterable[str] | None = None,
    manifest_path: Path | None = None,
    exclude: Iterable[str] = (),
    metadata: str | None = None,
    dry_run: bool = False,
    printer: Printer | None = None,
    transaction: ManifestTransaction | None = None,
) -> list[VersionChange]:
    """Bump the selected packages and propagate the new versions.

    Every manifest edit is collected in one transaction; nothing is
    written until all packages have been processed, and not at all when
    a bump fails.

    Parameters
    ----------
    workspace : WorkspaceView
        The workspace to operate on.
    target : TargetVersion | None
        How to change each version; defaults to ``Relative(BumpLevel.RELEASE)``.
    packages, manifest_path, exclude
        Package selection, see :func:`select_members`.
    metadata : str | None
        Build metadata for the new versions.
    dry_run : bool
        Print what would change without writing.
    printer : Printer | None
        Receives status lines.
    transaction : ManifestTransaction | None
        Collects the edits. When one is passed in, the caller commits it.

    Returns
    -------
    list[VersionChange]
        The packages whose version changed.

    Raises
    ------
    Downgrade
        If an absolute target is lower than a package's version.
    InvalidReleaseLevel
        If a pre-release bump would move backwards.
    """
    printer = printer or LogPrinter()
    owns_transaction = transaction is None
    if transaction is None:
        transaction = ManifestTransaction(dry_run=dry_run, printer=printer)

    if dry_run:
        printer.note("Starting dry run. Changes will not be saved.")

    changes: list[VersionChange] = []
    for member in select_members(workspace, packages, manifest_path, exclude):
        if member.version is None:
            raise InvalidManifest(f"package `{member.name}` has no version")
        current = parse_version(member.version)
        new = bump(current, target, metadata)
        if new is None:
            continue

        manifest = transaction.load(member.manifest_path)
        if manifest.is_version_inherited():
            root = transaction.load(workspace.root_manifest, require_package=False)
            root.set_workspace_version(new)
        else:
            manifest.set_package_version(new)
        printer.status("Upgraded", f"{member.name} from {current} to {new}")
        changes.append(VersionChange(member.name, current, new))

        update_dependents(transaction, workspace, member.root, new, printer)

    if owns_transaction:
        result = transaction.commit()
        if not result:
            result.failed[0].raise_if_error()  # type: ignore[attr-defined]
    logger.debug("Changed versions: %s", changes)
    return changes
