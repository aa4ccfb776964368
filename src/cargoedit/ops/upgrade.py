"""Raise registry dependency requirements to newer versions."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from cargoedit.crate_spec import CratePath, CrateSpec
from cargoedit.dependency import Dependency, RegistrySource
from cargoedit.errors import CargoEditError, InvalidName, UnsupportedVersionReq
from cargoedit.manifest.local import LocalManifest
from cargoedit.printer import LogPrinter, Printer
from cargoedit.sources.resolver import OfflineResolver, SourceResolver
from cargoedit.version import VersionReq, upgrade_requirement

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedUpgrade:
    """One requirement change, applied or (on a dry run) only reported."""

    manifest_path: Path
    name: str
    old_req: str
    new_req: str
    table: str = "dependencies"


def parse_selection(dependencies: Iterable[str]) -> dict[str, str | None]:
    """Map ``name`` / ``name@req`` arguments to their requested requirement.

    Raises
    ------
    InvalidName
        If an argument is a path rather than a crate name.
    """
    selected: dict[str, str | None] = {}
    for text in dependencies:
        spec = CrateSpec.resolve(text)
        if isinstance(spec, CratePath):
            raise InvalidName(text, ["expected a crate name, not a path"])
        selected[spec.name] = spec.version_req
    return selected


def _candidates(
    manifest: LocalManifest, printer: Printer
) -> Iterable[tuple[list[str], str, Dependency]]:
    for table_path, table in manifest.get_sections():
        for key in list(table.keys()):
            try:
                dependency = Dependency.from_toml(manifest.crate_root, key, table[key])
            except CargoEditError as exc:
                printer.warn(f"ignoring dependency `{key}`: {exc}")
                continue
            if isinstance(dependency.source, RegistrySource):
                yield table_path, key, dependency


def upgrade(
    manifests: Iterable[LocalManifest],
    resolver: SourceResolver | None = None,
    dependencies: Iterable[str] = (),
    exclude: Iterable[str] = (),
    pinned: bool = False,
    skip_compatible: bool = False,
    dry_run: bool = False,
    printer: Printer | None = None,
) -> list[PlannedUpgrade]:
    """Upgrade registry dependencies of every manifest.

    Path and git dependencies are never touched. Each entry is judged on
    its own, so a pinned dev-dependency stays put while the runtime entry
    for the same crate moves. Every latest version is looked up before
    any document is edited, and each changed manifest is written once at
    the end.

    Parameters
    ----------
    manifests : Iterable[LocalManifest]
        The manifests to edit; each is written when it changes.
    resolver : SourceResolver | None
        Supplies the latest version of each crate.
    dependencies : Iterable[str]
        Only upgrade these crates; ``name@req`` sets the requirement verbatim.
    exclude : Iterable[str]
        Crate names or keys to leave alone.
    pinned : bool
        Also upgrade pinned requirements (``=``, ``<``, ``<=``, wildcards)
        and renamed dependencies.
    skip_compatible : bool
        Leave requirements that already admit the latest version.
    dry_run : bool
        Report without writing.
    printer : Printer | None
        Where status lines go; each manifest's own printer by default.

    Returns
    -------
    list[PlannedUpgrade]
        Every change made, or that would be made on a dry run.

    Raises
    ------
    CrateNotFound
        If the resolver does not know a crate; nothing is written then.
    """
    resolver = resolver or OfflineResolver()
    selected = parse_selection(dependencies)
    excluded = set(exclude)
    manifests = list(manifests)
    latest_versions: dict[tuple[str, str | None], str] = {}
    edits: list[tuple[LocalManifest, list[str], str, PlannedUpgrade]] = []

    for manifest in manifests:
        out = printer or manifest.printer
        for table_path, key, dependency in _candidates(manifest, out):
            name = dependency.name
            old_req = str(dependency.version())
            if name in excluded or key in excluded:
                continue
            if selected and name not in selected:
                continue

            explicit = selected.get(name)
            if explicit is None and not pinned:
                if dependency.rename is not None:
                    logger.debug("Skipping renamed dependency %s", key)
                    continue
                try:
                    is_pinned = VersionReq.parse(old_req).is_pinned()
                except CargoEditError as exc:
                    out.warn(f"ignoring dependency `{key}`: {exc}")
                    continue
                if is_pinned:
                    logger.debug("Skipping pinned dependency %s %s", name, old_req)
                    continue

            if explicit is not None:
                new_req = explicit
            else:
                lookup = (name, dependency.registry())
                if lookup not in latest_versions:
                    latest_versions[lookup] = resolver.latest(*lookup).version
                latest = latest_versions[lookup]
                try:
                    relaxed = upgrade_requirement(old_req, latest)
                except UnsupportedVersionReq:
                    out.warn(f"cannot upgrade `{name}` from `{old_req}` to {latest}")
                    continue
                if relaxed is None and skip_compatible:
                    continue
                new_req = relaxed or latest
            if new_req == old_req:
                continue

            change = PlannedUpgrade(manifest.path, name, old_req, new_req, ".".join(table_path))
            edits.append((manifest, table_path, key, change))

    for manifest, table_path, key, change in edits:
        out = printer or manifest.printer
        out.status("Upgrading", f"{change.name} v{change.old_req} -> v{change.new_req}")
        if not dry_run:
            manifest.set_dependency_version(table_path, key, change.new_req)

    if dry_run:
        out = printer or (manifests[-1].printer if manifests else LogPrinter())
        out.warn("aborting upgrade due to dry run")
    else:
        for manifest in manifests:
            if manifest.is_modified():
                manifest.write()
    return [change for _, _, _, change in edits]
