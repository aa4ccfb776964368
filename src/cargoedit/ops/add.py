"""Add dependencies to a manifest."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from cargoedit.crate_spec import CratePath, CrateSpec
from cargoedit.dependency import Dependency, GitSource, PathSource, RegistrySource
from cargoedit.errors import ConflictingSource, CrateNotFound, SelfDependency
from cargoedit.manifest.local import LocalManifest
from cargoedit.manifest.manifest import DepTable
from cargoedit.printer import Printer
from cargoedit.sources.resolver import OfflineResolver, SourceResolver
from cargoedit.workspace import WorkspaceView

logger = logging.getLogger(__name__)

# Preference order when borrowing an entry from another section
_RANK_DEV, _RANK_BUILD, _RANK_TARGET, _RANK_RUNTIME, _RANK_EXISTING = range(5)


@dataclass
class DepRequest:
    """One dependency the user asked to add.

    ``None`` on any flag means "leave whatever the manifest already says".

    Parameters
    ----------
    crate_spec : str
        ``name``, ``name@req`` or a path to a crate.
    rename : str | None
        Key to use in the table instead of the crate name.
    features : list[str] | None
        Features to activate in addition to existing ones.
    default_features : bool | None
        False writes ``default-features = false``; True removes it.
    optional : bool | None
        True writes ``optional = true``; False removes it.
    registry : str | None
        Registry name; an empty string clears an existing one.
    git, branch, tag, rev : str | None
        Git source and the reference to check out.
    """

    crate_spec: str
    rename: str | None = None
    features: list[str] | None = None
    default_features: bool | None = None
    optional: bool | None = None
    registry: str | None = None
    git: str | None = None
    branch: str | None = None
    tag: str | None = None
    rev: str | None = None


def populate_dependency(dependency: Dependency, request: DepRequest) -> Dependency:
    """Overlay the flags of ``request`` onto ``dependency``."""
    if request.registry is not None:
        dependency.set_registry(request.registry or None)
    if request.optional is not None:
        dependency.optional = request.optional
    if request.default_features is not None:
        dependency.default_features = request.default_features
    if request.features is not None:
        dependency.extend_features(request.features)
    if request.rename is not None:
        dependency.rename = request.rename
    return dependency


def get_existing_dependency(
    manifest: LocalManifest, key: str, section: DepTable
) -> Dependency | None:
    """The entry for ``key`` most relevant to ``section``.

    An entry in ``section`` itself is returned whole. An entry borrowed
    from another section contributes only its source, since features and
    flags are specific to the table they were written in.
    """
    best: tuple[int, Dependency] | None = None
    for table, found in manifest.get_dependency_versions(manifest.crate_root, key):
        if not isinstance(found, Dependency):
            continue
        if table == section:
            rank = _RANK_EXISTING
        elif table.target is not None:
            rank = _RANK_TARGET
        elif table.kind == "dependencies":
            rank = _RANK_RUNTIME
        elif table.kind == "build-dependencies":
            rank = _RANK_BUILD
        else:
            rank = _RANK_DEV
        if best is None or rank >= best[0]:
            best = (rank, found)

    if best is None:
        return None
    rank, dependency = best
    if rank == _RANK_EXISTING:
        return dependency

    borrowed = Dependency(dependency.name, dependency.source)
    if section.is_dev and not isinstance(borrowed.source, RegistrySource):
        borrowed.clear_version()
    return borrowed


def _git_source(request: DepRequest, crate_spec: CrateSpec) -> GitSource:
    url = request.git
    if isinstance(crate_spec, CratePath):
        raise ConflictingSource(
            f"cannot specify a git URL (`{url}`) with a path (`{crate_spec.path}`)."
        )
    if crate_spec.version_req is not None:
        raise ConflictingSource(
            f"cannot specify a git URL (`{url}`) with a version (`{crate_spec.version_req}`)."
        )
    if request.registry:
        raise ConflictingSource(
            f"cannot specify a git URL (`{url}`) with a registry (`{request.registry}`)."
        )
    source = GitSource(str(url))
    if request.branch:
        source = source.set_branch(request.branch)
    if request.tag:
        source = source.set_tag(request.tag)
    if request.rev:
        source = source.set_rev(request.rev)
    return source


def resolve_dependency(
    manifest: LocalManifest,
    request: DepRequest,
    section: DepTable,
    workspace: WorkspaceView | None = None,
    resolver: SourceResolver | None = None,
    printer: Printer | None = None,
    cwd: Path | None = None,
) -> Dependency:
    """Work out the complete dependency to write for ``request``.

    Parameters
    ----------
    manifest : LocalManifest
        The manifest being edited; consulted for existing entries.
    request : DepRequest
        What the user asked for.
    section : DepTable
        The table the dependency goes into.
    workspace : WorkspaceView | None
        Sibling packages; a crate named like a member becomes a path
        dependency on it.
    resolver : SourceResolver | None
        Supplies latest versions and features.
    printer : Printer | None
        Receives the name-translation warning.
    cwd : Path | None
        Directory relative crate paths are resolved against.

    Raises
    ------
    ConflictingSource
        If ``git`` is combined with a path, a version or a registry, or a
        path is combined with a registry.
    CrateNotFound
        If the resolver does not know the crate.
    """
    resolver = resolver or OfflineResolver()
    printer = printer or manifest.printer

    crate_spec = CrateSpec.resolve(request.crate_spec, cwd)
    if isinstance(crate_spec, CratePath) and request.registry:
        raise ConflictingSource(
            f"cannot specify a registry (`{request.registry}`) with a path (`{crate_spec.path}`)."
        )
    git_source = _git_source(request, crate_spec) if request.git is not None else None
    spec_dep = populate_dependency(crate_spec.to_dependency(), request)

    old_dep = get_existing_dependency(manifest, spec_dep.toml_key(), section)
    if old_dep is not None:
        if spec_dep.source is not None:
            old_dep.source = spec_dep.source
            old_dep.available_features = spec_dep.available_features
        dependency = populate_dependency(old_dep, request)
    else:
        dependency = spec_dep

    if git_source is not None:
        dependency.set_source(git_source)

    if dependency.source is None:
        members = workspace.members() if workspace is not None else []
        member = next((m for m in members if m.name == dependency.name), None)
        if member is not None:
            version = None if section.is_dev else member.version
            dependency.set_source(PathSource(member.root.resolve(), version=version))
        else:
            registry = request.registry or None
            latest = resolver.latest(dependency.name, registry)
            if latest.name != dependency.name:
                printer.warn(f"translating `{dependency.name}` to `{latest.name}`")
                dependency.name = latest.name
            dependency.set_source(RegistrySource(latest.version, registry=registry))
            dependency.available_features = dict(latest.features)

    preserve_version = old_dep is not None and old_dep.version() is not None
    if section.is_dev and not preserve_version and not isinstance(dependency.source, RegistrySource):
        dependency.clear_version()

    if not dependency.available_features:
        try:
            dependency.available_features = resolver.features(dependency)
        except CrateNotFound as exc:
            # Only used for the listing and unknown-feature warnings
            logger.debug("No feature list for %s: %s", dependency.name, exc)
    logger.debug("Resolved %s to %r", request.crate_spec, dependency.source)
    return dependency


def unknown_features(dependency: Dependency) -> list[str]:
    """Requested features the crate does not declare, sorted."""
    requested = set(dependency.features or [])
    return sorted(requested - set(dependency.available_features))


def feature_summary(dependency: Dependency) -> tuple[list[str], list[str]]:
    """Features the dependency ends up with, and the ones left off.

    Activations are followed transitively through ``available_features``
    starting from the requested features plus ``default`` (unless default
    features are off). ``default`` itself is never listed.
    """
    activated: list[str] = list(dependency.features or [])
    if dependency.default_features is not False:
        activated.append("default")
    queue = list(activated)
    while queue:
        feature = queue.pop(0)
        for activation in dependency.available_features.get(feature, []):
            if activation not in activated:
                activated.append(activation)
                queue.append(activation)
    shown = sorted(set(activated) - {"default"})
    deactivated = sorted(
        f for f in dependency.available_features if f not in activated and f != "default"
    )
    return shown, deactivated


def describe(dependency: Dependency, section: DepTable) -> str:
    """The message printed next to ``Adding``.

    Examples
    --------
    >>> describe(Dependency("serde", RegistrySource("1.0")), DepTable())
    'serde v1.0 to dependencies.'
    """
    message = dependency.name
    source = dependency.source
    if isinstance(source, RegistrySource):
        if source.version[:1].isdigit():
            message += f" v{source.version}"
        else:
            message += f" {source.version}"
    elif isinstance(source, PathSource):
        message += " (local)"
    elif isinstance(source, GitSource):
        message += " (git)"
    message += " to"
    if dependency.optional:
        message += " optional"
    return f"{message} {section}."


def add(
    manifest: LocalManifest,
    requests: list[DepRequest],
    section: DepTable | None = None,
    workspace: WorkspaceView | None = None,
    resolver: SourceResolver | None = None,
    printer: Printer | None = None,
    dry_run: bool = False,
    cwd: Path | None = None,
) -> list[Dependency]:
    """Add or update every requested dependency in ``section``.

    All requests are resolved before the document is touched, so a
    failing lookup leaves the manifest as it was.

    Returns
    -------
    list[Dependency]
        The dependencies as written.

    Raises
    ------
    SelfDependency
        If a path dependency points at the manifest's own package.
    """
    section = section or DepTable()
    printer = printer or manifest.printer
    table_path = section.to_table()

    dependencies = [
        resolve_dependency(manifest, request, section, workspace, resolver, printer, cwd)
        for request in requests
    ]

    for dependency in dependencies:
        if dependency.features is not None:
            unknown = unknown_features(dependency)
            if unknown:
                printer.warn(f"unrecognized features: {json.dumps(unknown)}")

        printer.status("Adding", describe(dependency, section))
        printer.feature_list(*feature_summary(dependency))

        source = dependency.source
        if isinstance(source, PathSource) and source.path.resolve() == manifest.crate_root:
            raise SelfDependency(manifest.package_name())

        manifest.insert_into_table(table_path, dependency)
        manifest.gc_dep(dependency.toml_key())

    if dry_run:
        printer.warn("aborting add due to dry run")
    else:
        manifest.write()
    return dependencies
