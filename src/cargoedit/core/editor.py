"""CargoEdit - entry point for editing a package's manifest."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from cargoedit.core.diff import combine_diffs, generate_diff
from cargoedit.core.results import ErrorResult, Result
from cargoedit.core.transaction import ManifestTransaction
from cargoedit.errors import CargoEditError
from cargoedit.manifest.local import LocalManifest
from cargoedit.manifest.manifest import DepTable
from cargoedit.ops.add import DepRequest, add
from cargoedit.ops.remove import remove
from cargoedit.ops.set_version import set_version
from cargoedit.ops.upgrade import upgrade
from cargoedit.printer import LogPrinter, Printer
from cargoedit.sources.resolver import OfflineResolver, SourceResolver
from cargoedit.version import TargetVersion
from cargoedit.workspace import FilesystemWorkspace, WorkspaceView

logger = logging.getLogger(__name__)

_PAST = {"add": "Added", "remove": "Removed", "upgrade": "Upgraded"}


class CargoEdit:
    """
    Main entry point for dependency and version edits.

    Every command returns a :class:`Result`. Failures never raise: they come
    back as an :class:`ErrorResult` holding the error, so callers can print
    ``result.message`` and exit with ``result.exit_code``.

    Parameters
    ----------
    manifest_path : str | Path
        A ``Cargo.toml`` file, or a directory containing one.
    dry_run : bool, optional
        Report and diff every change without writing. Defaults to False.
    printer : Printer | None
        Receives status lines; a :class:`LogPrinter` by default.
    resolver : SourceResolver | None
        Supplies latest versions and feature lists. Without one only path
        dependencies and explicit versions can be added.
    workspace : WorkspaceView | None
        Workspace members; discovered from the filesystem when omitted.

    Examples
    --------
    >>> editor = CargoEdit("crates/app", resolver=LocalIndexResolver(index))  # doctest: +SKIP
    >>> editor.add("serde", DepRequest("tokio", features=["full"]))  # doctest: +SKIP
    >>> editor.remove("log", section=DepTable("dev-dependencies"))  # doctest: +SKIP
    >>> result = CargoEdit("crates/app", dry_run=True).set_version(Absolute(Version(1, 0, 0)))  # doctest: +SKIP
    >>> print(result.diff)  # doctest: +SKIP
    """

    def __init__(
        self,
        manifest_path: str | Path,
        dry_run: bool = False,
        printer: Printer | None = None,
        resolver: SourceResolver | None = None,
        workspace: WorkspaceView | None = None,
    ) -> None:
        path = Path(manifest_path)
        if path.is_dir():
            path = path / "Cargo.toml"
        self.manifest_path = path.resolve()
        self.dry_run = dry_run
        self.printer: Printer = printer or LogPrinter()
        self.resolver: SourceResolver = resolver or OfflineResolver()
        self._workspace = workspace

    @property
    def root(self) -> Path:
        """Directory of the manifest."""
        return self.manifest_path.parent

    @property
    def workspace(self) -> WorkspaceView:
        if self._workspace is None:
            self._workspace = FilesystemWorkspace.discover(self.manifest_path)
        return self._workspace

    def _resolve_path(self, path: str | Path) -> Path:
        """Resolve a path relative to the manifest's directory."""
        p = Path(path)
        if p.is_absolute():
            return p
        return self.root / p

    def _open(self, path: Path | None = None) -> LocalManifest:
        return LocalManifest.try_new(path or self.manifest_path, self.printer)

    def _failed(self, exc: Exception, operation: str) -> ErrorResult:
        logger.debug("%s failed on %s: %s", operation, self.manifest_path, exc)
        return ErrorResult.from_exception(exc, operation, self.manifest_path)

    def _edit_result(
        self,
        verb: str,
        detail: str,
        before: dict[Path, str],
        manifests: list[LocalManifest],
        data: object,
    ) -> Result:
        diffs = {}
        for manifest in manifests:
            diff = generate_diff(before[manifest.path], manifest.render(), manifest.path)
            if diff:
                diffs[manifest.path] = diff
        if self.dry_run:
            message = f"[DRY RUN] Would {verb} {detail}"
        else:
            message = f"{_PAST[verb]} {detail}"
        return Result(
            success=True,
            message=message,
            files_changed=list(diffs),
            data=data,
            diff=combine_diffs(diffs) or None,
            diffs=diffs,
        )

    # =========================================================================
    # Commands
    # =========================================================================

    def add(
        self,
        *requests: str | DepRequest,
        section: DepTable | None = None,
        cwd: str | Path | None = None,
    ) -> Result:
        """Add dependencies, or update the flags of existing ones.

        Parameters
        ----------
        *requests : str | DepRequest
            Crate specs (``serde``, ``serde@1``, ``../local``) or full requests.
        section : DepTable | None
            Table to add to; ``[dependencies]`` by default.
        cwd : str | Path | None
            Directory relative crate paths are resolved against; the
            manifest's directory by default.

        Returns
        -------
        Result
            ``data`` holds the dependencies as written.
        """
        section = section or DepTable()
        reqs = [DepRequest(r) if isinstance(r, str) else r for r in requests]
        try:
            manifest = self._open()
            before = {manifest.path: manifest.original}
            added = add(
                manifest,
                reqs,
                section,
                workspace=self.workspace,
                resolver=self.resolver,
                printer=self.printer,
                dry_run=self.dry_run,
                cwd=self._resolve_path(cwd) if cwd is not None else self.root,
            )
        except CargoEditError as exc:
            return self._failed(exc, "add")
        names = ", ".join(d.toml_key() for d in added)
        return self._edit_result("add", f"{names} to {section}", before, [manifest], added)

    def remove(self, *names: str, section: DepTable | None = None) -> Result:
        """Remove dependencies from one table and clean up the features that named them."""
        section = section or DepTable()
        try:
            manifest = self._open()
            before = {manifest.path: manifest.original}
            remove(manifest, list(names), section, printer=self.printer, dry_run=self.dry_run)
        except CargoEditError as exc:
            return self._failed(exc, "remove")
        return self._edit_result(
            "remove", f"{', '.join(names)} from {section}", before, [manifest], list(names)
        )

    def upgrade(
        self,
        *dependencies: str,
        all_members: bool = False,
        exclude: Iterable[str] = (),
        pinned: bool = False,
        skip_compatible: bool = False,
    ) -> Result:
        """Raise registry requirements to the latest versions.

        Parameters
        ----------
        *dependencies : str
            Only these crates; ``name@req`` sets the requirement verbatim.
        all_members : bool
            Upgrade every workspace member instead of this manifest only.
        exclude : Iterable[str]
            Crates to leave alone.
        pinned : bool
            Also upgrade pinned and renamed dependencies.
        skip_compatible : bool
            Leave requirements that already admit the latest version.

        Returns
        -------
        Result
            ``data`` holds a :class:`~cargoedit.ops.upgrade.PlannedUpgrade`
            per change. A dry run leaves documents untouched, so its
            preview lives in ``data`` rather than in ``diff``.
        """
        try:
            if all_members:
                paths = [m.manifest_path for m in self.workspace.members()]
            else:
                paths = [self.manifest_path]
            manifests = [self._open(p) for p in paths]
            before = {m.path: m.original for m in manifests}
            planned = upgrade(
                manifests,
                self.resolver,
                dependencies,
                exclude=exclude,
                pinned=pinned,
                skip_compatible=skip_compatible,
                dry_run=self.dry_run,
                printer=self.printer,
            )
        except CargoEditError as exc:
            return self._failed(exc, "upgrade")
        return self._edit_result(
            "upgrade", f"{len(planned)} requirement(s)", before, manifests, planned
        )

    def set_version(
        self,
        target: TargetVersion | None = None,
        packages: Iterable[str] | None = None,
        all_members: bool = False,
        exclude: Iterable[str] = (),
        metadata: str | None = None,
    ) -> Result:
        """Change package versions and update path requirements on them.

        Parameters
        ----------
        target : TargetVersion | None
            ``Relative(level)``, ``Absolute(version)`` or ``Unchanged()``;
            ``Relative(BumpLevel.RELEASE)`` by default.
        packages : Iterable[str] | None
            Member names to re-version.
        all_members : bool
            Re-version every member. Without this or ``packages`` only the
            package of this manifest is changed.
        exclude : Iterable[str]
            Members to skip.
        metadata : str | None
            Build metadata for the new versions.

        Returns
        -------
        Result
            ``data`` holds a :class:`~cargoedit.ops.set_version.VersionChange`
            per package.
        """
        transaction = ManifestTransaction(dry_run=self.dry_run, printer=self.printer)
        manifest_path = None if packages is not None or all_members else self.manifest_path
        try:
            changes = set_version(
                self.workspace,
                target,
                packages=list(packages) if packages is not None else None,
                manifest_path=manifest_path,
                exclude=exclude,
                metadata=metadata,
                dry_run=self.dry_run,
                printer=self.printer,
                transaction=transaction,
            )
        except CargoEditError as exc:
            transaction.rollback()
            return self._failed(exc, "set_version")

        committed = transaction.commit()
        if not committed:
            return committed.failed[0]
        summary = ", ".join(f"{c.name} {c.new}" for c in changes) or "no packages"
        message = f"Set version of {summary}"
        if self.dry_run:
            message = f"[DRY RUN] Would set version of {summary}"
        return Result(
            success=True,
            message=message,
            files_changed=committed.files_changed,
            data=changes,
            diff=committed.diff,
            diffs=committed.diffs,
        )
