"""Write several manifests as one unit.

Commands that edit more than one manifest (``set-version`` rewrites the
bumped package and every dependent) load them through a
:class:`ManifestTransaction`, edit them in memory and commit once. A write
that fails restores the manifests already written.
"""
from __future__ import annotations

import logging
from pathlib import Path

from cargoedit.core.diff import combine_diffs, manifest_diff
from cargoedit.core.results import BatchResult, ErrorResult, Result
from cargoedit.errors import CargoEditError
from cargoedit.manifest.local import LocalManifest
from cargoedit.printer import Printer

logger = logging.getLogger(__name__)


class ManifestTransaction:
    """Manifests loaded for editing, written together on :meth:`commit`.

    Parameters
    ----------
    dry_run : bool
        Commit reports the diffs but writes nothing.
    printer : Printer | None
        Printer handed to every loaded manifest.

    Examples
    --------
    >>> tx = ManifestTransaction()
    >>> manifest = tx.load(Path("crates/b/Cargo.toml"))  # doctest: +SKIP
    >>> manifest.set_package_version("0.2.0")  # doctest: +SKIP
    >>> print(tx.preview())  # doctest: +SKIP
    >>> result = tx.commit()  # doctest: +SKIP
    """

    def __init__(self, dry_run: bool = False, printer: Printer | None = None) -> None:
        self.dry_run = dry_run
        self.printer = printer
        self._manifests: dict[Path, LocalManifest] = {}
        self._originals: dict[Path, str] = {}
        self._require_package: dict[Path, bool] = {}
        self._finished = False

    def load(self, path: Path, require_package: bool = True) -> LocalManifest:
        """The manifest at ``path``, read once per transaction.

        Loading the same file twice returns the same object, so edits
        from different steps accumulate.
        """
        resolved = Path(path).resolve()
        manifest = self._manifests.get(resolved)
        if manifest is None:
            manifest = LocalManifest.try_new(resolved, self.printer)
            self._manifests[resolved] = manifest
            self._originals[resolved] = manifest.original
            self._require_package[resolved] = require_package
        elif require_package:
            self._require_package[resolved] = True
        return manifest

    @property
    def modified(self) -> list[LocalManifest]:
        return [m for m in self._manifests.values() if m.is_modified()]

    def diffs(self) -> dict[Path, str]:
        return {m.path: manifest_diff(m) for m in self.modified}

    def preview(self) -> str:
        """Combined diff of every pending edit."""
        return combine_diffs(self.diffs())

    def commit(self) -> BatchResult:
        """Write every modified manifest.

        Returns
        -------
        BatchResult
            One result per manifest, or a single error result when a
            write failed and the transaction was rolled back.
        """
        if self._finished:
            return BatchResult([ErrorResult(message="Transaction already finished")])
        self._finished = True

        pending = self.modified
        if not pending:
            return BatchResult([Result(success=True, message="No changes to write")])

        if self.dry_run:
            diffs = self.diffs()
            return BatchResult([
                Result(
                    success=True,
                    message=f"[DRY RUN] Would update {len(pending)} manifest(s)",
                    files_changed=[m.path for m in pending],
                    diff=combine_diffs(diffs),
                    diffs=diffs,
                )
            ])

        written: list[LocalManifest] = []
        results: list[Result] = []
        for manifest in pending:
            diff = manifest_diff(manifest)
            try:
                manifest.write(require_package=self._require_package[manifest.path])
            except (OSError, CargoEditError) as exc:
                self._restore(written)
                return BatchResult([
                    ErrorResult.from_exception(exc, "commit", manifest.path)
                ])
            written.append(manifest)
            results.append(Result(
                success=True,
                message=f"Updated {manifest.path}",
                files_changed=[manifest.path],
                diff=diff,
                diffs={manifest.path: diff},
            ))
        return BatchResult(results)

    def _restore(self, written: list[LocalManifest]) -> None:
        for manifest in written:
            try:
                manifest.path.write_text(
                    self._originals[manifest.path], encoding="utf-8", newline=""
                )
            except OSError as exc:
                logger.warning("Could not restore %s: %s", manifest.path, exc)

    def rollback(self) -> Result:
        """Drop every pending edit without writing."""
        if self._finished:
            return ErrorResult(message="Transaction already finished")
        self._finished = True
        count = len(self.modified)
        self._manifests.clear()
        return Result(success=True, message=f"Discarded {count} pending manifest edit(s)")
