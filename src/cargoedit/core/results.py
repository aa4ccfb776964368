"""Outcome objects returned by :class:`~cargoedit.core.editor.CargoEdit`.

- Result - what a command did (or, on a dry run, would have done)
- ErrorResult - a command that failed, carrying the raised error
- BatchResult - the per-manifest outcomes of a multi-manifest write
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from cargoedit.core.diff import combine_diffs


@dataclass
class Result:
    """Outcome of one command.

    Attributes:
        success: Whether the command completed
        message: One-line summary
        files_changed: Manifests written, or that would be on a dry run
        data: Command-specific payload (dependencies added, upgrades planned, ...)
        diff: Combined unified diff of every manifest
        diffs: Per-manifest diffs
    """

    success: bool
    message: str
    files_changed: list[Path] = field(default_factory=list)
    data: Any = None
    diff: str | None = None
    diffs: dict[Path, str] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.success

    def is_error(self) -> bool:
        return not self.success

    @property
    def exit_code(self) -> int:
        """Process exit status for this outcome: 0 on success, 1 otherwise."""
        return 0 if self.success else 1

    def get_diff(self, path: Path | None = None) -> str | None:
        """The diff of ``path``, or the combined diff when no path is given."""
        if path is not None:
            return self.diffs.get(path)
        return self.diff


@dataclass
class ErrorResult(Result):
    """A failed command. The error is kept, not raised.

    Attributes:
        exception: The error the command raised
        operation: Command name (``add``, ``remove``, ...)
        target_repr: The manifest or package the command ran against
    """

    success: bool = field(default=False, init=False)
    message: str = ""
    exception: Exception | None = None
    operation: str = ""
    target_repr: str = ""

    @classmethod
    def from_exception(cls, exc: Exception, operation: str, target: object = "") -> ErrorResult:
        return cls(
            message=str(exc),
            exception=exc,
            operation=operation,
            target_repr=str(target),
        )

    def raise_if_error(self) -> None:
        """Re-raise the stored error."""
        if self.exception is not None:
            raise self.exception
        raise RuntimeError(self.message)


@dataclass
class BatchResult:
    """Outcomes of writing several manifests together."""

    results: list[Result] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def failed(self) -> list[Result]:
        return [r for r in self.results if not r.success]

    @property
    def files_changed(self) -> list[Path]:
        files: list[Path] = []
        for r in self.results:
            files.extend(p for p in r.files_changed if p not in files)
        return files

    @property
    def diffs(self) -> dict[Path, str]:
        merged: dict[Path, str] = {}
        for r in self.results:
            merged.update(r.diffs)
        return merged

    @property
    def diff(self) -> str | None:
        return combine_diffs(self.diffs) or None

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def __bool__(self) -> bool:
        return self.success

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[Result]:
        return iter(self.results)
