"""Unified diffs of manifest edits, used for dry-run previews."""
from __future__ import annotations

import difflib
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cargoedit.manifest.local import LocalManifest


def _lines(text: str) -> list[str]:
    lines = text.splitlines(keepends=True)
    if lines and not lines[-1].endswith(("\n", "\r")):
        lines[-1] += "\n"
    return lines


def generate_diff(before: str, after: str, path: Path, context_lines: int = 3) -> str:
    """Unified diff from ``before`` to ``after``; empty when they are equal.

    Examples
    --------
    >>> print(generate_diff('[dependencies]\\n', '[dependencies]\\nserde = "1"\\n', Path("Cargo.toml")), end="")
    --- a/Cargo.toml
    +++ b/Cargo.toml
    @@ -1 +1,2 @@
     [dependencies]
    +serde = "1"
    """
    if before == after:
        return ""
    return "".join(
        difflib.unified_diff(
            _lines(before),
            _lines(after),
            fromfile=f"a/{path}",
            tofile=f"b/{path}",
            n=context_lines,
        )
    )


def manifest_diff(manifest: LocalManifest) -> str:
    """Diff between the manifest as read from disk and as it renders now."""
    return generate_diff(manifest.original, manifest.render(), manifest.path)


def combine_diffs(diffs: dict[Path, str]) -> str:
    """Join per-manifest diffs in path order, skipping empty ones."""
    return "\n".join(diffs[path] for path in sorted(diffs, key=str) if diffs[path])
