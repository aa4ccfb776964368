"""Remove dependencies from a manifest."""
from __future__ import annotations

import logging

from cargoedit.manifest.local import LocalManifest
from cargoedit.manifest.manifest import DepTable
from cargoedit.printer import Printer

logger = logging.getLogger(__name__)


def remove(
    manifest: LocalManifest,
    names: list[str],
    section: DepTable | None = None,
    printer: Printer | None = None,
    dry_run: bool = False,
) -> None:
    """Remove each of ``names`` from ``section`` and drop stale feature activations.

    Raises
    ------
    NonExistentDependency
        On the first name that is not in the table; nothing is written.
    """
    section = section or DepTable()
    printer = printer or manifest.printer
    table_path = section.to_table()

    for name in names:
        printer.status("Removing", f"{name} from {section}")
        manifest.remove_from_table(table_path, name)
        manifest.gc_dep(name)

    if dry_run:
        printer.warn("aborting remove due to dry run")
    else:
        manifest.write()
