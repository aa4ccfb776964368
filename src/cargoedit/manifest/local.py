"""Read-write manifest bound to a file on disk."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from semver import Version

from cargoedit.dependency import Dependency, GitSource
from cargoedit.document import (
    TableLike,
    TomlDocument,
    is_sorted,
    is_super_table,
    is_table_like,
    sort_values,
)
from cargoedit.errors import (
    InvalidVersion,
    InvalidVersionReq,
    MissingPackage,
    NonExistentDependency,
    NonExistentTable,
    VirtualWorkspace,
)
from cargoedit.manifest.manifest import FeatureStatus, Manifest, read_manifest_text
from cargoedit.printer import LogPrinter, Printer
from cargoedit.version import VersionReq, parse_version

logger = logging.getLogger(__name__)


def _entry_crate_name(key: str, item: Any) -> str:
    if is_table_like(item):
        package = item.get("package")
        if isinstance(package, str):
            return str(package)
    return key


def _entry_version(item: Any) -> str | None:
    if isinstance(item, str):
        return str(item)
    if is_table_like(item) and isinstance(item.get("version"), str):
        return str(item["version"])
    return None


def _admitted_version(text: str) -> Version | None:
    try:
        return parse_version(text)
    except InvalidVersion:
        pass
    try:
        return VersionReq.parse(text).min_version()
    except InvalidVersionReq:
        return None


def _is_stale(value: str, key: str, status: FeatureStatus) -> bool:
    if status is FeatureStatus.FEATURE:
        return False
    if value in (key, f"dep:{key}"):
        return True
    if status is FeatureStatus.NONE:
        return value.startswith((f"{key}/", f"{key}?/"))
    return False


class LocalManifest(Manifest):
    """A manifest that can be edited and written back to ``path``.

    Parameters
    ----------
    path : Path
        Absolute path of the ``Cargo.toml`` file.
    document : TomlDocument
        The parsed document.
    original : str
        The text as read from disk, used for dry-run diffs.
    printer : Printer | None
        Receives status messages; defaults to a :class:`LogPrinter`.

    Examples
    --------
    >>> manifest = LocalManifest.try_new(Path("Cargo.toml"))  # doctest: +SKIP
    >>> manifest.insert_into_table(["dependencies"], dep)  # doctest: +SKIP
    >>> manifest.write()  # doctest: +SKIP
    """

    def __init__(
        self,
        path: Path,
        document: TomlDocument,
        original: str = "",
        printer: Printer | None = None,
    ) -> None:
        super().__init__(document)
        self.path = path
        self.original = original
        self.printer: Printer = printer or LogPrinter()

    @classmethod
    def try_new(cls, path: str | Path, printer: Printer | None = None) -> LocalManifest:
        """Open the manifest at ``path``.

        Raises
        ------
        ReadError
            If the file cannot be read.
        ParseDocument
            If the file is not valid TOML.
        """
        path = Path(path).resolve()
        text = read_manifest_text(path)
        logger.debug("Loaded manifest %s", path)
        return cls(path, TomlDocument.parse(text, path), text, printer)

    @property
    def crate_root(self) -> Path:
        return self.path.parent

    def is_modified(self) -> bool:
        return self.render() != self.original

    def ensure_package(self) -> None:
        """Refuse manifests with neither ``package`` nor ``project``.

        Raises
        ------
        VirtualWorkspace
            If the manifest is a virtual workspace root.
        MissingPackage
            Otherwise.
        """
        if "package" in self.data or "project" in self.data:
            return
        if "workspace" in self.data:
            raise VirtualWorkspace(self.path)
        raise MissingPackage(self.path)

    def write(self, require_package: bool = True) -> None:
        """Write the document back to disk in a single write.

        Parameters
        ----------
        require_package : bool
            Refuse manifests without a package. Only workspace-level
            edits of a virtual root pass False.
        """
        if require_package:
            self.ensure_package()
        text = self.render()
        self.path.write_text(text, encoding="utf-8", newline="")
        self.original = text
        logger.debug("Wrote manifest %s", self.path)

    # -------------------------------------------------------------------------
    # Dependency entries
    # -------------------------------------------------------------------------

    def get_table_mut(self, path: list[str]) -> TableLike:
        return self.document.get_or_insert_table(path)

    def insert_into_table(self, table_path: list[str], dep: Dependency) -> None:
        """Add ``dep`` to the table at ``table_path``, or merge into its entry.

        The table is created when missing. A table whose entries were in
        key order stays in key order.
        """
        key = dep.toml_key()
        table = self.get_table_mut(table_path)
        was_sorted = is_sorted(table)
        if key in table:
            dep.update_toml(self.crate_root, table, key)
        elif is_super_table(table):
            table[key] = dep.to_block_table(self.crate_root)
        else:
            table[key] = dep.to_toml(self.crate_root)
        if was_sorted:
            sort_values(table)

    def remove_from_table(self, table_path: list[str], key: str) -> None:
        """Remove ``key`` from the table, dropping the table once empty.

        Raises
        ------
        NonExistentDependency
            If the table or the entry does not exist.
        """
        table_name = ".".join(table_path)
        try:
            table = self.document.get_table(table_path)
        except NonExistentTable as exc:
            raise NonExistentDependency(key, table_name) from exc
        if key not in table:
            raise NonExistentDependency(key, table_name)
        del table[key]
        if not len(table):
            self.document.remove_table(table_path)

    def gc_dep(self, key: str) -> None:
        """Drop feature activations that refer to a dependency that is gone.

        What counts as stale depends on :meth:`feature_status`: nothing
        while ``key`` is still optional somewhere, only ``key`` itself
        (the implicit feature) while it is a plain dependency, and also
        ``key/feature`` once it is gone entirely.
        """
        status = self.feature_status(key)
        features = self.data.get("features")
        if not is_table_like(features):
            return
        for name in list(features.keys()):
            values = features[name]
            if not isinstance(values, list):
                continue
            stale = [
                index
                for index, value in enumerate(values)
                if isinstance(value, str) and _is_stale(str(value), key, status)
            ]
            for index in reversed(stale):
                del values[index]

    def upgrade(
        self, dependency: Dependency, dry_run: bool = False, skip_compatible: bool = False
    ) -> bool:
        """Move every entry for ``dependency.name`` to its version requirement.

        Parameters
        ----------
        dependency : Dependency
            Carries the crate name and the new requirement.
        dry_run : bool
            Report without editing.
        skip_compatible : bool
            Leave entries whose requirement already admits the new one.

        Returns
        -------
        bool
            True if the document changed (and was written).
        """
        new_version = dependency.version()
        if new_version is None:
            return False
        admitted = _admitted_version(new_version) if skip_compatible else None

        changed = False
        for _, table in self.get_sections():
            for key in list(table.keys()):
                item = table[key]
                if _entry_crate_name(key, item) != dependency.name:
                    continue
                old_version = _entry_version(item)
                if old_version is None or old_version == new_version:
                    continue
                if admitted is not None and VersionReq.parse(old_version).matches(admitted):
                    continue
                existing = Dependency.from_toml(self.crate_root, key, item)
                if isinstance(existing.source, GitSource):
                    continue

                self.printer.status("Upgrading", f"{dependency.name} v{old_version} -> v{new_version}")
                if dry_run:
                    continue
                self._set_entry_version(table, key, new_version)
                changed = True

        if changed:
            self.write()
        return changed

    def set_dependency_version(self, table_path: list[str], key: str, version: str) -> None:
        """Point one entry at a new requirement without writing.

        Other entries for the same crate are left as they are.

        Raises
        ------
        NonExistentDependency
            If the table or the entry does not exist.
        """
        table_name = ".".join(table_path)
        try:
            table = self.document.get_table(table_path)
        except NonExistentTable as exc:
            raise NonExistentDependency(key, table_name) from exc
        if key not in table:
            raise NonExistentDependency(key, table_name)
        self._set_entry_version(table, key, version)

    def _set_entry_version(self, table: TableLike, key: str, version: str) -> None:
        # Only the requirement moves; flags and features stay as written
        existing = Dependency.from_toml(self.crate_root, key, table[key])
        existing.set_version(version)
        existing.features = None
        existing.optional = None
        existing.default_features = None
        existing.update_toml(self.crate_root, table, key)

    # -------------------------------------------------------------------------
    # Package version
    # -------------------------------------------------------------------------

    def set_package_version(self, version: Version | str) -> None:
        package = self.package_table()
        if package is None:
            self.ensure_package()
        package["version"] = str(version)

    def set_workspace_version(self, version: Version | str) -> None:
        """Write ``workspace.package.version``."""
        self.document.get_or_insert_table(["workspace", "package"])["version"] = str(version)

