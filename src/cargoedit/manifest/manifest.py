"""Read-side view of a Cargo manifest."""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

from cargoedit.dependency import Dependency
from cargoedit.document import TableLike, TomlDocument, as_bool, is_table_like
from cargoedit.errors import CargoEditError, InvalidManifest, ReadError

logger = logging.getLogger(__name__)

DEP_TABLES = ("dependencies", "dev-dependencies", "build-dependencies")


@dataclass(frozen=True)
class DepTable:
    """Which dependency table an entry lives in.

    Parameters
    ----------
    kind : str
        One of ``dependencies``, ``dev-dependencies``, ``build-dependencies``.
    target : str | None
        Platform triple or ``cfg(...)`` expression for target tables.

    Examples
    --------
    >>> DepTable("dev-dependencies", "cfg(unix)").to_table()
    ['target', 'cfg(unix)', 'dev-dependencies']
    >>> str(DepTable("dependencies", "cfg(unix)"))
    'dependencies for target `cfg(unix)`'
    """

    kind: str = "dependencies"
    target: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in DEP_TABLES:
            raise ValueError(f"unknown dependency table `{self.kind}`")

    @classmethod
    def from_path(cls, path: list[str]) -> DepTable:
        if len(path) == 3 and path[0] == "target":
            return cls(path[2], path[1])
        return cls(path[-1])

    @property
    def is_dev(self) -> bool:
        return self.kind == "dev-dependencies"

    def to_table(self) -> list[str]:
        if self.target is not None:
            return ["target", self.target, self.kind]
        return [self.kind]

    def __str__(self) -> str:
        if self.target is not None:
            return f"{self.kind} for target `{self.target}`"
        return self.kind


class FeatureStatus(enum.Enum):
    """How a dependency key relates to implicit features after an edit."""

    #: The dependency is gone from every section.
    NONE = "none"
    #: Present somewhere, but not optional anywhere.
    DEP_FEATURE = "dep-feature"
    #: Optional in at least one section.
    FEATURE = "feature"


class Manifest:
    """A parsed manifest and the queries every command needs.

    Parameters
    ----------
    document : TomlDocument
        The format-preserving document.
    """

    def __init__(self, document: TomlDocument) -> None:
        self.document = document

    @classmethod
    def parse(cls, text: str, path: Path | None = None) -> Manifest:
        return cls(TomlDocument.parse(text, path))

    @classmethod
    def load(cls, path: Path) -> Manifest:
        """Read and parse the manifest at ``path``."""
        return cls.parse(read_manifest_text(path), path)

    @property
    def data(self) -> Any:
        return self.document.data

    def render(self) -> str:
        return self.document.render()

    def __str__(self) -> str:
        return self.render()

    # -------------------------------------------------------------------------
    # Package metadata
    # -------------------------------------------------------------------------

    def package_table(self) -> TableLike | None:
        for key in ("package", "project"):
            table = self.data.get(key)
            if is_table_like(table):
                return table
        return None

    def package_name(self) -> str:
        """The ``package.name`` of this manifest.

        Raises
        ------
        InvalidManifest
            If the manifest has no package name.
        """
        package = self.package_table()
        name = package.get("name") if package is not None else None
        if not isinstance(name, str):
            raise InvalidManifest("missing `package.name`")
        return str(name)

    def is_version_inherited(self) -> bool:
        """Whether ``package.version`` is ``{ workspace = true }``."""
        package = self.package_table()
        version = package.get("version") if package is not None else None
        return is_table_like(version) and as_bool(version.get("workspace")) is True

    def package_version(self) -> str | None:
        """The literal ``package.version``, or None if absent or inherited."""
        package = self.package_table()
        version = package.get("version") if package is not None else None
        return str(version) if isinstance(version, str) else None

    def workspace_version(self) -> str | None:
        workspace = self.data.get("workspace")
        if not is_table_like(workspace):
            return None
        package = workspace.get("package")
        version = package.get("version") if is_table_like(package) else None
        return str(version) if isinstance(version, str) else None

    # -------------------------------------------------------------------------
    # Dependency tables
    # -------------------------------------------------------------------------

    def get_table(self, path: list[str]) -> TableLike:
        return self.document.get_table(path)

    def get_sections(self) -> list[tuple[list[str], TableLike]]:
        """Every dependency table with its path.

        Each top-level table comes before the target tables of the same
        kind; empty tables are included.
        """
        sections: list[tuple[list[str], TableLike]] = []
        targets = self.data.get("target")
        for kind in DEP_TABLES:
            table = self.data.get(kind)
            if is_table_like(table):
                sections.append(([kind], table))
            if not is_table_like(targets):
                continue
            for target_name in targets.keys():
                target = targets[target_name]
                if not is_table_like(target):
                    continue
                table = target.get(kind)
                if is_table_like(table):
                    sections.append((["target", target_name, kind], table))
        return sections

    def get_dependency_tables_mut(self) -> Iterator[TableLike]:
        """Every dependency table, including ``[workspace.dependencies]``."""
        for _, table in self.get_sections():
            yield table
        workspace = self.data.get("workspace")
        if is_table_like(workspace) and is_table_like(workspace.get("dependencies")):
            yield workspace["dependencies"]

    def get_dependency_versions(
        self, crate_root: Path, key: str
    ) -> Iterator[tuple[DepTable, Dependency | CargoEditError]]:
        """Parse every entry named ``key``; unparseable entries yield their error."""
        for path, table in self.get_sections():
            if key not in table:
                continue
            try:
                dep: Dependency | CargoEditError = Dependency.from_toml(
                    crate_root, key, table[key]
                )
            except CargoEditError as exc:
                dep = exc
            yield DepTable.from_path(path), dep

    def features(self) -> dict[str, list[str]]:
        """Declared features plus the implicit feature of each optional dependency.

        Raises
        ------
        InvalidManifest
            If the ``features`` table is malformed.
        """
        features: dict[str, list[str]] = {}
        table = self.data.get("features")
        if table is not None:
            if not is_table_like(table):
                raise InvalidManifest("`features` must be a table")
            for name in table.keys():
                values = table[name]
                if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                    raise InvalidManifest(f"feature `{name}` must be an array of strings")
                features[name] = [str(v) for v in values]

        for _, section in self.get_sections():
            for key in section.keys():
                entry = section[key]
                if is_table_like(entry) and as_bool(entry.get("optional")) is True:
                    features.setdefault(key, [])
        return features

    def feature_status(self, key: str) -> FeatureStatus:
        status = FeatureStatus.NONE
        for _, section in self.get_sections():
            if key not in section:
                continue
            entry = section[key]
            if is_table_like(entry) and as_bool(entry.get("optional")) is True:
                return FeatureStatus.FEATURE
            status = FeatureStatus.DEP_FEATURE
        return status


def read_manifest_text(path: Path) -> str:
    """Read a manifest without translating line endings."""
    try:
        with open(path, encoding="utf-8", newline="") as handle:
            return handle.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ReadError(path, str(exc)) from exc
