"""In-memory dependency records and their conversion to manifest entries.

A :class:`Dependency` is built from a user request, from an existing
manifest entry (:meth:`Dependency.from_toml`) or from a registry lookup,
and is written back with :meth:`Dependency.to_toml` (fresh entries) or
:meth:`Dependency.update_toml` (merging into an existing entry).
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Union

import tomlkit
from tomlkit.items import InlineTable, Table

from cargoedit.document import (
    TableLike,
    as_bool,
    is_table_like,
    render_block,
    render_inline,
)
from cargoedit.errors import InvalidDependencyEntry


def _strip_build(version: str | None) -> str | None:
    if version is None:
        return None
    return version.split("+", 1)[0]


@dataclass(frozen=True)
class RegistrySource:
    """A crate published to a registry.

    Build metadata is stripped from ``version`` since requirements
    cannot carry it.
    """

    version: str
    registry: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "version", _strip_build(self.version))


@dataclass(frozen=True)
class PathSource:
    """A crate on the local filesystem; ``path`` is absolute once resolved."""

    path: Path
    version: str | None = None
    registry: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        object.__setattr__(self, "version", _strip_build(self.version))


@dataclass(frozen=True)
class GitSource:
    """A crate in a git repository; at most one of branch, tag or rev is set."""

    git: str
    branch: str | None = None
    tag: str | None = None
    rev: str | None = None

    def set_branch(self, branch: str) -> GitSource:
        return GitSource(self.git, branch=branch)

    def set_tag(self, tag: str) -> GitSource:
        return GitSource(self.git, tag=tag)

    def set_rev(self, rev: str) -> GitSource:
        return GitSource(self.git, rev=rev)


Source = Union[RegistrySource, PathSource, GitSource]


def relative_path(crate_root: Path, path: Path) -> str:
    """Path from ``crate_root`` to ``path`` with ``/`` separators."""
    assert path.is_absolute(), f"path dependency must be absolute: {path}"
    return os.path.relpath(path, crate_root).replace("\\", "/")


def _same_path(crate_root: Path, written: Any, path: Path) -> bool:
    if not isinstance(written, str):
        return False
    return os.path.normpath(crate_root / written) == os.path.normpath(path)


def _opt_str(table: TableLike, key: str, dep_key: str) -> str | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidDependencyEntry(dep_key, f"`{key}` must be a string")
    return str(value)


def _opt_bool(table: TableLike, key: str, dep_key: str) -> bool | None:
    if key not in table:
        return None
    value = as_bool(table[key])
    if value is None:
        raise InvalidDependencyEntry(dep_key, f"`{key}` must be a boolean")
    return value


class _EntryEditor:
    """Records edits against a mapping, skipping writes that change nothing."""

    def __init__(self, mapping: TableLike) -> None:
        self.mapping = mapping
        self.changed = False

    def set(self, key: str, value: Any) -> None:
        if key in self.mapping and self.mapping[key] == value:
            return
        self.mapping[key] = value
        self.changed = True

    def remove(self, *keys: str) -> None:
        for key in keys:
            if key in self.mapping:
                del self.mapping[key]
                self.changed = True


@dataclass
class Dependency:
    """A dependency as the editor sees it.

    Parameters
    ----------
    name : str
        The real crate name.
    source : Source | None
        Where the crate comes from; None until resolved.
    rename : str | None
        Alias used as the table key (written as ``package = name``).
    optional : bool | None
        True writes ``optional = true``, False removes it, None leaves it.
    default_features : bool | None
        False writes ``default-features = false``, True removes it,
        None leaves it.
    features : list[str] | None
        Features to activate; merged with existing ones on update.
    available_features : dict[str, list[str]]
        Features the crate offers; informational only, never written.

    Examples
    --------
    >>> dep = Dependency("serde", RegistrySource("1.0"), features=["derive"])
    >>> dep.to_toml(Path("/work")).as_string()
    '{ version = "1.0", features = ["derive"] }'
    """

    name: str
    source: Source | None = None
    rename: str | None = None
    optional: bool | None = None
    default_features: bool | None = None
    features: list[str] | None = None
    available_features: dict[str, list[str]] = field(default_factory=dict)

    def toml_key(self) -> str:
        """The key of this dependency in its table."""
        return self.rename or self.name

    def version(self) -> str | None:
        if isinstance(self.source, (RegistrySource, PathSource)):
            return self.source.version
        return None

    def registry(self) -> str | None:
        if isinstance(self.source, (RegistrySource, PathSource)):
            return self.source.registry
        return None

    def set_source(self, source: Source | None) -> Dependency:
        self.source = source
        return self

    def set_registry(self, registry: str | None) -> Dependency:
        if isinstance(self.source, (RegistrySource, PathSource)):
            self.source = replace(self.source, registry=registry)
        return self

    def set_version(self, version: str) -> Dependency:
        """Replace the requirement, turning an unresolved source into a registry one."""
        if self.source is None:
            self.source = RegistrySource(version)
        elif isinstance(self.source, (RegistrySource, PathSource)):
            self.source = replace(self.source, version=version)
        return self

    def clear_version(self) -> Dependency:
        if isinstance(self.source, PathSource):
            self.source = replace(self.source, version=None)
        return self

    def extend_features(self, features: list[str]) -> Dependency:
        current = list(self.features or [])
        for feature in features:
            if feature not in current:
                current.append(feature)
        self.features = current
        return self

    # -------------------------------------------------------------------------
    # Parsing
    # -------------------------------------------------------------------------

    @classmethod
    def from_toml(cls, crate_root: Path, key: str, item: Any) -> Dependency:
        """Build a dependency from an existing manifest entry.

        Parameters
        ----------
        crate_root : Path
            Directory of the manifest; relative paths are joined to it.
        key : str
            The entry's key in its table.
        item : Any
            The entry: a version string or a table.

        Raises
        ------
        InvalidDependencyEntry
            If the entry cannot be classified.
        """
        if isinstance(item, str):
            return cls(key, RegistrySource(str(item)))
        if not is_table_like(item):
            raise InvalidDependencyEntry(key)

        name, rename = key, None
        package = _opt_str(item, "package", key)
        if package is not None:
            name, rename = package, key

        registry = _opt_str(item, "registry", key)
        version = _opt_str(item, "version", key)
        source: Source
        if "git" in item:
            source = GitSource(
                _opt_str(item, "git", key) or "",
                branch=_opt_str(item, "branch", key),
                tag=_opt_str(item, "tag", key),
                rev=_opt_str(item, "rev", key),
            )
        elif "path" in item:
            path = _opt_str(item, "path", key) or ""
            source = PathSource(crate_root / path, version=version, registry=registry)
        elif version is not None:
            source = RegistrySource(version, registry=registry)
        else:
            raise InvalidDependencyEntry(key, "missing `version`, `path` or `git`")

        default_features = _opt_bool(item, "default-features", key)
        if default_features is None:
            default_features = _opt_bool(item, "default_features", key)

        features = None
        if "features" in item:
            raw = item["features"]
            if not isinstance(raw, list) or not all(isinstance(f, str) for f in raw):
                raise InvalidDependencyEntry(key, "`features` must be an array of strings")
            features = [str(f) for f in raw]

        optional = _opt_bool(item, "optional", key)
        return cls(
            name,
            source,
            rename=rename,
            optional=bool(optional),
            default_features=True if default_features is None else default_features,
            features=features,
        )

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def is_short_form(self) -> bool:
        """Whether this dependency is written as a bare version string."""
        return (
            isinstance(self.source, RegistrySource)
            and self.source.registry is None
            and self.rename is None
            and not self.features
            and self.default_features is not False
            and self.optional is not True
        )

    def _pairs(self, crate_root: Path) -> list[tuple[str, Any]]:
        source = self.source
        assert source is not None, f"dependency `{self.name}` has no source"
        pairs: list[tuple[str, Any]] = []
        if isinstance(source, RegistrySource):
            pairs.append(("version", source.version))
            if source.registry:
                pairs.append(("registry", source.registry))
        elif isinstance(source, PathSource):
            if source.version:
                pairs.append(("version", source.version))
            pairs.append(("path", relative_path(crate_root, source.path)))
            if source.registry:
                pairs.append(("registry", source.registry))
        elif isinstance(source, GitSource):
            pairs.append(("git", source.git))
            for ref in ("branch", "tag", "rev"):
                value = getattr(source, ref)
                if value:
                    pairs.append((ref, value))
        else:
            raise AssertionError(f"unhandled source {source!r}")

        if self.rename:
            pairs.append(("package", self.name))
        if self.default_features is False:
            pairs.append(("default-features", False))
        if self.features:
            pairs.append(("features", list(self.features)))
        if self.optional:
            pairs.append(("optional", True))
        return pairs

    def to_toml(self, crate_root: Path) -> Any:
        """Render a fresh entry: a version string or an inline table."""
        if self.is_short_form():
            return tomlkit.string(self.source.version)  # type: ignore[union-attr]
        return render_inline(self._pairs(crate_root))

    def to_block_table(self, crate_root: Path) -> Table:
        """Render a fresh entry as a ``[table.name]`` block."""
        return render_block(self._pairs(crate_root))

    def update_toml(self, crate_root: Path, table: TableLike, key: str) -> None:
        """Merge this dependency into the existing entry ``table[key]``.

        Keys this dependency does not govern are kept. A bare string or a
        single-key inline table is simply replaced, and so is an entry
        naming a different ``package``.
        """
        existing = table[key]
        package = self.name if self.rename else None
        if isinstance(existing, str) or (
            isinstance(existing, InlineTable)
            and (len(existing) == 1 or existing.get("package") != package)
        ):
            table[key] = self.to_toml(crate_root)
            return
        if not is_table_like(existing):
            raise InvalidDependencyEntry(key)

        if isinstance(existing, InlineTable):
            # Edited in place: pairs left alone keep their spacing and comments
            self._merge(crate_root, _EntryEditor(existing))
            return

        if existing.get("package") != package:
            for old in list(existing.keys()):
                del existing[old]
            for new_key, value in self._pairs(crate_root):
                existing[new_key] = value
            return
        self._merge(crate_root, _EntryEditor(existing))

    def _merge(self, crate_root: Path, editor: _EntryEditor) -> None:
        source = self.source
        if isinstance(source, RegistrySource):
            editor.set("version", source.version)
            editor.remove("path", "git", "branch", "tag", "rev", "workspace")
        elif isinstance(source, PathSource):
            if not _same_path(crate_root, editor.mapping.get("path"), source.path):
                editor.set("path", relative_path(crate_root, source.path))
            if source.version:
                editor.set("version", source.version)
            else:
                editor.remove("version")
            editor.remove("git", "branch", "tag", "rev", "workspace")
        elif isinstance(source, GitSource):
            editor.set("git", source.git)
            for ref in ("branch", "tag", "rev"):
                value = getattr(source, ref)
                if value:
                    editor.set(ref, value)
                else:
                    editor.remove(ref)
            editor.remove("version", "path", "registry", "workspace")
        elif source is not None:
            raise AssertionError(f"unhandled source {source!r}")

        registry = self.registry()
        if registry and "version" in editor.mapping:
            editor.set("registry", registry)
        elif not isinstance(source, GitSource):
            editor.remove("registry")

        if self.rename:
            editor.set("package", self.name)

        if self.default_features is True:
            editor.remove("default-features", "default_features")
        elif self.default_features is False:
            editor.remove("default_features")
            editor.set("default-features", False)

        if self.features is not None:
            merged: list[str] = []
            current = editor.mapping.get("features")
            if isinstance(current, list):
                merged.extend(str(f) for f in current if isinstance(f, str))
            for feature in self.features:
                if feature not in merged:
                    merged.append(feature)
            editor.set("features", merged)

        if self.optional is True:
            editor.set("optional", True)
        elif self.optional is False:
            editor.remove("optional")
