"""Format-preserving TOML document wrapper built on tomlkit.

Provides typed navigation of nested tables by a path of segments, table
creation, key sorting, and the canonical rendering used for freshly
written dependency entries.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Iterable, MutableMapping, Sequence

import tomlkit
from tomlkit.container import Container, OutOfOrderTableProxy
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import AoT, Bool, InlineTable, Item, Table
from tomlkit.toml_document import TOMLDocument

from cargoedit.errors import NonExistentTable, ParseDocument

logger = logging.getLogger(__name__)

TableLike = MutableMapping[str, Any]

_BARE_KEY = re.compile(r"^[A-Za-z0-9_-]+$")


def is_table_like(item: Any) -> bool:
    """Whether ``item`` is a standard table, inline table or document."""
    return isinstance(item, (Table, InlineTable, OutOfOrderTableProxy, Container))


def as_bool(item: Any) -> bool | None:
    """Return the Python bool for a TOML boolean, else None."""
    if isinstance(item, Bool):
        return item.value
    if isinstance(item, bool):
        return item
    return None


def is_super_table(table: Any) -> bool:
    """Whether ``table`` is an implicit parent that renders no header."""
    return isinstance(table, Table) and table.is_super_table()


def format_key(key: str) -> str:
    if _BARE_KEY.match(key):
        return key
    return tomlkit.string(key).as_string()


def format_value(value: Any) -> str:
    """Render a Python or tomlkit value as inline TOML text."""
    if isinstance(value, Item):
        return value.as_string()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return tomlkit.string(value).as_string()
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_value(v) for v in value) + "]"
    if isinstance(value, dict):
        return render_inline_text(value.items())
    return tomlkit.item(value).as_string()


def render_inline_text(pairs: Iterable[tuple[str, Any]]) -> str:
    body = ", ".join(f"{format_key(k)} = {format_value(v)}" for k, v in pairs)
    return f"{{ {body} }}" if body else "{}"


def render_inline(pairs: Iterable[tuple[str, Any]]) -> InlineTable:
    """Build an inline table in canonical ``{ key = value, ... }`` form.

    Examples
    --------
    >>> render_inline([("version", "1.0"), ("optional", True)]).as_string()
    '{ version = "1.0", optional = true }'
    """
    return tomlkit.value(render_inline_text(pairs))


def render_block(pairs: Iterable[tuple[str, Any]]) -> Table:
    """Build a standard table holding ``pairs``."""
    table = tomlkit.table()
    for key, value in pairs:
        table[key] = value
    return table


def value_keys(table: TableLike) -> list[str]:
    """Keys of ``table`` whose values are not sub-tables."""
    keys = []
    for key in table.keys():
        value = table[key]
        if isinstance(value, (Table, AoT)):
            continue
        keys.append(key)
    return keys


def is_sorted(table: TableLike | None) -> bool:
    """Whether the value entries of ``table`` are in key order.

    A missing or empty table counts as sorted.
    """
    if table is None:
        return True
    keys = value_keys(table)
    return keys == sorted(keys)


def sort_values(table: TableLike) -> None:
    """Sort the value entries of ``table`` alphabetically by key.

    Each entry keeps its own decoration (indent, trailing comment).
    Sub-tables are left where they are.
    """
    if not isinstance(table, Table):
        logger.debug("Not sorting %s", type(table).__name__)
        return
    keys = value_keys(table)
    if keys == sorted(keys):
        return
    container = table.value
    entries = [(key, container.item(key)) for key in keys]
    for key in keys:
        container.remove(key)
    for key, item in sorted(entries, key=lambda entry: entry[0]):
        container.append(key, item)


class TomlDocument:
    """A parsed TOML document that renders back byte-for-byte.

    Parameters
    ----------
    data : TOMLDocument
        The tomlkit document.

    Examples
    --------
    >>> doc = TomlDocument.parse('[package]\\nname = "x"\\n')
    >>> doc.get_or_insert_table(["dependencies"])["serde"] = "1.0"
    >>> "serde" in doc.render()
    True
    """

    def __init__(self, data: TOMLDocument) -> None:
        self.data = data

    @classmethod
    def parse(cls, text: str, path: Any = None) -> TomlDocument:
        """Parse ``text``.

        Raises
        ------
        ParseDocument
            If ``text`` is not valid TOML.
        """
        try:
            return cls(tomlkit.parse(text))
        except TOMLKitError as exc:
            raise ParseDocument(path, str(exc)) from exc

    def render(self) -> str:
        return self.data.as_string()

    def __str__(self) -> str:
        return self.render()

    def get_table(self, path: Sequence[str]) -> TableLike:
        """Descend through ``path``, each segment naming a table.

        Raises
        ------
        NonExistentTable
            Naming the first segment that is missing or not a table.
        """
        current: Any = self.data
        for segment in path:
            if segment not in current:
                raise NonExistentTable(segment)
            current = current[segment]
            if not is_table_like(current):
                raise NonExistentTable(segment)
        return current

    def get_or_insert_table(self, path: Sequence[str]) -> TableLike:
        """Like :meth:`get_table`, creating missing tables along the way.

        Intermediate tables are created as implicit parents, so
        ``["target", "cfg(unix)", "dependencies"]`` renders a single
        ``[target."cfg(unix)".dependencies]`` header.
        """
        current: Any = self.data
        for index, segment in enumerate(path):
            if segment not in current:
                intermediate = index < len(path) - 1
                logger.debug("Creating table %s", ".".join(path[: index + 1]))
                current[segment] = tomlkit.table(is_super_table=intermediate or None)
            current = current[segment]
            if not is_table_like(current):
                raise NonExistentTable(segment)
        return current

    def remove_table(self, path: Sequence[str]) -> None:
        """Remove the table at ``path`` and any implicit parents left empty."""
        path = list(path)
        while path:
            parent = self.get_table(path[:-1])
            del parent[path[-1]]
            path = path[:-1]
            if not path:
                break
            parent_table = self.get_table(path)
            if len(parent_table) or not is_super_table(parent_table):
                break
