"""Locate registry index URLs from Cargo configuration files.

Cargo reads ``.cargo/config`` (or ``.cargo/config.toml``) in the manifest
directory and each of its ancestors, then in Cargo home. Registries may be
replaced by other sources through ``[source.<name>] replace-with``.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from cargoedit.errors import (
    InvalidCargoConfig,
    NoSuchRegistry,
    NoSuchSource,
    SourceReplacementCycle,
)

logger = logging.getLogger(__name__)

CRATES_IO_INDEX = "https://github.com/rust-lang/crates.io-index"
CRATES_IO_REGISTRY = "crates-io"


@dataclass
class _SourceEntry:
    registry: str | None = None
    replace_with: str | None = None


def cargo_home(environ: dict[str, str] | None = None) -> Path:
    """``$CARGO_HOME``, defaulting to ``~/.cargo``."""
    environ = os.environ if environ is None else environ
    if environ.get("CARGO_HOME"):
        return Path(environ["CARGO_HOME"])
    return Path.home() / ".cargo"


def _config_file(directory: Path) -> Path | None:
    for name in ("config", "config.toml"):
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def _read_config(path: Path, sources: dict[str, _SourceEntry]) -> None:
    logger.debug("Reading cargo config %s", path)
    try:
        config: dict[str, Any] = tomlkit.parse(path.read_text(encoding="utf-8")).unwrap()
    except (OSError, TOMLKitError) as exc:
        raise InvalidCargoConfig(f"Invalid cargo config {path}: {exc}") from exc

    registries = config.get("registries", {})
    source_tables = config.get("source", {})
    if not isinstance(registries, dict) or not isinstance(source_tables, dict):
        raise InvalidCargoConfig(f"Invalid cargo config {path}")

    # Nearer config files were read first and win.
    for name, table in registries.items():
        if not isinstance(table, dict):
            raise InvalidCargoConfig(f"Invalid registry `{name}` in {path}")
        sources.setdefault(name, _SourceEntry(registry=table.get("index")))
    for name, table in source_tables.items():
        if not isinstance(table, dict):
            raise InvalidCargoConfig(f"Invalid source `{name}` in {path}")
        sources.setdefault(
            name,
            _SourceEntry(registry=table.get("registry"), replace_with=table.get("replace-with")),
        )


def registry_url(
    manifest_path: Path,
    registry: str | None = None,
    home: Path | None = None,
) -> str:
    """Find the index URL for ``registry`` as seen from ``manifest_path``.

    Parameters
    ----------
    manifest_path : Path
        The manifest whose directory starts the config search.
    registry : str | None
        Registry name, or None (or the crates.io index URL) for crates.io.
    home : Path | None
        Cargo home; defaults to :func:`cargo_home`.

    Returns
    -------
    str
        The index URL after following source replacement.

    Raises
    ------
    NoSuchRegistry
        If a named registry is not configured.
    NoSuchSource
        If ``replace-with`` names an unknown source.
    SourceReplacementCycle
        If ``replace-with`` links loop back on themselves.
    InvalidCargoConfig
        If a config file is malformed or the final source has no URL.
    """
    sources: dict[str, _SourceEntry] = {}
    start = Path(manifest_path).resolve().parent
    for directory in [start, *start.parents]:
        config = _config_file(directory / ".cargo")
        if config is not None:
            _read_config(config, sources)
    config = _config_file(home or cargo_home())
    if config is not None:
        _read_config(config, sources)

    if registry is None or registry == CRATES_IO_INDEX:
        name = CRATES_IO_REGISTRY
        entry = sources.get(name, _SourceEntry(registry=CRATES_IO_INDEX))
    else:
        name = registry
        if registry not in sources:
            raise NoSuchRegistry(registry)
        entry = sources[registry]

    chain = [name]
    while entry.replace_with is not None:
        name = entry.replace_with
        if name in chain:
            raise SourceReplacementCycle(chain + [name])
        chain.append(name)
        if name not in sources:
            raise NoSuchSource(name)
        entry = sources[name]

    if not entry.registry or not isinstance(entry.registry, str):
        raise InvalidCargoConfig(f"The source `{name}` has no registry URL")
    return entry.registry
