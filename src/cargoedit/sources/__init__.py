"""Where crate versions and registries come from."""
from cargoedit.sources.index import LocalIndexResolver
from cargoedit.sources.registry import CRATES_IO_INDEX, registry_url
from cargoedit.sources.resolver import OfflineResolver, ResolvedCrate, SourceResolver

__all__ = [
    "CRATES_IO_INDEX",
    "LocalIndexResolver",
    "OfflineResolver",
    "ResolvedCrate",
    "SourceResolver",
    "registry_url",
]
