"""
cargoedit - format-preserving editing of Cargo.toml manifests.

Adds, removes and upgrades dependencies and changes package versions while
keeping the comments, key order and table style of the manifest intact.

Example
-------
>>> from cargoedit import BumpLevel, CargoEdit, DepRequest, DepTable, LocalIndexResolver, Relative
>>>
>>> editor = CargoEdit("crates/app", resolver=LocalIndexResolver("/path/to/index"))
>>>
>>> # Add a crate at its latest version, with features
>>> editor.add(DepRequest("serde", features=["derive"]))
>>>
>>> # Remove a dev-dependency
>>> editor.remove("pretty_assertions", section=DepTable("dev-dependencies"))
>>>
>>> # Preview a minor bump of every workspace member
>>> result = CargoEdit("crates/app", dry_run=True).set_version(
...     Relative(BumpLevel.MINOR), all_members=True
... )
>>> print(result.diff)

Classes
-------
CargoEdit
    Entry point returning Result objects; never raises.

Result / ErrorResult / BatchResult
    Command outcomes with unified diffs.

LocalManifest
    A manifest bound to a file: insert, update, remove, write.

Dependency
    A dependency record with a registry, path or git source.

CrateSpec
    Parses ``name``, ``name@req`` or a crate path.

Collaborators
-------------
SourceResolver
    Latest versions and features (LocalIndexResolver, OfflineResolver).

WorkspaceView
    Workspace members (FilesystemWorkspace, StaticWorkspace).

Printer
    Status output (ShellPrinter, LogPrinter).
"""
from __future__ import annotations

from cargoedit.core import BatchResult, CargoEdit, ErrorResult, ManifestTransaction, Result
from cargoedit.crate_spec import CratePath, CrateSpec, PkgId
from cargoedit.dependency import Dependency, GitSource, PathSource, RegistrySource
from cargoedit.errors import CargoEditError
from cargoedit.manifest import DepTable, LocalManifest, Manifest
from cargoedit.ops import DepRequest
from cargoedit.printer import LogPrinter, Printer, ShellPrinter
from cargoedit.sources import LocalIndexResolver, OfflineResolver, SourceResolver, registry_url
from cargoedit.version import Absolute, BumpLevel, Relative, Unchanged
from cargoedit.workspace import FilesystemWorkspace, StaticWorkspace, WorkspaceMember, WorkspaceView

__version__ = "0.1.0"

__all__ = [
    "Absolute",
    "BatchResult",
    "BumpLevel",
    "CargoEdit",
    "CargoEditError",
    "CratePath",
    "CrateSpec",
    "DepRequest",
    "DepTable",
    "Dependency",
    "ErrorResult",
    "FilesystemWorkspace",
    "GitSource",
    "LocalIndexResolver",
    "LocalManifest",
    "LogPrinter",
    "Manifest",
    "ManifestTransaction",
    "OfflineResolver",
    "PathSource",
    "PkgId",
    "Printer",
    "RegistrySource",
    "Relative",
    "Result",
    "ShellPrinter",
    "SourceResolver",
    "StaticWorkspace",
    "Unchanged",
    "WorkspaceMember",
    "WorkspaceView",
    "registry_url",
]
