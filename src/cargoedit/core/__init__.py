"""
Core module.

Example
-------
>>> from cargoedit import CargoEdit
>>>
>>> # Point at a package (directory or Cargo.toml)
>>> editor = CargoEdit("crates/app", resolver=resolver)
>>>
>>> # Add a dependency with features
>>> editor.add(DepRequest("serde", features=["derive"]))
>>>
>>> # Preview a version bump across the workspace
>>> print(CargoEdit("crates/app", dry_run=True).set_version(all_members=True).diff)
"""
from __future__ import annotations

from .editor import CargoEdit
from .results import BatchResult, ErrorResult, Result
from .transaction import ManifestTransaction

__all__ = [
    "CargoEdit",
    "Result",
    "ErrorResult",
    "BatchResult",
    "ManifestTransaction",
]
