"""Cargo manifest model.

Classes
-------
Manifest
    Read-only queries: package metadata, dependency tables, features.

LocalManifest
    A manifest bound to a file: insert, update, remove and write back.

DepTable
    Identifies one dependency table (kind plus optional target).
"""
from cargoedit.manifest.local import LocalManifest
from cargoedit.manifest.manifest import DEP_TABLES, DepTable, FeatureStatus, Manifest

__all__ = [
    "DEP_TABLES",
    "DepTable",
    "FeatureStatus",
    "LocalManifest",
    "Manifest",
]
