"""Exception hierarchy for manifest editing.

Every error raised by the editing core derives from :class:`CargoEditError`.
The core never catches these itself; the :class:`~cargoedit.core.editor.CargoEdit`
facade turns them into :class:`~cargoedit.core.results.ErrorResult` objects.
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable


class CargoEditError(Exception):
    """Base class for all manifest editing errors."""


class ReadError(CargoEditError):
    """The manifest file could not be read."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read manifest contents from {path}: {reason}")


class ParseDocument(CargoEditError):
    """The input is not valid TOML."""

    def __init__(self, path: Path | None, reason: str) -> None:
        self.path = path
        self.reason = reason
        where = f" at {path}" if path is not None else ""
        super().__init__(f"Unable to parse manifest{where}: {reason}")


class InvalidManifest(CargoEditError):
    """The manifest parses but is missing or misusing a required field."""


class MissingPackage(CargoEditError):
    """Write attempted on a manifest with neither `package` nor `project`."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Missing expected `package` or `project` fields in {path}")


class VirtualWorkspace(MissingPackage):
    """Write attempted on a virtual workspace manifest."""

    def __init__(self, path: Path) -> None:
        self.path = path
        CargoEditError.__init__(
            self,
            f"Found virtual manifest at {path}, but this command requires running "
            "against an actual package in this workspace.",
        )


class NonExistentTable(CargoEditError):
    """A segment of a table path does not resolve to a table."""

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f"The table `{table}` could not be found.")


class NonExistentDependency(CargoEditError):
    """The named dependency is absent from the target table."""

    def __init__(self, name: str, table: str) -> None:
        self.name = name
        self.table = table
        super().__init__(f"The dependency `{name}` could not be found in `{table}`.")


class InvalidName(CargoEditError):
    """A crate name contains characters that are not allowed."""

    def __init__(self, name: str, reasons: Iterable[str]) -> None:
        self.name = name
        self.reasons = list(reasons)
        super().__init__(f"Invalid name `{name}`: {', '.join(self.reasons)}")


class InvalidVersionReq(CargoEditError):
    """A version requirement does not parse."""

    def __init__(self, req: str, reason: str) -> None:
        self.req = req
        self.reason = reason
        super().__init__(f"Invalid version requirement `{req}`: {reason}")


class InvalidDependencyEntry(CargoEditError):
    """An existing dependency entry has a shape that cannot be classified."""

    def __init__(self, key: str, reason: str = "unrecognized dependency entry") -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid dependency `{key}`: {reason}")


class SelfDependency(CargoEditError):
    """A dependency resolves to the manifest's own package."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"cannot add `{name}` as a dependency to itself")


class ConflictingSource(CargoEditError):
    """Incompatible sources were requested together."""


class Downgrade(CargoEditError):
    """An absolute version would be lower than the current one."""

    def __init__(self, current: object, requested: object) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot downgrade from {current} to {requested}")


class InvalidReleaseLevel(CargoEditError):
    """A pre-release bump attempted to move backward."""

    def __init__(self, level: str, version: object) -> None:
        self.level = level
        self.version = version
        super().__init__(f"Cannot increment the {level} field for {version}")


class UnsupportedVersionReq(CargoEditError):
    """A requirement cannot be rewritten to admit a new version."""

    def __init__(self, req: str) -> None:
        self.req = req
        super().__init__(f"Support for modifying {req} is currently unsupported")


class CrateNotFound(CargoEditError):
    """The resolver knows no usable version of a crate."""

    def __init__(self, name: str, reason: str = "the crate could not be found") -> None:
        self.name = name
        super().__init__(f"Unable to resolve `{name}`: {reason}")


class InvalidCargoConfig(CargoEditError):
    """A Cargo configuration file is malformed."""


class NoSuchRegistry(CargoEditError):
    """A named registry is not declared in any Cargo configuration file."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"The registry '{name}' could not be found")


class NoSuchSource(CargoEditError):
    """A `replace-with` link points at an undeclared source."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"The source '{name}' could not be found")


class SourceReplacementCycle(CargoEditError):
    """`replace-with` links form a cycle."""

    def __init__(self, chain: list[str]) -> None:
        self.chain = chain
        super().__init__(f"Source replacement cycle detected: {' -> '.join(chain)}")


class InvalidVersion(CargoEditError):
    """A version string is not a valid semantic version."""

    def __init__(self, version: str, reason: str) -> None:
        self.version = version
        self.reason = reason
        super().__init__(f"Invalid version `{version}`: {reason}")
