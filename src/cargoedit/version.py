"""Semantic version bumps and Cargo version requirements.

This module provides the version arithmetic used by ``set-version`` and
``upgrade``:

- :class:`VersionReq` / :class:`Comparator` - Cargo-flavoured requirement
  parsing and matching (``^1.2``, ``~0.3``, ``>=1, <2``, ``1.*``)
- :func:`upgrade_requirement` - relax a requirement so it admits a new version
- :class:`BumpLevel` and the :class:`TargetVersion` variants - version bumps

Versions are :class:`semver.Version` instances from python-semver.
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass, replace
from typing import Union

from semver import Version

from cargoedit.errors import (
    Downgrade,
    InvalidReleaseLevel,
    InvalidVersion,
    InvalidVersionReq,
    UnsupportedVersionReq,
)

_OP_RE = re.compile(r"^\s*(?P<op>>=|<=|=|>|<|~|\^)?\s*(?P<version>.*?)\s*$")
_WILDCARDS = ("*", "x", "X")


def parse_version(text: str | Version) -> Version:
    """Parse a full ``major.minor.patch[-pre][+build]`` version.

    Raises
    ------
    InvalidVersion
        If the text is not a semantic version.
    """
    if isinstance(text, Version):
        return text
    try:
        return Version.parse(text.strip())
    except (ValueError, TypeError) as exc:
        raise InvalidVersion(str(text), str(exc)) from exc


def _compare_pre(left: str | None, right: str | None) -> int:
    # A version without pre-release sorts after any pre-release of the same triple.
    return Version(0, 0, 0, prerelease=left or None).compare(
        Version(0, 0, 0, prerelease=right or None)
    )


class Op(enum.Enum):
    """Comparison operator of a single comparator."""

    EXACT = "="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    TILDE = "~"
    CARET = "^"
    WILDCARD = "*"


@dataclass(frozen=True)
class Comparator:
    """One comparator of a version requirement.

    Parameters
    ----------
    op : Op
        The comparison operator. Bare versions are carets.
    major, minor, patch : int | None
        Version components; trailing components may be absent.
    pre : str | None
        Pre-release tag; only allowed with a full version.
    op_text : str
        The operator as written (``""`` for an implicit caret).
    text : str
        The comparator as written. Empty for rewritten comparators.
    """

    op: Op
    major: int
    minor: int | None = None
    patch: int | None = None
    pre: str | None = None
    op_text: str = ""
    text: str = ""

    @classmethod
    def parse(cls, text: str, requirement: str) -> Comparator | None:
        """Parse one comparator, returning None for a bare ``*``."""
        match = _OP_RE.match(text)
        op_text = match.group("op") or "" if match else ""
        raw = match.group("version") if match else ""
        if not raw:
            raise InvalidVersionReq(requirement, "expected a version")

        raw, _, _build = raw.partition("+")
        core, dash, pre = raw.partition("-")
        if dash and not pre:
            raise InvalidVersionReq(requirement, "empty pre-release identifier")

        parts = core.split(".")
        if len(parts) > 3:
            raise InvalidVersionReq(requirement, f"unexpected version component in `{text.strip()}`")

        numbers: list[int] = []
        wildcard = False
        for part in parts:
            if part in _WILDCARDS:
                wildcard = True
                continue
            if wildcard:
                raise InvalidVersionReq(requirement, "unexpected number after wildcard")
            if not part.isdigit():
                raise InvalidVersionReq(requirement, f"unexpected character in `{part}`")
            if len(part) > 1 and part.startswith("0"):
                raise InvalidVersionReq(requirement, f"invalid leading zero in `{part}`")
            numbers.append(int(part))

        if pre and (wildcard or len(numbers) < 3):
            raise InvalidVersionReq(requirement, "unexpected pre-release without full version")

        op = Op(op_text) if op_text else Op.CARET
        if wildcard:
            if not numbers:
                if op_text not in ("", "="):
                    raise InvalidVersionReq(requirement, "unexpected operator before `*`")
                return None
            if op_text in ("", "="):
                op = Op.WILDCARD

        major = numbers[0]
        minor = numbers[1] if len(numbers) > 1 else None
        patch = numbers[2] if len(numbers) > 2 else None
        return cls(op, major, minor, patch, pre or None, op_text, text.strip())

    def matches(self, version: Version) -> bool:
        """Check this comparator alone, ignoring the pre-release gate."""
        if self.op in (Op.EXACT, Op.WILDCARD):
            return self._matches_exact(version)
        if self.op is Op.GREATER:
            return self._matches_greater(version)
        if self.op is Op.GREATER_EQ:
            return self._matches_exact(version) or self._matches_greater(version)
        if self.op is Op.LESS:
            return self._matches_less(version)
        if self.op is Op.LESS_EQ:
            return self._matches_exact(version) or self._matches_less(version)
        if self.op is Op.TILDE:
            return self._matches_tilde(version)
        if self.op is Op.CARET:
            return self._matches_caret(version)
        raise AssertionError(f"unhandled operator {self.op}")

    def admits_prerelease_of(self, version: Version) -> bool:
        """Whether this comparator opts in to pre-releases of ``version``'s triple."""
        return (
            self.major == version.major
            and self.minor == version.minor
            and self.patch == version.patch
            and bool(self.pre)
        )

    def _matches_exact(self, version: Version) -> bool:
        if version.major != self.major:
            return False
        if self.minor is not None and version.minor != self.minor:
            return False
        if self.patch is not None and version.patch != self.patch:
            return False
        if self.op is Op.WILDCARD or self.patch is None:
            return not version.prerelease
        return _compare_pre(version.prerelease, self.pre) == 0

    def _matches_greater(self, version: Version) -> bool:
        if version.major != self.major:
            return version.major > self.major
        if self.minor is None:
            return False
        if version.minor != self.minor:
            return version.minor > self.minor
        if self.patch is None:
            return False
        if version.patch != self.patch:
            return version.patch > self.patch
        return _compare_pre(version.prerelease, self.pre) > 0

    def _matches_less(self, version: Version) -> bool:
        if version.major != self.major:
            return version.major < self.major
        if self.minor is None:
            return False
        if version.minor != self.minor:
            return version.minor < self.minor
        if self.patch is None:
            return False
        if version.patch != self.patch:
            return version.patch < self.patch
        return _compare_pre(version.prerelease, self.pre) < 0

    def _matches_tilde(self, version: Version) -> bool:
        if version.major != self.major:
            return False
        if self.minor is not None and version.minor != self.minor:
            return False
        if self.patch is not None and version.patch != self.patch:
            return version.patch > self.patch
        return _compare_pre(version.prerelease, self.pre) >= 0

    def _matches_caret(self, version: Version) -> bool:
        if version.major != self.major:
            return False
        if self.minor is None:
            return True
        if self.patch is None:
            if self.major > 0:
                return version.minor >= self.minor
            return version.minor == self.minor
        if self.major > 0:
            if version.minor != self.minor:
                return version.minor > self.minor
            if version.patch != self.patch:
                return version.patch > self.patch
        elif self.minor > 0:
            if version.minor != self.minor:
                return False
            if version.patch != self.patch:
                return version.patch > self.patch
        elif version.minor != self.minor or version.patch != self.patch:
            return False
        return _compare_pre(version.prerelease, self.pre) >= 0

    def render(self) -> str:
        if self.op is Op.WILDCARD:
            parts = [str(self.major)]
            if self.minor is not None:
                parts.append(str(self.minor))
            return ".".join(parts + ["*"])
        text = ".".join(str(n) for n in (self.major, self.minor, self.patch) if n is not None)
        if self.pre:
            text += f"-{self.pre}"
        return f"{self.op_text}{text}"

    def __str__(self) -> str:
        return self.text or self.render()


@dataclass(frozen=True)
class VersionReq:
    """A comma-separated list of comparators; empty means ``*``."""

    comparators: tuple[Comparator, ...] = ()

    @classmethod
    def parse(cls, text: str) -> VersionReq:
        """Parse a Cargo version requirement.

        Raises
        ------
        InvalidVersionReq
            If any comparator is malformed.

        Examples
        --------
        >>> VersionReq.parse(">=1.2, <2").matches(Version.parse("1.9.0"))
        True
        """
        if not text or not text.strip():
            raise InvalidVersionReq(text, "empty string, expected a semver version")
        comparators = []
        for piece in text.split(","):
            comparator = Comparator.parse(piece, text)
            if comparator is not None:
                comparators.append(comparator)
        return cls(tuple(comparators))

    def matches(self, version: Version) -> bool:
        if not all(c.matches(version) for c in self.comparators):
            return False
        if not version.prerelease:
            return True
        return any(c.admits_prerelease_of(version) for c in self.comparators)

    def is_pinned(self) -> bool:
        """Whether the requirement pins or caps versions (``=``, ``<``, ``<=``, wildcards)."""
        return any(
            c.op in (Op.EXACT, Op.LESS, Op.LESS_EQ, Op.WILDCARD) for c in self.comparators
        )

    def min_version(self) -> Version | None:
        """The lowest version a lower-bounded requirement admits, if obvious."""
        for c in self.comparators:
            if c.op in (Op.CARET, Op.TILDE, Op.EXACT, Op.GREATER_EQ, Op.WILDCARD):
                return Version(c.major, c.minor or 0, c.patch or 0, prerelease=c.pre)
        return None

    def __str__(self) -> str:
        if not self.comparators:
            return "*"
        return ", ".join(str(c) for c in self.comparators)


def is_version_req(text: str) -> bool:
    try:
        VersionReq.parse(text)
    except InvalidVersionReq:
        return False
    return True


def _assign(comparator: Comparator, version: Version) -> Comparator:
    if version.prerelease:
        if comparator.op is Op.WILDCARD:
            raise UnsupportedVersionReq(str(comparator))
        return replace(
            comparator,
            major=version.major,
            minor=version.minor,
            patch=version.patch,
            pre=version.prerelease,
            text="",
        )
    return replace(
        comparator,
        major=version.major,
        minor=version.minor if comparator.minor is not None else None,
        patch=version.patch if comparator.patch is not None else None,
        pre=None,
        text="",
    )


def _relax(comparator: Comparator, version: Version, requirement: str) -> Comparator:
    if comparator.op in (Op.EXACT, Op.TILDE, Op.CARET, Op.WILDCARD, Op.LESS_EQ):
        return _assign(comparator, version)
    if comparator.op is Op.LESS:
        if comparator.patch is not None:
            bound = (version.major, version.minor, version.patch + 1)
        elif comparator.minor is not None:
            bound = (version.major, version.minor + 1, None)
        else:
            bound = (version.major + 1, None, None)
        return replace(
            comparator, major=bound[0], minor=bound[1], patch=bound[2], pre=None, text=""
        )
    # Admitting the version would mean lowering a lower bound.
    raise UnsupportedVersionReq(requirement)


def upgrade_requirement(requirement: str, version: Version | str) -> str | None:
    """Rewrite ``requirement`` so that it admits ``version``.

    Only the comparators that exclude ``version`` are rewritten, keeping
    their operator and precision (``"0.1"`` becomes ``"0.2"``, ``"~1.2.3"``
    becomes ``"~1.4.0"``). Comparators that already admit the version are
    kept verbatim.

    Parameters
    ----------
    requirement : str
        The existing version requirement.
    version : Version | str
        The version that must be admitted.

    Returns
    -------
    str | None
        The new requirement, or None when ``requirement`` already admits
        ``version`` or places no constraint at all.

    Raises
    ------
    UnsupportedVersionReq
        If only a lower bound (``>``, ``>=``) could be moved.

    Examples
    --------
    >>> upgrade_requirement("0.1", "0.2.0")
    '0.2'
    >>> upgrade_requirement("^1.0", "1.5.0") is None
    True
    """
    version = parse_version(version)
    req = VersionReq.parse(requirement)
    if not req.comparators or req.matches(version):
        return None

    comparators = list(req.comparators)
    relaxed = False
    for index, comparator in enumerate(comparators):
        if not comparator.matches(version):
            comparators[index] = _relax(comparator, version, requirement)
            relaxed = True

    if not relaxed:
        # Every comparator admits the triple; only the pre-release gate failed.
        for index, comparator in enumerate(comparators):
            if comparator.op in (Op.CARET, Op.TILDE, Op.EXACT, Op.LESS_EQ):
                comparators[index] = _assign(comparator, version)
                break
        else:
            raise UnsupportedVersionReq(requirement)

    new_req = VersionReq(tuple(comparators))
    if not new_req.matches(version):
        raise UnsupportedVersionReq(requirement)
    return str(new_req)


# =============================================================================
# Version bumps
# =============================================================================

_PRERELEASE_ORDER = {"alpha": 0, "beta": 1, "rc": 2}


class BumpLevel(enum.Enum):
    """How far to move a version."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    RELEASE = "release"
    RC = "rc"
    BETA = "beta"
    ALPHA = "alpha"

    def bump_version(self, version: Version, metadata: str | None = None) -> Version:
        """Apply this bump level to ``version``.

        ``metadata``, when given, replaces the build suffix of the result.
        """
        if self is BumpLevel.MAJOR:
            bumped = version.bump_major()
        elif self is BumpLevel.MINOR:
            bumped = version.bump_minor()
        elif self is BumpLevel.PATCH:
            if version.prerelease:
                bumped = version.replace(prerelease=None)
            else:
                bumped = version.bump_patch()
        elif self is BumpLevel.RELEASE:
            bumped = version.replace(prerelease=None) if version.prerelease else version
        else:
            bumped = _increment_prerelease(version, self.value)

        if metadata is not None:
            bumped = bumped.replace(build=metadata)
        return bumped


def _increment_prerelease(version: Version, ident: str) -> Version:
    if not version.prerelease:
        return version.bump_patch().replace(prerelease=f"{ident}.1")

    current, dot, tail = version.prerelease.partition(".")
    if dot and not tail.isdigit():
        raise InvalidVersion(str(version), "version tail must be a number")
    if _PRERELEASE_ORDER.get(current, -1) > _PRERELEASE_ORDER[ident]:
        raise InvalidReleaseLevel(ident, version)

    number = int(tail) + 1 if current == ident and tail else 1
    return version.replace(prerelease=f"{ident}.{number}")


@dataclass(frozen=True)
class Relative:
    """Bump the current version by a :class:`BumpLevel`."""

    level: BumpLevel = BumpLevel.RELEASE

    def bump(self, current: Version, metadata: str | None = None) -> Version | None:
        bumped = self.level.bump_version(current, metadata)
        if str(bumped) == str(current):
            return None
        return bumped


@dataclass(frozen=True)
class Absolute:
    """Move to an explicit version; never backwards."""

    version: Version

    def bump(self, current: Version, metadata: str | None = None) -> Version | None:
        requested = self.version
        if current < requested:
            if not requested.build:
                build = metadata if metadata is not None else current.build
                requested = requested.replace(build=build)
            return requested
        if current == requested:
            return None
        raise Downgrade(current, requested)


@dataclass(frozen=True)
class Unchanged:
    """Keep the version, optionally replacing build metadata."""

    def bump(self, current: Version, metadata: str | None = None) -> Version | None:
        if metadata is not None:
            return current.replace(build=metadata)
        return current


TargetVersion = Union[Relative, Absolute, Unchanged]


def bump(
    current: Version | str,
    target: TargetVersion | None = None,
    metadata: str | None = None,
) -> Version | None:
    """Compute the next version, or None when nothing changes.

    Parameters
    ----------
    current : Version | str
        The current version.
    target : TargetVersion | None
        Where to go. Defaults to ``Relative(BumpLevel.RELEASE)``.
    metadata : str | None
        Build metadata for the new version.

    Examples
    --------
    >>> str(bump("1.2.3", Relative(BumpLevel.MINOR)))
    '1.3.0'
    >>> str(bump("1.2.3", Relative(BumpLevel.ALPHA)))
    '1.2.4-alpha.1'
    """
    if target is None:
        target = Relative()
    return target.bump(parse_version(current), metadata)
