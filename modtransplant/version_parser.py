"""Semantic version parsing and ordering for module versions."""

import re
from dataclasses import dataclass
from typing import List, Tuple

from .errors import VersionParseError


@dataclass(eq=False)
class SemanticVersion:
    """
    A parsed semantic version.

    Attributes:
        major: Major version number
        minor: Minor version number (0 when omitted)
        patch: Patch version number (0 when omitted)
        prerelease: Pre-release tag without the leading '-', or '' for releases
        metadata: Build metadata without the leading '+', ignored when ordering
        original: The version string as written in the manifest
    """
    major: int
    minor: int = 0
    patch: int = 0
    prerelease: str = ""
    metadata: str = ""
    original: str = ""

    @property
    def is_prerelease(self) -> bool:
        """True when the version carries a pre-release or pseudo-version tag."""
        return self.prerelease != ""

    def __str__(self) -> str:
        return self.original or self.canonical

    @property
    def canonical(self) -> str:
        """Return the version in full vMAJOR.MINOR.PATCH form."""
        text = f"v{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text

    def compare(self, other: "SemanticVersion") -> int:
        """Return -1, 0 or 1 following SemVer 2.0 precedence."""
        core = (self.major, self.minor, self.patch)
        other_core = (other.major, other.minor, other.patch)
        if core != other_core:
            return -1 if core < other_core else 1
        return _compare_prerelease(self.prerelease, other.prerelease)

    def __lt__(self, other: "SemanticVersion") -> bool:
        return self.compare(other) < 0

    def __le__(self, other: "SemanticVersion") -> bool:
        return self.compare(other) <= 0

    def __gt__(self, other: "SemanticVersion") -> bool:
        return self.compare(other) > 0

    def __ge__(self, other: "SemanticVersion") -> bool:
        return self.compare(other) >= 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return False
        return self.compare(other) == 0

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch, self.prerelease))

    @classmethod
    def parse(cls, version: str) -> "SemanticVersion":
        """
        Parse a version string such as "v1.2.3", "1.2", "v2.0.0+incompatible"
        or "v0.0.0-20190101000000-abcdef000000".

        Raises:
            VersionParseError: If the string is not a semantic version
        """
        return VersionParser.parse(version)


class VersionParser:
    """Parser for semantic and Go pseudo-versions."""

    SEMVER_PATTERN = re.compile(
        r'^v?([0-9]+)(?:\.([0-9]+))?(?:\.([0-9]+))?'   # major[.minor[.patch]]
        r'(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?'    # -prerelease
        r'(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$'  # +metadata
    )

    # Go pseudo-versions: vX.0.0-yyyymmddhhmmss-abcdef123456 and the
    # vX.Y.Z-pre.0.yyyymmddhhmmss-abcdef123456 / vX.Y.(Z+1)-0.yyyy... forms
    PSEUDO_PATTERN = re.compile(
        r'^v[0-9]+\.(0\.0-|\d+\.\d+-([^+]*\.)?0\.)\d{14}-[A-Za-z0-9]+'
        r'(\+[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?$'
    )

    @classmethod
    def parse(cls, version: str) -> SemanticVersion:
        """
        Parse a version string into a SemanticVersion.

        Args:
            version: The version string to parse

        Returns:
            SemanticVersion with missing minor/patch components set to zero

        Raises:
            VersionParseError: If the string does not match
        """
        match = cls.SEMVER_PATTERN.match(version.strip()) if version else None
        if not match:
            raise VersionParseError(version)

        return SemanticVersion(
            major=int(match.group(1)),
            minor=int(match.group(2) or 0),
            patch=int(match.group(3) or 0),
            prerelease=match.group(4) or "",
            metadata=match.group(5) or "",
            original=version,
        )

    @classmethod
    def is_pseudo_version(cls, version: str) -> bool:
        """Check whether a version was synthesized from a VCS commit."""
        return version.count('-') >= 2 and bool(cls.PSEUDO_PATTERN.match(version))

    @classmethod
    def describe(cls, version: str) -> str:
        """Return 'pseudo-version', 'pre-release' or 'release' for diagnostics."""
        if cls.is_pseudo_version(version):
            return "pseudo-version"
        try:
            parsed = cls.parse(version)
        except VersionParseError:
            return "invalid"
        return "pre-release" if parsed.is_prerelease else "release"


def can_compare(a: SemanticVersion, b: SemanticVersion) -> bool:
    """
    Check whether two versions can be ordered automatically.

    Tagged releases and pre-release/pseudo-versions follow two different
    orderings, so only like-for-like pairs are comparable.
    """
    return (not a.is_prerelease and not b.is_prerelease) or (a.is_prerelease and b.is_prerelease)


def _split_prerelease(prerelease: str) -> List[Tuple[bool, str]]:
    return [(part.isdigit(), part) for part in prerelease.split('.')]


def _compare_prerelease(a: str, b: str) -> int:
    """Compare two pre-release tags; an empty tag (release) ranks highest."""
    if a == b:
        return 0
    # Release outranks any pre-release of the same core version
    if not a:
        return 1
    if not b:
        return -1

    for (a_numeric, a_part), (b_numeric, b_part) in zip(_split_prerelease(a), _split_prerelease(b)):
        if a_part == b_part:
            continue
        if a_numeric and b_numeric:
            if int(a_part) == int(b_part):
                continue
            return -1 if int(a_part) < int(b_part) else 1
        # Numeric identifiers have lower precedence than alphanumeric ones
        if a_numeric:
            return -1
        if b_numeric:
            return 1
        return -1 if a_part < b_part else 1

    a_len = len(a.split('.'))
    b_len = len(b.split('.'))
    if a_len == b_len:
        return 0
    return -1 if a_len < b_len else 1
