"""Semantic version parsing and ordering for DepSleuth."""

import re
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Any, Dict, Optional, Tuple


WILDCARDS = frozenset({"x", "X", "*"})

_IDENTIFIERS = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"

VERSION_PATTERN = re.compile(
    r"^v?(?P<major>[0-9]+|[xX*])"
    r"(?:\.(?P<minor>[0-9]+|[xX*])"
    r"(?:\.(?P<patch>[0-9]+|[xX*]))?)?"
    rf"(?:-(?P<prerelease>{_IDENTIFIERS}))?"
    rf"(?:\+(?P<build>{_IDENTIFIERS}))?$"
)


@total_ordering
@dataclass(frozen=True, eq=False)
class SemVersion:
    """A parsed semantic version.

    ``precision`` counts the numeric components that were actually written
    (``1`` -> 1, ``1.2`` -> 2, ``1.2.3`` -> 3, ``*`` -> 0). It is used by range
    expansion only and, like build metadata, never affects ordering.
    """

    major: int
    minor: int = 0
    patch: int = 0
    prerelease: Tuple[str, ...] = ()
    build: Tuple[str, ...] = ()
    precision: int = field(default=3)

    def __post_init__(self) -> None:
        """Validate version components."""
        if min(self.major, self.minor, self.patch) < 0:
            raise ValueError("Version components must be non-negative")
        if not 0 <= self.precision <= 3:
            raise ValueError(f"Invalid precision: {self.precision}")

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def is_partial(self) -> bool:
        """True when fewer than three numeric components were given."""
        return self.precision < 3

    def _prerelease_key(self) -> Tuple[Tuple[int, Any], ...]:
        # Numeric identifiers sort before alphanumeric ones
        parts = []
        for ident in self.prerelease:
            if ident.isdigit():
                parts.append((0, int(ident)))
            else:
                parts.append((1, ident))
        return tuple(parts)

    def sort_key(self) -> Tuple[Any, ...]:
        """Ordering key; a release sorts above any of its prereleases."""
        release_flag = 0 if self.prerelease else 1
        return (self.major, self.minor, self.patch, release_flag, self._prerelease_key())

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SemVersion):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __lt__(self, other: Any) -> bool:
        if not isinstance(other, SemVersion):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __hash__(self) -> int:
        return hash(self.sort_key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text

    def floor(self) -> "SemVersion":
        """Lowest full-precision version covered by this (partial) version."""
        return SemVersion(self.major, self.minor, self.patch, self.prerelease)

    def ceiling(self) -> "SemVersion":
        """First version above everything a partial version covers.

        ``1`` -> ``2.0.0``, ``1.2`` -> ``1.3.0``. Full versions have no
        ceiling of their own.
        """
        if self.precision == 1:
            return SemVersion(self.major + 1, 0, 0)
        if self.precision == 2:
            return SemVersion(self.major, self.minor + 1, 0)
        raise ValueError(f"Version {self} has no implicit ceiling")


class VersionParser:
    """Parses version strings with a per-instance memo cache."""

    def __init__(self) -> None:
        """Initialize the parser."""
        self._cache: Dict[Tuple[str, bool], Optional[SemVersion]] = {}

    def parse(self, text: str, allow_wildcards: bool = False) -> Optional[SemVersion]:
        """Parse a version string.

        Args:
            text: Version string such as ``1.2.3``, ``v1.2`` or ``1.0.0-rc.1``
            allow_wildcards: Accept ``x``, ``X`` and ``*`` components

        Returns:
            Parsed version, or None if the string is not a semantic version

        Raises:
            TypeError: If text is not a string
        """
        if not isinstance(text, str):
            raise TypeError(f"Version must be a string, got {type(text).__name__}")

        key = (text, allow_wildcards)
        if key not in self._cache:
            self._cache[key] = self._parse(text, allow_wildcards)
        return self._cache[key]

    def _parse(self, text: str, allow_wildcards: bool) -> Optional[SemVersion]:
        match = VERSION_PATTERN.match(text.strip())
        if not match:
            return None

        components = [match.group("major"), match.group("minor"), match.group("patch")]
        numbers = []
        precision = 0
        wildcard_seen = False
        for component in components:
            if component is None:
                wildcard_seen = True
                numbers.append(0)
            elif component in WILDCARDS:
                if not allow_wildcards:
                    return None
                wildcard_seen = True
                numbers.append(0)
            else:
                # Components after a wildcard are ignored (1.x.3 == 1.x)
                numbers.append(0 if wildcard_seen else int(component))
                if not wildcard_seen:
                    precision += 1

        prerelease = match.group("prerelease")
        build = match.group("build")
        return SemVersion(
            major=numbers[0],
            minor=numbers[1],
            patch=numbers[2],
            prerelease=tuple(prerelease.split(".")) if prerelease else (),
            build=tuple(build.split(".")) if build else (),
            precision=precision,
        )

    def reset(self) -> None:
        """Clear the memo cache."""
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
