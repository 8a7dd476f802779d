"""Version specifier compilation.

A specifier such as ``^1.2.3 || >=2.0.0 <2.4`` is compiled into OR-combined
range sets, each an AND-combined tuple of normalized comparators. Text that
cannot be read as a range degrades to a literal, matched by plain string
equality, instead of failing the scan.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..utils.logging import get_logger
from .semver import SemVersion, VersionParser


OPERATORS = ("=", "<", "<=", ">", ">=")

ANY_SPECIFIERS = frozenset({"", "*", "x", "X"})

_TOKEN_PATTERN = re.compile(r"^(\^|~|>=|<=|>|<|=)?(.*)$")
_HYPHEN_PATTERN = re.compile(r"^(\S+)\s+-\s+(\S+)$")
_DETACHED_OPERATOR = re.compile(r"(\^|~|>=|<=|>|<|=)\s+")


class SpecifierError(ValueError):
    """Raised internally when a specifier does not follow the range grammar."""


class SpecifierKind(str, Enum):
    """Discriminator of a compiled specifier."""

    ANY = "any"
    EXACT = "exact"
    RANGE = "range"
    LITERAL = "literal"


@dataclass(frozen=True)
class Comparator:
    """A single ``operator version`` constraint."""

    operator: str
    version: SemVersion

    def __post_init__(self) -> None:
        """Validate the operator."""
        if self.operator not in OPERATORS:
            raise ValueError(f"Unsupported operator: {self.operator}")

    def test(self, version: SemVersion) -> bool:
        """Check whether a concrete version satisfies this comparator."""
        if self.operator == "=":
            return version == self.version
        if self.operator == "<":
            return version < self.version
        if self.operator == "<=":
            return version <= self.version
        if self.operator == ">":
            return version > self.version
        return version >= self.version

    def __str__(self) -> str:
        return f"{self.operator}{self.version}"


RangeSet = Tuple[Comparator, ...]


@dataclass(frozen=True)
class CompiledSpecifier:
    """Result of compiling a specifier."""

    kind: SpecifierKind
    range_sets: Tuple[RangeSet, ...] = ()
    literal_value: Optional[str] = None

    @property
    def is_exact(self) -> bool:
        return self.kind is SpecifierKind.EXACT

    def __str__(self) -> str:
        if self.kind is SpecifierKind.ANY:
            return "*"
        if self.kind is SpecifierKind.LITERAL:
            return f"literal:{self.literal_value}"
        return " || ".join(
            " ".join(str(c) for c in range_set) or "*"
            for range_set in self.range_sets
        )


ANY = CompiledSpecifier(kind=SpecifierKind.ANY)


class SpecifierCompiler:
    """Compiles specifier text into a :class:`CompiledSpecifier`.

    Compiled results and fallback warnings are cached on the instance;
    :meth:`reset` starts a fresh run.
    """

    def __init__(self, version_parser: Optional[VersionParser] = None) -> None:
        """Initialize the compiler.

        Args:
            version_parser: Parser used for the version part of each token
        """
        self.version_parser = version_parser or VersionParser()
        self.logger = get_logger("SpecifierCompiler")
        self._cache: Dict[str, CompiledSpecifier] = {}
        self._warnings: Dict[str, None] = {}

    @property
    def warnings(self) -> List[str]:
        """Distinct fallback warnings in the order they were first raised."""
        return list(self._warnings)

    def reset(self) -> None:
        """Clear compiled results and recorded warnings."""
        self._cache.clear()
        self._warnings.clear()

    def compile(self, text: Optional[str]) -> CompiledSpecifier:
        """Compile a specifier.

        Args:
            text: Specifier text; None or an empty string means any version

        Returns:
            Compiled specifier, LITERAL when the text is not a valid range

        Raises:
            TypeError: If text is neither a string nor None
        """
        if text is None:
            return ANY
        if not isinstance(text, str):
            raise TypeError(f"Specifier must be a string, got {type(text).__name__}")

        raw = text.strip()
        if raw not in self._cache:
            self._cache[raw] = self._compile(raw)
        return self._cache[raw]

    def _compile(self, raw: str) -> CompiledSpecifier:
        if raw in ANY_SPECIFIERS:
            return ANY

        try:
            range_sets = tuple(self._compile_side(side) for side in raw.split("||"))
        except SpecifierError as e:
            self._warn(f"Could not parse version specifier '{raw}' ({e}); using literal match")
            return CompiledSpecifier(kind=SpecifierKind.LITERAL, literal_value=raw)

        if all(not range_set for range_set in range_sets):
            return ANY

        if (
            len(range_sets) == 1
            and len(range_sets[0]) == 1
            and range_sets[0][0].operator == "="
        ):
            return CompiledSpecifier(kind=SpecifierKind.EXACT, range_sets=range_sets)

        return CompiledSpecifier(kind=SpecifierKind.RANGE, range_sets=range_sets)

    def _warn(self, message: str) -> None:
        if message in self._warnings:
            return
        self._warnings[message] = None
        self.logger.warning(message)

    def _compile_side(self, side: str) -> RangeSet:
        side = side.strip()
        if not side:
            return ()

        hyphen = _HYPHEN_PATTERN.match(side)
        if hyphen:
            return self._hyphen_range(hyphen.group(1), hyphen.group(2))

        side = _DETACHED_OPERATOR.sub(r"\1", side)
        comparators: List[Comparator] = []
        for token in side.split():
            comparators.extend(self._expand_token(token))
        return tuple(comparators)

    def _parse_partial(self, text: str, token: str) -> SemVersion:
        if not text:
            raise SpecifierError(f"missing version in '{token}'")
        version = self.version_parser.parse(text, allow_wildcards=True)
        if version is None:
            raise SpecifierError(f"invalid version '{text}'")
        return version

    def _hyphen_range(self, low_text: str, high_text: str) -> RangeSet:
        low = self._parse_partial(low_text, low_text)
        high = self._parse_partial(high_text, high_text)

        comparators = []
        if low.precision > 0:
            comparators.append(Comparator(">=", low.floor()))
        if high.precision == 3:
            comparators.append(Comparator("<=", high))
        elif high.precision > 0:
            comparators.append(Comparator("<", high.ceiling()))
        return tuple(comparators)

    def _expand_token(self, token: str) -> List[Comparator]:
        match = _TOKEN_PATTERN.match(token)
        operator, text = match.group(1) or "", match.group(2)
        version = self._parse_partial(text, token)

        if version.precision == 0:
            if operator in ("<", ">"):
                raise SpecifierError(f"'{token}' can never be satisfied")
            return []

        if operator == "^":
            return [Comparator(">=", version.floor()), Comparator("<", self._caret_ceiling(version))]

        if operator == "~":
            if version.precision == 1:
                ceiling = SemVersion(version.major + 1, 0, 0)
            else:
                ceiling = SemVersion(version.major, version.minor + 1, 0)
            return [Comparator(">=", version.floor()), Comparator("<", ceiling)]

        if version.precision == 3:
            return [Comparator(operator or "=", version)]

        if operator in ("", "="):
            return [Comparator(">=", version.floor()), Comparator("<", version.ceiling())]
        if operator == ">":
            return [Comparator(">=", version.ceiling())]
        if operator == "<=":
            return [Comparator("<", version.ceiling())]
        if operator == ">=":
            return [Comparator(">=", version.floor())]
        return [Comparator("<", version.floor())]

    @staticmethod
    def _caret_ceiling(version: SemVersion) -> SemVersion:
        if version.major > 0 or version.precision == 1:
            return SemVersion(version.major + 1, 0, 0)
        if version.minor > 0 or version.precision == 2:
            return SemVersion(0, version.minor + 1, 0)
        return SemVersion(0, 0, version.patch + 1)
