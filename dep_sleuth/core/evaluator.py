"""Decides whether a concrete version satisfies a compiled specifier."""

from typing import Optional

from .semver import VersionParser
from .specifier import CompiledSpecifier, SpecifierKind


class SatisfactionEvaluator:
    """Evaluates version strings against compiled specifiers."""

    def __init__(self, version_parser: Optional[VersionParser] = None) -> None:
        """Initialize the evaluator.

        Args:
            version_parser: Parser shared with the compiler so both use one cache
        """
        self.version_parser = version_parser or VersionParser()

    def satisfies(
        self,
        version_string: str,
        specifier: CompiledSpecifier,
        requested_text: Optional[str] = None
    ) -> bool:
        """Check whether a version satisfies a specifier.

        Args:
            version_string: Installed or declared version string
            specifier: Compiled specifier
            requested_text: Original specifier text. A declared version that is
                byte-identical to it always matches, which is how manifest
                entries (which store raw ranges) are found.

        Returns:
            True if the version satisfies the specifier
        """
        if not isinstance(version_string, str):
            raise TypeError(f"Version must be a string, got {type(version_string).__name__}")

        if specifier.kind is SpecifierKind.ANY:
            return True

        if specifier.kind is SpecifierKind.LITERAL:
            return version_string == specifier.literal_value

        if requested_text is not None and version_string == requested_text.strip():
            return True

        version = self.version_parser.parse(version_string)
        if version is None:
            return False

        return any(
            all(comparator.test(version) for comparator in range_set)
            for range_set in specifier.range_sets
        )
