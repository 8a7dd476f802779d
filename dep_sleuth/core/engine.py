"""Owner of the run-scoped version caches."""

from typing import List, Optional

from .evaluator import SatisfactionEvaluator
from .semver import SemVersion, VersionParser
from .specifier import CompiledSpecifier, SpecifierCompiler


class VersionEngine:
    """Bundles the version parser, specifier compiler and evaluator.

    All three share one parsed-version cache. Call :meth:`reset` at the start
    of each run so that long-lived processes do not carry caches or warnings
    across scans.
    """

    def __init__(self) -> None:
        """Initialize the engine."""
        self.parser = VersionParser()
        self.compiler = SpecifierCompiler(self.parser)
        self.evaluator = SatisfactionEvaluator(self.parser)

    def parse_version(self, text: str) -> Optional[SemVersion]:
        return self.parser.parse(text)

    def compile(self, text: Optional[str]) -> CompiledSpecifier:
        return self.compiler.compile(text)

    def satisfies(self, version_string: str, specifier_text: Optional[str]) -> bool:
        """Compile a specifier and evaluate a version against it."""
        compiled = self.compile(specifier_text)
        return self.evaluator.satisfies(version_string, compiled, specifier_text)

    @property
    def warnings(self) -> List[str]:
        return self.compiler.warnings

    def reset(self) -> None:
        """Drop cached versions, compiled specifiers and warnings."""
        self.parser.reset()
        self.compiler.reset()
