"""Matching of requested packages against the package index."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..utils.logging import get_logger
from ..utils.performance import PerformanceMonitor, benchmark
from .engine import VersionEngine
from .index import PackageIndex, ScanIndex
from .parsers.base import PackageLocation
from .request_list import RequestedPackage
from .specifier import CompiledSpecifier, SpecifierKind

_DIGITS = re.compile(r"([0-9]+)")


def natural_sort_key(text: str) -> Tuple[Tuple[int, Any], ...]:
    """Case-sensitive, numeric-aware sort key (``a2`` < ``a10``)."""
    parts = []
    for chunk in _DIGITS.split(text):
        if not chunk:
            continue
        if _DIGITS.fullmatch(chunk):
            parts.append((0, int(chunk)))
        else:
            parts.append((1, chunk))
    return tuple(parts)


@dataclass
class SourceMatch:
    """Match outcome for one request against one index."""

    found: bool = False
    exact: bool = False
    installed_versions: List[str] = field(default_factory=list)
    matched_versions: List[str] = field(default_factory=list)
    locations: List[PackageLocation] = field(default_factory=list)
    non_semantic_versions: List[str] = field(default_factory=list)


@dataclass
class MatchResult:
    """Match outcome for one request, combined and per source."""

    request_key: str
    name: str
    requested_version: str
    found: bool
    exact: bool
    installed_versions: List[str] = field(default_factory=list)
    matched_versions: List[str] = field(default_factory=list)
    locations: List[PackageLocation] = field(default_factory=list)
    non_semantic_versions: List[str] = field(default_factory=list)
    specifier_kind: SpecifierKind = SpecifierKind.ANY
    per_source: Dict[str, SourceMatch] = field(default_factory=dict)

    @property
    def location_ids(self) -> List[str]:
        return [location.identifier for location in self.locations]


class PackageMatcher:
    """Evaluates requested specifiers against a scan index."""

    def __init__(
        self,
        engine: Optional[VersionEngine] = None,
        enable_performance_monitoring: bool = False
    ) -> None:
        """Initialize the package matcher.

        Args:
            engine: Version engine; a fresh one is created when omitted
            enable_performance_monitoring: Enable memory tracking
        """
        self.engine = engine or VersionEngine()
        self.logger = get_logger("PackageMatcher")
        self.performance_monitor = PerformanceMonitor(enable_performance_monitoring)

    @benchmark
    def match(
        self,
        requests: Sequence[RequestedPackage],
        scan_index: ScanIndex
    ) -> List[MatchResult]:
        """Match every request against the scan index.

        Args:
            requests: Requested packages
            scan_index: Combined and per-source indexes

        Returns:
            One result per request, in request order
        """
        with self.performance_monitor.measure("match_packages"):
            results = []
            for request in requests:
                result = self.match_request(request, scan_index.combined)
                for origin in sorted(scan_index.by_source):
                    result.per_source[origin] = self._match_index(
                        request, self.engine.compile(request.specifier), scan_index.by_source[origin]
                    )
                results.append(result)
            return results

    def match_request(self, request: RequestedPackage, index: PackageIndex) -> MatchResult:
        """Match a single request against one index.

        Args:
            request: Requested package
            index: Package index

        Returns:
            Match result without per-source breakdown
        """
        compiled = self.engine.compile(request.specifier)
        outcome = self._match_index(request, compiled, index)

        if outcome.found:
            self.logger.debug(
                f"MATCH: {request.key} -> {', '.join(outcome.matched_versions)}"
            )
        else:
            self.logger.debug(f"NO MATCH: {request.key}")

        return MatchResult(
            request_key=request.key,
            name=request.name,
            requested_version=request.requested_version,
            found=outcome.found,
            exact=outcome.exact,
            installed_versions=outcome.installed_versions,
            matched_versions=outcome.matched_versions,
            locations=outcome.locations,
            non_semantic_versions=outcome.non_semantic_versions,
            specifier_kind=compiled.kind,
        )

    def _match_index(
        self,
        request: RequestedPackage,
        compiled: CompiledSpecifier,
        index: PackageIndex
    ) -> SourceMatch:
        by_version = index.versions(request.name)
        installed_versions = self.sort_versions(by_version)
        evaluator = self.engine.evaluator

        matched = [
            version for version in installed_versions
            if evaluator.satisfies(version, compiled, request.specifier)
        ]

        locations: List[PackageLocation] = []
        seen = set()
        for version in matched:
            for location in by_version[version]:
                if location.identifier not in seen:
                    seen.add(location.identifier)
                    locations.append(location)

        found = bool(matched)
        return SourceMatch(
            found=found,
            exact=found and compiled.kind in (SpecifierKind.EXACT, SpecifierKind.LITERAL),
            installed_versions=installed_versions,
            matched_versions=matched,
            locations=locations,
            non_semantic_versions=[
                version for version in installed_versions
                if self.engine.parse_version(version) is None
            ],
        )

    def sort_versions(self, versions) -> List[str]:
        """Sort version strings.

        Semantic versions come first in semantic order; the rest follow in
        numeric-aware string order.

        Args:
            versions: Iterable of version strings

        Returns:
            Sorted list
        """
        semantic = []
        opaque = []
        for version in versions:
            parsed = self.engine.parse_version(version)
            if parsed is None:
                opaque.append(version)
            else:
                semantic.append((parsed.sort_key(), natural_sort_key(version), version))
        semantic.sort()
        opaque.sort(key=lambda v: (natural_sort_key(v), v))
        return [version for _, _, version in semantic] + opaque

    def get_performance_summary(self) -> Dict[str, Any]:
        return self.performance_monitor.get_summary()


def summarize_results(results: Sequence[Any]) -> Dict[str, int]:
    """Count checked, found, exact and missing requests.

    Args:
        results: MatchResult or SourceMatch objects

    Returns:
        Summary counts
    """
    checked = len(results)
    found = sum(1 for result in results if result.found)
    exact_matches = sum(1 for result in results if result.exact)
    return {
        "checked": checked,
        "found": found,
        "exact_matches": exact_matches,
        "not_found": checked - found,
    }
