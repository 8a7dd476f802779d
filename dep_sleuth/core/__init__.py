"""Core version resolution, parsing and matching logic for DepSleuth."""

from .engine import VersionEngine
from .index import IndexBuilder, PackageIndex, ScanIndex
from .matcher import MatchResult, PackageMatcher, SourceMatch, summarize_results
from .parsers import PackageParser, PackageLocation, PackageRecord, ParsedPackages, Provenance
from .request_list import RequestedPackage, load_requests, parse_request_line
from .semver import SemVersion, VersionParser
from .specifier import CompiledSpecifier, Comparator, SpecifierCompiler, SpecifierKind

__all__ = [
    "CompiledSpecifier",
    "Comparator",
    "IndexBuilder",
    "MatchResult",
    "PackageIndex",
    "PackageLocation",
    "PackageMatcher",
    "PackageParser",
    "PackageRecord",
    "ParsedPackages",
    "Provenance",
    "RequestedPackage",
    "ScanIndex",
    "SemVersion",
    "SourceMatch",
    "SpecifierCompiler",
    "SpecifierKind",
    "VersionEngine",
    "VersionParser",
    "load_requests",
    "parse_request_line",
    "summarize_results",
]
