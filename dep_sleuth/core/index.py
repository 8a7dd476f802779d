"""Unified package -> version -> location index."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..utils.logging import get_logger
from ..utils.performance import PerformanceMonitor, benchmark
from .parsers import ParserRegistry, registry as default_registry
from .parsers.base import (
    LOCKFILE,
    NODE_MODULES,
    SOURCE_ORIGINS,
    PackageLocation,
    PackageRecord,
    ParsedPackages,
)


class PackageIndex:
    """Mapping of package name -> version -> unique locations.

    Locations are unique by identifier within one (name, version) bucket and
    keep their first-seen order.
    """

    def __init__(self) -> None:
        """Initialize an empty index."""
        self._packages: Dict[str, Dict[str, Dict[str, PackageLocation]]] = {}
        self._frozen = False

    def add_found_package(self, name: str, version: str, location: PackageLocation) -> bool:
        """Add one package location.

        Args:
            name: Package name
            version: Version string
            location: Where the package was found

        Returns:
            True if the location was new for this name and version

        Raises:
            RuntimeError: If the index has been frozen
        """
        if self._frozen:
            raise RuntimeError("Cannot add packages to a frozen index")
        if not name or not version:
            return False

        bucket = self._packages.setdefault(name, {}).setdefault(version, {})
        if location.identifier in bucket:
            return False
        bucket[location.identifier] = location
        return True

    def add_record(self, record: PackageRecord) -> bool:
        return self.add_found_package(record.name, record.version, record.location)

    def merge(self, other: "PackageIndex") -> None:
        """Merge every location of another index into this one."""
        for name, versions in other._packages.items():
            for version, locations in versions.items():
                for location in locations.values():
                    self.add_found_package(name, version, location)

    def freeze(self) -> None:
        """Make the index read-only."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def versions(self, name: str) -> Dict[str, List[PackageLocation]]:
        """Get the known versions of a package.

        Args:
            name: Package name

        Returns:
            Mapping of version to locations; empty if the package is unknown
        """
        return {
            version: list(locations.values())
            for version, locations in self._packages.get(name, {}).items()
        }

    def locations(self, name: str, version: str) -> List[PackageLocation]:
        return list(self._packages.get(name, {}).get(version, {}).values())

    def package_names(self) -> List[str]:
        return sorted(self._packages)

    def location_count(self) -> int:
        return sum(
            len(locations)
            for versions in self._packages.values()
            for locations in versions.values()
        )

    def __contains__(self, name: object) -> bool:
        return name in self._packages

    def __len__(self) -> int:
        return len(self._packages)

    def __iter__(self) -> Iterator[str]:
        return iter(self._packages)


@dataclass
class ScanIndex:
    """Combined index plus one index per source origin."""

    combined: PackageIndex = field(default_factory=PackageIndex)
    by_source: Dict[str, PackageIndex] = field(default_factory=dict)
    lockfiles: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    def add_record(self, record: PackageRecord, origin: str) -> None:
        """Add a record to the combined index and its origin's partition."""
        if origin not in SOURCE_ORIGINS:
            raise ValueError(f"Unknown source origin: {origin}")
        self.combined.add_record(record)
        self.by_source.setdefault(origin, PackageIndex()).add_record(record)

    def freeze(self) -> None:
        self.combined.freeze()
        for index in self.by_source.values():
            index.freeze()


class IndexBuilder:
    """Reads, parses and merges package sources into a :class:`ScanIndex`.

    Files are read and parsed on a thread pool; parsers share no state. The
    merge into the index happens on the calling thread, in input order.
    """

    def __init__(
        self,
        parser_registry: Optional[ParserRegistry] = None,
        max_workers: int = 4,
        enable_performance_monitoring: bool = False
    ) -> None:
        """Initialize the index builder.

        Args:
            parser_registry: Registry used to look up parsers by type
            max_workers: Threads used for reading files
            enable_performance_monitoring: Enable memory tracking
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.registry = parser_registry or default_registry
        self.max_workers = max_workers
        self.logger = get_logger("IndexBuilder")
        self.performance_monitor = PerformanceMonitor(enable_performance_monitoring)

    @benchmark
    def build(self, files: Sequence, sources: Optional[Iterable[str]] = None) -> ScanIndex:
        """Build the index from discovered files.

        Args:
            files: Items with ``path``, ``parser_type``, ``origin`` and
                ``location_prefix`` attributes (see ``DependencyFile``)
            sources: Origins to create partitions for even when empty

        Returns:
            Frozen scan index
        """
        with self.performance_monitor.measure("build_index"):
            scan_index = ScanIndex()
            for origin in sources or ():
                scan_index.by_source.setdefault(origin, PackageIndex())

            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                parsed_files = list(executor.map(self._read_and_parse, files))

            for dep_file, parsed in zip(files, parsed_files):
                if dep_file.origin == LOCKFILE:
                    scan_index.lockfiles.append(dep_file.location_prefix[len("lockfile:"):])
                if parsed is None or parsed.skipped:
                    scan_index.skipped.append(str(dep_file.path))
                    continue
                for record in parsed.records:
                    scan_index.add_record(record, dep_file.origin)

            scan_index.freeze()

        self.logger.debug(
            f"Indexed {len(scan_index.combined)} packages "
            f"({scan_index.combined.location_count()} locations) from {len(files)} files"
        )
        return scan_index

    def build_from_records(
        self,
        records: Iterable[Tuple[PackageRecord, str]]
    ) -> ScanIndex:
        """Build an index from already parsed (record, origin) pairs."""
        scan_index = ScanIndex()
        for record, origin in records:
            scan_index.add_record(record, origin)
        scan_index.freeze()
        return scan_index

    def _read_and_parse(self, dep_file) -> Optional[ParsedPackages]:
        path = Path(dep_file.path)
        try:
            raw_text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            # package.json files inside node_modules are often broken links
            if dep_file.origin == NODE_MODULES:
                self.logger.debug(f"Skipping unreadable file {path}: {e}")
            else:
                self.logger.warning(f"Skipping unreadable file {path}: {e}")
            return None
        return self.registry.parse_text(dep_file.parser_type, raw_text, dep_file.location_prefix, path)
