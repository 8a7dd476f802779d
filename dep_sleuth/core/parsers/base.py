"""Base parser class and data models for package discovery."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set
from urllib.parse import urlparse


class SourceFormat(str, Enum):
    """The file format a package record was read from."""

    INSTALLED_TREE = "node_modules"
    NPM_LOCK = "package-lock"
    MANIFEST = "package-json"
    YARN_LOCK = "yarn-lock"
    PNPM_LOCK = "pnpm-lock"

    @property
    def origin(self) -> str:
        """Source origin used for per-source summaries."""
        if self is SourceFormat.INSTALLED_TREE:
            return NODE_MODULES
        return LOCKFILE


NODE_MODULES = "node_modules"
LOCKFILE = "lockfile"
SOURCE_ORIGINS = (NODE_MODULES, LOCKFILE)


def registry_host(url: Optional[str]) -> Optional[str]:
    """Extract the host of a resolved/tarball URL.

    Args:
        url: URL captured from a lockfile

    Returns:
        Host name, or None for missing or non-http(s) URLs
    """
    if not url:
        return None
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None
    return parsed.hostname


@dataclass(frozen=True)
class Provenance:
    """Source-specific metadata attached to a package location.

    The field set is fixed; which fields are filled depends on
    ``source_format``.
    """

    source_format: SourceFormat
    integrity: Optional[str] = None
    resolved: Optional[str] = None
    registry: Optional[str] = None
    checksum: Optional[str] = None
    specifier: Optional[str] = None
    section: Optional[str] = None
    dev: bool = False
    optional: bool = False
    bundled: bool = False
    peer: bool = False

    def to_dict(self) -> dict:
        data = {"source_format": self.source_format.value}
        for name in ("integrity", "resolved", "registry", "checksum", "specifier", "section"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        for name in ("dev", "optional", "bundled", "peer"):
            if getattr(self, name):
                data[name] = True
        return data


@dataclass(frozen=True)
class PackageLocation:
    """Where a package version was found."""

    identifier: str
    provenance: Optional[Provenance] = None

    def __post_init__(self) -> None:
        """Validate the location."""
        if not self.identifier:
            raise ValueError("Location identifier cannot be empty")


@dataclass
class PackageRecord:
    """One (name, version, location) row produced by a parser."""

    name: str
    version: str
    location: PackageLocation

    def __post_init__(self) -> None:
        """Validate and normalize the record."""
        if not self.name:
            raise ValueError("Package name cannot be empty")
        if not self.version:
            raise ValueError("Package version cannot be empty")
        self.name = self.name.strip()
        self.version = self.version.strip()


@dataclass
class ParsedPackages:
    """Container for the records parsed from one file."""

    records: List[PackageRecord] = field(default_factory=list)
    source_file: Optional[Path] = None
    parser_type: str = ""
    skipped: bool = False
    error: Optional[str] = None

    def add_record(self, name: object, version: object, location: PackageLocation) -> bool:
        """Add a record if name and version are usable strings.

        Args:
            name: Package name taken from the source
            version: Version taken from the source
            location: Where the package was found

        Returns:
            True if the record was added
        """
        if not isinstance(name, str) or not isinstance(version, str):
            return False
        if not name.strip() or not version.strip():
            return False
        self.records.append(PackageRecord(name=name, version=version, location=location))
        return True

    def get_package_names(self) -> Set[str]:
        return {record.name for record in self.records}

    def find_records(self, name: str) -> List[PackageRecord]:
        """Find all records for a package name."""
        return [record for record in self.records if record.name == name]

    def __len__(self) -> int:
        return len(self.records)


class BaseParser(ABC):
    """Interface shared by all package source parsers.

    Parsers are stateless: ``parse`` turns raw text into records and never
    raises for malformed input. A file that cannot be parsed yields a
    ``ParsedPackages`` with ``skipped=True`` and no records.
    """

    source_format: SourceFormat
    parser_type: str = ""

    @abstractmethod
    def can_parse(self, file_path: Path) -> bool:
        """Check if this parser can handle the given file.

        Args:
            file_path: Path to the file to check

        Returns:
            True if parser can handle the file
        """

    @abstractmethod
    def parse(self, raw_text: str, location_prefix: str) -> ParsedPackages:
        """Parse raw file contents.

        Args:
            raw_text: File contents
            location_prefix: Location identifier prefix, a package directory
                for the installed tree or ``lockfile:<relpath>`` otherwise

        Returns:
            Parsed package records
        """
