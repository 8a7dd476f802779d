"""Parsers for package.json files (installed tree and project manifests)."""

import json
from pathlib import Path
from typing import Any, Dict

from ...utils.logging import get_logger
from .base import BaseParser, PackageLocation, ParsedPackages, Provenance, SourceFormat


def _in_node_modules(file_path: Path) -> bool:
    return "node_modules" in file_path.parts


def _load_json_object(raw_text: str) -> Dict[str, Any]:
    data = json.loads(raw_text)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


class InstalledPackageParser(BaseParser):
    """Parser for the package.json of an installed package in node_modules."""

    source_format = SourceFormat.INSTALLED_TREE
    parser_type = "installed"

    def __init__(self) -> None:
        """Initialize the installed package parser."""
        self.logger = get_logger("InstalledPackageParser")

    def can_parse(self, file_path: Path) -> bool:
        """Check if this parser can handle the file.

        Args:
            file_path: Path to the file

        Returns:
            True if file is a package.json below a node_modules directory
        """
        return file_path.name == "package.json" and _in_node_modules(file_path.parent)

    def parse(self, raw_text: str, location_prefix: str) -> ParsedPackages:
        """Parse an installed package.json.

        The location prefix is the package directory and is used as-is as the
        location identifier. Manifests without a string name and version are
        ignored.
        """
        result = ParsedPackages(parser_type=self.parser_type)
        try:
            data = _load_json_object(raw_text)
        except ValueError as e:
            self.logger.debug(f"Skipping invalid package.json in {location_prefix}: {e}")
            result.skipped = True
            result.error = str(e)
            return result

        location = PackageLocation(
            identifier=location_prefix,
            provenance=Provenance(source_format=self.source_format),
        )
        result.add_record(data.get("name"), data.get("version"), location)
        return result


class ManifestParser(BaseParser):
    """Parser for project package.json manifests.

    Declared specifiers are recorded verbatim as the version; they are
    resolved against requests by the matcher.
    """

    source_format = SourceFormat.MANIFEST
    parser_type = "manifest"

    DEPENDENCY_SECTIONS = (
        "dependencies",
        "devDependencies",
        "optionalDependencies",
        "peerDependencies",
    )

    def __init__(self) -> None:
        """Initialize the manifest parser."""
        self.logger = get_logger("ManifestParser")

    def can_parse(self, file_path: Path) -> bool:
        """Check if this parser can handle the file.

        Args:
            file_path: Path to the file

        Returns:
            True if file is a package.json outside node_modules
        """
        return file_path.name == "package.json" and not _in_node_modules(file_path.parent)

    def parse(self, raw_text: str, location_prefix: str) -> ParsedPackages:
        """Parse a package.json manifest.

        Args:
            raw_text: File contents
            location_prefix: ``lockfile:<relpath>``

        Returns:
            One record per declared dependency
        """
        result = ParsedPackages(parser_type=self.parser_type)
        try:
            data = _load_json_object(raw_text)
        except ValueError as e:
            self.logger.warning(f"Skipping malformed manifest {location_prefix}: {e}")
            result.skipped = True
            result.error = str(e)
            return result

        for section in self.DEPENDENCY_SECTIONS:
            declared = data.get(section)
            if not isinstance(declared, dict):
                continue
            for name, specifier in declared.items():
                if not isinstance(specifier, str):
                    continue
                provenance = Provenance(
                    source_format=self.source_format,
                    specifier=specifier,
                    section=section,
                    dev=section == "devDependencies",
                    optional=section == "optionalDependencies",
                    peer=section == "peerDependencies",
                )
                location = PackageLocation(
                    identifier=f"{location_prefix}#{section}/{name}",
                    provenance=provenance,
                )
                result.add_record(name, specifier, location)

        return result
