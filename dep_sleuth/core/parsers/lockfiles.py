"""Lockfile parsers for the npm ecosystem (package-lock.json, yarn.lock, pnpm-lock.yaml).

Each parser extracts every locked package (direct + transitive) together
with the provenance the format records for it.
"""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ...utils.logging import get_logger
from .base import (
    BaseParser,
    PackageLocation,
    ParsedPackages,
    Provenance,
    SourceFormat,
    registry_host,
)


class LockfileFormatError(ValueError):
    """Raised when a lockfile does not have the expected structure."""


def name_from_package_path(package_path: str) -> Optional[str]:
    """Derive a package name from a package-lock ``packages`` key.

    ``node_modules/a/node_modules/@scope/b`` -> ``@scope/b``.

    Args:
        package_path: Install path key

    Returns:
        Package name or None when the key has no node_modules segment
    """
    if not package_path:
        return None
    parts = package_path.split("/")
    if "node_modules" not in parts:
        return None
    idx = len(parts) - 1 - parts[::-1].index("node_modules")
    rest = [part for part in parts[idx + 1:] if part]
    if not rest:
        return None
    if rest[0].startswith("@"):
        if len(rest) < 2:
            return None
        return f"{rest[0]}/{rest[1]}"
    return rest[0]


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _scalar(value: Any) -> Optional[str]:
    # YAML loads unquoted numbers and booleans as native types
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def split_selectors(header: str) -> List[str]:
    """Split a yarn.lock block header into its selectors.

    Classic lockfiles quote each selector (``"a@^1", "a@^1.1"``) while newer
    Yarn releases quote the whole list (``"a@npm:^1, a@npm:^1.1"``).
    """
    selectors = []
    for part in header.split(","):
        selector = part.strip().strip("\"'").strip()
        if selector:
            selectors.append(selector)
    return selectors


def _load_yaml_mapping(raw_text: str) -> Dict[Any, Any]:
    try:
        data = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise LockfileFormatError(f"invalid YAML: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise LockfileFormatError("top level is not a mapping")
    return data


class PackageLockParser(BaseParser):
    """Parser for npm package-lock.json files (lockfileVersion 1, 2 and 3)."""

    source_format = SourceFormat.NPM_LOCK
    parser_type = "package-lock"

    def __init__(self) -> None:
        """Initialize the package-lock parser."""
        self.logger = get_logger("PackageLockParser")

    def can_parse(self, file_path: Path) -> bool:
        return file_path.name == "package-lock.json"

    def parse(self, raw_text: str, location_prefix: str) -> ParsedPackages:
        """Parse a package-lock.json file.

        Both the flat ``packages`` map (v2/v3) and the legacy nested
        ``dependencies`` tree (v1, kept in v2 for compatibility) are read.

        Args:
            raw_text: File contents
            location_prefix: ``lockfile:<relpath>``

        Returns:
            Parsed package records
        """
        result = ParsedPackages(parser_type=self.parser_type)
        try:
            data = json.loads(raw_text)
            if not isinstance(data, dict):
                raise LockfileFormatError("top level is not an object")
        except ValueError as e:
            self.logger.warning(f"Skipping malformed lockfile {location_prefix}: {e}")
            result.skipped = True
            result.error = str(e)
            return result

        packages = data.get("packages")
        if isinstance(packages, dict):
            for package_path, meta in packages.items():
                if not isinstance(meta, dict):
                    continue
                name = meta.get("name") or name_from_package_path(package_path)
                location = PackageLocation(
                    identifier=f"{location_prefix}#{package_path or 'root'}",
                    provenance=self._provenance(meta, bundled_key="inBundle"),
                )
                result.add_record(name, meta.get("version"), location)

        dependencies = data.get("dependencies")
        if isinstance(dependencies, dict):
            self._walk_legacy_dependencies(dependencies, location_prefix, [], result)

        return result

    def _walk_legacy_dependencies(
        self,
        tree: Dict[str, Any],
        location_prefix: str,
        trail: List[str],
        result: ParsedPackages
    ) -> None:
        for name, meta in tree.items():
            if not isinstance(meta, dict) or not meta.get("version"):
                continue
            path = trail + [name]
            location = PackageLocation(
                identifier=f"{location_prefix}#deps/{'/'.join(path)}",
                provenance=self._provenance(meta, bundled_key="bundled"),
            )
            result.add_record(name, meta["version"], location)

            nested = meta.get("dependencies")
            if isinstance(nested, dict):
                self._walk_legacy_dependencies(nested, location_prefix, path, result)

    def _provenance(self, meta: Dict[str, Any], bundled_key: str) -> Provenance:
        resolved = meta.get("resolved") if isinstance(meta.get("resolved"), str) else None
        integrity = meta.get("integrity") if isinstance(meta.get("integrity"), str) else None
        return Provenance(
            source_format=self.source_format,
            integrity=integrity,
            resolved=resolved,
            registry=registry_host(resolved),
            dev=meta.get("dev") is True,
            optional=meta.get("optional") is True,
            bundled=meta.get(bundled_key) is True,
        )


class YarnLockParser(BaseParser):
    """Parser for yarn.lock files.

    Handles the classic v1 syntax (``version "1.2.3"``) with a line scanner.
    Lockfiles written by Yarn 2+ carry a ``__metadata`` block and are plain
    YAML, so they are loaded with PyYAML.
    """

    source_format = SourceFormat.YARN_LOCK
    parser_type = "yarn"

    PROVENANCE_KEYS = ("version", "resolved", "resolution", "integrity", "checksum")
    METADATA_PATTERN = re.compile(r"^[\"']?__metadata[\"']?:", re.MULTILINE)

    def __init__(self) -> None:
        """Initialize the yarn.lock parser."""
        self.logger = get_logger("YarnLockParser")

    def can_parse(self, file_path: Path) -> bool:
        return file_path.name == "yarn.lock"

    def parse(self, raw_text: str, location_prefix: str) -> ParsedPackages:
        """Parse a yarn.lock file.

        Args:
            raw_text: File contents
            location_prefix: ``lockfile:<relpath>``

        Returns:
            One record per selector of every block that has a version
        """
        result = ParsedPackages(parser_type=self.parser_type)
        try:
            if self.METADATA_PATTERN.search(raw_text):
                blocks = self._load_berry_blocks(raw_text)
            else:
                blocks = self._parse_blocks(raw_text)
        except LockfileFormatError as e:
            self.logger.warning(f"Skipping malformed lockfile {location_prefix}: {e}")
            result.skipped = True
            result.error = str(e)
            return result

        for selectors, fields in blocks:
            version = fields.get("version")
            if not version:
                continue
            resolved = fields.get("resolved")
            provenance = Provenance(
                source_format=self.source_format,
                integrity=fields.get("integrity"),
                resolved=resolved or fields.get("resolution"),
                registry=registry_host(resolved),
                checksum=fields.get("checksum"),
            )
            for selector in selectors:
                location = PackageLocation(
                    identifier=f"{location_prefix}#{selector}",
                    provenance=provenance,
                )
                result.add_record(self.name_from_selector(selector), version, location)

        return result

    def _load_berry_blocks(self, raw_text: str) -> List[Tuple[List[str], Dict[str, str]]]:
        blocks: List[Tuple[List[str], Dict[str, str]]] = []
        for header, meta in _load_yaml_mapping(raw_text).items():
            if header == "__metadata" or not isinstance(meta, dict):
                continue
            fields = {}
            for key in self.PROVENANCE_KEYS:
                value = _scalar(meta.get(key))
                if value:
                    fields[key] = value
            blocks.append((split_selectors(str(header)), fields))
        return blocks

    def _parse_blocks(self, raw_text: str) -> List[Tuple[List[str], Dict[str, str]]]:
        blocks: List[Tuple[List[str], Dict[str, str]]] = []
        current: Optional[Tuple[List[str], Dict[str, str]]] = None
        field_indent: Optional[int] = None

        for line_number, line in enumerate(raw_text.splitlines(), 1):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue

            indent = _indent(line)
            if indent == 0:
                if not stripped.endswith(":"):
                    raise LockfileFormatError(f"line {line_number}: unexpected top-level entry")
                current = (split_selectors(stripped[:-1]), {})
                blocks.append(current)
                field_indent = None
                continue

            if current is None:
                continue
            if field_indent is None:
                field_indent = indent
            if indent != field_indent:
                # nested maps such as dependencies:
                continue

            key, value = self._split_field(stripped)
            if key in self.PROVENANCE_KEYS and value:
                current[1][key] = value

        return blocks

    @staticmethod
    def _split_field(text: str) -> Tuple[str, str]:
        if text.endswith(":"):
            return text[:-1], ""
        parts = re.split(r":?\s+", text, maxsplit=1)
        key = _unquote(parts[0].rstrip(":"))
        value = _unquote(parts[1]) if len(parts) > 1 else ""
        return key, value

    @staticmethod
    def name_from_selector(selector: str) -> str:
        """Extract the package name from a yarn selector.

        ``lodash@^4.17.0`` -> ``lodash``, ``@babel/core@npm:^7.0.0`` ->
        ``@babel/core``.
        """
        selector = _unquote(selector)
        start = 1 if selector.startswith("@") else 0
        at = selector.find("@", start)
        if at <= 0:
            return selector
        return selector[:at]


class PnpmLockParser(BaseParser):
    """Parser for pnpm-lock.yaml files.

    The file is loaded with PyYAML and only the top-level ``packages``
    mapping is read.
    """

    source_format = SourceFormat.PNPM_LOCK
    parser_type = "pnpm"

    def __init__(self) -> None:
        """Initialize the pnpm-lock parser."""
        self.logger = get_logger("PnpmLockParser")

    def can_parse(self, file_path: Path) -> bool:
        return file_path.name == "pnpm-lock.yaml"

    def parse(self, raw_text: str, location_prefix: str) -> ParsedPackages:
        """Parse a pnpm-lock.yaml file.

        Args:
            raw_text: File contents
            location_prefix: ``lockfile:<relpath>``

        Returns:
            One record per package key
        """
        result = ParsedPackages(parser_type=self.parser_type)
        try:
            packages = _load_yaml_mapping(raw_text).get("packages") or {}
            if not isinstance(packages, dict):
                raise LockfileFormatError("packages is not a mapping")
        except LockfileFormatError as e:
            self.logger.warning(f"Skipping malformed lockfile {location_prefix}: {e}")
            result.skipped = True
            result.error = str(e)
            return result

        for key, meta in packages.items():
            key = str(key)
            name, version = self.split_package_key(key)
            if not name or not version:
                continue
            location = PackageLocation(
                identifier=f"{location_prefix}#{key}",
                provenance=self._provenance(meta if isinstance(meta, dict) else {}),
            )
            result.add_record(name, version, location)

        return result

    def _provenance(self, meta: Dict[str, Any]) -> Provenance:
        resolution = meta.get("resolution")
        if not isinstance(resolution, dict):
            resolution = {}
        tarball = _scalar(resolution.get("tarball"))
        registry = _scalar(resolution.get("registry")) or _scalar(meta.get("registry"))
        return Provenance(
            source_format=self.source_format,
            integrity=_scalar(resolution.get("integrity")),
            resolved=tarball,
            registry=registry_host(tarball) or registry_host(registry),
            specifier=_scalar(meta.get("specifier")),
            dev=meta.get("dev") is True,
            optional=meta.get("optional") is True,
        )

    @staticmethod
    def split_package_key(key: str) -> Tuple[Optional[str], Optional[str]]:
        """Split a packages key into name and version.

        Handles ``/name/1.2.3``, ``/@scope/name/1.2.3_peer@1.0.0``,
        ``/name@1.2.3(peer@1.0.0)`` and ``name@1.2.3``.

        Args:
            key: Raw key with quotes already removed

        Returns:
            Tuple of (name, version); (None, None) if the key cannot be split
        """
        body = key[1:] if key.startswith("/") else key

        if key.startswith("/") and "/" in body:
            name, _, last = body.rpartition("/")
            # /name/version keys (lockfile v5); /@scope/name@version uses the @ form
            if last and "@" not in last.split("_", 1)[0] and "0" <= last[0] <= "9":
                return name or None, last.split("_", 1)[0] or None

        at = PnpmLockParser._last_unescaped_at(body)
        if at <= 0:
            return None, None
        name = body[:at]
        version = body[at + 1:]
        for separator in ("(", "_", ":"):
            version = version.split(separator, 1)[0]
        return name or None, version or None

    @staticmethod
    def _last_unescaped_at(text: str) -> int:
        # peer suffixes like (react@18.2.0) also contain '@'
        end = text.find("(")
        search = text if end == -1 else text[:end]
        idx = len(search)
        while True:
            idx = search.rfind("@", 0, idx)
            if idx <= 0 or search[idx - 1] != "\\":
                return idx
