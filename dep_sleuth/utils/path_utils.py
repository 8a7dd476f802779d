"""Path utilities for finding installed packages and lockfiles."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Set

from ..config import ScanConfig
from ..core.parsers import LOCKFILE, NODE_MODULES, ParserRegistry
from ..core.parsers import registry as default_registry
from .logging import get_logger


@dataclass
class DependencyFile:
    """A discovered file together with how it should be parsed."""

    path: Path
    parser_type: str
    origin: str
    location_prefix: str

    def __post_init__(self) -> None:
        """Validate the dependency file."""
        if self.origin not in (NODE_MODULES, LOCKFILE):
            raise ValueError(f"Unknown source origin: {self.origin}")


def is_inside_root(candidate: Path, root: Path) -> bool:
    """Check that a resolved path does not escape the scan root."""
    try:
        candidate.relative_to(root)
    except ValueError:
        return False
    return True


def _realpath(path: Path) -> Path:
    try:
        return path.resolve()
    except (OSError, RuntimeError):
        return path


def _list_dirs(directory: Path) -> List[Path]:
    try:
        entries = list(os.scandir(directory))
    except OSError:
        return []
    dirs = []
    for entry in entries:
        try:
            if entry.is_dir() or entry.is_symlink():
                dirs.append(Path(entry.path))
        except OSError:
            continue
    return sorted(dirs)


def _list_files(directory: Path) -> List[Path]:
    try:
        entries = list(os.scandir(directory))
    except OSError:
        return []
    files = []
    for entry in entries:
        try:
            if entry.is_file():
                files.append(Path(entry.path))
        except OSError:
            continue
    return sorted(files)


def lockfile_location_prefix(path: Path, root: Path) -> str:
    """Build the ``lockfile:<relpath>`` prefix for a lockfile-family file."""
    try:
        relative = path.relative_to(root).as_posix()
    except ValueError:
        relative = path.name
    return f"lockfile:{relative or path.name}"


class DependencyFileFinder:
    """Finds installed package manifests and lockfiles below a root directory."""

    def __init__(self, config: ScanConfig, parser_registry: Optional[ParserRegistry] = None) -> None:
        """Initialize the finder.

        Args:
            config: Scan configuration
            parser_registry: Registry deciding which files are parsed and how
        """
        self.config = config
        self.root = Path(os.path.abspath(config.root))
        self.registry = parser_registry or default_registry
        self.logger = get_logger("DependencyFileFinder")

    def find_dependency_files(self) -> List[DependencyFile]:
        """Find every file the configured sources need.

        Returns:
            Installed package manifests first, then lockfile-family files
        """
        files: List[DependencyFile] = []
        if self.config.scan_installed:
            files.extend(self.find_installed_packages())
        if self.config.scan_lockfiles:
            files.extend(self.find_lockfiles())
        self.logger.debug(f"Discovered {len(files)} files below {self.root}")
        return files

    def find_installed_packages(self) -> Iterator[DependencyFile]:
        """Yield the package.json of every package in every node_modules directory.

        Scoped packages (``@scope/name``) are found one level deeper.
        """
        for node_modules in self._walk(include_node_modules=True):
            if node_modules.name != "node_modules":
                continue
            for entry in _list_dirs(node_modules):
                if entry.name.startswith("@"):
                    package_dirs = _list_dirs(entry)
                else:
                    package_dirs = [entry]
                for package_dir in package_dirs:
                    manifest = package_dir / "package.json"
                    if not manifest.is_file():
                        continue
                    parser = self._parser_for(manifest, NODE_MODULES)
                    if parser is not None:
                        yield DependencyFile(
                            path=manifest,
                            parser_type=parser.parser_type,
                            origin=NODE_MODULES,
                            location_prefix=str(package_dir),
                        )

    def find_lockfiles(self) -> Iterator[DependencyFile]:
        """Yield lockfiles and manifests outside node_modules."""
        for directory in self._walk(include_node_modules=False):
            for path in _list_files(directory):
                parser = self._parser_for(path, LOCKFILE)
                if parser is None:
                    continue
                yield DependencyFile(
                    path=path,
                    parser_type=parser.parser_type,
                    origin=LOCKFILE,
                    location_prefix=lockfile_location_prefix(path, self.root),
                )

    def _parser_for(self, path: Path, origin: str):
        # judged relative to the root so a root inside node_modules still has lockfiles
        try:
            relative = path.relative_to(self.root)
        except ValueError:
            relative = path
        parser = self.registry.find_parser_for_file(relative)
        if parser is None or parser.source_format.origin != origin:
            return None
        return parser

    def _walk(self, include_node_modules: bool) -> Iterator[Path]:
        """Depth-first directory walk with symlink loop protection.

        Args:
            include_node_modules: Descend into node_modules directories

        Yields:
            Directories inside the root, each real path at most once
        """
        root_real = _realpath(self.root)
        stack = [self.root]
        visited: Set[Path] = set()

        while stack:
            directory = stack.pop()
            real = _realpath(directory)
            if real in visited:
                continue
            visited.add(real)
            if not is_inside_root(real, root_real):
                continue

            yield directory

            for child in reversed(_list_dirs(directory)):
                if child.name == "node_modules" and not include_node_modules:
                    continue
                if not self._has_node_modules(child) and child.name in self.config.ignored_dirs:
                    continue
                stack.append(child)

    @staticmethod
    def _has_node_modules(path: Path) -> bool:
        return "node_modules" in path.parts


def find_dependency_files(
    root_path: Path,
    sources: Optional[List[str]] = None,
    ignored_dirs: Optional[List[str]] = None
) -> List[DependencyFile]:
    """Convenience function to find dependency files.

    Args:
        root_path: Root directory to search
        sources: Sources to scan (default: all)
        ignored_dirs: Additional directory names to skip

    Returns:
        List of found dependency files
    """
    config = ScanConfig(root=root_path, sources=sources or []).with_ignored(ignored_dirs)
    return DependencyFileFinder(config).find_dependency_files()
