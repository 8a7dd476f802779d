"""Scan configuration for DepSleuth."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional

from .core.parsers.base import LOCKFILE, NODE_MODULES, SOURCE_ORIGINS


DEFAULT_IGNORED_DIRS = frozenset({
    ".git",
    ".hg",
    ".svn",
    ".idea",
    ".vscode",
    "dist",
    "build",
    "out",
    "coverage",
})

MAX_WORKERS_ENV = "DEPSLEUTH_MAX_WORKERS"
DEFAULT_MAX_WORKERS = 4


def _default_max_workers() -> int:
    value = os.environ.get(MAX_WORKERS_ENV)
    if not value:
        return DEFAULT_MAX_WORKERS
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{MAX_WORKERS_ENV} must be an integer, got {value!r}")


def parse_scan_sources(values: Optional[Iterable[str]]) -> List[str]:
    """Normalize ``--scan`` values.

    Values may be repeated or comma separated; ``both`` selects every source.

    Args:
        values: Raw option values

    Returns:
        Sorted list of selected sources (all sources when nothing was given)

    Raises:
        ValueError: If an unknown source name is given
    """
    selected = set()
    for value in values or []:
        parts = [part.strip().lower() for part in value.split(",") if part.strip()]
        if "both" in parts:
            return sorted(SOURCE_ORIGINS)
        invalid = [part for part in parts if part not in SOURCE_ORIGINS]
        if invalid:
            raise ValueError(
                f"invalid --scan value(s): {', '.join(invalid)}. "
                f"Valid options are: {NODE_MODULES}, {LOCKFILE}, both"
            )
        selected.update(parts)
    return sorted(selected or SOURCE_ORIGINS)


@dataclass
class ScanConfig:
    """Configuration for one scan."""

    root: Path
    sources: List[str] = field(default_factory=lambda: sorted(SOURCE_ORIGINS))
    max_workers: int = field(default_factory=_default_max_workers)
    ignored_dirs: FrozenSet[str] = DEFAULT_IGNORED_DIRS

    def __post_init__(self) -> None:
        """Validate configuration."""
        self.root = Path(self.root)
        if not self.root.exists():
            raise ValueError(f"Scan root does not exist: {self.root}")
        if not self.root.is_dir():
            raise ValueError(f"Scan root is not a directory: {self.root}")

        self.sources = sorted(set(self.sources)) or sorted(SOURCE_ORIGINS)
        unknown = [source for source in self.sources if source not in SOURCE_ORIGINS]
        if unknown:
            raise ValueError(f"Unknown scan source(s): {', '.join(unknown)}")

        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.ignored_dirs = frozenset(self.ignored_dirs)

    @property
    def scan_installed(self) -> bool:
        return NODE_MODULES in self.sources

    @property
    def scan_lockfiles(self) -> bool:
        return LOCKFILE in self.sources

    def with_ignored(self, extra: Optional[Iterable[str]]) -> "ScanConfig":
        """Return a copy with additional ignored directory names."""
        return ScanConfig(
            root=self.root,
            sources=list(self.sources),
            max_workers=self.max_workers,
            ignored_dirs=self.ignored_dirs | frozenset(extra or ()),
        )
