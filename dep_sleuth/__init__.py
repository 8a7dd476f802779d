"""DepSleuth - find which versions of npm packages are installed or locked in a project."""

__version__ = "0.1.0"
__author__ = "DepSleuth Team"

from .core.engine import VersionEngine
from .core.index import IndexBuilder
from .core.matcher import PackageMatcher
from .core.parsers import PackageParser
from .output.formatters import ConsoleFormatter, JSONFormatter

__all__ = [
    "VersionEngine",
    "IndexBuilder",
    "PackageMatcher",
    "PackageParser",
    "ConsoleFormatter",
    "JSONFormatter",
]
