"""Package source parsers for the npm ecosystem."""

from .base import (
    BaseParser,
    LOCKFILE,
    NODE_MODULES,
    PackageLocation,
    PackageRecord,
    ParsedPackages,
    Provenance,
    SourceFormat,
)
from .lockfiles import PackageLockParser, PnpmLockParser, YarnLockParser
from .nodejs import InstalledPackageParser, ManifestParser
from .registry import ParserRegistry

# Register built-in parsers
registry = ParserRegistry()
registry.register("installed", InstalledPackageParser())
registry.register("manifest", ManifestParser())
registry.register("package-lock", PackageLockParser())
registry.register("yarn", YarnLockParser())
registry.register("pnpm", PnpmLockParser())

# Convenience exports
PackageParser = registry
__all__ = [
    "BaseParser",
    "LOCKFILE",
    "NODE_MODULES",
    "PackageLocation",
    "PackageRecord",
    "ParsedPackages",
    "PackageParser",
    "ParserRegistry",
    "Provenance",
    "SourceFormat",
    "InstalledPackageParser",
    "ManifestParser",
    "PackageLockParser",
    "PnpmLockParser",
    "YarnLockParser",
    "registry",
]
