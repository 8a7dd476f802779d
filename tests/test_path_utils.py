"""Tests for scan configuration and dependency file discovery."""

import json
import os
import pytest
from pathlib import Path

from dep_sleuth.config import (
    DEFAULT_IGNORED_DIRS,
    MAX_WORKERS_ENV,
    ScanConfig,
    parse_scan_sources,
)
from dep_sleuth.core.parsers import ParserRegistry, YarnLockParser
from dep_sleuth.utils.path_utils import (
    DependencyFile,
    DependencyFileFinder,
    find_dependency_files,
    is_inside_root,
    lockfile_location_prefix,
)


def write_package(directory, name, version):
    """Write an installed package manifest."""
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "package.json").write_text(json.dumps({"name": name, "version": version}))


@pytest.fixture
def project_tree(tmp_path):
    """Create a project tree with installed packages and lockfiles."""
    (tmp_path / "package.json").write_text('{"dependencies": {"lodash": "^4.17.0"}}')
    (tmp_path / "package-lock.json").write_text('{"packages": {}}')

    node_modules = tmp_path / "node_modules"
    write_package(node_modules / "lodash", "lodash", "4.17.21")
    write_package(node_modules / "@ctrl" / "tinycolor", "@ctrl/tinycolor", "4.1.2")
    write_package(node_modules / "lodash" / "node_modules" / "minimist", "minimist", "1.2.8")
    (node_modules / ".bin").mkdir()
    # lockfiles shipped inside installed packages are not project lockfiles
    (node_modules / "lodash" / "yarn.lock").write_text("")

    web = tmp_path / "packages" / "web"
    web.mkdir(parents=True)
    (web / "yarn.lock").write_text("")
    (web / "pnpm-lock.yaml").write_text("")

    dist = tmp_path / "dist"
    dist.mkdir()
    (dist / "package-lock.json").write_text("{}")

    return tmp_path


class TestParseScanSources:
    """Test normalization of --scan values."""

    @pytest.mark.parametrize("values,expected", [
        (None, ["lockfile", "node_modules"]),
        ([], ["lockfile", "node_modules"]),
        (["both"], ["lockfile", "node_modules"]),
        (["lockfile"], ["lockfile"]),
        (["node_modules", "lockfile"], ["lockfile", "node_modules"]),
        (["node_modules,lockfile"], ["lockfile", "node_modules"]),
        (["LOCKFILE"], ["lockfile"]),
    ])
    def test_valid_values(self, values, expected):
        """Test accepted source selections."""
        assert parse_scan_sources(values) == expected

    def test_invalid_value(self):
        """Test that unknown sources are rejected."""
        with pytest.raises(ValueError, match="registry"):
            parse_scan_sources(["registry"])


class TestScanConfig:
    """Test scan configuration."""

    def test_defaults(self, tmp_path, monkeypatch):
        """Test default configuration values."""
        monkeypatch.delenv(MAX_WORKERS_ENV, raising=False)
        config = ScanConfig(root=tmp_path)

        assert config.sources == ["lockfile", "node_modules"]
        assert config.max_workers == 4
        assert config.ignored_dirs == DEFAULT_IGNORED_DIRS
        assert config.scan_installed
        assert config.scan_lockfiles

    def test_max_workers_from_environment(self, tmp_path, monkeypatch):
        """Test reading the worker count from the environment."""
        monkeypatch.setenv(MAX_WORKERS_ENV, "8")

        assert ScanConfig(root=tmp_path).max_workers == 8

    def test_invalid_max_workers_environment(self, tmp_path, monkeypatch):
        """Test that a non-integer worker count is rejected."""
        monkeypatch.setenv(MAX_WORKERS_ENV, "many")

        with pytest.raises(ValueError):
            ScanConfig(root=tmp_path)

    def test_invalid_max_workers(self, tmp_path):
        """Test worker validation."""
        with pytest.raises(ValueError):
            ScanConfig(root=tmp_path, max_workers=0)

    def test_missing_root(self, tmp_path):
        """Test that the root must exist."""
        with pytest.raises(ValueError, match="does not exist"):
            ScanConfig(root=tmp_path / "missing")

    def test_root_must_be_directory(self, tmp_path):
        """Test that the root must be a directory."""
        file_path = tmp_path / "file.txt"
        file_path.write_text("x")

        with pytest.raises(ValueError, match="not a directory"):
            ScanConfig(root=file_path)

    def test_unknown_source(self, tmp_path):
        """Test source validation."""
        with pytest.raises(ValueError):
            ScanConfig(root=tmp_path, sources=["registry"])

    def test_single_source(self, tmp_path):
        """Test selecting one source."""
        config = ScanConfig(root=tmp_path, sources=["node_modules"])

        assert config.scan_installed
        assert not config.scan_lockfiles

    def test_with_ignored(self, tmp_path):
        """Test adding ignored directory names."""
        config = ScanConfig(root=tmp_path).with_ignored(["vendor"])

        assert "vendor" in config.ignored_dirs
        assert ".git" in config.ignored_dirs
        assert ScanConfig(root=tmp_path).with_ignored(None).ignored_dirs == DEFAULT_IGNORED_DIRS


class TestDependencyFileFinder:
    """Test discovery of installed packages and lockfiles."""

    def test_find_installed_packages(self, project_tree):
        """Test that every installed package, scoped or nested, is found."""
        finder = DependencyFileFinder(ScanConfig(root=project_tree, sources=["node_modules"]))
        files = list(finder.find_installed_packages())

        prefixes = {Path(f.location_prefix).relative_to(project_tree).as_posix() for f in files}
        assert prefixes == {
            "node_modules/lodash",
            "node_modules/@ctrl/tinycolor",
            "node_modules/lodash/node_modules/minimist",
        }
        assert all(f.parser_type == "installed" for f in files)
        assert all(f.origin == "node_modules" for f in files)

    def test_find_lockfiles(self, project_tree):
        """Test that lockfiles are found outside node_modules and ignored dirs."""
        finder = DependencyFileFinder(ScanConfig(root=project_tree, sources=["lockfile"]))
        files = list(finder.find_lockfiles())

        found = {(f.location_prefix, f.parser_type) for f in files}
        assert found == {
            ("lockfile:package.json", "manifest"),
            ("lockfile:package-lock.json", "package-lock"),
            ("lockfile:packages/web/yarn.lock", "yarn"),
            ("lockfile:packages/web/pnpm-lock.yaml", "pnpm"),
        }
        assert all(f.origin == "lockfile" for f in files)

    def test_files_without_parser_not_discovered(self, project_tree):
        """Test that only files a registered parser accepts are yielded."""
        (project_tree / "pnpm-workspace.yaml").write_text("packages: []\n")
        (project_tree / "package.json.bak").write_text("{}")

        files = find_dependency_files(project_tree, sources=["lockfile"])

        names = {f.path.name for f in files}
        assert "pnpm-workspace.yaml" not in names
        assert "package.json.bak" not in names

    def test_discovery_follows_parser_registry(self, project_tree):
        """Test that the finder only yields files its registry can parse."""
        yarn_only = ParserRegistry()
        yarn_only.register("yarn", YarnLockParser())
        config = ScanConfig(root=project_tree)

        files = DependencyFileFinder(config, yarn_only).find_dependency_files()

        assert [(f.location_prefix, f.parser_type) for f in files] == [
            ("lockfile:packages/web/yarn.lock", "yarn"),
        ]

    def test_find_dependency_files_respects_sources(self, project_tree):
        """Test that only the configured sources are discovered."""
        installed_only = find_dependency_files(project_tree, sources=["node_modules"])
        lockfiles_only = find_dependency_files(project_tree, sources=["lockfile"])
        both = find_dependency_files(project_tree)

        assert {f.origin for f in installed_only} == {"node_modules"}
        assert {f.origin for f in lockfiles_only} == {"lockfile"}
        assert len(both) == len(installed_only) + len(lockfiles_only)

    def test_extra_ignored_dirs(self, project_tree):
        """Test that additional ignored directories are skipped."""
        files = find_dependency_files(project_tree, sources=["lockfile"], ignored_dirs=["packages"])

        assert not any("packages/web" in f.location_prefix for f in files)

    def test_ignored_names_inside_node_modules_still_scanned(self, tmp_path):
        """Test that ignore rules do not apply to package names in node_modules."""
        write_package(tmp_path / "node_modules" / "build", "build", "1.0.0")

        files = find_dependency_files(tmp_path, sources=["node_modules"])

        assert [Path(f.location_prefix).name for f in files] == ["build"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test_symlink_loop(self, tmp_path):
        """Test that symlink loops do not cause infinite recursion."""
        write_package(tmp_path / "node_modules" / "lodash", "lodash", "4.17.21")
        (tmp_path / "app").mkdir()
        (tmp_path / "app" / "loop").symlink_to(tmp_path, target_is_directory=True)

        files = find_dependency_files(tmp_path, sources=["node_modules"])

        assert len(files) == 1

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test_symlink_outside_root_not_followed(self, tmp_path):
        """Test that links escaping the root are not scanned."""
        outside = tmp_path / "outside"
        (outside / "yarn.lock").parent.mkdir()
        (outside / "yarn.lock").write_text("")
        root = tmp_path / "root"
        root.mkdir()
        (root / "linked").symlink_to(outside, target_is_directory=True)

        files = find_dependency_files(root, sources=["lockfile"])

        assert files == []


class TestPathHelpers:
    """Test path helper functions."""

    def test_lockfile_location_prefix(self, tmp_path):
        """Test relative lockfile prefixes."""
        path = tmp_path / "packages" / "web" / "yarn.lock"

        assert lockfile_location_prefix(path, tmp_path) == "lockfile:packages/web/yarn.lock"
        assert lockfile_location_prefix(Path("/elsewhere/yarn.lock"), tmp_path) == "lockfile:yarn.lock"

    def test_is_inside_root(self, tmp_path):
        """Test containment checks."""
        assert is_inside_root(tmp_path / "a" / "b", tmp_path)
        assert is_inside_root(tmp_path, tmp_path)
        assert not is_inside_root(tmp_path.parent, tmp_path)

    def test_dependency_file_origin_validation(self, tmp_path):
        """Test that dependency files need a known origin."""
        with pytest.raises(ValueError):
            DependencyFile(tmp_path / "yarn.lock", "yarn", "registry", "lockfile:yarn.lock")
