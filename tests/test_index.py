"""Tests for the package index and the index builder."""

import json
import pytest

from dep_sleuth.core.index import IndexBuilder, PackageIndex, ScanIndex
from dep_sleuth.core.parsers.base import PackageLocation, PackageRecord
from dep_sleuth.utils.path_utils import DependencyFile


def location(identifier):
    """Create a location without provenance."""
    return PackageLocation(identifier)


@pytest.fixture
def project(tmp_path):
    """Create a small project with an installed tree and a lockfile."""
    package_dir = tmp_path / "node_modules" / "@ctrl" / "tinycolor"
    package_dir.mkdir(parents=True)
    (package_dir / "package.json").write_text(
        json.dumps({"name": "@ctrl/tinycolor", "version": "4.1.2"})
    )

    lockfile = tmp_path / "package-lock.json"
    lockfile.write_text(json.dumps({
        "lockfileVersion": 3,
        "packages": {
            "node_modules/@ctrl/tinycolor": {"version": "4.1.2"},
            "node_modules/lodash": {"version": "4.17.21"},
        },
    }))

    files = [
        DependencyFile(
            path=package_dir / "package.json",
            parser_type="installed",
            origin="node_modules",
            location_prefix=str(package_dir),
        ),
        DependencyFile(
            path=lockfile,
            parser_type="package-lock",
            origin="lockfile",
            location_prefix="lockfile:package-lock.json",
        ),
    ]
    return tmp_path, files


class TestPackageIndex:
    """Test the package index."""

    def test_add_found_package(self):
        """Test adding locations to name and version buckets."""
        index = PackageIndex()

        assert index.add_found_package("lodash", "4.17.21", location("a"))
        assert index.add_found_package("lodash", "4.17.21", location("b"))
        assert index.add_found_package("lodash", "4.16.9", location("a"))

        assert "lodash" in index
        assert len(index) == 1
        assert set(index.versions("lodash")) == {"4.17.21", "4.16.9"}
        assert [loc.identifier for loc in index.locations("lodash", "4.17.21")] == ["a", "b"]
        assert index.location_count() == 3

    def test_duplicate_location_is_noop(self):
        """Test that the same location is recorded once per name and version."""
        index = PackageIndex()

        assert index.add_found_package("lodash", "4.17.21", location("a"))
        assert not index.add_found_package("lodash", "4.17.21", location("a"))

        assert index.location_count() == 1

    def test_unknown_package(self):
        """Test that unknown names have no versions."""
        index = PackageIndex()

        assert index.versions("react") == {}
        assert index.locations("react", "18.0.0") == []
        assert "react" not in index

    def test_empty_values_ignored(self):
        """Test that empty names or versions are not indexed."""
        index = PackageIndex()

        assert not index.add_found_package("", "1.0.0", location("a"))
        assert not index.add_found_package("lodash", "", location("a"))
        assert len(index) == 0

    def test_frozen_index_rejects_writes(self):
        """Test that a frozen index is read-only."""
        index = PackageIndex()
        index.freeze()

        assert index.frozen
        with pytest.raises(RuntimeError):
            index.add_found_package("lodash", "4.17.21", location("a"))

    def test_merge(self):
        """Test merging two indexes deduplicates locations."""
        first = PackageIndex()
        first.add_found_package("lodash", "4.17.21", location("a"))
        second = PackageIndex()
        second.add_found_package("lodash", "4.17.21", location("a"))
        second.add_found_package("react", "18.2.0", location("b"))

        first.merge(second)

        assert first.package_names() == ["lodash", "react"]
        assert first.location_count() == 2
        assert sorted(first) == ["lodash", "react"]


class TestScanIndex:
    """Test the combined and per-source index."""

    def test_add_record_partitions_by_origin(self):
        """Test that records land in the combined and origin indexes."""
        scan_index = ScanIndex()
        scan_index.add_record(PackageRecord("lodash", "4.17.21", location("a")), "node_modules")
        scan_index.add_record(PackageRecord("lodash", "4.17.21", location("b")), "lockfile")

        assert scan_index.combined.location_count() == 2
        assert scan_index.by_source["node_modules"].location_count() == 1
        assert scan_index.by_source["lockfile"].location_count() == 1

    def test_unknown_origin(self):
        """Test that unknown origins are rejected."""
        scan_index = ScanIndex()

        with pytest.raises(ValueError):
            scan_index.add_record(PackageRecord("lodash", "1.0.0", location("a")), "registry")


class TestIndexBuilder:
    """Test building the index from files."""

    def test_build(self, project):
        """Test that installed and locked copies share one version bucket."""
        root, files = project
        scan_index = IndexBuilder(max_workers=2).build(files, sources=["lockfile", "node_modules"])

        bucket = scan_index.combined.versions("@ctrl/tinycolor")
        assert list(bucket) == ["4.1.2"]
        assert [loc.identifier for loc in bucket["4.1.2"]] == [
            str(root / "node_modules" / "@ctrl" / "tinycolor"),
            "lockfile:package-lock.json#node_modules/@ctrl/tinycolor",
        ]

        assert "lodash" not in scan_index.by_source["node_modules"]
        assert "lodash" in scan_index.by_source["lockfile"]
        assert scan_index.lockfiles == ["package-lock.json"]
        assert scan_index.skipped == []
        assert scan_index.combined.frozen

    def test_build_is_idempotent_on_repeated_files(self, project):
        """Test that indexing the same file twice adds no duplicate locations."""
        _, files = project
        scan_index = IndexBuilder().build(files + files)

        assert scan_index.combined.location_count() == 3

    def test_skipped_files(self, project):
        """Test that unreadable and malformed files are skipped."""
        root, files = project
        broken = root / "broken" / "package-lock.json"
        broken.parent.mkdir()
        broken.write_text("{ nope")
        missing = root / "node_modules" / "ghost" / "package.json"

        files = files + [
            DependencyFile(broken, "package-lock", "lockfile", "lockfile:broken/package-lock.json"),
            DependencyFile(missing, "installed", "node_modules", str(missing.parent)),
        ]
        scan_index = IndexBuilder(max_workers=1).build(files)

        assert set(scan_index.skipped) == {str(broken), str(missing)}
        assert scan_index.lockfiles == ["package-lock.json", "broken/package-lock.json"]
        assert scan_index.combined.location_count() == 3

    def test_empty_sources_create_partitions(self):
        """Test that requested sources always have a partition."""
        scan_index = IndexBuilder().build([], sources=["lockfile", "node_modules"])

        assert set(scan_index.by_source) == {"lockfile", "node_modules"}
        assert len(scan_index.combined) == 0

    def test_build_from_records(self):
        """Test building from already parsed records."""
        record = PackageRecord("lodash", "4.17.21", location("a"))
        scan_index = IndexBuilder().build_from_records([(record, "lockfile"), (record, "lockfile")])

        assert scan_index.combined.location_count() == 1
        assert scan_index.by_source["lockfile"].frozen

    def test_invalid_worker_count(self):
        """Test worker validation."""
        with pytest.raises(ValueError):
            IndexBuilder(max_workers=0)

    def test_performance_phase_recorded(self, project):
        """Test that the build phase is timed."""
        _, files = project
        builder = IndexBuilder()
        builder.build(files)

        summary = builder.performance_monitor.get_summary()
        assert "build_index" in summary["phases"]
