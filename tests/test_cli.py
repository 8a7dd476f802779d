"""Tests for the command line interface."""

import json
import pytest
from typer.testing import CliRunner

from dep_sleuth.cli.main import app


runner = CliRunner()


@pytest.fixture
def scanned_project(tmp_path):
    """Create a project with one installed package and a lockfile."""
    package_dir = tmp_path / "node_modules" / "@ctrl" / "tinycolor"
    package_dir.mkdir(parents=True)
    (package_dir / "package.json").write_text(
        json.dumps({"name": "@ctrl/tinycolor", "version": "4.1.2"})
    )
    (tmp_path / "package-lock.json").write_text(json.dumps({
        "lockfileVersion": 3,
        "packages": {
            "node_modules/@ctrl/tinycolor": {
                "version": "4.1.2",
                "resolved": "https://registry.npmjs.org/@ctrl/tinycolor/-/tinycolor-4.1.2.tgz",
            },
            "node_modules/lodash": {"version": "4.17.21"},
        },
    }))
    return tmp_path


def write_requests(tmp_path, *lines):
    """Write a request list next to the project."""
    request_file = tmp_path / "requests.txt"
    request_file.write_text("\n".join(lines) + "\n")
    return request_file


class TestScanCommand:
    """Test the scan command."""

    def test_all_found_json(self, scanned_project, tmp_path):
        """Test JSON output when every request is found."""
        request_file = write_requests(tmp_path, "@ctrl/tinycolor@4.1.2", "lodash@^4.17.0")

        result = runner.invoke(app, [
            "scan", "-f", str(request_file), "--path", str(scanned_project), "--json",
        ])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["summary"]["checked"] == 2
        assert data["summary"]["found"] == 2
        assert data["summary"]["exact_matches"] == 1
        assert data["summary"]["lockfiles"] == ["package-lock.json"]

        tinycolor = data["results"][0]
        assert tinycolor["request"] == "@ctrl/tinycolor@4.1.2"
        assert tinycolor["found"] is True
        assert tinycolor["exact"] is True
        assert len(tinycolor["locations"]) == 2
        assert tinycolor["sources"]["node_modules"]["found"] is True
        assert tinycolor["sources"]["lockfile"]["found"] is True

        provenance = tinycolor["provenance"]["lockfile:package-lock.json#node_modules/@ctrl/tinycolor"]
        assert provenance["registry"] == "registry.npmjs.org"

    def test_missing_package_exit_code(self, scanned_project, tmp_path):
        """Test that a missing package exits with 1."""
        request_file = write_requests(tmp_path, "left-pad@1.3.0")

        result = runner.invoke(app, [
            "scan", "-f", str(request_file), "--path", str(scanned_project), "--json",
        ])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["summary"]["not_found"] == 1

    def test_scan_single_source(self, scanned_project, tmp_path):
        """Test restricting the scan to the installed tree."""
        request_file = write_requests(tmp_path, "lodash")

        result = runner.invoke(app, [
            "scan", "-f", str(request_file), "--path", str(scanned_project),
            "--scan", "node_modules", "--json",
        ])

        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["summary"]["scanSources"] == ["node_modules"]
        assert list(data["summary"]["sourceSummaries"]) == ["node_modules"]

    def test_text_output(self, scanned_project, tmp_path):
        """Test the table report."""
        request_file = write_requests(tmp_path, "@ctrl/tinycolor@4.1.2")

        result = runner.invoke(app, [
            "scan", "-f", str(request_file), "--path", str(scanned_project), "--no-color",
        ])

        assert result.exit_code == 0
        assert "Package Matches" in result.stdout
        assert "Summary: 1 packages checked, 1 found (1 exact matches, 0 not found)" in result.stdout
        assert "[lockfile] Summary: 1 checked" in result.stdout
        assert "Lockfiles: package-lock.json" in result.stdout

    def test_output_file(self, scanned_project, tmp_path):
        """Test saving JSON results to a file."""
        request_file = write_requests(tmp_path, "lodash@4.17.21")
        output_file = tmp_path / "report.json"

        result = runner.invoke(app, [
            "scan", "-f", str(request_file), "--path", str(scanned_project),
            "--output", str(output_file), "--no-color",
        ])

        assert result.exit_code == 0
        saved = json.loads(output_file.read_text())
        assert saved["results"][0]["matchedVersions"] == ["4.17.21"]

    def test_missing_request_file(self, scanned_project, tmp_path):
        """Test that a missing request list is a usage error."""
        result = runner.invoke(app, [
            "scan", "-f", str(tmp_path / "missing.txt"), "--path", str(scanned_project),
        ])

        assert result.exit_code == 2

    def test_invalid_scan_source(self, scanned_project, tmp_path):
        """Test that an unknown --scan value is a usage error."""
        request_file = write_requests(tmp_path, "lodash")

        result = runner.invoke(app, [
            "scan", "-f", str(request_file), "--path", str(scanned_project), "--scan", "registry",
        ])

        assert result.exit_code == 2

    def test_missing_root(self, tmp_path):
        """Test that a missing scan root is a usage error."""
        request_file = write_requests(tmp_path, "lodash")

        result = runner.invoke(app, [
            "scan", "-f", str(request_file), "--path", str(tmp_path / "nowhere"),
        ])

        assert result.exit_code == 2

    def test_file_option_required(self):
        """Test that --file is required."""
        result = runner.invoke(app, ["scan"])

        assert result.exit_code == 2


class TestCheckCommand:
    """Test the check command."""

    def test_satisfied(self):
        """Test a version inside the range."""
        result = runner.invoke(app, ["check", "1.9.9", "^1.2.3"])

        assert result.exit_code == 0
        assert "1.9.9 satisfies ^1.2.3" in result.stdout

    def test_not_satisfied(self):
        """Test a version outside the range."""
        result = runner.invoke(app, ["check", "2.0.0", "^1.2.3"])

        assert result.exit_code == 1
        assert "does not satisfy" in result.stdout

    def test_non_semantic_version(self):
        """Test that non-semantic versions are reported."""
        result = runner.invoke(app, ["check", "latest", "^1.0.0"])

        assert result.exit_code == 1
        assert "not a semantic version" in result.stdout


class TestInfoCommand:
    """Test the info command."""

    def test_info(self):
        """Test that supported sources and parsers are listed."""
        result = runner.invoke(app, ["info"])

        assert result.exit_code == 0
        assert "node_modules" in result.stdout
        assert "pnpm" in result.stdout
