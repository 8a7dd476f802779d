"""Output formatters for DepSleuth results."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..core.index import ScanIndex
from ..core.matcher import MatchResult, SourceMatch, summarize_results
from ..utils.logging import get_logger


class ConsoleFormatter:
    """Rich console formatter for DepSleuth output."""

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize the console formatter.

        Args:
            console: Rich console instance
        """
        self.console = console or Console()
        self.logger = get_logger("ConsoleFormatter")

    def format_scan_results(
        self,
        results: Sequence[MatchResult],
        scan_index: ScanIndex,
        scanned_root: Path,
        sources: Sequence[str],
        warnings: Optional[Sequence[str]] = None
    ) -> None:
        """Format and display scan results.

        Args:
            results: One match result per request
            scan_index: Index the results were computed from
            scanned_root: Root directory of the scan
            sources: Sources that were scanned
            warnings: Specifier fallback warnings
        """
        self.console.print(
            Text.assemble(
                "Scanning root: ",
                (str(scanned_root), "bold"),
                f" (sources: {', '.join(sorted(sources))})",
            )
        )
        if "lockfile" in sources:
            lockfiles = ", ".join(scan_index.lockfiles) or "none"
            self.console.print(f"Lockfiles: {lockfiles}", markup=False, highlight=False)

        self.console.print(self._create_results_table(results))
        self._print_notes(results, warnings or [])

        self.console.print()
        self.console.print(self._summary_line("Summary", summarize_results(results), long_form=True))
        for source in sorted(sources):
            source_results = [r.per_source.get(source, SourceMatch()) for r in results]
            self.console.print(self._summary_line(f"[{source}] Summary", summarize_results(source_results)))

    def _create_results_table(self, results: Sequence[MatchResult]) -> Table:
        """Create the results table.

        Args:
            results: Match results

        Returns:
            Rich table with one row per request
        """
        table = Table(title="Package Matches")

        table.add_column("Package", style="cyan", no_wrap=True)
        table.add_column("Requested", style="white")
        table.add_column("Found")
        table.add_column("Exact")
        table.add_column("Installed Versions", style="white")
        table.add_column("One Location", style="dim")

        for result in results:
            table.add_row(
                result.name,
                result.requested_version,
                Text("yes", style="green") if result.found else Text("no", style="red"),
                Text("yes", style="blue") if result.exact else Text("no", style="yellow"),
                ", ".join(result.installed_versions) or "-",
                result.locations[0].identifier if result.locations else "-",
            )

        return table

    def _summary_line(self, label: str, summary: Dict[str, int], long_form: bool = False) -> Text:
        checked_label = "packages checked" if long_form else "checked"
        return Text.assemble(
            f"{label}: ",
            (str(summary["checked"]), "bold"),
            f" {checked_label}, ",
            (str(summary["found"]), "green"),
            " found (",
            (str(summary["exact_matches"]), "blue"),
            " exact matches, ",
            (str(summary["not_found"]), "red"),
            " not found)",
        )

    def _print_notes(self, results: Sequence[MatchResult], warnings: Sequence[str]) -> None:
        for warning in warnings:
            self.console.print(Text(f"Warning: {warning}", style="yellow"))
        for result in results:
            if result.non_semantic_versions:
                self.console.print(
                    Text(
                        f"Note: {result.name} has non-semantic versions: "
                        f"{', '.join(result.non_semantic_versions)}",
                        style="dim",
                    )
                )


class JSONFormatter:
    """JSON formatter for DepSleuth output."""

    def __init__(self, output_file: Optional[Path] = None) -> None:
        """Initialize the JSON formatter.

        Args:
            output_file: Optional output file path
        """
        self.output_file = output_file
        self.logger = get_logger("JSONFormatter")

    def format_scan_results(
        self,
        results: Sequence[MatchResult],
        scan_index: ScanIndex,
        scanned_root: Path,
        sources: Sequence[str],
        warnings: Optional[Sequence[str]] = None
    ) -> Dict[str, Any]:
        """Format scan results as a JSON-serializable dictionary.

        Args:
            results: One match result per request
            scan_index: Index the results were computed from
            scanned_root: Root directory of the scan
            sources: Sources that were scanned
            warnings: Specifier fallback warnings

        Returns:
            Formatted JSON data
        """
        summary: Dict[str, Any] = dict(summarize_results(results))
        summary.update({
            "scannedRoot": str(scanned_root),
            "scanSources": sorted(sources),
            "lockfiles": list(scan_index.lockfiles),
            "skippedFiles": list(scan_index.skipped),
            "sourceSummaries": {
                source: summarize_results(
                    [r.per_source.get(source, SourceMatch()) for r in results]
                )
                for source in sorted(sources)
            },
            "timestamp": datetime.now().isoformat(),
        })

        return {
            "scannedRoot": str(scanned_root),
            "results": [self._result_to_dict(result) for result in results],
            "summary": summary,
            "warnings": list(warnings or []),
        }

    def _result_to_dict(self, result: MatchResult) -> Dict[str, Any]:
        return {
            "request": result.request_key,
            "name": result.name,
            "requestedVersion": result.requested_version,
            "specifierKind": result.specifier_kind.value,
            "found": result.found,
            "exact": result.exact,
            "installedVersions": result.installed_versions,
            "matchedVersions": result.matched_versions,
            "nonSemanticVersions": result.non_semantic_versions,
            "locations": [location.identifier for location in result.locations],
            "provenance": {
                location.identifier: location.provenance.to_dict()
                for location in result.locations
                if location.provenance is not None
            },
            "sources": {
                source: {
                    "found": match.found,
                    "exact": match.exact,
                    "matchedVersions": match.matched_versions,
                    "locations": [location.identifier for location in match.locations],
                }
                for source, match in result.per_source.items()
            },
        }

    def render(self, data: Dict[str, Any]) -> str:
        return json.dumps(data, indent=2, ensure_ascii=False)

    def save_results(
        self,
        results: Dict[str, Any],
        output_file: Optional[Path] = None
    ) -> None:
        """Save results to JSON file.

        Args:
            results: Results dictionary
            output_file: Output file path (uses instance default if None)
        """
        file_path = output_file or self.output_file
        if not file_path:
            raise ValueError("No output file specified")

        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(results, f, indent=2, ensure_ascii=False)

            self.logger.info(f"Results saved to {file_path}")
        except IOError as e:
            self.logger.error(f"Failed to save results to {file_path}: {e}")
            raise
