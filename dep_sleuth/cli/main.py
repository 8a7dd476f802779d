"""Main CLI interface for DepSleuth."""

import logging
from pathlib import Path
from typing import List, Optional
import typer
from rich.console import Console
from rich.panel import Panel

from ..config import ScanConfig, parse_scan_sources
from ..core.engine import VersionEngine
from ..core.index import IndexBuilder
from ..core.matcher import PackageMatcher
from ..core.parsers import PackageParser
from ..core.parsers.base import SOURCE_ORIGINS
from ..core.request_list import load_requests
from ..output.formatters import ConsoleFormatter, JSONFormatter
from ..utils.logging import setup_logging, get_logger
from ..utils.path_utils import DependencyFileFinder

app = typer.Typer(
    name="depsleuth",
    help="Find which versions of npm packages are installed or locked in a project",
    add_completion=False
)

logger = get_logger("CLI")

EXIT_ALL_FOUND = 0
EXIT_MISSING = 1
EXIT_USAGE = 2


@app.command()
def scan(
    file: Path = typer.Option(
        ...,
        "--file",
        "-f",
        help="Package list, one name@version per line (version optional)"
    ),
    path: Optional[Path] = typer.Option(
        None,
        "--path",
        "-p",
        help="Restrict the scan to this directory (default: current directory)"
    ),
    scan_sources: Optional[List[str]] = typer.Option(
        None,
        "--scan",
        "-s",
        help="Sources: node_modules, lockfile, both (repeatable or comma separated)"
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output results as JSON"
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colors in text output"
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Also write JSON results to this file"
    ),
    ignore: Optional[List[str]] = typer.Option(
        None,
        "--ignore",
        help="Additional directory names to skip outside node_modules"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging"
    ),
    performance: bool = typer.Option(
        False,
        "--performance",
        help="Show performance summary"
    )
) -> None:
    """Check a list of packages against node_modules and lockfiles."""
    setup_logging(verbose=verbose)
    console = Console(no_color=no_color, highlight=not no_color)

    if not file.is_file():
        console.print(f"Error: package list not found: {file}", markup=False)
        raise typer.Exit(EXIT_USAGE)

    try:
        sources = parse_scan_sources(scan_sources)
        config = ScanConfig(root=(path or Path.cwd()).resolve(), sources=sources).with_ignored(ignore)
    except ValueError as e:
        console.print(f"Error: {e}", markup=False)
        raise typer.Exit(EXIT_USAGE)

    try:
        requests = load_requests(file)

        engine = VersionEngine()
        engine.reset()

        dependency_files = DependencyFileFinder(config).find_dependency_files()
        logger.debug(f"Found {len(dependency_files)} dependency files")

        builder = IndexBuilder(max_workers=config.max_workers)
        scan_index = builder.build(dependency_files, sources=config.sources)

        matcher = PackageMatcher(engine)
        results = matcher.match(requests, scan_index)
    except Exception as e:
        logger.error(f"Scan failed: {e}")
        console.print(f"Error: {e}", markup=False)
        raise typer.Exit(EXIT_USAGE)

    json_formatter = JSONFormatter(output)
    if json_output or output:
        data = json_formatter.format_scan_results(
            results, scan_index, config.root, config.sources, engine.warnings
        )
        if output:
            json_formatter.save_results(data)
        if json_output:
            typer.echo(json_formatter.render(data))

    if not json_output:
        ConsoleFormatter(console).format_scan_results(
            results, scan_index, config.root, config.sources, engine.warnings
        )

    if performance:
        builder.performance_monitor.merge(matcher.performance_monitor)
        builder.performance_monitor.print_summary(Console(stderr=True, no_color=no_color))

    raise typer.Exit(EXIT_ALL_FOUND if all(r.found for r in results) else EXIT_MISSING)


@app.command()
def check(
    version: str = typer.Argument(..., help="Concrete version, e.g. 1.2.3"),
    specifier: str = typer.Argument(..., help="Version specifier, e.g. ^1.2.0"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging")
) -> None:
    """Check whether a version satisfies a specifier."""
    setup_logging(level=logging.WARNING, verbose=verbose)
    console = Console()

    engine = VersionEngine()
    compiled = engine.compile(specifier)
    satisfied = engine.satisfies(version, specifier)

    console.print(f"Specifier: {specifier}", markup=False)
    console.print(f"Compiled:  {compiled.kind.value} {compiled}", markup=False)
    parsed = engine.parse_version(version)
    if parsed is None:
        console.print(f"Version {version} is not a semantic version", markup=False, style="yellow")

    if satisfied:
        console.print(f"{version} satisfies {specifier}", markup=False, style="green")
        raise typer.Exit(EXIT_ALL_FOUND)
    console.print(f"{version} does not satisfy {specifier}", markup=False, style="red")
    raise typer.Exit(EXIT_MISSING)


@app.command()
def info() -> None:
    """Show DepSleuth information."""
    console = Console()
    console.print(Panel.fit(
        "[bold blue]DepSleuth[/bold blue]\n"
        "Finds which versions of npm packages are installed\n"
        "in node_modules or pinned in lockfiles",
        title="Information"
    ))

    console.print(f"\n[bold]Supported Sources:[/bold] {', '.join(SOURCE_ORIGINS)}")
    parsers = PackageParser.get_supported_parser_types()
    console.print(f"[bold]Supported Parsers:[/bold] {', '.join(parsers)}")


def main() -> None:
    """Main entry point for DepSleuth CLI."""
    app()


if __name__ == "__main__":
    main()
