"""Command-line interface for dependsight."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich.console import Console
from rich.table import Table

from dependsight import __version__
from dependsight.analysis.impact_analyzer import ImpactAnalyzer
from dependsight.analysis.usage_analyzer import UsageAnalyzer
from dependsight.config import (
    CONFIG_FILENAMES,
    DependsightConfig,
    find_config_file,
    generate_example_config,
    load_config,
)
from dependsight.core.models import AnalysisSnapshot
from dependsight.core.snapshot import DEFAULT_SNAPSHOT_FILE, load_snapshot, save_snapshot
from dependsight.errors import DependsightError
from dependsight.reporting.renderer import ReportFormat, ReportOptions, generate_report
from dependsight.scanners.files import FileEnumerator
from dependsight.scanners.manifest import ManifestReader
from dependsight.utils.logging import configure_logging, get_logger

app = typer.Typer(
    name="dependsight",
    help="Find out which dependency upgrades actually matter to your code.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    name="config",
    help="Configuration management.",
    no_args_is_help=True,
)
app.add_typer(config_app, name="config")

console = Console()
stderr_console = Console(stderr=True)
logger = get_logger(__name__)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"dependsight version {__version__}")
        raise typer.Exit()


def _handle_cli_error(error: Exception) -> None:
    """Display a user-friendly error message and exit.

    Args:
        error: The exception to handle.

    Raises:
        typer.Exit: Always exits with code 1.
    """
    if isinstance(error, DependsightError):
        console.print(f"[bold red]Error:[/bold red] {error.message}")
        if error.hint:
            console.print(f"[yellow]Hint:[/yellow] {error.hint}")
    else:
        console.print(f"[red]Error: {error}[/red]")
        logger.exception("Command failed")

    raise typer.Exit(code=1)


def _get_config(ctx: typer.Context) -> DependsightConfig:
    if isinstance(ctx.obj, DependsightConfig):
        return ctx.obj
    return DependsightConfig()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file.",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """dependsight - know which dependency upgrades matter."""
    try:
        settings = load_config(config)
    except DependsightError as e:
        _handle_cli_error(e)

    log_level = "DEBUG" if verbose else "WARNING" if quiet else settings.log_level
    configure_logging(level=log_level)
    ctx.obj = settings

    if config:
        logger.debug("Using configuration file: %s", config)


@app.command()
def analyze(
    ctx: typer.Context,
    path: Annotated[
        Path,
        typer.Option(
            "--path",
            "-p",
            help="Path to project root.",
            file_okay=False,
            dir_okay=True,
        ),
    ] = Path(),
    output: Annotated[
        Path,
        typer.Option(
            "--output",
            "-o",
            help="Output file for analysis results.",
        ),
    ] = Path(DEFAULT_SNAPSHOT_FILE),
) -> None:
    """Scan the project and record which files use which dependencies."""
    settings = _get_config(ctx)
    project_root = path.resolve()

    console.print("\n[bold]DependSight Analysis[/bold]")
    console.print(f"[dim]Project path: {project_root}[/dim]")

    try:
        reader = ManifestReader(exclude_dev=settings.scanner.exclude_dev)
        dependencies = reader.read(project_root)
        console.print(f"Found {len(dependencies)} dependencies")

        analyzer = UsageAnalyzer(
            FileEnumerator(
                extensions=settings.scanner.extensions,
                exclude_patterns=settings.scanner.exclude_patterns,
            )
        )
        with console.status("Analyzing code usage..."):
            report = analyzer.analyze(project_root, dependencies)

        console.print(
            f"Analyzed {report.files_analyzed} files, "
            f"found {len(report.usages)} imports of declared dependencies"
        )
        if report.warnings:
            console.print(f"[yellow]{len(report.warnings)} files could not be parsed[/yellow]")

        snapshot = AnalysisSnapshot(
            dependencies=dependencies,
            usages=report.usages,
            project_root=str(project_root),
        )
        save_snapshot(snapshot, output.resolve())

    except DependsightError as e:
        _handle_cli_error(e)
    except OSError as e:
        _handle_cli_error(e)

    console.print(f"\n[green]Analysis complete![/green] Saved to {output}")
    console.print("Run [cyan]dependsight report[/cyan] to generate update recommendations")


@app.command()
def report(
    ctx: typer.Context,
    input_file: Annotated[
        Path,
        typer.Option(
            "--input",
            "-i",
            help="Analysis file produced by 'dependsight analyze'.",
        ),
    ] = Path(DEFAULT_SNAPSHOT_FILE),
    format: Annotated[
        ReportFormat,
        typer.Option(
            "--format",
            "-f",
            help="Report format (console, markdown, json).",
        ),
    ] = ReportFormat.CONSOLE,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write the Markdown or JSON report to a file.",
        ),
    ] = None,
    min_relevance: Annotated[
        int | None,
        typer.Option(
            "--min-relevance",
            "-m",
            help="Minimum relevance score (0-100).",
            min=0,
            max=100,
        ),
    ] = None,
    path: Annotated[
        Path | None,
        typer.Option(
            "--path",
            "-p",
            help="Project root holding node_modules (defaults to the analyzed root).",
            file_okay=False,
            dir_okay=True,
        ),
    ] = None,
) -> None:
    """Generate update recommendations from a saved analysis."""
    settings = _get_config(ctx)
    # Keep stdout clean when the report itself goes to stdout
    status_console = stderr_console if format == ReportFormat.JSON and output is None else console

    try:
        snapshot = load_snapshot(input_file.resolve())
    except DependsightError as e:
        _handle_cli_error(e)

    status_console.print("\n[bold]DependSight Report[/bold]")
    status_console.print(f"[dim]Using analysis from: {input_file}[/dim]")

    project_root = path.resolve() if path else Path(snapshot.project_root)
    analyzer = ImpactAnalyzer(config=settings, project_root=project_root)

    try:
        with status_console.status("Fetching changelogs..."):
            impacts = asyncio.run(analyzer.analyze(snapshot.dependencies, snapshot.usages))
        status_console.print(f"Fetched changelogs for {len(impacts)} dependencies")

        options = ReportOptions(
            format=format,
            min_relevance=(
                settings.impact.min_relevance if min_relevance is None else min_relevance
            ),
            output_file=output,
        )
        generate_report(impacts, options, console)

    except DependsightError as e:
        _handle_cli_error(e)
    except OSError as e:
        _handle_cli_error(e)

    if output and format != ReportFormat.CONSOLE:
        status_console.print(f"Report saved to: [cyan]{output}[/cyan]")


@config_app.command("init")
def config_init(
    path: Annotated[
        Path,
        typer.Argument(
            help="Directory to create configuration file in.",
        ),
    ] = Path(),
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite existing configuration file.",
        ),
    ] = False,
) -> None:
    """Initialize a new configuration file."""
    config_path = path / CONFIG_FILENAMES[0]

    if config_path.exists() and not force:
        console.print(f"[yellow]Configuration file already exists: {config_path}[/yellow]")
        console.print("Use --force to overwrite.")
        raise typer.Exit(code=1)

    path.mkdir(parents=True, exist_ok=True)
    config_path.write_text(generate_example_config(), encoding="utf-8")
    console.print(f"[green]Created configuration file: {config_path}[/green]")


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the active configuration (file, environment and defaults merged)."""
    settings = _get_config(ctx)
    config_path = find_config_file()
    if config_path:
        console.print(f"Configuration file: {config_path}\n")
    else:
        console.print("[dim]No configuration file found, showing defaults.[/dim]\n")

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    def flatten_dict(d: dict, prefix: str = "") -> list:
        items = []
        for key, value in d.items():
            full_key = f"{prefix}.{key}" if prefix else key
            if isinstance(value, dict):
                items.extend(flatten_dict(value, full_key))
            elif isinstance(value, list):
                items.append((full_key, ", ".join(str(v) for v in value) or "(empty)"))
            else:
                items.append((full_key, str(value)))
        return items

    data = settings.model_dump()
    if data["github"].get("token"):
        data["github"]["token"] = "********"

    for key, value in flatten_dict(data):
        table.add_row(key, value)

    console.print(table)


@config_app.command("validate")
def config_validate(
    config: Annotated[
        Path,
        typer.Argument(
            help="Path to configuration file to validate.",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
) -> None:
    """Validate a configuration file."""
    console.print(f"Validating configuration file: {config}...")

    try:
        data = yaml.safe_load(config.read_text(encoding="utf-8")) or {}
        DependsightConfig(**data)
    except (yaml.YAMLError, ValueError, TypeError) as e:
        console.print(f"[red]Validation failed:[/red] {e}")
        raise typer.Exit(code=1)

    console.print("[green]Configuration is valid.[/green]")


if __name__ == "__main__":
    app()
