"""Report rendering for update impacts: rich console, Markdown and JSON."""

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from rich.console import Console
from rich.rule import Rule
from rich.text import Text

from dependsight.core.models import UpdateImpact
from dependsight.utils.logging import get_logger

logger = get_logger(__name__)

NO_UPDATES_MESSAGE = "No relevant dependency updates found."


class ReportFormat(str, Enum):
    """Supported report formats."""

    CONSOLE = "console"
    MARKDOWN = "markdown"
    JSON = "json"


@dataclass
class ReportOptions:
    """Options controlling report generation."""

    format: ReportFormat = ReportFormat.CONSOLE
    min_relevance: int = 0
    output_file: Path | None = None


def filter_impacts(impacts: list[UpdateImpact], min_relevance: int) -> list[UpdateImpact]:
    """Keep impacts at or above the relevance threshold."""
    return [impact for impact in impacts if impact.relevance_score >= min_relevance]


def relevance_color(score: int) -> str:
    """Get color for a relevance score."""
    if score > 70:
        return "red"
    if score > 40:
        return "yellow"
    return "blue"


def render_console(impacts: list[UpdateImpact], console: Console) -> None:
    """Print a human-readable report.

    Args:
        impacts: Impacts to show.
        console: Rich console to print to.
    """
    console.print(Text("\nDependency Update Report", style="bold"))
    console.print(Rule(style="dim"))

    for index, impact in enumerate(impacts, start=1):
        dependency = impact.dependency
        files = impact.affected_files

        console.print(Text(f"\n{index}. {dependency.name}", style="bold"))
        console.print(
            Text.assemble(
                (dependency.version, "yellow"), " → ", (impact.latest_version, "green")
            )
        )
        console.print(
            Text.assemble(
                "Relevance: ",
                (f"{impact.relevance_score}%", relevance_color(impact.relevance_score)),
            )
        )

        console.print(f"\nAffects {len(files)} files", markup=False)
        if len(files) <= 3:
            shown_files = files
        else:
            shown_files = files[:2]
        for file in shown_files:
            console.print(f"  - {file}", markup=False, highlight=False)
        if len(files) > 3:
            console.print(f"  - ...and {len(files) - 2} more files", markup=False)

        console.print("\nKey changes:")
        changes = [
            f"[{entry.version}] {change}"
            for entry in impact.changelog_entries
            for change in entry.changes
        ]
        for change in changes[:5]:
            console.print(f"  - {change}", markup=False, highlight=False)
        if len(changes) > 5:
            console.print(f"  - ...and {len(changes) - 5} more changes", markup=False)

        console.print(Rule(style="dim"))


def render_markdown(impacts: list[UpdateImpact]) -> str:
    """Render impacts as a Markdown document."""
    lines = ["# DependSight Update Report", ""]

    for index, impact in enumerate(impacts, start=1):
        dependency = impact.dependency
        files = impact.affected_files

        lines.append(
            f"## {index}. {dependency.name} ({dependency.version} → {impact.latest_version})"
        )
        lines.append("")
        lines.append(f"**Relevance Score:** {impact.relevance_score}%")
        lines.append("")

        lines.append(f"### Affected Files ({len(files)})")
        lines.append("")
        for file in files[:5]:
            lines.append(f"- `{file}`")
        if len(files) > 5:
            lines.append(f"- ...and {len(files) - 5} more files")
        lines.append("")

        lines.append("### Changelog")
        lines.append("")
        for entry in impact.changelog_entries:
            date = f" ({entry.date})" if entry.date else ""
            lines.append(f"#### Version {entry.version}{date}")
            lines.append("")
            for change in entry.changes:
                lines.append(f"- {change}")
            lines.append("")

        lines.append("---")
        lines.append("")

    return "\n".join(lines)


def render_json(impacts: list[UpdateImpact]) -> str:
    """Render impacts as a JSON array."""
    return json.dumps([impact.model_dump(mode="json") for impact in impacts], indent=2)


def generate_report(
    impacts: list[UpdateImpact],
    options: ReportOptions,
    console: Console,
) -> str | None:
    """Filter impacts and render them in the requested format.

    Markdown and JSON are written to ``options.output_file`` when set and
    printed otherwise. Console output is always printed.

    Args:
        impacts: Impacts from the impact analyzer.
        options: Report options.
        console: Console for printed output.

    Returns:
        The rendered document for Markdown and JSON, None for console output
        or when nothing passes the threshold.
    """
    filtered = filter_impacts(impacts, options.min_relevance)
    logger.debug(
        "%d of %d impacts meet relevance %d",
        len(filtered),
        len(impacts),
        options.min_relevance,
    )

    if not filtered:
        console.print(f"\n[yellow]{NO_UPDATES_MESSAGE}[/yellow]")
        return None

    if options.format == ReportFormat.CONSOLE:
        render_console(filtered, console)
        return None

    if options.format == ReportFormat.MARKDOWN:
        report = render_markdown(filtered)
    else:
        report = render_json(filtered)

    if options.output_file:
        options.output_file.parent.mkdir(parents=True, exist_ok=True)
        options.output_file.write_text(report, encoding="utf-8")
    else:
        console.print(report, markup=False, highlight=False, emoji=False, soft_wrap=True)

    return report
