"""Rendering of update impact reports."""

from dependsight.reporting.renderer import (
    ReportFormat,
    ReportOptions,
    filter_impacts,
    generate_report,
    render_console,
    render_json,
    render_markdown,
)

__all__ = [
    "ReportFormat",
    "ReportOptions",
    "filter_impacts",
    "generate_report",
    "render_console",
    "render_json",
    "render_markdown",
]
