# ABOUTME: Rich tables for the CLI: harvest summary, failed entries and logging status
# ABOUTME: Shared styling so every command renders output the same way

from typing import Any

from rich.box import ROUNDED, SIMPLE
from rich.console import Console
from rich.table import Table

from wiki_harvest.core.models import BatchResult


def _styled_table(title: str, title_style: str, box=ROUNDED, expand: bool = False, **kwargs) -> Table:
    return Table(
        title=f"[{title_style}]{title}[/{title_style}]",
        title_justify="left",
        box=box,
        border_style="cyan",
        header_style="bold magenta",
        expand=expand,
        **kwargs,
    )


def create_key_value_table(title: str, rows: dict[str, str], title_style: str = "bold cyan", box=ROUNDED) -> Table:
    """Two-column table of labelled values, in insertion order."""
    table = _styled_table(title, title_style, box=box)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    for label, value in rows.items():
        table.add_row(label, str(value))
    return table


def create_batch_summary_table(result: BatchResult) -> Table:
    stats = result.statistics
    return create_key_value_table(
        "📊 Harvest Summary",
        {
            "📦 Entries": str(stats.total),
            "✅ Successful": str(stats.successful),
            "❌ Failed": str(stats.failed),
            "🔁 Retries": str(stats.retries),
            "🩹 Degraded": str(stats.degraded),
            "🎯 Success Rate": f"{stats.success_rate:.1%}",
            "⏱️ Time": f"{stats.processing_time_ms / 1000:.2f}s",
        },
        title_style="bold green",
        box=SIMPLE,
    )


def create_failed_entries_table(result: BatchResult) -> Table:
    """One zebra-striped row per failed entry with its stage, attempts and error."""
    table = _styled_table("🚨 Failed Entries", "bold red", expand=True, row_styles=["", "dim"])
    for column, style in [("Entry", "bold red"), ("Stage", "yellow"), ("Attempts", "cyan"), ("Error", "white")]:
        table.add_column(column, style=style)
    for failure in result.failed:
        table.add_row(failure.entry_id or "(no id)", failure.stage.value, str(failure.attempts), failure.error)
    return table


def create_logging_status_table(status: dict[str, Any]) -> Table:
    """Render the dictionary returned by get_logging_status."""
    rows = {
        "🔧 Mode": status["mode"].title(),
        "📁 Log Directory": status["log_directory"] or "N/A (production mode)",
        "🔇 Quieted Libraries": ", ".join(status["third_party_suppressed"]),
    }
    labels = {"main": "📝 Main Log", "json": "📊 JSON Log", "errors": "🚨 Error Log"}
    for key, label in labels.items():
        if status["log_files"].get(key):
            rows[label] = status["log_files"][key]

    return create_key_value_table("🔍 Logging Configuration", rows, title_style="bold green")


def print_rich_table(console: Console, table: Table) -> None:
    console.print()
    console.print(table)
    console.print()
