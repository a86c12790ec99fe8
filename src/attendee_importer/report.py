"""Console summaries and the failure export."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .models import AttendeeRecord, ImportResult


def render_attendees(attendees: Sequence[AttendeeRecord], console: Optional[Console] = None) -> None:
    """Print the parsed attendees so the data can be checked before importing."""
    console = console or Console()
    table = Table(title=f"Attendees to import ({len(attendees)})", box=box.SIMPLE_HEAVY)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Row", justify="right", style="dim")
    table.add_column("First name")
    table.add_column("Last name")
    table.add_column("Email")
    table.add_column("Checked in", justify="center")
    for number, attendee in enumerate(attendees, start=1):
        table.add_row(
            str(number),
            str(attendee.row_index or ""),
            escape(attendee.first_name),
            escape(attendee.last_name),
            escape(attendee.email),
            "YES" if attendee.checked_in else "NO",
        )
    console.print(table)


def render_summary(result: ImportResult, console: Optional[Console] = None) -> None:
    console = console or Console()
    stats = result.stats

    summary = Table(title="Import results", box=box.ROUNDED, show_header=False)
    summary.add_column("Metric", style="bold")
    summary.add_column("Count", justify="right")
    summary.add_row("Total", str(stats.total))
    summary.add_row("[green]Success[/green]", str(stats.success))
    summary.add_row("[red]Failed[/red]", str(stats.failed))
    summary.add_row("Retried", str(stats.retried))
    console.print(summary)

    checked_in = [a for a in result.successes if a.checked_in]
    if checked_in:
        console.print(f"[yellow]{len(checked_in)} imported attendees need check-in set manually.[/yellow]")

    if not result.errors:
        return

    errors = Table(title="Errors", box=box.SIMPLE, header_style="bold red")
    errors.add_column("#", justify="right", style="dim")
    errors.add_column("Row", justify="right", style="dim")
    errors.add_column("Attendee")
    errors.add_column("Error", overflow="fold")
    for number, failure in enumerate(result.errors, start=1):
        errors.add_row(
            str(number),
            str(failure.attendee.row_index or ""),
            escape(failure.attendee.display_name),
            escape(failure.error),
        )
    console.print(errors)


def write_failures(result: ImportResult, path: Path | str) -> Optional[Path]:
    """Write the error list as JSON; returns the path, or None when nothing failed."""
    if not result.errors:
        return None
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [failure.to_dict() for failure in result.errors]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


__all__ = ["render_attendees", "render_summary", "write_failures"]
