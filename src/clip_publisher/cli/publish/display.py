"""Display functions for publish commands - pure functions for Rich output."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ...constants import PublishStatus
from ...publish import PublishStatusView, UploadEventView
from ..core.console import styled_status


def show_status(console: Console, view: PublishStatusView) -> None:
    """Panel with the current state of one publish upload."""
    lines = [
        f"Status: {styled_status(view.status.value)}",
        f"Upload: {view.upload_progress}%",
        f"Processing: {view.processing_progress}%",
    ]
    for name, value in view.identifiers.items():
        lines.append(f"{name}: [dim]{value}[/dim]")
    if view.retry_count:
        lines.append(f"Retries: [yellow]{view.retry_count}[/yellow]")
    if view.error_message:
        lines.append(f"Error: [red]{view.error_message}[/red]")
    if view.platform_url:
        lines.append(f"URL: [cyan]{view.platform_url}[/cyan]")

    border = {
        PublishStatus.COMPLETED: "green",
        PublishStatus.FAILED: "red",
    }.get(view.status, "cyan")
    console.print(Panel(
        "\n".join(lines),
        title=f"{view.platform.value} upload {view.id}",
        border_style=border,
    ))


def format_status_line(view: PublishStatusView) -> str:
    """Single line for watch mode."""
    return (
        f"{styled_status(view.status.value)} "
        f"upload {view.upload_progress}% | processing {view.processing_progress}%"
    )


def show_events(console: Console, events: list[UploadEventView]) -> None:
    if not events:
        console.print("[yellow]No events recorded.[/yellow]")
        return

    table = Table(title="Upload events")
    table.add_column("Time", style="dim")
    table.add_column("Event", style="cyan")
    table.add_column("Detail", style="white")

    for event in events:
        detail = ", ".join(f"{k}={v}" for k, v in (event.detail or {}).items())
        table.add_row(
            event.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            event.event,
            detail[:80],
        )
    console.print(table)
