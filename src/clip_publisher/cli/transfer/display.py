"""Display functions for transfer commands - pure functions for Rich output."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ...constants import FileUploadStatus
from ...transfer import FileUpload, UploadProgress
from ...transfer.models import CompleteResult
from ..core.console import styled_status


def format_bytes(size: float) -> str:
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def format_eta(seconds: float) -> str:
    if seconds <= 0:
        return "-"
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m {secs}s"


def build_batch_table(files: list[FileUpload]) -> Table:
    """Table of per-file state, re-rendered on every scheduler callback."""
    table = Table(title="Uploads")
    table.add_column("#", style="dim")
    table.add_column("File", style="cyan")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    table.add_column("Detail", style="dim")

    for i, upload in enumerate(files, 1):
        detail = upload.error or upload.source_id or ""
        table.add_row(
            str(i),
            upload.name,
            styled_status(upload.status.value),
            f"{upload.progress}%",
            detail[:50],
        )
    return table


def describe_progress(progress: UploadProgress) -> str:
    """One-line description used as the progress bar label."""
    line = f"{progress.status.value} {progress.completed_parts}/{progress.total_parts} parts"
    if progress.speed > 0:
        line += f" | {format_bytes(progress.speed)}/s | ETA {format_eta(progress.eta)}"
    return line


def show_upload_result(console: Console, filename: str, result: CompleteResult) -> None:
    console.print(Panel(
        f"[bold]{filename}[/bold]\n"
        f"URL: [cyan]{result.url}[/cyan]\n"
        f"Size: {format_bytes(result.size)}",
        title="Upload complete",
        border_style="green",
    ))


def show_batch_summary(console: Console, files: list[FileUpload]) -> None:
    completed = sum(1 for f in files if f.status == FileUploadStatus.COMPLETE)
    duplicates = sum(1 for f in files if f.status == FileUploadStatus.DUPLICATE)
    failed = len(files) - completed - duplicates
    console.print(f"\n[bold]Total:[/] {len(files)} files")
    console.print(f"  Completed: [green]{completed}[/green]")
    if duplicates:
        console.print(f"  Already uploaded: [dim]{duplicates}[/dim]")
    if failed:
        console.print(f"  Failed: [red]{failed}[/red]")
        for upload in files:
            if upload.error:
                console.print(f"    [dim]{upload.name}:[/dim] [red]{upload.error}[/red]")
