"""Transfer CLI commands - thin wrappers orchestrating display and service."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List

import typer
from rich.live import Live
from rich.progress import BarColumn, Progress, TextColumn

from ...errors import PipelineError
from ...transfer import FileUpload, UploadProgress
from ..core.console import console, print_error, print_warning
from ..core.settings import cli_settings
from .display import build_batch_table, describe_progress, show_batch_summary, show_upload_result
from .service import TransferService


def upload(
    files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Video files to upload"),
    podcast: str = typer.Option(..., "--podcast", "-p", help="Podcast id"),
    episode: str = typer.Option(..., "--episode", "-e", help="Episode id"),
    no_resume: bool = typer.Option(False, "--no-resume", help="Always start a new session"),
) -> None:
    """Upload episode video files in resumable chunks.

    A single file resumes an interrupted session when one matches.
    Several files are uploaded through the bounded scheduler and
    registered as video sources.
    """
    service = TransferService(cli_settings(), podcast, episode)

    if len(files) == 1:
        _upload_single(service, files[0], resume=not no_resume)
    else:
        _upload_batch(service, files)


def _upload_single(service: TransferService, path: Path, resume: bool) -> None:
    progress = Progress(
        TextColumn("[cyan]{task.fields[filename]}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TextColumn("[dim]{task.description}"),
        console=console,
    )
    task_id = progress.add_task("checking", total=100, filename=path.name)

    async def on_progress(update: UploadProgress) -> None:
        progress.update(task_id, completed=update.percentage, description=describe_progress(update))

    try:
        with progress:
            result = asyncio.run(service.upload_single(path, on_progress, resume=resume))
    except PipelineError as e:
        print_error(e.message, {"file": path.name})
        raise typer.Exit(1)

    if result is None:
        print_warning("Upload cancelled")
        raise typer.Exit(1)
    show_upload_result(console, path.name, result)


def _upload_batch(service: TransferService, paths: list[Path]) -> None:
    tracked: list[FileUpload] = []

    with Live(build_batch_table(tracked), console=console, refresh_per_second=4) as live:

        async def on_file(upload: FileUpload) -> None:
            if upload not in tracked:
                tracked.append(upload)
            live.update(build_batch_table(tracked))

        files = asyncio.run(service.upload_batch(paths, on_file))
        live.update(build_batch_table(files))

    show_batch_summary(console, files)
    if any(f.error for f in files):
        raise typer.Exit(1)
