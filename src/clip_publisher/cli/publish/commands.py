"""Publish CLI commands - thin wrappers orchestrating display and service."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import typer
from pydantic import ValidationError

from ...constants import Platform, PublishStatus
from ...errors import PipelineError
from ...publish import PublishInitRequest, PublishStatusView
from ..core.console import console, print_error, print_success
from ..core.settings import cli_settings
from .display import format_status_line, show_events, show_status
from .service import PublishCLIService


def _fail(error: PipelineError) -> None:
    print_error(error.message, {"status": error.http_status})
    raise typer.Exit(1)


def _watch(service: PublishCLIService, platform: str, upload_id: str, auto_retry: bool) -> PublishStatusView:
    async def on_update(view: PublishStatusView) -> None:
        console.print(format_status_line(view))

    view = asyncio.run(service.watch(platform, upload_id, on_update, auto_retry=auto_retry))
    show_status(console, view)
    return view


def publish(
    platform: Platform = typer.Argument(..., help="Target platform"),
    post: str = typer.Option(..., "--post", help="Post id"),
    clip: str = typer.Option(..., "--clip", help="Clip id"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Rendered format (e.g. 9:16)"),
    title: Optional[str] = typer.Option(None, "--title", help="YouTube title"),
    description: Optional[str] = typer.Option(None, "--description", help="YouTube description"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", help="YouTube tag (repeatable)"),
    privacy: Optional[str] = typer.Option(None, "--privacy", help="public, private or unlisted"),
    short: bool = typer.Option(False, "--short", help="Publish as a YouTube Short"),
    text: Optional[str] = typer.Option(None, "--text", help="X post text"),
    caption: Optional[str] = typer.Option(None, "--caption", help="Instagram caption"),
    no_feed: bool = typer.Option(False, "--no-feed", help="Instagram: do not share reel to feed"),
    watch: bool = typer.Option(True, "--watch/--no-watch", help="Poll until done"),
    auto_retry: bool = typer.Option(False, "--auto-retry", help="Retry failed uploads while polling"),
) -> None:
    """Publish a rendered clip to YouTube, X or Instagram."""
    service = PublishCLIService(cli_settings())
    try:
        request = PublishInitRequest(
            post_id=post,
            clip_id=clip,
            format=format,
            title=title,
            description=description,
            tags=tag or None,
            privacy_status=privacy,
            is_short=short,
            text=text,
            caption=caption,
            share_to_feed=False if no_feed else None,
        )
    except ValidationError as e:
        print_error("Invalid publish options", {err["loc"][0]: err["msg"] for err in e.errors()})
        raise typer.Exit(1)

    try:
        result = asyncio.run(service.init(platform.value, request))
        console.print(f"Upload [cyan]{result.upload_id}[/cyan] started ({result.status.value})")
        if not watch:
            return
        view = _watch(service, platform.value, result.upload_id, auto_retry)
    except PipelineError as e:
        _fail(e)
        return

    if view.status == PublishStatus.FAILED:
        raise typer.Exit(1)
    print_success("Published")


def status(
    platform: Platform = typer.Argument(..., help="Target platform"),
    upload_id: str = typer.Argument(..., help="Upload id"),
    watch: bool = typer.Option(False, "--watch", "-w", help="Poll until completed or failed"),
    auto_retry: bool = typer.Option(False, "--auto-retry", help="Retry failed uploads while polling"),
) -> None:
    """Show the status of a publish upload."""
    service = PublishCLIService(cli_settings())
    try:
        if watch:
            _watch(service, platform.value, upload_id, auto_retry)
        else:
            show_status(console, asyncio.run(service.status(platform.value, upload_id)))
    except PipelineError as e:
        _fail(e)


def retry(
    platform: Platform = typer.Argument(..., help="Target platform"),
    upload_id: str = typer.Argument(..., help="Upload id"),
) -> None:
    """Retry a failed publish upload."""
    service = PublishCLIService(cli_settings())
    try:
        asyncio.run(service.retry(platform.value, upload_id))
    except PipelineError as e:
        _fail(e)
    print_success(f"Retry started for {upload_id}")


def cancel(
    platform: Platform = typer.Argument(..., help="Target platform"),
    upload_id: str = typer.Argument(..., help="Upload id"),
) -> None:
    """Cancel a publish upload."""
    service = PublishCLIService(cli_settings())
    try:
        asyncio.run(service.cancel(platform.value, upload_id))
    except PipelineError as e:
        _fail(e)
    print_success(f"Cancelled {upload_id}")


def events(
    platform: Platform = typer.Argument(..., help="Target platform"),
    upload_id: str = typer.Argument(..., help="Upload id"),
) -> None:
    """List the lifecycle events of a publish upload."""
    service = PublishCLIService(cli_settings())
    try:
        show_events(console, asyncio.run(service.events(platform.value, upload_id)))
    except PipelineError as e:
        _fail(e)
