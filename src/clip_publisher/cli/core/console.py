"""Shared Rich console and message helpers for the CLI."""

import sys

from rich.console import Console

from ...constants import STATUS_COLORS

# Windows cp1252 consoles lack box drawing characters
console = Console(safe_box=sys.platform == "win32")


def print_error(message: str, details: dict | None = None) -> None:
    """Print an error line, then one indented line per detail."""
    console.print(f"[red]Error: {message}[/red]")
    for key, value in (details or {}).items():
        console.print(f"  [dim]{key}:[/dim] [yellow]{value}[/yellow]")


def print_warning(message: str) -> None:
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_success(message: str) -> None:
    console.print(f"[green]{message}[/green]")


def print_info(message: str) -> None:
    console.print(f"[cyan]{message}[/cyan]")


def styled_status(status: str) -> str:
    """Upload or transfer status wrapped in its color markup."""
    color = STATUS_COLORS.get(status, "white")
    return f"[{color}]{status}[/{color}]"
