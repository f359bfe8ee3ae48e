"""Typer app configuration and logging setup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv

from .core.settings import cli_settings, use_config

# .env values feed PipelineSettings and the platform credentials
load_dotenv()

app = typer.Typer(
    name="clip-publisher",
    help="Resumable media transfer and multi-platform clip publishing",
    add_completion=False,
)


@app.callback()
def root(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False, help="YAML settings overlay"
    ),
) -> None:
    use_config(config)
    setup_logging(cli_settings().log_dir)


def register_commands() -> None:
    """Register all commands from feature modules."""
    from .server.commands import serve, token

    app.command(name="serve")(serve)
    app.command(name="token")(token)

    from .transfer.commands import upload

    app.command(name="upload")(upload)

    from .publish.commands import cancel, events, publish, retry, status

    app.command(name="publish")(publish)
    app.command(name="status")(status)
    app.command(name="retry")(retry)
    app.command(name="cancel")(cancel)
    app.command(name="events")(events)


_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "uvicorn.access")
_FILE_LOGGERS = ("platform_api", "publish", "transfer")


def setup_logging(log_dir: Path) -> None:
    """Keep library chatter off the terminal and send our loggers to files.

    Each name in ``_FILE_LOGGERS`` gets ``<log_dir>/<name>.log``.
    """
    log_dir.mkdir(parents=True, exist_ok=True)

    logging.getLogger().handlers = []
    logging.getLogger().setLevel(logging.CRITICAL)

    for name in _QUIET_LOGGERS:
        quiet = logging.getLogger(name)
        quiet.setLevel(logging.WARNING)
        quiet.propagate = False

    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    for name in _FILE_LOGGERS:
        handler = logging.FileHandler(log_dir / f"{name}.log", encoding="utf-8")
        handler.setFormatter(formatter)
        target = logging.getLogger(name)
        target.handlers = [handler]
        target.setLevel(logging.DEBUG)
        target.propagate = False


register_commands()


def main() -> None:
    """CLI entry point."""
    app()
