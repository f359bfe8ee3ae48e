"""Server CLI commands: run the API and manage stored platform tokens."""

from __future__ import annotations

from datetime import timedelta
from typing import Optional

import typer
import uvicorn
from rich.table import Table

from ...auth import OAuthToken, TokenStore
from ...constants import Platform
from ...models import utcnow
from ...storage import JsonFileRecordStore
from ..core.console import console, print_info, print_success, print_warning
from ..core.settings import cli_settings


def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
) -> None:
    """Run the transfer and publish API server."""
    from ...api import create_app

    settings = cli_settings()
    app = create_app(settings)
    bind_host = host or settings.host
    bind_port = port or settings.port
    print_info(f"Serving on http://{bind_host}:{bind_port}")
    uvicorn.run(app, host=bind_host, port=bind_port, log_level="warning")


def token(
    platform: Platform = typer.Argument(..., help="Platform the token belongs to"),
    access_token: Optional[str] = typer.Option(None, "--access-token", help="Access token to store"),
    refresh_token: str = typer.Option("", "--refresh-token", help="Refresh token (X: token secret)"),
    expires_in: Optional[int] = typer.Option(None, "--expires-in", help="Seconds until expiry"),
    account_id: Optional[str] = typer.Option(None, "--account-id", help="Platform account id"),
    account_name: str = typer.Option("", "--account-name", help="Display name"),
) -> None:
    """Show or store the OAuth token used for a platform.

    Without --access-token the stored token is shown (never its secrets).
    """
    settings = cli_settings()
    store = TokenStore(JsonFileRecordStore(settings.records_path))

    if access_token:
        expires_at = utcnow() + timedelta(seconds=expires_in) if expires_in else None
        store.save(OAuthToken(
            platform=platform,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            account_id=account_id,
            account_name=account_name,
        ))
        print_success(f"Saved {platform.value} token")
        return

    stored = store.get(platform)
    if stored is None:
        print_warning(f"No {platform.value} token stored")
        raise typer.Exit(1)

    table = Table(title=f"{platform.value} token")
    table.add_column("Field", style="dim")
    table.add_column("Value", style="cyan")
    table.add_row("Account", stored.account_name or "-")
    table.add_row("Account id", stored.account_id or "-")
    table.add_row("Expires", stored.expires_at.isoformat() if stored.expires_at else "never")
    table.add_row("Refreshable", "yes" if stored.refresh_token else "no")
    table.add_row("Updated", stored.updated_at.isoformat())
    console.print(table)
