"""Server and token commands."""

from .commands import serve, token

__all__ = ["serve", "token"]
