"""HTTP surface of the transfer and publish server."""

from .app import build_services, create_app
from .dependencies import AppServices

__all__ = ["AppServices", "build_services", "create_app"]
