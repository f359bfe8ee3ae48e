"""Instagram Graph API reels/video driver."""

from .client import InstagramAPIError, InstagramClient, lookup_error
from .driver import InstagramDriver

__all__ = ["InstagramClient", "InstagramDriver", "InstagramAPIError", "lookup_error"]
