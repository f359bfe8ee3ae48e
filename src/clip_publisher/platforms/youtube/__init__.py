"""YouTube resumable upload driver."""

from .client import ProcessingStatus, YouTubeClient, parse_range_header
from .driver import YouTubeDriver

__all__ = ["YouTubeClient", "YouTubeDriver", "ProcessingStatus", "parse_range_header"]
