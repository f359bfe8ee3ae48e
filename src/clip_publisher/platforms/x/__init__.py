"""X (Twitter) chunked media upload driver."""

from .client import TWEET_URL, UPLOAD_URL, ProcessingInfo, XClient
from .driver import XDriver
from .oauth1 import oauth1_header, percent_encode

__all__ = [
    "XClient",
    "XDriver",
    "ProcessingInfo",
    "UPLOAD_URL",
    "TWEET_URL",
    "oauth1_header",
    "percent_encode",
]
