"""OAuth tokens, their store and the refresh guard."""

from .guard import TokenRefreshGuard
from .models import OAuthToken
from .refreshers import (
    GoogleTokenRefresher,
    InstagramTokenRefresher,
    TokenRefresher,
    TokenRefreshError,
    XTokenRefresher,
)
from .store import TokenStore

__all__ = [
    "OAuthToken",
    "TokenStore",
    "TokenRefreshGuard",
    "TokenRefresher",
    "TokenRefreshError",
    "GoogleTokenRefresher",
    "InstagramTokenRefresher",
    "XTokenRefresher",
]
