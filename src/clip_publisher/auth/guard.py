"""Pre-expiry token refresh in front of every platform call."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from ..constants import TOKEN_REFRESH_THRESHOLD_SECONDS, Platform
from ..errors import NotConnected
from ..models import utcnow
from .models import OAuthToken
from .refreshers import TokenRefresher
from .store import TokenStore

_logger = logging.getLogger("auth")

_PLATFORM_NAMES = {
    Platform.YOUTUBE: "YouTube",
    Platform.X: "X",
    Platform.INSTAGRAM: "Instagram",
}


class TokenRefreshGuard:
    """Hands out tokens that are valid for at least the refresh threshold.

    Usage:
        guard = TokenRefreshGuard(store, {Platform.YOUTUBE: GoogleTokenRefresher(...)})
        token = await guard.get_valid_token(Platform.YOUTUBE)
        # after a 401 from the platform:
        token = await guard.get_valid_token(Platform.YOUTUBE, force_refresh=True)
    """

    def __init__(
        self,
        store: TokenStore,
        refreshers: dict[Platform, TokenRefresher],
        threshold_seconds: float = TOKEN_REFRESH_THRESHOLD_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.refreshers = refreshers
        self.threshold_seconds = threshold_seconds
        self._clock = clock

    async def get_valid_token(self, platform: Platform, force_refresh: bool = False) -> OAuthToken:
        """Return a usable token, refreshing and persisting it when stale.

        Raises:
            NotConnected: no token stored, or the refresh failed.
        """
        name = _PLATFORM_NAMES.get(platform, platform.value)
        token = self.store.get(platform)
        if token is None:
            raise NotConnected(f"Not connected to {name}")

        if not force_refresh and not token.expires_within(self.threshold_seconds, self._clock()):
            return token

        refresher = self.refreshers.get(platform)
        if refresher is None:
            raise NotConnected(f"No token refresher configured for {name}")

        _logger.info(f"Refreshing {name} token (forced={force_refresh})")
        try:
            refreshed = await refresher.refresh(token)
        except Exception as e:
            _logger.error(f"{name} token refresh failed: {e}")
            raise NotConnected(f"{name} token refresh failed: {e}") from e

        if refreshed is not token:
            self.store.save(refreshed)
        return refreshed
