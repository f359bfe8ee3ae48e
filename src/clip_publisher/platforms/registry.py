"""Driver registry for looking up platform upload drivers."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx

from ..constants import Platform
from ..errors import InvalidRequest
from .base import PlatformDriver, Sleep

if TYPE_CHECKING:
    from ..auth import TokenRefreshGuard
    from ..config import PipelineSettings


class DriverRegistry:
    """Holds one driver per platform.

    Usage:
        # Build the standard drivers from settings
        drivers = DriverRegistry.from_settings(settings, http, guard)

        # Look one up by name from a request path
        driver = drivers.get("youtube")
    """

    def __init__(self, drivers: list[PlatformDriver] | None = None):
        self._drivers: dict[Platform, PlatformDriver] = {}
        for driver in drivers or []:
            self.register(driver)

    def register(self, driver: PlatformDriver) -> None:
        """Register a driver, replacing any previous one for its platform."""
        self._drivers[driver.platform] = driver

    def get(self, name: str | Platform) -> PlatformDriver:
        """Get the driver for a platform.

        Raises:
            InvalidRequest: If the platform is unknown or has no driver.
        """
        try:
            platform = Platform(name)
        except ValueError:
            available = ", ".join(p.value for p in self._drivers)
            raise InvalidRequest(f"Unknown platform: {name}. Available: {available}") from None
        if platform not in self._drivers:
            raise InvalidRequest(f"No driver registered for {platform.value}")
        return self._drivers[platform]

    def available_platforms(self) -> list[str]:
        return [platform.value for platform in self._drivers]

    def is_registered(self, name: str) -> bool:
        return name in self.available_platforms()

    @classmethod
    def from_settings(
        cls,
        settings: "PipelineSettings",
        http: httpx.AsyncClient,
        guard: "TokenRefreshGuard",
        sleep: Sleep = asyncio.sleep,
    ) -> "DriverRegistry":
        """Build the YouTube, X and Instagram drivers sharing one HTTP client."""
        from .instagram import InstagramClient, InstagramDriver
        from .x import XClient, XDriver
        from .youtube import YouTubeClient, YouTubeDriver

        poll = settings.poll_interval_seconds
        return cls([
            YouTubeDriver(YouTubeClient(http, guard, sleep=sleep), poll_interval=poll, sleep=sleep),
            XDriver(
                XClient(http, guard, settings.x_consumer_key, settings.x_consumer_secret),
                sleep=sleep,
            ),
            InstagramDriver(
                InstagramClient(http, guard, api_version=settings.graph_api_version),
                poll_interval=poll,
                sleep=sleep,
            ),
        ])
