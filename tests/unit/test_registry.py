"""Unit tests for the platform driver registry."""

from __future__ import annotations

import httpx
import pytest

from clip_publisher.auth import TokenRefreshGuard
from clip_publisher.config import PipelineSettings
from clip_publisher.constants import Platform
from clip_publisher.errors import InvalidRequest
from clip_publisher.platforms import DriverRegistry
from clip_publisher.platforms.instagram import InstagramDriver
from clip_publisher.platforms.x import XDriver
from clip_publisher.platforms.youtube import YouTubeDriver


@pytest.fixture
def registry(guard: TokenRefreshGuard, tmp_path) -> DriverRegistry:
    settings = PipelineSettings(data_dir=tmp_path, x_consumer_key="ck", x_consumer_secret="cs")
    return DriverRegistry.from_settings(settings, httpx.AsyncClient(), guard)


class TestDriverRegistry:
    """Tests for DriverRegistry."""

    def test_standard_drivers(self, registry: DriverRegistry):
        assert registry.available_platforms() == ["youtube", "x", "instagram"]
        assert isinstance(registry.get("youtube"), YouTubeDriver)
        assert isinstance(registry.get(Platform.X), XDriver)
        assert isinstance(registry.get("instagram"), InstagramDriver)

    def test_driver_traits(self, registry: DriverRegistry):
        assert registry.get("youtube").acquire_on_init is True
        assert registry.get("youtube").has_posting_phase is False
        assert registry.get("x").has_posting_phase is True
        assert registry.get("instagram").has_transfer_phase is False

    def test_x_driver_gets_consumer_keys(self, registry: DriverRegistry):
        client = registry.get("x").client
        assert (client.consumer_key, client.consumer_secret) == ("ck", "cs")

    def test_unknown_platform(self, registry: DriverRegistry):
        with pytest.raises(InvalidRequest, match="Unknown platform: tiktok"):
            registry.get("tiktok")

    def test_unregistered_platform(self):
        with pytest.raises(InvalidRequest, match="No driver registered"):
            DriverRegistry().get("x")

    def test_register_replaces(self, registry: DriverRegistry, guard: TokenRefreshGuard):
        replacement = XDriver(registry.get("x").client)
        registry.register(replacement)

        assert registry.get("x") is replacement
        assert registry.is_registered("x")
        assert not registry.is_registered("tiktok")
