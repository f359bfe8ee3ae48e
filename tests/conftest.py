"""Shared test fixtures and configuration.

Provides in-memory stores, seeded tokens and httpx mock transports for the
transfer and publish components. Sleeps are always injected so polling
loops run instantly.
"""

from __future__ import annotations

import re
from datetime import timedelta
from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock

import httpx
import pytest

from clip_publisher.auth import OAuthToken, TokenRefreshGuard, TokenStore, XTokenRefresher
from clip_publisher.constants import Platform
from clip_publisher.models import utcnow
from clip_publisher.storage import InMemoryRecordStore, LocalBlobStore

SOURCE_URL = "https://cdn.example.com/clips/clip-1-9x16.mp4"
SOURCE_HOST = "cdn.example.com"

_RANGE = re.compile(r"bytes=(\d+)-(\d+)")

Handler = Callable[[httpx.Request], httpx.Response]


# =============================================================================
# Stores
# =============================================================================

@pytest.fixture
def records() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def blobs(tmp_path: Path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "blobs", "http://testserver/blobs")


@pytest.fixture
def episode(records: InMemoryRecordStore) -> dict:
    """Podcast p1 with episode e1 and member user-1."""
    records.insert("podcast_members", {"id": "m1", "podcast_id": "p1", "user_id": "user-1"})
    return records.insert("episodes", {"id": "e1", "podcast_id": "p1", "title": "Pilot"})


@pytest.fixture
def no_sleep() -> AsyncMock:
    """Replacement for asyncio.sleep that records the requested delays."""
    return AsyncMock(return_value=None)


# =============================================================================
# Tokens
# =============================================================================

@pytest.fixture
def token_store(records: InMemoryRecordStore) -> TokenStore:
    """Token store with a valid token for every platform."""
    store = TokenStore(records)
    later = utcnow() + timedelta(hours=1)
    store.save(OAuthToken(
        platform=Platform.YOUTUBE,
        access_token="yt-access",
        refresh_token="yt-refresh",
        expires_at=later,
        account_name="Test Channel",
    ))
    store.save(OAuthToken(
        platform=Platform.X,
        access_token="x-token",
        refresh_token="x-token-secret",
        account_name="@tester",
    ))
    store.save(OAuthToken(
        platform=Platform.INSTAGRAM,
        access_token="ig-page-token",
        refresh_token="ig-user-token",
        expires_at=utcnow() + timedelta(days=30),
        account_id="ig-1",
        account_name="tester",
    ))
    return store


@pytest.fixture
def guard(token_store: TokenStore) -> TokenRefreshGuard:
    return TokenRefreshGuard(token_store, {Platform.X: XTokenRefresher()})


# =============================================================================
# Remote source and rendered clips
# =============================================================================

@pytest.fixture
def source_bytes() -> bytes:
    return bytes(range(256)) * 40  # 10 KiB


def serve_source(request: httpx.Request, data: bytes) -> httpx.Response:
    """Answer HEAD and ranged GETs for SOURCE_URL the way a blob CDN does."""
    if request.method == "HEAD":
        return httpx.Response(200, headers={"content-length": str(len(data))})
    match = _RANGE.search(request.headers.get("range", ""))
    if not match:
        return httpx.Response(200, content=data)
    start, end = int(match.group(1)), int(match.group(2))
    end = min(end, len(data) - 1)
    return httpx.Response(
        206,
        content=data[start:end + 1],
        headers={"content-range": f"bytes {start}-{end}/{len(data)}"},
    )


@pytest.fixture
def source_server(source_bytes: bytes) -> Callable[[Handler], Handler]:
    """Wrap a platform handler so requests to the source CDN are served too."""

    def wrap(platform_handler: Handler) -> Handler:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == SOURCE_HOST:
                return serve_source(request, source_bytes)
            return platform_handler(request)

        return handler

    return wrap


@pytest.fixture
def rendered_clip(records: InMemoryRecordStore, source_bytes: bytes) -> dict:
    return records.insert("rendered_clips", {
        "id": "r1",
        "clip_id": "clip-1",
        "format": "9:16",
        "blob_url": SOURCE_URL,
        "size_bytes": len(source_bytes),
        "rendered_at": "2026-01-02T10:00:00+00:00",
    })


@pytest.fixture
def source_url() -> str:
    return SOURCE_URL
