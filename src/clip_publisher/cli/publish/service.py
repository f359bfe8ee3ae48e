"""Publish service - wraps the HTTP publish client for CLI commands."""

from __future__ import annotations

from typing import Awaitable, Callable

import httpx

from ...config import PipelineSettings
from ...publish import (
    HttpPublishAPI,
    PublishInitRequest,
    PublishInitResponse,
    PublishStatusPoller,
    PublishStatusView,
    UploadEventView,
)


class PublishCLIService:
    """One short-lived HTTP client per command invocation."""

    def __init__(self, settings: PipelineSettings):
        self.settings = settings

    def _api(self, client: httpx.AsyncClient) -> HttpPublishAPI:
        return HttpPublishAPI(client, self.settings.api_base_url, self.settings.user_id)

    async def init(self, platform: str, request: PublishInitRequest) -> PublishInitResponse:
        async with httpx.AsyncClient(timeout=60.0) as client:
            return await self._api(client).init(platform, request)

    async def status(self, platform: str, upload_id: str) -> PublishStatusView:
        async with httpx.AsyncClient(timeout=30.0) as client:
            return await self._api(client).status(platform, upload_id)

    async def watch(
        self,
        platform: str,
        upload_id: str,
        on_update: Callable[[PublishStatusView], Awaitable[None]],
        auto_retry: bool = False,
    ) -> PublishStatusView:
        async with httpx.AsyncClient(timeout=30.0) as client:
            poller = PublishStatusPoller(self._api(client))
            return await poller.wait(platform, upload_id, on_update=on_update, auto_retry=auto_retry)

    async def retry(self, platform: str, upload_id: str) -> None:
        async with httpx.AsyncClient(timeout=30.0) as client:
            await self._api(client).retry(platform, upload_id)

    async def cancel(self, platform: str, upload_id: str) -> None:
        async with httpx.AsyncClient(timeout=30.0) as client:
            await self._api(client).cancel(platform, upload_id)

    async def events(self, platform: str, upload_id: str) -> list[UploadEventView]:
        async with httpx.AsyncClient(timeout=30.0) as client:
            return await self._api(client).events(platform, upload_id)
