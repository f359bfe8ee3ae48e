"""Client side of the publish API: HTTP calls and status polling."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

from ..constants import (
    CLIENT_MAX_PUBLISH_RETRIES,
    CLIENT_STATUS_POLL_SECONDS,
    PublishStatus,
)
from ..errors import TransientNetwork
from ..transfer.client import raise_for_api_error
from .events import UploadEventView
from .models import PublishInitRequest, PublishInitResponse, PublishStatusView

_logger = logging.getLogger("publish")

StatusCallback = Callable[[PublishStatusView], Awaitable[None]]


class HttpPublishAPI:
    """Publish endpoints of the pipeline server."""

    def __init__(self, client: httpx.AsyncClient, base_url: str, user_id: str):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.headers = {"X-User-Id": user_id}

    async def _request(self, method: str, path: str, **kwargs) -> dict | list:
        try:
            response = await self.client.request(
                method, f"{self.base_url}{path}", headers=self.headers, **kwargs
            )
        except httpx.TransportError as e:
            raise TransientNetwork(f"{method} {path} failed: {e}") from e
        raise_for_api_error(response)
        return response.json()

    async def init(self, platform: str, request: PublishInitRequest) -> PublishInitResponse:
        data = await self._request("POST", f"/{platform}/upload/init", json=request.to_wire())
        return PublishInitResponse.model_validate(data)

    async def status(self, platform: str, upload_id: str) -> PublishStatusView:
        data = await self._request("GET", f"/{platform}/upload/{upload_id}/status")
        return PublishStatusView.model_validate(data)

    async def retry(self, platform: str, upload_id: str) -> None:
        await self._request("POST", f"/{platform}/upload/{upload_id}/retry")

    async def cancel(self, platform: str, upload_id: str) -> None:
        await self._request("DELETE", f"/{platform}/upload/{upload_id}")

    async def events(self, platform: str, upload_id: str) -> list[UploadEventView]:
        data = await self._request("GET", f"/uploads/{platform}/{upload_id}/events")
        return [UploadEventView.model_validate(item) for item in data]


class PublishStatusPoller:
    """Polls an upload until it completes or fails for good.

    A failed upload is retried automatically while ``auto_retry`` is on and
    its retry count is below ``max_retries``.
    """

    def __init__(
        self,
        api: HttpPublishAPI,
        max_retries: int = CLIENT_MAX_PUBLISH_RETRIES,
        poll_interval: float = CLIENT_STATUS_POLL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api = api
        self.max_retries = max_retries
        self.poll_interval = poll_interval
        self.sleep = sleep

    def can_retry(self, view: PublishStatusView) -> bool:
        return view.status == PublishStatus.FAILED and view.retry_count < self.max_retries

    async def wait(
        self,
        platform: str,
        upload_id: str,
        on_update: StatusCallback | None = None,
        auto_retry: bool = False,
    ) -> PublishStatusView:
        while True:
            view = await self.api.status(platform, upload_id)
            if on_update:
                await on_update(view)

            if view.status == PublishStatus.COMPLETED:
                return view
            if view.status == PublishStatus.FAILED:
                if not auto_retry or not self.can_retry(view):
                    return view
                _logger.info(
                    f"[{platform}/{upload_id}] retrying after failure "
                    f"({view.retry_count}/{self.max_retries}): {view.error_message}"
                )
                await self.api.retry(platform, upload_id)

            await self.sleep(self.poll_interval)
