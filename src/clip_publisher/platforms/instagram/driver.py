"""Instagram upload driver: container creation, processing poll, publish.

Instagram pulls the video from its public URL, so there is no byte
transfer phase: creating the container counts as a finished upload.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ...constants import PROCESSING_POLL_SECONDS, WAITING_PROCESSING_PROGRESS, Platform
from ...errors import InvalidState, PlatformProcessingFailed
from ...publish.models import InstagramUpload
from ..base import PlatformDriver, ProgressReporter, Sleep
from .client import InstagramClient, error_code_from_status_message, lookup_error

_logger = logging.getLogger("publish")


class InstagramDriver(PlatformDriver):
    platform = Platform.INSTAGRAM
    identifiers = ("container_id", "media_id")
    has_transfer_phase = False

    def __init__(
        self,
        client: InstagramClient,
        poll_interval: float = PROCESSING_POLL_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(sleep=sleep)
        self.client = client
        self.poll_interval = poll_interval

    def identifiers_to_clear(self, upload: InstagramUpload) -> dict[str, Any]:
        resets = super().identifiers_to_clear(upload)
        resets["permalink"] = None
        return resets

    async def acquire_target(self, upload: InstagramUpload) -> dict[str, Any]:
        container_id = await self.client.create_video_container(
            video_url=upload.source_url,
            caption=upload.caption,
            media_type=upload.media_type,
            share_to_feed=upload.share_to_feed,
        )
        _logger.info(f"[instagram/{upload.id}] container {container_id} created")
        return {"container_id": container_id}

    async def poll_processing(self, upload: InstagramUpload, report: ProgressReporter) -> dict[str, Any]:
        if not upload.container_id:
            raise InvalidState("Missing Instagram container id")
        while True:
            status = await self.client.check_container_status(upload.container_id)
            status_code = (status.get("status_code") or "").upper()

            if status_code == "FINISHED":
                return {}
            if status_code == "ERROR":
                message = status.get("status") or "Unknown error"
                info = lookup_error(error_code_from_status_message(message))
                _logger.error(f"[instagram/{upload.id}] container failed: {message} ({info.name})")
                raise PlatformProcessingFailed(f"Instagram processing failed: {message}")
            if status_code == "EXPIRED":
                raise PlatformProcessingFailed("Instagram container expired before publishing")

            await report.processing(WAITING_PROCESSING_PROGRESS)
            await self.sleep(self.poll_interval)

    async def finalize_post(self, upload: InstagramUpload) -> dict[str, Any]:
        if not upload.container_id:
            raise InvalidState("Missing Instagram container id")
        media_id = await self.client.publish_container(upload.container_id)
        permalink = await self.client.get_media_permalink(media_id)
        _logger.info(f"[instagram/{upload.id}] published media {media_id}")
        return {"media_id": media_id, "permalink": permalink}
