"""X upload driver: chunked media upload, async processing, tweet."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ...constants import WAITING_PROCESSING_PROGRESS, X_DEFAULT_CHECK_AFTER_SECONDS, Platform
from ...errors import InvalidState, PlatformProcessingFailed, SizeUnknown
from ...publish.models import XUpload
from ..base import PlatformDriver, ProgressReporter, Sleep
from .client import XClient

_logger = logging.getLogger("publish")

# FINALIZE states that mean the media still needs STATUS polling
PENDING_STATES = ("pending", "in_progress")


class XDriver(PlatformDriver):
    """Drives an X upload through uploading, processing, posting, completed."""

    platform = Platform.X
    identifiers = ("media_id", "tweet_id")

    def __init__(
        self,
        client: XClient,
        default_check_after: float = X_DEFAULT_CHECK_AFTER_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(sleep=sleep)
        self.client = client
        self.default_check_after = default_check_after

    def identifiers_to_clear(self, upload: XUpload) -> dict[str, Any]:
        resets = super().identifiers_to_clear(upload)
        resets["processing_state"] = None
        return resets

    async def acquire_target(self, upload: XUpload) -> dict[str, Any]:
        if not upload.source_size_bytes:
            raise SizeUnknown("Missing source size")
        media_id = await self.client.init_upload(upload.source_size_bytes)
        _logger.info(f"[x/{upload.id}] media {media_id} initialized")
        return {"media_id": media_id, "bytes_uploaded": 0, "upload_progress": 0}

    async def transfer(self, upload: XUpload, report: ProgressReporter) -> dict[str, Any]:
        if not upload.media_id:
            raise InvalidState("Missing X media id")
        total = upload.source_size_bytes or 0

        async def on_progress(bytes_uploaded: int) -> None:
            await report.upload(bytes_uploaded, total)

        uploaded = await self.client.stream_media(upload.media_id, upload.source_url, total, on_progress)
        info = await self.client.finalize_upload(upload.media_id)
        state = info.state if info else None
        _logger.info(f"[x/{upload.id}] media finalized, processing state: {state or 'none'}")
        return {"bytes_uploaded": uploaded, "processing_state": state}

    async def poll_processing(self, upload: XUpload, report: ProgressReporter) -> dict[str, Any]:
        if upload.processing_state not in PENDING_STATES:
            return {}

        while True:
            info = await self.client.get_status(upload.media_id)
            if info.state == "succeeded":
                return {"processing_state": info.state}
            if info.state == "failed":
                raise PlatformProcessingFailed("X media processing failed")
            await report.processing(WAITING_PROCESSING_PROGRESS)
            delay = info.check_after_secs
            await self.sleep(self.default_check_after if delay is None else delay)

    async def finalize_post(self, upload: XUpload) -> dict[str, Any]:
        if not upload.media_id:
            raise InvalidState("Missing X media id")
        tweet_id = await self.client.create_tweet(upload.text, upload.media_id)
        _logger.info(f"[x/{upload.id}] tweet {tweet_id} created")
        return {"tweet_id": tweet_id}
