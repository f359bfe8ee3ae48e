"""YouTube upload driver: resumable session, chunked transfer, processing poll."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ...constants import PROCESSING_POLL_SECONDS, Platform, PublishStatus
from ...errors import InvalidState, PlatformProcessingFailed, SizeUnknown
from ...publish.models import PublishUpload, YouTubeUpload
from ..base import PlatformDriver, ProgressReporter, Sleep, failed_before
from .client import YouTubeClient

_logger = logging.getLogger("publish")


class YouTubeDriver(PlatformDriver):
    """Drives a YouTube upload through pending, uploading, processing, completed.

    The session URI is acquired when the upload is created and kept across
    retries of the transfer, so a retried upload resumes at the offset the
    server reports instead of starting over.
    """

    platform = Platform.YOUTUBE
    identifiers = ("upload_uri", "video_id")
    has_posting_phase = False
    acquire_on_init = True

    def __init__(
        self,
        client: YouTubeClient,
        poll_interval: float = PROCESSING_POLL_SECONDS,
        sleep: Sleep = asyncio.sleep,
    ):
        super().__init__(sleep=sleep)
        self.client = client
        self.poll_interval = poll_interval

    def identifiers_to_clear(self, upload: PublishUpload) -> dict[str, Any]:
        if getattr(upload, "upload_uri", None) and failed_before(upload, PublishStatus.UPLOADING):
            return {"video_id": None, "processing_progress": 0}
        return super().identifiers_to_clear(upload)

    async def acquire_target(self, upload: YouTubeUpload) -> dict[str, Any]:
        if upload.upload_uri:
            return {}
        if not upload.source_size_bytes:
            raise SizeUnknown("Missing source size")
        upload_uri = await self.client.initialize_resumable_upload(
            {
                "title": upload.title,
                "description": upload.description,
                "tags": upload.tags,
                "privacyStatus": upload.privacy_status,
                "categoryId": upload.category_id,
            },
            upload.source_size_bytes,
        )
        _logger.info(f"[youtube/{upload.id}] resumable session acquired")
        return {"upload_uri": upload_uri}

    async def transfer(self, upload: YouTubeUpload, report: ProgressReporter) -> dict[str, Any]:
        if not upload.upload_uri:
            raise InvalidState("Missing YouTube upload URI")
        total = upload.source_size_bytes
        if not total:
            raise SizeUnknown("Missing source size")

        start = upload.bytes_uploaded
        if start > 0:
            offset, video_id = await self.client.get_resume_position(upload.upload_uri, total)
            if video_id:
                await report.upload(total, total)
                return {"video_id": video_id, "bytes_uploaded": total}
            if offset != start:
                _logger.info(f"[youtube/{upload.id}] server offset {offset} overrides stored {start}")
                start = offset
                await report.upload(start, total)

        async def on_progress(bytes_uploaded: int) -> None:
            await report.upload(bytes_uploaded, total)

        video_id = await self.client.stream_upload(
            upload.upload_uri, upload.source_url, start, total, on_progress
        )
        return {"video_id": video_id, "bytes_uploaded": total}

    async def poll_processing(self, upload: YouTubeUpload, report: ProgressReporter) -> dict[str, Any]:
        if not upload.video_id:
            raise InvalidState("Missing YouTube video id")
        while True:
            status = await self.client.check_processing_status(upload.video_id)
            if status.status == "processed":
                return {}
            if status.status == "failed":
                raise PlatformProcessingFailed("YouTube processing failed")
            await report.processing(status.progress)
            await self.sleep(self.poll_interval)
