"""Publish upload operations behind the HTTP surface.

init / retry start a background task that runs the upload; status, cancel
and events read or write the record directly.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

import httpx

from ..background import BackgroundTaskRunner
from ..constants import YOUTUBE_TITLE_MAX_LENGTH, Platform
from ..errors import InvalidRequest
from .events import UploadEvent, UploadEventLog
from .models import (
    UPLOAD_MODELS,
    PublishInitRequest,
    PublishInitResponse,
    PublishStatusView,
    PublishUpload,
)
from .runner import PublishRunner
from .source import determine_source_size, resolve_source
from .state_machine import PublishStateMachine

if TYPE_CHECKING:
    from ..platforms import DriverRegistry
    from ..storage import RecordStore

_logger = logging.getLogger("publish")

SHORTS_TAG = "#Shorts"


def normalize_tags(tags: list[str] | None, is_short: bool) -> list[str]:
    """Trim tags, drop empty ones and make sure shorts carry ``#Shorts``."""
    cleaned = [str(tag).strip() for tag in tags or []]
    cleaned = [tag for tag in cleaned if tag]
    if is_short and not any(tag.lower() == SHORTS_TAG.lower() for tag in cleaned):
        cleaned.append(SHORTS_TAG)
    return cleaned


def _platform_fields(platform: Platform, request: PublishInitRequest) -> dict:
    if platform == Platform.YOUTUBE:
        fields = {
            "title": (request.title or "Untitled")[:YOUTUBE_TITLE_MAX_LENGTH],
            "description": request.description or "",
            "tags": normalize_tags(request.tags, request.is_short),
            "is_short": request.is_short,
        }
        if request.privacy_status:
            fields["privacy_status"] = request.privacy_status
        if request.category_id:
            fields["category_id"] = request.category_id
        return fields
    if platform == Platform.X:
        return {"text": request.text or ""}

    fields = {"caption": request.caption or ""}
    if request.media_type:
        fields["media_type"] = request.media_type
    if request.share_to_feed is not None:
        fields["share_to_feed"] = request.share_to_feed
    return fields


class PublishService:
    """Creates, runs, retries and cancels publish uploads."""

    def __init__(
        self,
        records: "RecordStore",
        drivers: "DriverRegistry",
        http: httpx.AsyncClient,
        background: BackgroundTaskRunner | None = None,
        events: UploadEventLog | None = None,
        timeout_seconds: float | None = None,
    ):
        self.records = records
        self.drivers = drivers
        self.http = http
        self.background = background or BackgroundTaskRunner()
        self.events = events or UploadEventLog(records)
        self.machine = PublishStateMachine(records, events=self.events)
        runner_kwargs = {} if timeout_seconds is None else {"timeout_seconds": timeout_seconds}
        self.runner = PublishRunner(self.machine, drivers, events=self.events, **runner_kwargs)

    async def init(
        self,
        platform_name: str,
        request: PublishInitRequest,
        user_id: str | None = None,
    ) -> PublishInitResponse:
        """Create an upload record and start publishing in the background.

        Raises:
            InvalidRequest: postId or clipId missing, or unknown platform.
            NotFound: the clip has no rendered output.
            SizeUnknown: the source size could not be determined.
        """
        driver = self.drivers.get(platform_name)
        platform = driver.platform
        if not request.post_id or not request.clip_id:
            raise InvalidRequest("postId and clipId are required")

        clip = resolve_source(self.records, request.clip_id, request.format)
        size = await determine_source_size(self.http, clip.blob_url, clip.size_bytes)

        upload = UPLOAD_MODELS[platform](
            id=uuid.uuid4().hex,
            platform=platform,
            post_id=request.post_id,
            clip_id=request.clip_id,
            source_url=clip.blob_url,
            source_size_bytes=size,
            created_by_id=user_id,
            **_platform_fields(platform, request),
        )
        upload = self.machine.create(upload)

        if driver.acquire_on_init:
            try:
                fields = await driver.acquire_target(upload)
                upload = self.machine.update_progress(upload, **fields)
            except Exception as e:
                self.machine.fail(platform, upload.id, str(e))
                self.events.record(platform, upload.id, "init_error", {"message": str(e)})
                raise

        self.events.record(
            platform,
            upload.id,
            "init",
            {
                "postId": upload.post_id,
                "clipId": upload.clip_id,
                "sourceUrl": upload.source_url,
                "sourceSizeBytes": upload.source_size_bytes,
            },
        )
        self._start(platform, upload.id)
        return PublishInitResponse(upload_id=upload.id, status=upload.status)

    def status(self, platform_name: str, upload_id: str) -> PublishStatusView:
        driver = self.drivers.get(platform_name)
        upload = self.machine.load(driver.platform, upload_id)
        return PublishStatusView.from_upload(upload, driver.identifiers)

    def retry(self, platform_name: str, upload_id: str) -> PublishUpload:
        """Return a failed upload to pending and run it again.

        Raises:
            NotFound: no such upload.
            InvalidState: the upload is not failed.
        """
        driver = self.drivers.get(platform_name)
        current = self.machine.load(driver.platform, upload_id)
        upload = self.machine.retry(driver.platform, upload_id, driver.identifiers_to_clear(current))
        self._start(driver.platform, upload_id)
        return upload

    def cancel(self, platform_name: str, upload_id: str) -> PublishUpload:
        driver = self.drivers.get(platform_name)
        return self.machine.cancel(driver.platform, upload_id)

    def list_events(self, platform_name: str, upload_id: str) -> list[UploadEvent]:
        platform = self.drivers.get(platform_name).platform
        self.machine.load(platform, upload_id)
        return self.events.list_events(platform, upload_id)

    def _start(self, platform: Platform, upload_id: str) -> None:
        async def record_failure(error: BaseException) -> None:
            message = str(error) or type(error).__name__
            failed = self.machine.fail(platform, upload_id, message)
            if failed is not None:
                self.events.record(platform, upload_id, "upload_failed", {"message": message})

        self.background.spawn(
            self.runner.run(platform, upload_id),
            on_failure=record_failure,
            name=f"publish-{platform.value}-{upload_id}",
        )
