"""Media source registry.

A media source is the downstream record created once a chunked transfer
completes: it points at the assembled blob and carries the content
fingerprint used for duplicate detection. Post-processing (proxy
generation, audio extraction) is an injected coroutine run in the
background.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, Field

from .background import BackgroundTaskRunner
from .constants import SourceStatus
from .errors import AccessDenied, InvalidRequest, NotFound
from .models import CamelModel, utcnow
from .storage import RecordStore

_logger = logging.getLogger("transfer")

SOURCES_COLLECTION = "video_sources"
MEMBERS_COLLECTION = "podcast_members"
EPISODES_COLLECTION = "episodes"


class MediaSource(BaseModel):
    id: str
    episode_id: str
    label: str
    file_name: str
    video_blob_url: str
    content_type: str | None = None
    size_bytes: int | None = None
    content_fingerprint: str | None = None
    display_order: int = 0
    status: SourceStatus = SourceStatus.UPLOADED
    error_message: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class CreateSourceRequest(CamelModel):
    video_blob_url: str = ""
    file_name: str = ""
    label: str | None = None
    content_type: str | None = None
    size_bytes: int | None = None
    content_fingerprint: str | None = None
    display_order: int | None = None


class SourceView(CamelModel):
    id: str
    episode_id: str
    label: str
    file_name: str
    video_blob_url: str
    content_type: str | None = None
    size_bytes: int | None = None
    content_fingerprint: str | None = None
    display_order: int
    status: SourceStatus
    error_message: str | None = None

    @classmethod
    def from_source(cls, source: MediaSource) -> "SourceView":
        return cls.model_validate(source.model_dump())


SourceProcessor = Callable[[MediaSource], Awaitable[dict[str, Any]]]


async def mark_ready(source: MediaSource) -> dict[str, Any]:
    """Default processor: nothing to derive."""
    return {}


class MediaSourceRegistry:
    """Creates, de-duplicates and post-processes media sources."""

    def __init__(
        self,
        records: RecordStore,
        background: BackgroundTaskRunner,
        processor: SourceProcessor = mark_ready,
    ):
        self.records = records
        self.background = background
        self.processor = processor

    def _require_member(self, podcast_id: str, user_id: str) -> None:
        if not self.records.find(MEMBERS_COLLECTION, podcast_id=podcast_id, user_id=user_id):
            raise AccessDenied("Access denied")

    def get(self, source_id: str) -> MediaSource:
        record = self.records.get(SOURCES_COLLECTION, source_id)
        if record is None:
            raise NotFound("Video source not found")
        return MediaSource.model_validate(record)

    def check_duplicates(self, episode_id: str, fingerprints: list[str]) -> list[str]:
        """Subset of ``fingerprints`` already recorded for the episode, in caller order."""
        if not fingerprints:
            return []
        existing = {
            record.get("content_fingerprint")
            for record in self.records.find(SOURCES_COLLECTION, episode_id=episode_id)
        }
        existing.discard(None)
        return [fp for fp in fingerprints if fp in existing]

    def create(
        self,
        podcast_id: str,
        episode_id: str,
        request: CreateSourceRequest,
        user_id: str,
    ) -> MediaSource:
        self._require_member(podcast_id, user_id)
        if not request.video_blob_url or not request.file_name:
            raise InvalidRequest("videoBlobUrl and fileName are required")

        existing = self.records.find(SOURCES_COLLECTION, episode_id=episode_id)
        source = MediaSource(
            id=uuid.uuid4().hex,
            episode_id=episode_id,
            label=request.label or request.file_name,
            file_name=request.file_name,
            video_blob_url=request.video_blob_url,
            content_type=request.content_type,
            size_bytes=request.size_bytes,
            content_fingerprint=request.content_fingerprint,
            display_order=(
                request.display_order if request.display_order is not None else len(existing)
            ),
        )
        self.records.insert(SOURCES_COLLECTION, source.model_dump(mode="json"))
        if self.records.get(EPISODES_COLLECTION, episode_id) is not None:
            self.records.update(EPISODES_COLLECTION, episode_id, {"media_type": "video"})

        _logger.info(f"Video source {source.id} created for episode {episode_id}")
        return source

    def process(self, podcast_id: str, episode_id: str, source_id: str, user_id: str) -> MediaSource:
        """Flip the source to ``processing`` and run the processor in the background."""
        self._require_member(podcast_id, user_id)
        source = self.get(source_id)
        if source.episode_id != episode_id:
            raise NotFound("Video source not found")

        self.records.update(SOURCES_COLLECTION, source_id, {"status": SourceStatus.PROCESSING.value})
        source.status = SourceStatus.PROCESSING

        async def on_failure(error: BaseException) -> None:
            self.records.update(
                SOURCES_COLLECTION,
                source_id,
                {"status": SourceStatus.FAILED.value, "error_message": str(error)},
            )

        self.background.spawn(self._run_processor(source), on_failure=on_failure, name=f"source:{source_id}")
        return source

    async def _run_processor(self, source: MediaSource) -> None:
        changes = await self.processor(source)
        self.records.update(
            SOURCES_COLLECTION,
            source.id,
            {**changes, "status": SourceStatus.READY.value, "error_message": None},
        )
        _logger.info(f"Video source {source.id} ready")
