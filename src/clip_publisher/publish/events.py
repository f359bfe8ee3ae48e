"""Append-only event log for publish uploads.

Recording is best-effort: a store failure is logged and swallowed so it
never fails the upload it describes.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from ..constants import Platform
from ..models import CamelModel, utcnow
from ..storage import RecordStore

_logger = logging.getLogger("publish")

EVENTS_COLLECTION = "upload_events"


class UploadEvent(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    platform: Platform
    upload_id: str
    event: str
    detail: dict[str, Any] | None = None
    created_at: datetime = Field(default_factory=utcnow)


class UploadEventView(CamelModel):
    platform: Platform
    upload_id: str
    event: str
    detail: dict[str, Any] | None = None
    created_at: datetime

    @classmethod
    def from_event(cls, event: UploadEvent) -> "UploadEventView":
        return cls(
            platform=event.platform,
            upload_id=event.upload_id,
            event=event.event,
            detail=event.detail,
            created_at=event.created_at,
        )


class UploadEventLog:
    """Stores lifecycle events keyed by platform and upload id."""

    def __init__(self, records: RecordStore):
        self.records = records

    def record(
        self,
        platform: Platform,
        upload_id: str,
        event: str,
        detail: dict[str, Any] | None = None,
    ) -> UploadEvent | None:
        entry = UploadEvent(platform=platform, upload_id=upload_id, event=event, detail=detail)
        try:
            self.records.insert(EVENTS_COLLECTION, entry.model_dump(mode="json"))
        except Exception as e:
            _logger.warning(f"Failed to record upload event {event} for {platform.value}/{upload_id}: {e}")
            return None
        _logger.debug(f"[{platform.value}/{upload_id}] {event} {detail or ''}")
        return entry

    def list_events(self, platform: Platform, upload_id: str) -> list[UploadEvent]:
        """Events for one upload, oldest first."""
        rows = self.records.find(EVENTS_COLLECTION, platform=platform.value, upload_id=upload_id)
        events = [UploadEvent.model_validate(row) for row in rows]
        return sorted(events, key=lambda e: e.created_at)
