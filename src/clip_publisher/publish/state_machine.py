"""Publish upload lifecycle.

State diagram:

    pending ──> uploading ──> processing ──> posting ──> completed
       │            │             │  └───────────────────────^
       │            │             │                (no posting phase)
       └──> processing (no byte transfer)
    any but completed ──> failed ──retry──> pending

Every write goes through this class. Transitions validate against the
persisted status, not the caller's copy, so a record canceled while a
driver is mid-flight rejects the driver's next transition.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from ..constants import CANCELED_MESSAGE, Platform, PublishStatus
from ..errors import InvalidState, NotFound
from ..models import utcnow
from ..storage import RecordStore
from .events import UploadEventLog
from .models import UPLOAD_COLLECTIONS, UPLOAD_MODELS, PublishUpload

_logger = logging.getLogger("publish")

ALLOWED_TRANSITIONS: dict[PublishStatus, frozenset[PublishStatus]] = {
    PublishStatus.PENDING: frozenset(
        {PublishStatus.UPLOADING, PublishStatus.PROCESSING, PublishStatus.FAILED}
    ),
    PublishStatus.UPLOADING: frozenset({PublishStatus.PROCESSING, PublishStatus.FAILED}),
    PublishStatus.PROCESSING: frozenset(
        {PublishStatus.POSTING, PublishStatus.COMPLETED, PublishStatus.FAILED}
    ),
    PublishStatus.POSTING: frozenset({PublishStatus.COMPLETED, PublishStatus.FAILED}),
    # Only reachable through retry()
    PublishStatus.FAILED: frozenset({PublishStatus.PENDING}),
    PublishStatus.COMPLETED: frozenset(),
}


class PublishStateMachine:
    """Validated status changes for publish upload records."""

    def __init__(
        self,
        records: RecordStore,
        events: UploadEventLog | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.records = records
        self.events = events
        self._clock = clock

    def load(self, platform: Platform, upload_id: str) -> PublishUpload:
        record = self.records.get(UPLOAD_COLLECTIONS[platform], upload_id)
        if record is None:
            raise NotFound("Upload not found")
        return UPLOAD_MODELS[platform].model_validate(record)

    def create(self, upload: PublishUpload) -> PublishUpload:
        self.records.insert(UPLOAD_COLLECTIONS[upload.platform], upload.to_record())
        _logger.info(f"[{upload.platform.value}/{upload.id}] created for clip {upload.clip_id}")
        return upload

    def _write(self, current: PublishUpload, changes: dict[str, Any]) -> PublishUpload:
        """Persist ``changes`` on top of ``current`` and return the stored model."""
        merged = current.model_copy(update=changes)
        dumped = merged.model_dump(mode="json")
        stored = self.records.update(
            UPLOAD_COLLECTIONS[current.platform],
            current.id,
            {key: dumped[key] for key in changes},
        )
        return UPLOAD_MODELS[current.platform].model_validate(stored)

    def update_progress(self, upload: PublishUpload, **fields: Any) -> PublishUpload:
        """Persist progress or identifiers without changing status.

        Raises:
            InvalidState: the record reached a terminal status meanwhile.
        """
        current = self.load(upload.platform, upload.id)
        if current.status.is_terminal:
            raise InvalidState(f"Upload is already {current.status.value}")
        return self._write(current, fields)

    def transition(self, upload: PublishUpload, target: PublishStatus, **fields: Any) -> PublishUpload:
        """Move to ``target``, persisting any extra fields in the same write.

        Raises:
            InvalidState: ``target`` is not reachable from the stored status.
        """
        current = self.load(upload.platform, upload.id)
        if target not in ALLOWED_TRANSITIONS[current.status]:
            raise InvalidState(
                f"Cannot move upload from {current.status.value} to {target.value}"
            )

        changes: dict[str, Any] = {"status": target, **fields}
        if target == PublishStatus.COMPLETED:
            changes.setdefault("completed_at", self._clock())
        updated = self._write(current, changes)
        _logger.info(
            f"[{upload.platform.value}/{upload.id}] {current.status.value} -> {target.value}"
        )
        return updated

    def fail(self, platform: Platform, upload_id: str, message: str) -> PublishUpload | None:
        """Record a failure. Returns None when the record had already failed."""
        current = self.load(platform, upload_id)
        if current.status == PublishStatus.FAILED:
            _logger.info(f"[{platform.value}/{upload_id}] already failed, ignoring: {message}")
            return None

        updated = self._write(
            current,
            {
                "status": PublishStatus.FAILED,
                "error_message": message,
                "failed_phase": current.status,
                "retry_count": current.retry_count + 1,
            },
        )
        _logger.warning(f"[{platform.value}/{upload_id}] failed during {current.status.value}: {message}")
        return updated

    def retry(self, platform: Platform, upload_id: str, resets: dict[str, Any]) -> PublishUpload:
        """Return a failed upload to pending, applying identifier ``resets``.

        Raises:
            InvalidState: the upload is not failed.
        """
        current = self.load(platform, upload_id)
        if current.status != PublishStatus.FAILED:
            raise InvalidState(f"Cannot retry upload in status {current.status.value}")

        updated = self._write(
            current,
            {
                **resets,
                "status": PublishStatus.PENDING,
                "error_message": None,
                "failed_phase": None,
                "completed_at": None,
            },
        )
        if self.events:
            self.events.record(
                platform,
                upload_id,
                "retry",
                {"retryCount": current.retry_count, "failedPhase": _phase_name(current.failed_phase)},
            )
        return updated

    def cancel(self, platform: Platform, upload_id: str) -> PublishUpload:
        """Soft-cancel: mark the upload failed with CANCELED_MESSAGE.

        Raises:
            InvalidState: the upload already completed.
        """
        current = self.load(platform, upload_id)
        if current.status == PublishStatus.COMPLETED:
            raise InvalidState("Cannot cancel a completed upload")

        updated = self._write(
            current,
            {
                "status": PublishStatus.FAILED,
                "error_message": CANCELED_MESSAGE,
                "failed_phase": (
                    current.failed_phase
                    if current.status == PublishStatus.FAILED
                    else current.status
                ),
            },
        )
        if self.events:
            self.events.record(platform, upload_id, "upload_canceled", {"status": current.status.value})
        _logger.info(f"[{platform.value}/{upload_id}] canceled during {current.status.value}")
        return updated


def _phase_name(phase: PublishStatus | None) -> str | None:
    return phase.value if phase else None
