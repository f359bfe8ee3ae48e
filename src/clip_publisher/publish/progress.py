"""Progress channel from a platform driver back to its upload record."""

from __future__ import annotations

import logging

from .events import UploadEventLog
from .models import PublishUpload

_logger = logging.getLogger("publish")


class ProgressReporter:
    """Receives progress from a driver while a phase runs.

    The base class discards everything, which is what driver tests and
    one-off calls want.
    """

    async def upload(self, bytes_uploaded: int, total_bytes: int) -> None:
        pass

    async def processing(self, percent: int | None) -> None:
        pass


class RecordProgressReporter(ProgressReporter):
    """Persists progress on the record and logs milestone events.

    Upload progress events are recorded every 10% and at 100%.
    """

    def __init__(self, machine, upload: PublishUpload, events: UploadEventLog | None = None):
        self.machine = machine
        self.upload_record = upload
        self.events = events
        total = upload.source_size_bytes or 0
        self._last_logged = int(upload.bytes_uploaded * 100 / total) if total else 0

    async def upload(self, bytes_uploaded: int, total_bytes: int) -> None:
        progress = round(bytes_uploaded * 100 / total_bytes) if total_bytes else 0
        self.upload_record = self.machine.update_progress(
            self.upload_record,
            bytes_uploaded=bytes_uploaded,
            upload_progress=progress,
        )
        if self.events and (progress >= self._last_logged + 10 or progress == 100):
            self._last_logged = progress
            self.events.record(
                self.upload_record.platform,
                self.upload_record.id,
                "upload_progress",
                {"bytesUploaded": bytes_uploaded, "progress": progress},
            )

    async def processing(self, percent: int | None) -> None:
        if percent is None:
            return
        self.upload_record = self.machine.update_progress(
            self.upload_record,
            processing_progress=percent,
        )
        if self.events:
            self.events.record(
                self.upload_record.platform,
                self.upload_record.id,
                "processing_progress",
                {"progress": percent},
            )
