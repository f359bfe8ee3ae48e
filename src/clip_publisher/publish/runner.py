"""Generic publish loop shared by every platform driver.

The runner reads the record, picks up at whatever phase it is in and
drives it to completed. Failures propagate to the caller, which records
them on the record (see PublishService).
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ..constants import (
    POSTING_PROCESSING_PROGRESS,
    PUBLISH_TIMEOUT_SECONDS,
    Platform,
    PublishStatus,
)
from ..errors import InvalidState, PlatformProcessingFailed, TransientNetwork
from .events import UploadEventLog
from .models import PublishUpload
from .progress import RecordProgressReporter
from .state_machine import PublishStateMachine

if TYPE_CHECKING:
    from ..platforms import DriverRegistry, PlatformDriver

_logger = logging.getLogger("publish")


class PublishRunner:
    """Drives one upload record through its driver's phases."""

    def __init__(
        self,
        machine: PublishStateMachine,
        drivers: "DriverRegistry",
        events: UploadEventLog | None = None,
        timeout_seconds: float = PUBLISH_TIMEOUT_SECONDS,
    ):
        self.machine = machine
        self.drivers = drivers
        self.events = events
        self.timeout_seconds = timeout_seconds

    def _event(self, upload: PublishUpload, event: str, detail: dict | None = None) -> None:
        if self.events:
            self.events.record(upload.platform, upload.id, event, detail)

    async def run(self, platform: Platform, upload_id: str) -> PublishUpload:
        """Drive the upload to completion.

        Returns quietly if the upload was canceled while running.

        Raises:
            PipelineError: the upload failed; the record is left for the
                caller to mark failed.
        """
        driver = self.drivers.get(platform)
        upload = self.machine.load(platform, upload_id)
        self._event(upload, "process_start", {"status": upload.status.value})

        try:
            async with asyncio.timeout(self.timeout_seconds):
                return await self._drive(driver, upload)
        except TimeoutError as e:
            raise TransientNetwork(
                f"Publish timed out after {int(self.timeout_seconds)}s"
            ) from e
        except InvalidState:
            current = self.machine.load(platform, upload_id)
            if current.status == PublishStatus.FAILED:
                _logger.info(f"[{platform.value}/{upload_id}] stopped: {current.error_message}")
                return current
            raise

    async def _drive(self, driver: "PlatformDriver", upload: PublishUpload) -> PublishUpload:
        if upload.status == PublishStatus.COMPLETED:
            return upload
        if upload.status == PublishStatus.FAILED:
            raise InvalidState(f"Cannot process upload in status {upload.status.value}")

        first_identifier = driver.identifiers[0]

        if driver.has_transfer_phase:
            if upload.status in (PublishStatus.PENDING, PublishStatus.UPLOADING):
                upload = await self._transfer(driver, upload, first_identifier)
        elif upload.status == PublishStatus.PENDING:
            fields = await driver.acquire_target(upload)
            upload = self.machine.transition(
                upload, PublishStatus.PROCESSING, upload_progress=100, **fields
            )
            self._event(upload, "upload_complete", {first_identifier: getattr(upload, first_identifier)})

        if upload.status == PublishStatus.PROCESSING:
            reporter = RecordProgressReporter(self.machine, upload, self.events)
            try:
                fields = await driver.poll_processing(upload, reporter)
            except PlatformProcessingFailed as e:
                self._event(upload, "processing_failed", {"message": e.message})
                raise
            self._event(upload, "processing_complete")
            if driver.has_posting_phase:
                upload = self.machine.transition(
                    upload,
                    PublishStatus.POSTING,
                    processing_progress=POSTING_PROCESSING_PROGRESS,
                    **fields,
                )
            else:
                upload = self.machine.transition(
                    upload, PublishStatus.COMPLETED, processing_progress=100, **fields
                )

        if upload.status == PublishStatus.POSTING:
            fields = await driver.finalize_post(upload)
            upload = self.machine.transition(
                upload, PublishStatus.COMPLETED, processing_progress=100, **fields
            )

        return upload

    async def _transfer(
        self,
        driver: "PlatformDriver",
        upload: PublishUpload,
        first_identifier: str,
    ) -> PublishUpload:
        fields = {}
        if not getattr(upload, first_identifier) or (
            upload.status == PublishStatus.PENDING and not driver.acquire_on_init
        ):
            fields = await driver.acquire_target(upload)

        if upload.status == PublishStatus.PENDING:
            upload = self.machine.transition(upload, PublishStatus.UPLOADING, **fields)
        elif fields:
            upload = self.machine.update_progress(upload, **fields)

        self._event(
            upload,
            "upload_start",
            {"totalSize": upload.source_size_bytes, "startByte": upload.bytes_uploaded},
        )
        reporter = RecordProgressReporter(self.machine, upload, self.events)
        fields = await driver.transfer(upload, reporter)
        upload = self.machine.transition(
            reporter.upload_record, PublishStatus.PROCESSING, upload_progress=100, **fields
        )
        self._event(
            upload,
            "upload_complete",
            {name: getattr(upload, name) for name in driver.identifiers if getattr(upload, name)},
        )
        return upload
