"""Abstract base for platform upload drivers.

A driver knows how to talk to one platform. The publish runner owns the
record and its status; drivers only perform the platform calls for one
phase and return the fields that phase produced.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from ..constants import Platform, PublishStatus
from ..publish.models import PublishUpload
from ..publish.progress import ProgressReporter

Sleep = Callable[[float], Awaitable[None]]


class PlatformDriver(ABC):
    """One platform's upload workflow.

    Class attributes:
        platform: Platform served.
        identifiers: Record fields holding platform ids, in acquisition order.
        has_transfer_phase: Bytes are pushed to the platform (False when
            the platform pulls the source URL itself).
        has_posting_phase: A separate call publishes the processed media.
        acquire_on_init: The upload target is acquired synchronously by the
            init request, before the record is returned.
    """

    platform: Platform
    identifiers: tuple[str, ...] = ()
    has_transfer_phase: bool = True
    has_posting_phase: bool = True
    acquire_on_init: bool = False

    def __init__(self, sleep: Sleep = asyncio.sleep):
        self.sleep = sleep

    def identifiers_to_clear(self, upload: PublishUpload) -> dict[str, Any]:
        """Field resets applied when a failed upload is retried.

        Default: drop every platform id and start the byte transfer over.
        """
        resets: dict[str, Any] = {name: None for name in self.identifiers}
        resets.update(bytes_uploaded=0, upload_progress=0, processing_progress=0)
        return resets

    @abstractmethod
    async def acquire_target(self, upload: PublishUpload) -> dict[str, Any]:
        """Obtain the platform id the rest of the workflow hangs off."""
        ...

    async def transfer(self, upload: PublishUpload, report: ProgressReporter) -> dict[str, Any]:
        """Push the source bytes to the platform."""
        return {}

    @abstractmethod
    async def poll_processing(self, upload: PublishUpload, report: ProgressReporter) -> dict[str, Any]:
        """Wait until the platform finished processing.

        Raises:
            PlatformProcessingFailed: the platform rejected the media.
        """
        ...

    async def finalize_post(self, upload: PublishUpload) -> dict[str, Any]:
        """Publish the processed media."""
        return {}


def failed_before(upload: PublishUpload, phase: PublishStatus) -> bool:
    """True when the upload failed at or before ``phase``."""
    order = (PublishStatus.PENDING, PublishStatus.UPLOADING, PublishStatus.PROCESSING, PublishStatus.POSTING)
    if upload.failed_phase not in order:
        return False
    return order.index(upload.failed_phase) <= order.index(phase)
