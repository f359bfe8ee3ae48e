"""Status enums and state constants for the upload and publish pipeline.

This module contains all status enums and state definitions:
- Chunked transfer session states (server side)
- Resumable client uploader states
- Per-file states used by the batch scheduler
- Publish lifecycle states shared by every platform

Publish lifecycle:
  PENDING -> UPLOADING -> PROCESSING -> [POSTING] -> COMPLETED
                 |             |             |
                 v             v             v
               FAILED <------ FAILED <----- FAILED

MODIFICATION GUIDE:
------------------
- Add new enum values at the END to keep persisted records readable
- Values are persisted verbatim in the record store, never rename them
"""

from enum import Enum
from typing import Final


# =============================================================================
# TRANSFER SESSION STATUS
# =============================================================================

class TransferStatus(str, Enum):
    """Status of a server-side chunked transfer session.

    Workflow:
        UPLOADING -> COMPLETING -> COMPLETED
            |            |
            v            v
         EXPIRED       FAILED
    """

    UPLOADING = "uploading"
    """Session accepts part uploads."""

    COMPLETING = "completing"
    """All parts received, blob store is assembling the object."""

    COMPLETED = "completed"
    """Object assembled, final URL recorded."""

    FAILED = "failed"
    """Finalize failed, error message recorded."""

    EXPIRED = "expired"
    """A request arrived after the session TTL."""


# =============================================================================
# CLIENT UPLOADER STATUS
# =============================================================================

class ClientUploadStatus(str, Enum):
    """Status of the resumable client uploader."""

    IDLE = "idle"
    CHECKING = "checking"
    INITIALIZING = "initializing"
    UPLOADING = "uploading"
    COMPLETING = "completing"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def is_active(self) -> bool:
        """True while the uploader is doing work."""
        return self in (
            ClientUploadStatus.CHECKING,
            ClientUploadStatus.INITIALIZING,
            ClientUploadStatus.UPLOADING,
            ClientUploadStatus.COMPLETING,
        )


# =============================================================================
# BATCH FILE STATUS
# =============================================================================

class FileUploadStatus(str, Enum):
    """Status of one file inside a scheduler batch."""

    PENDING = "pending"
    UPLOADING = "uploading"
    CREATING = "creating"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"
    DUPLICATE = "duplicate"

    @property
    def is_terminal(self) -> bool:
        return self in (FileUploadStatus.COMPLETE, FileUploadStatus.ERROR, FileUploadStatus.DUPLICATE)


# =============================================================================
# PUBLISH STATUS
# =============================================================================

class PublishStatus(str, Enum):
    """Status of one publish attempt to one external platform."""

    PENDING = "pending"
    """Record created, driver not started (or reset by retry)."""

    UPLOADING = "uploading"
    """Bytes are being transferred to the platform."""

    PROCESSING = "processing"
    """Platform is processing the media."""

    POSTING = "posting"
    """Creating the post that references the processed media."""

    COMPLETED = "completed"
    """Published."""

    FAILED = "failed"
    """Failed or canceled. Only a retry leaves this state."""

    @property
    def is_terminal(self) -> bool:
        return self in (PublishStatus.COMPLETED, PublishStatus.FAILED)


# =============================================================================
# SOURCE PROCESSING STATUS
# =============================================================================

class SourceStatus(str, Enum):
    """Status of a media source record after its transfer completed."""

    UPLOADED = "uploaded"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


# =============================================================================
# PLATFORM
# =============================================================================

class Platform(str, Enum):
    """Publish destination."""

    YOUTUBE = "youtube"
    X = "x"
    INSTAGRAM = "instagram"


# =============================================================================
# STATUS COLORS (Rich markup)
# =============================================================================

STATUS_COLORS: Final[dict[str, str]] = {
    "pending": "dim",
    "checking": "cyan",
    "initializing": "cyan",
    "uploading": "cyan",
    "creating": "cyan",
    "processing": "yellow",
    "posting": "yellow",
    "completing": "yellow",
    "complete": "green",
    "completed": "green",
    "failed": "red",
    "error": "red",
    "cancelled": "dim",
    "duplicate": "dim",
    "expired": "red",
}
"""Rich color names for status display."""
