"""Data models for chunked transfers."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from ..constants import TransferStatus
from ..models import CamelModel


class CompletedPart(BaseModel):
    """One accepted part and the tag the blob store assigned to it."""

    part_number: int
    etag: str


class TransferSession(BaseModel):
    """Server-side record of one chunked upload."""

    id: str
    podcast_id: str
    episode_id: str
    created_by_id: str

    # Blob store handles
    upload_id: str
    blob_key: str
    pathname: str

    # Declared file
    filename: str
    content_type: str
    total_bytes: int

    # Sizing
    chunk_size: int
    total_parts: int

    # Progress
    completed_parts: list[CompletedPart] = Field(default_factory=list)
    uploaded_bytes: int = 0
    status: TransferStatus = TransferStatus.UPLOADING

    expires_at: datetime
    blob_url: str | None = None
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime

    @property
    def progress(self) -> int:
        return round(len(self.completed_parts) / self.total_parts * 100)

    def find_part(self, part_number: int) -> CompletedPart | None:
        for part in self.completed_parts:
            if part.part_number == part_number:
                return part
        return None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


# =============================================================================
# Wire models
# =============================================================================

class InitUploadRequest(CamelModel):
    filename: str
    content_type: str = "application/octet-stream"
    total_bytes: int


class InitUploadResult(CamelModel):
    session_id: str
    chunk_size: int
    total_parts: int
    expires_at: datetime


class PartResult(CamelModel):
    part_number: int
    etag: str
    uploaded_bytes: int | None = None
    progress: int | None = None
    skipped: bool = False


class CompleteResult(CamelModel):
    url: str
    size: int


class SessionStatus(CamelModel):
    status: TransferStatus
    uploaded_bytes: int
    total_bytes: int
    completed_parts: int
    total_parts: int
    progress: int
    chunk_size: int
    expires_at: datetime

    @classmethod
    def from_session(cls, session: TransferSession) -> "SessionStatus":
        return cls(
            status=session.status,
            uploaded_bytes=session.uploaded_bytes,
            total_bytes=session.total_bytes,
            completed_parts=len(session.completed_parts),
            total_parts=session.total_parts,
            progress=session.progress,
            chunk_size=session.chunk_size,
            expires_at=session.expires_at,
        )


class ResumeInfo(CamelModel):
    """Answer to "is there a session I can resume?"."""

    has_resumable: bool
    session_id: str | None = None
    filename: str | None = None
    total_bytes: int | None = None
    uploaded_bytes: int | None = None
    completed_parts: int | None = None
    total_parts: int | None = None
    chunk_size: int | None = None
    progress: int | None = None

    @classmethod
    def from_session(cls, session: TransferSession | None) -> "ResumeInfo":
        if session is None:
            return cls(has_resumable=False)
        return cls(
            has_resumable=True,
            session_id=session.id,
            filename=session.filename,
            total_bytes=session.total_bytes,
            uploaded_bytes=session.uploaded_bytes,
            completed_parts=len(session.completed_parts),
            total_parts=session.total_parts,
            chunk_size=session.chunk_size,
            progress=session.progress,
        )
