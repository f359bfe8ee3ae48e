"""Server side of the chunked transfer protocol.

Workflow:
1. init          -> blob store multipart upload + persisted session
2. upload_part   -> one call per part, replays are answered from the session
3. complete      -> parts assembled in part-number order, URL written back
                    to the episode record

Sessions expire lazily: the first request after ``expires_at`` flips the
status to ``expired`` and is rejected.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime, timedelta
from typing import Callable

from ..constants import MAX_UPLOAD_BYTES, SESSION_TTL_SECONDS, TransferStatus
from ..errors import (
    AccessDenied,
    Expired,
    Incomplete,
    InvalidRequest,
    InvalidState,
    NotFound,
    SizeLimitExceeded,
)
from ..models import utcnow
from ..storage import BlobStore, RecordStore
from .chunking import chunk_size, total_parts
from .models import (
    CompletedPart,
    CompleteResult,
    InitUploadResult,
    PartResult,
    ResumeInfo,
    SessionStatus,
    TransferSession,
)
from .session_store import TransferSessionStore

_logger = logging.getLogger("transfer")

MEMBERS_COLLECTION = "podcast_members"
EPISODES_COLLECTION = "episodes"


class TransferCoordinator:
    """Accepts part uploads and drives them into the blob store."""

    def __init__(
        self,
        records: RecordStore,
        blobs: BlobStore,
        sessions: TransferSessionStore | None = None,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        session_ttl_seconds: int = SESSION_TTL_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.records = records
        self.blobs = blobs
        self.sessions = sessions or TransferSessionStore(records)
        self.max_upload_bytes = max_upload_bytes
        self.session_ttl = timedelta(seconds=session_ttl_seconds)
        self._clock = clock

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _is_member(self, podcast_id: str, user_id: str) -> bool:
        return bool(self.records.find(MEMBERS_COLLECTION, podcast_id=podcast_id, user_id=user_id))

    def _load(self, session_id: str) -> TransferSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFound("Upload session not found")
        return session

    def _check_expiry(self, session: TransferSession) -> None:
        if session.is_expired(self._clock()):
            session.status = TransferStatus.EXPIRED
            self.sessions.save(session)
            _logger.info(f"Session {session.id} expired at {session.expires_at.isoformat()}")
            raise Expired("Upload session expired")

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def init(
        self,
        podcast_id: str,
        episode_id: str,
        filename: str,
        content_type: str,
        total_bytes: int,
        user_id: str,
    ) -> InitUploadResult:
        """Start a new transfer session.

        Raises:
            AccessDenied: user is not a member of the podcast
            InvalidRequest: empty filename or non-positive size
            SizeLimitExceeded: more than the configured ceiling
            NotFound: episode does not belong to the podcast
        """
        if not self._is_member(podcast_id, user_id):
            raise AccessDenied("Access denied")

        if not filename or not filename.strip():
            raise InvalidRequest("filename is required")
        if total_bytes < 1:
            raise InvalidRequest("totalBytes must be positive")
        if total_bytes > self.max_upload_bytes:
            limit_gib = self.max_upload_bytes / (1024 ** 3)
            raise SizeLimitExceeded(f"File exceeds {limit_gib:g}GB limit")

        episode = self.records.get(EPISODES_COLLECTION, episode_id)
        if episode is None or episode.get("podcast_id") != podcast_id:
            raise NotFound("Episode not found")

        size = chunk_size(total_bytes)
        parts = total_parts(total_bytes, size)
        pathname = f"podcasts/{podcast_id}/episodes/{episode_id}/{int(time.time() * 1000)}-{filename}"
        upload_id = await self.blobs.create_multipart_upload(pathname, content_type)

        now = self._clock()
        session = TransferSession(
            id=uuid.uuid4().hex,
            podcast_id=podcast_id,
            episode_id=episode_id,
            created_by_id=user_id,
            upload_id=upload_id,
            blob_key=pathname,
            pathname=pathname,
            filename=filename,
            content_type=content_type,
            total_bytes=total_bytes,
            chunk_size=size,
            total_parts=parts,
            expires_at=now + self.session_ttl,
            created_at=now,
            updated_at=now,
        )
        self.sessions.create(session)

        _logger.info(
            f"Session {session.id} created | {filename} | {total_bytes} bytes | "
            f"{parts} parts of {size}"
        )
        return InitUploadResult(
            session_id=session.id,
            chunk_size=size,
            total_parts=parts,
            expires_at=session.expires_at,
        )

    async def upload_part(self, session_id: str, part_number: int, data: bytes) -> PartResult:
        """Accept one part. Replaying an accepted part number is a no-op."""
        if not data:
            raise InvalidRequest("No chunk data received")

        session = self._load(session_id)
        if session.status != TransferStatus.UPLOADING:
            raise InvalidState(f"Session status is {session.status.value}")
        self._check_expiry(session)

        if part_number < 1 or part_number > session.total_parts:
            raise InvalidRequest(f"Part number must be between 1 and {session.total_parts}")

        existing = session.find_part(part_number)
        if existing is not None:
            _logger.debug(f"Session {session_id} | part {part_number} replayed")
            return PartResult(part_number=part_number, etag=existing.etag, skipped=True)

        etag = await self.blobs.upload_part(session.blob_key, session.upload_id, part_number, data)

        session.completed_parts.append(CompletedPart(part_number=part_number, etag=etag))
        session.uploaded_bytes += len(data)
        self.sessions.save(session)

        return PartResult(
            part_number=part_number,
            etag=etag,
            uploaded_bytes=session.uploaded_bytes,
            progress=session.progress,
        )

    async def complete(self, session_id: str) -> CompleteResult:
        """Assemble the object once every part is present.

        Raises:
            NotFound: unknown session
            InvalidState: session is not uploading
            Expired: session passed its TTL
            Incomplete: parts are missing
        """
        session = self._load(session_id)
        if session.status != TransferStatus.UPLOADING:
            raise InvalidState(f"Session status is {session.status.value}")
        self._check_expiry(session)

        uploaded = len(session.completed_parts)
        if uploaded < session.total_parts:
            raise Incomplete(uploaded=uploaded, required=session.total_parts)

        session.status = TransferStatus.COMPLETING
        self.sessions.save(session)

        parts = sorted(session.completed_parts, key=lambda p: p.part_number)
        try:
            url = await self.blobs.complete_multipart_upload(
                session.blob_key,
                session.upload_id,
                [(p.part_number, p.etag) for p in parts],
            )
            session.status = TransferStatus.COMPLETED
            session.blob_url = url
            self.sessions.save(session)

            self.records.update(
                EPISODES_COLLECTION,
                session.episode_id,
                {"audio_blob_url": url, "audio_file_name": session.filename},
            )
        except Exception as e:
            _logger.error(f"Session {session_id} finalize failed: {e}")
            session.status = TransferStatus.FAILED
            session.error_message = str(e)
            self.sessions.save(session)
            raise

        _logger.info(f"Session {session_id} completed | {url}")
        return CompleteResult(url=url, size=session.total_bytes)

    def status(self, session_id: str) -> SessionStatus:
        return SessionStatus.from_session(self._load(session_id))

    def find_resumable(self, episode_id: str, user_id: str) -> ResumeInfo:
        session = self.sessions.find_resumable(episode_id, user_id, now=self._clock())
        return ResumeInfo.from_session(session)
