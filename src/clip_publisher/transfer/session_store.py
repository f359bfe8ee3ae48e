"""Durable store for transfer sessions."""

from __future__ import annotations

from datetime import datetime

from ..constants import TransferStatus
from ..models import utcnow
from ..storage import RecordStore
from .models import TransferSession

SESSIONS_COLLECTION = "upload_sessions"


class TransferSessionStore:
    """Reads and writes TransferSession records.

    Every ``save`` writes the full session. Writers are assumed to be
    serialized per session id.
    """

    def __init__(self, records: RecordStore):
        self.records = records

    def create(self, session: TransferSession) -> TransferSession:
        self.records.insert(SESSIONS_COLLECTION, session.model_dump(mode="json"))
        return session

    def get(self, session_id: str) -> TransferSession | None:
        record = self.records.get(SESSIONS_COLLECTION, session_id)
        if record is None:
            return None
        return TransferSession.model_validate(record)

    def save(self, session: TransferSession) -> TransferSession:
        session.updated_at = utcnow()
        data = session.model_dump(mode="json")
        self.records.update(SESSIONS_COLLECTION, session.id, data)
        return session

    def find_resumable(
        self,
        episode_id: str,
        user_id: str,
        now: datetime | None = None,
    ) -> TransferSession | None:
        """Newest unexpired ``uploading`` session for the episode and creator."""
        now = now or utcnow()
        candidates = [
            TransferSession.model_validate(record)
            for record in self.records.find(
                SESSIONS_COLLECTION,
                episode_id=episode_id,
                created_by_id=user_id,
                status=TransferStatus.UPLOADING.value,
            )
        ]
        if not candidates:
            return None
        newest = max(candidates, key=lambda s: s.created_at)
        if newest.is_expired(now):
            return None
        return newest
