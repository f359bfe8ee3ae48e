"""OAuth credential model."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from ..constants import Platform
from ..models import utcnow


class OAuthToken(BaseModel):
    """Per-platform credential.

    For X (OAuth 1.0a) ``refresh_token`` holds the token secret and
    ``expires_at`` is None: the token does not expire. For Instagram,
    ``access_token`` is the page token and ``refresh_token`` the long-lived
    user token it was derived from; ``account_id`` is the Instagram user id.
    """

    platform: Platform
    access_token: str
    refresh_token: str = ""
    expires_at: datetime | None = None
    account_name: str = ""
    account_id: str | None = None
    updated_at: datetime = Field(default_factory=utcnow)

    def expires_within(self, seconds: float, now: datetime) -> bool:
        if self.expires_at is None:
            return False
        return (self.expires_at - now).total_seconds() < seconds
