"""Token persistence on top of the record store."""

from __future__ import annotations

import logging

from ..constants import Platform
from ..models import utcnow
from ..storage import RecordStore
from .models import OAuthToken

_logger = logging.getLogger("auth")

TOKENS_COLLECTION = "oauth_tokens"


class TokenStore:
    """One token per platform, keyed by platform name."""

    def __init__(self, records: RecordStore):
        self.records = records

    def get(self, platform: Platform) -> OAuthToken | None:
        record = self.records.get(TOKENS_COLLECTION, platform.value)
        if record is None:
            return None
        return OAuthToken.model_validate(record)

    def save(self, token: OAuthToken) -> OAuthToken:
        token.updated_at = utcnow()
        data = {"id": token.platform.value, **token.model_dump(mode="json")}
        if self.records.get(TOKENS_COLLECTION, token.platform.value) is None:
            self.records.insert(TOKENS_COLLECTION, data)
        else:
            self.records.update(TOKENS_COLLECTION, token.platform.value, data)
        _logger.info(f"Saved {token.platform.value} token for {token.account_name or 'unknown account'}")
        return token
