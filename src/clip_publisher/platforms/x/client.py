"""X (Twitter) chunked media upload and tweet creation.

Media upload commands, all against UPLOAD_URL:
- INIT (form body): declares size and type, returns ``media_id_string``
- APPEND (query + multipart): one call per 4 MiB segment
- FINALIZE (form body): may return ``processing_info`` for async processing
- STATUS (query, GET): polled while ``processing_info.state`` is pending
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx

from ...auth import TokenRefreshGuard
from ...constants import X_CHUNK_SIZE, Platform
from ...errors import AuthExpired, NotConnected, PlatformAPIError, TransientNetwork
from ...publish.source import fetch_range
from .oauth1 import oauth1_header

_api_logger = logging.getLogger("platform_api")

UPLOAD_URL = "https://upload.twitter.com/1.1/media/upload.json"
TWEET_URL = "https://api.x.com/2/tweets"


@dataclass
class ProcessingInfo:
    state: str | None = None
    check_after_secs: float | None = None

    @classmethod
    def from_response(cls, data: dict) -> "ProcessingInfo | None":
        info = data.get("processing_info")
        if not info:
            return None
        return cls(state=info.get("state"), check_after_secs=info.get("check_after_secs"))


class XClient:
    """Signed calls to the X media upload and tweet endpoints.

    The stored X token carries the OAuth token as ``access_token`` and the
    token secret as ``refresh_token``.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        guard: TokenRefreshGuard,
        consumer_key: str,
        consumer_secret: str,
        chunk_size: int = X_CHUNK_SIZE,
    ):
        self.http = http
        self.guard = guard
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.chunk_size = chunk_size
        self._api_call_count = 0

    async def _request(
        self,
        method: str,
        url: str,
        command: str,
        query_params: dict[str, str] | None = None,
        body_params: dict[str, str] | None = None,
        **kwargs,
    ) -> httpx.Response:
        if not self.consumer_key or not self.consumer_secret:
            raise NotConnected("Missing X consumer key or consumer secret")
        token = await self.guard.get_valid_token(Platform.X)

        self._api_call_count += 1
        log_params = {k: v for k, v in {**(query_params or {}), **(body_params or {})}.items() if k != "command"}
        _api_logger.info(f"X API CALL #{self._api_call_count} | {method} {command} | params: {log_params}")

        authorization = oauth1_header(
            method,
            url,
            self.consumer_key,
            self.consumer_secret,
            token=token.access_token,
            token_secret=token.refresh_token or "",
            query_params=query_params,
            body_params=body_params,
        )
        headers = {"Authorization": authorization, **kwargs.pop("headers", {})}
        try:
            response = await self.http.request(
                method,
                url,
                params=query_params,
                data=body_params,
                headers=headers,
                **kwargs,
            )
        except httpx.TransportError as e:
            _api_logger.error(f"X API CALL #{self._api_call_count} | TRANSPORT ERROR: {e}")
            raise TransientNetwork(f"X {command} failed: {e}") from e

        if not response.is_success:
            _api_logger.error(f"X API CALL #{self._api_call_count} | ERROR {response.status_code}: {response.text[:500]}")
            if response.status_code == 401:
                # OAuth 1.0a tokens have no refresh; a 401 means access was revoked
                raise AuthExpired(f"X rejected the stored credentials ({command}), reconnect X")
            raise PlatformAPIError(
                f"X {command} failed ({response.status_code}): {response.text}",
                platform=Platform.X.value,
                status_code=response.status_code,
                body=response.text,
            )
        _api_logger.info(f"X API CALL #{self._api_call_count} | SUCCESS {response.status_code}")
        return response

    async def init_upload(self, total_bytes: int) -> str:
        """Returns the media id."""
        response = await self._request(
            "POST",
            UPLOAD_URL,
            "media INIT",
            body_params={
                "command": "INIT",
                "total_bytes": str(total_bytes),
                "media_type": "video/mp4",
                "media_category": "tweet_video",
            },
        )
        data = response.json()
        media_id = data.get("media_id_string") or data.get("media_id")
        if not media_id:
            raise PlatformAPIError("X media INIT response missing media_id", platform=Platform.X.value)
        return str(media_id)

    async def append_chunk(self, media_id: str, segment_index: int, chunk: bytes) -> None:
        await self._request(
            "POST",
            UPLOAD_URL,
            "media APPEND",
            query_params={
                "command": "APPEND",
                "media_id": media_id,
                "segment_index": str(segment_index),
            },
            files={"media": ("video.mp4", chunk, "video/mp4")},
        )

    async def finalize_upload(self, media_id: str) -> ProcessingInfo | None:
        response = await self._request(
            "POST",
            UPLOAD_URL,
            "media FINALIZE",
            body_params={"command": "FINALIZE", "media_id": media_id},
        )
        return ProcessingInfo.from_response(response.json())

    async def get_status(self, media_id: str) -> ProcessingInfo:
        response = await self._request(
            "GET",
            UPLOAD_URL,
            "media STATUS",
            query_params={"command": "STATUS", "media_id": media_id},
        )
        return ProcessingInfo.from_response(response.json()) or ProcessingInfo()

    async def create_tweet(self, text: str, media_id: str) -> str:
        """Returns the tweet id."""
        response = await self._request(
            "POST",
            TWEET_URL,
            "tweet create",
            json={"text": text, "media": {"media_ids": [media_id]}},
        )
        tweet_id = (response.json().get("data") or {}).get("id")
        if not tweet_id:
            raise PlatformAPIError("X tweet response missing id", platform=Platform.X.value)
        return str(tweet_id)

    async def stream_media(
        self,
        media_id: str,
        source_url: str,
        total_bytes: int,
        on_progress: Callable[[int], Awaitable[None]] | None = None,
    ) -> int:
        """APPEND the whole source, segment by segment. Returns bytes sent."""
        uploaded = 0
        segment = 0
        while uploaded < total_bytes:
            end = min(total_bytes, uploaded + self.chunk_size) - 1
            chunk = await fetch_range(self.http, source_url, uploaded, end)
            if not chunk:
                raise TransientNetwork("Source returned an empty chunk")
            await self.append_chunk(media_id, segment, chunk)
            uploaded += len(chunk)
            segment += 1
            if on_progress:
                await on_progress(uploaded)
        return uploaded
