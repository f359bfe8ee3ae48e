"""YouTube Data API client for resumable video uploads.

Implements the resumable upload protocol:
1. POST the video metadata, receive a session URI in ``Location``
2. PUT the bytes in chunks with ``Content-Range``; 308 means "continue"
   and its ``Range`` header says how far the server got
3. Poll ``processingDetails`` until the video is processed

API Reference:
https://developers.google.com/youtube/v3/guides/using_resumable_upload_protocol
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx

from ...auth import TokenRefreshGuard
from ...constants import YOUTUBE_CHUNK_SIZE, YOUTUBE_RETRY_DELAYS, Platform
from ...errors import AuthExpired, PipelineError, PlatformAPIError, TransientNetwork
from ...publish.source import fetch_range

_api_logger = logging.getLogger("platform_api")

YOUTUBE_UPLOAD_URL = "https://www.googleapis.com/upload/youtube/v3/videos"
YOUTUBE_VIDEO_URL = "https://www.googleapis.com/youtube/v3/videos"

_RANGE_LAST_BYTE = re.compile(r"bytes=\d+-(\d+)")

# Statuses worth another attempt with the same chunk
_RETRYABLE_STATUSES = {403, 429}


def parse_range_header(value: str | None) -> int | None:
    """Last byte the server holds, from a ``Range: bytes=0-N`` header."""
    if not value:
        return None
    match = _RANGE_LAST_BYTE.search(value)
    return int(match.group(1)) if match else None


@dataclass
class ProcessingStatus:
    """Result of one processing status check."""

    status: str  # "processing" | "processed" | "failed"
    progress: int | None = None


@dataclass
class _ChunkResult:
    done: bool
    last_byte: int
    video_id: str | None = None


class YouTubeClient:
    """Resumable upload and processing status calls."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        guard: TokenRefreshGuard,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        retry_delays: tuple[float, ...] = YOUTUBE_RETRY_DELAYS,
        chunk_size: int = YOUTUBE_CHUNK_SIZE,
    ):
        self.http = http
        self.guard = guard
        self.sleep = sleep
        self.retry_delays = retry_delays
        self.chunk_size = chunk_size
        self._api_call_count = 0

    async def _access_token(self, force_refresh: bool = False) -> str:
        token = await self.guard.get_valid_token(Platform.YOUTUBE, force_refresh=force_refresh)
        return token.access_token

    def _log_call(self, method: str, what: str) -> int:
        self._api_call_count += 1
        _api_logger.info(f"YOUTUBE API CALL #{self._api_call_count} | {method} {what}")
        return self._api_call_count

    def _error(self, message: str, response: httpx.Response) -> PlatformAPIError:
        _api_logger.error(f"YOUTUBE API CALL #{self._api_call_count} | ERROR {response.status_code}: {response.text[:500]}")
        return PlatformAPIError(
            f"{message} ({response.status_code}): {response.text or response.reason_phrase}",
            platform=Platform.YOUTUBE.value,
            status_code=response.status_code,
            body=response.text,
        )

    async def initialize_resumable_upload(
        self,
        metadata: dict,
        video_size: int,
        content_type: str = "video/mp4",
    ) -> str:
        """Start a resumable session.

        Args:
            metadata: title, description, tags, categoryId, privacyStatus
            video_size: Total bytes that will be uploaded

        Returns:
            The session URI all chunks are PUT to.
        """
        access_token = await self._access_token()
        self._log_call("POST", f"videos.insert (resumable) | size: {video_size}")
        response = await self.http.post(
            YOUTUBE_UPLOAD_URL,
            params={"uploadType": "resumable", "part": "snippet,status"},
            headers={
                "Authorization": f"Bearer {access_token}",
                "X-Upload-Content-Length": str(video_size),
                "X-Upload-Content-Type": content_type,
            },
            json={
                "snippet": {
                    "title": metadata["title"],
                    "description": metadata.get("description", ""),
                    "tags": metadata.get("tags", []),
                    "categoryId": metadata.get("categoryId", "22"),
                },
                "status": {
                    "privacyStatus": metadata.get("privacyStatus", "public"),
                    "selfDeclaredMadeForKids": False,
                },
            },
        )
        if not response.is_success:
            raise self._error("Failed to initialize YouTube upload", response)

        upload_uri = response.headers.get("location")
        if not upload_uri:
            raise PlatformAPIError("YouTube upload URI missing from response", platform=Platform.YOUTUBE.value)
        return upload_uri

    async def get_resume_position(self, upload_uri: str, total_size: int) -> tuple[int, str | None]:
        """Ask the server how many bytes of the session it holds.

        Returns:
            Tuple of (next byte to send, video id if the upload already finished)
        """
        access_token = await self._access_token()
        self._log_call("PUT", f"resume query | total: {total_size}")
        response = await self.http.put(
            upload_uri,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Length": "0",
                "Content-Range": f"bytes */{total_size}",
            },
        )
        if response.status_code == 308:
            last_byte = parse_range_header(response.headers.get("range"))
            return (last_byte + 1 if last_byte is not None else 0), None
        if response.is_success:
            video_id = None
            try:
                video_id = response.json().get("id")
            except ValueError:
                _api_logger.warning("Resume query returned a non-JSON success body")
            return total_size, video_id
        raise self._error("Failed to get upload resume position", response)

    async def _upload_chunk_once(
        self,
        upload_uri: str,
        access_token: str,
        chunk: bytes,
        start: int,
        end: int,
        total: int,
    ) -> _ChunkResult:
        self._log_call("PUT", f"chunk bytes {start}-{end}/{total}")
        response = await self.http.put(
            upload_uri,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Length": str(len(chunk)),
                "Content-Range": f"bytes {start}-{end}/{total}",
            },
            content=chunk,
        )
        if response.status_code == 308:
            last_byte = parse_range_header(response.headers.get("range"))
            return _ChunkResult(done=False, last_byte=end if last_byte is None else last_byte)

        if not response.is_success:
            raise self._error("YouTube upload failed", response)

        video_id = response.json().get("id")
        if not video_id:
            raise PlatformAPIError("YouTube upload completed but video ID missing", platform=Platform.YOUTUBE.value)
        return _ChunkResult(done=True, last_byte=end, video_id=video_id)

    async def stream_upload(
        self,
        upload_uri: str,
        source_url: str,
        start_byte: int,
        total_size: int,
        on_progress: Callable[[int], Awaitable[None]],
    ) -> str:
        """Copy the source into the session, chunk by chunk.

        Each chunk is attempted once per entry in ``retry_delays``, sleeping
        that long first. A 401 forces a token refresh before the next
        attempt and a second 401 raises AuthExpired. 403, 429 and 5xx are
        retried; anything else fails at once.

        Returns:
            The new video id.
        """
        current = start_byte
        while current < total_size:
            end = min(current + self.chunk_size, total_size) - 1
            chunk = await fetch_range(self.http, source_url, current, end)

            force_refresh = False
            last_error: PipelineError | None = None
            for attempt, delay in enumerate(self.retry_delays):
                if attempt > 0 and delay:
                    await self.sleep(delay)
                access_token = await self._access_token(force_refresh)
                try:
                    result = await self._upload_chunk_once(
                        upload_uri, access_token, chunk, current, end, total_size
                    )
                except httpx.TransportError as e:
                    _api_logger.warning(f"YouTube chunk {current}-{end} transport error: {e}")
                    last_error = TransientNetwork(f"YouTube upload connection failed: {e}")
                    continue
                except PlatformAPIError as e:
                    last_error = e
                    if e.status_code == 401:
                        if force_refresh:
                            raise AuthExpired(
                                "YouTube rejected a freshly refreshed token, reconnect YouTube"
                            ) from e
                        force_refresh = True
                        continue
                    if e.status_code in _RETRYABLE_STATUSES or (e.status_code or 0) >= 500:
                        continue
                    raise

                if result.done:
                    await on_progress(total_size)
                    return result.video_id
                next_byte = result.last_byte + 1
                current = next_byte if next_byte > current else end + 1
                await on_progress(current)
                break
            else:
                status = getattr(last_error, "status_code", None)
                raise PlatformAPIError(
                    f"YouTube upload failed after retries (status {status})",
                    platform=Platform.YOUTUBE.value,
                    status_code=status,
                ) from last_error

        raise PlatformAPIError("YouTube upload did not return a video ID", platform=Platform.YOUTUBE.value)

    async def check_processing_status(self, video_id: str) -> ProcessingStatus:
        access_token = await self._access_token()
        self._log_call("GET", f"videos.list processingDetails | id: {video_id}")
        response = await self.http.get(
            YOUTUBE_VIDEO_URL,
            params={"part": "processingDetails,status", "id": video_id},
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if not response.is_success:
            raise self._error("Failed to get processing status", response)

        items = response.json().get("items") or []
        details = (items[0] if items else {}).get("processingDetails") or {}
        processing = details.get("processingStatus")

        if processing == "succeeded":
            return ProcessingStatus(status="processed", progress=100)
        if processing == "failed":
            return ProcessingStatus(status="failed")

        progress = details.get("processingProgress") or {}
        percent = None
        if progress.get("partsTotal") and progress.get("partsProcessed"):
            percent = round(int(progress["partsProcessed"]) / int(progress["partsTotal"]) * 100)
        return ProcessingStatus(status="processing", progress=percent)
