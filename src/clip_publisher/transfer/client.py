"""Client side of the chunked transfer protocol.

TransferAPI is the seam between the uploader and the server; HttpTransferAPI
talks to the FastAPI surface over httpx. ResumableUploader drives one file:

    idle -> checking -> [initializing] -> uploading -> completing -> complete
                                              |             |
                                              v             v
                                     error | cancelled    error
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

import httpx

from ..constants import (
    PART_MAX_ATTEMPTS,
    PART_RETRY_DELAY_SECONDS,
    ClientUploadStatus,
)
from ..errors import (
    ERROR_CODE_HEADER,
    AccessDenied,
    Expired,
    InvalidRequest,
    NotConnected,
    NotFound,
    PipelineError,
    TransientNetwork,
    error_from_response,
)
from .chunking import part_range
from .models import (
    CompleteResult,
    InitUploadRequest,
    InitUploadResult,
    PartResult,
    ResumeInfo,
    SessionStatus,
)

_logger = logging.getLogger("transfer")

_STATUS_ERRORS: dict[int, type[PipelineError]] = {
    400: InvalidRequest,
    401: NotConnected,
    403: AccessDenied,
    404: NotFound,
    410: Expired,
}


def raise_for_api_error(response: httpx.Response) -> None:
    """Turn a non-2xx answer from the pipeline API into a PipelineError.

    The ``X-Error-Code`` header names the server's error class; without it
    the HTTP status picks the closest one.
    """
    if response.is_success:
        return
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("error") or response.text or response.reason_phrase

    error = error_from_response(response.headers.get(ERROR_CODE_HEADER), message, body)
    if error is not None:
        raise error
    error_cls = _STATUS_ERRORS.get(response.status_code)
    if error_cls is not None:
        raise error_cls(message)
    raise PipelineError(
        message,
        http_status=response.status_code,
        is_retryable=response.status_code >= 500,
    )



class TransferAPI(ABC):
    """Operations the uploader needs from the transfer server."""

    @abstractmethod
    async def find_resumable(self) -> ResumeInfo:
        ...

    @abstractmethod
    async def init(self, filename: str, content_type: str, total_bytes: int) -> InitUploadResult:
        ...

    @abstractmethod
    async def upload_part(self, session_id: str, part_number: int, data: bytes) -> PartResult:
        ...

    @abstractmethod
    async def complete(self, session_id: str) -> CompleteResult:
        ...

    @abstractmethod
    async def status(self, session_id: str) -> SessionStatus:
        ...


class HttpTransferAPI(TransferAPI):
    """TransferAPI over HTTP for one podcast episode."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        podcast_id: str,
        episode_id: str,
        user_id: str,
    ):
        self.client = client
        self.base_url = f"{base_url.rstrip('/')}/podcasts/{podcast_id}/episodes/{episode_id}/uploads"
        self.headers = {"X-User-Id": user_id}

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        headers = {**self.headers, **kwargs.pop("headers", {})}
        try:
            response = await self.client.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                **kwargs,
            )
        except httpx.TransportError as e:
            raise TransientNetwork(f"{method} {path} failed: {e}") from e
        raise_for_api_error(response)
        return response.json()

    async def find_resumable(self) -> ResumeInfo:
        return ResumeInfo.model_validate(await self._request("GET", "/resume"))

    async def init(self, filename: str, content_type: str, total_bytes: int) -> InitUploadResult:
        body = InitUploadRequest(
            filename=filename,
            content_type=content_type,
            total_bytes=total_bytes,
        ).to_wire()
        return InitUploadResult.model_validate(await self._request("POST", "/init", json=body))

    async def upload_part(self, session_id: str, part_number: int, data: bytes) -> PartResult:
        result = await self._request(
            "POST",
            f"/{session_id}/part/{part_number}",
            content=data,
            headers={"Content-Type": "application/octet-stream"},
        )
        return PartResult.model_validate(result)

    async def complete(self, session_id: str) -> CompleteResult:
        return CompleteResult.model_validate(await self._request("POST", f"/{session_id}/complete"))

    async def status(self, session_id: str) -> SessionStatus:
        return SessionStatus.model_validate(await self._request("GET", f"/{session_id}/status"))


@dataclass
class UploadProgress:
    """Snapshot reported after every part."""

    status: ClientUploadStatus = ClientUploadStatus.IDLE
    uploaded_bytes: int = 0
    total_bytes: int = 0
    completed_parts: int = 0
    total_parts: int = 0
    percentage: int = 0
    speed: float = 0.0
    eta: float = 0.0
    error: str | None = None


ProgressCallback = Callable[[UploadProgress], Awaitable[None]] | None


class ResumableUploader:
    """Uploads one file through a TransferAPI, resuming when possible.

    Parts are sent sequentially. A failed part is retried up to
    ``max_attempts`` times with ``retry_delay * 2**attempt`` between
    attempts. ``cancel()`` is honoured before each part and before complete;
    a part in flight always runs to completion or failure.
    """

    def __init__(
        self,
        api: TransferAPI,
        progress_callback: ProgressCallback = None,
        resume: bool = True,
        max_attempts: int = PART_MAX_ATTEMPTS,
        retry_delay: float = PART_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.api = api
        self.progress_callback = progress_callback
        self.resume = resume
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep
        self._clock = clock
        self._cancelled = False
        self._progress = UploadProgress()

    @property
    def progress(self) -> UploadProgress:
        return self._progress

    @property
    def status(self) -> ClientUploadStatus:
        return self._progress.status

    def cancel(self) -> None:
        self._cancelled = True

    async def _report(self, **changes) -> None:
        for key, value in changes.items():
            setattr(self._progress, key, value)
        if self.progress_callback:
            await self.progress_callback(self._progress)

    async def _upload_part_with_retry(self, session_id: str, part_number: int, data: bytes) -> PartResult | None:
        """Returns None when cancelled between attempts."""
        for attempt in range(1, self.max_attempts + 1):
            if self._cancelled:
                return None
            try:
                return await self.api.upload_part(session_id, part_number, data)
            except PipelineError as e:
                _logger.warning(
                    f"Part {part_number} attempt {attempt}/{self.max_attempts} failed: {e}"
                )
                if attempt == self.max_attempts:
                    raise
            await self._sleep(self.retry_delay * (2 ** (attempt - 1)))


    async def upload(self, path: Path, content_type: str | None = None) -> CompleteResult | None:
        """Upload a file.

        Returns:
            Final URL and size, or None if cancelled.

        Raises:
            PipelineError: when init, a part (after retries) or complete fails.
        """
        path = Path(path)
        total_bytes = path.stat().st_size
        content_type = content_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        self._cancelled = False
        self._progress = UploadProgress(status=ClientUploadStatus.CHECKING, total_bytes=total_bytes)
        await self._report()

        try:
            return await self._run(path, content_type, total_bytes)
        except Exception as e:
            await self._report(status=ClientUploadStatus.ERROR, error=str(e))
            raise

    async def _run(self, path: Path, content_type: str, total_bytes: int) -> CompleteResult | None:
        resumable = await self.api.find_resumable() if self.resume else ResumeInfo(has_resumable=False)

        if (
            resumable.has_resumable
            and resumable.filename == path.name
            and resumable.total_bytes == total_bytes
        ):
            session_id = resumable.session_id
            size = resumable.chunk_size
            parts = resumable.total_parts
            start_part = (resumable.completed_parts or 0) + 1
            uploaded_bytes = resumable.uploaded_bytes or 0
            _logger.info(f"Resuming session {session_id} at part {start_part}/{parts}")
            await self._report(
                status=ClientUploadStatus.UPLOADING,
                uploaded_bytes=uploaded_bytes,
                completed_parts=start_part - 1,
                total_parts=parts,
                percentage=resumable.progress or 0,
            )
        else:
            await self._report(status=ClientUploadStatus.INITIALIZING)
            session = await self.api.init(path.name, content_type, total_bytes)
            session_id = session.session_id
            size = session.chunk_size
            parts = session.total_parts
            start_part = 1
            uploaded_bytes = 0
            await self._report(status=ClientUploadStatus.UPLOADING, total_parts=parts)

        started = self._clock()
        bytes_at_start = uploaded_bytes

        with open(path, "rb") as f:
            for part_number in range(start_part, parts + 1):
                if self._cancelled:
                    await self._report(status=ClientUploadStatus.CANCELLED)
                    return None

                start, end = part_range(part_number, size, total_bytes)
                f.seek(start)
                data = await asyncio.to_thread(f.read, end - start)

                result = await self._upload_part_with_retry(session_id, part_number, data)
                if result is None:
                    await self._report(status=ClientUploadStatus.CANCELLED)
                    return None
                if not result.skipped:
                    uploaded_bytes += len(data)

                elapsed = self._clock() - started
                speed = (uploaded_bytes - bytes_at_start) / elapsed if elapsed > 0 else 0.0
                remaining = total_bytes - uploaded_bytes
                await self._report(
                    status=ClientUploadStatus.UPLOADING,
                    uploaded_bytes=uploaded_bytes,
                    completed_parts=part_number,
                    total_parts=parts,
                    percentage=round(part_number / parts * 100),
                    speed=speed,
                    eta=remaining / speed if speed > 0 else 0.0,
                )

        if self._cancelled:
            await self._report(status=ClientUploadStatus.CANCELLED)
            return None

        await self._report(status=ClientUploadStatus.COMPLETING, percentage=99)
        result = await self.api.complete(session_id)
        await self._report(
            status=ClientUploadStatus.COMPLETE,
            percentage=100,
            uploaded_bytes=total_bytes,
        )
        _logger.info(f"Upload of {path.name} complete | {result.url}")
        return result
