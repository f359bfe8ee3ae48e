"""Bounded upload scheduler for batches of files.

Files are fingerprinted and checked against the episode's existing sources;
duplicates are skipped, the rest queued FIFO and drained by up to
MAX_CONCURRENT_UPLOADS workers. Each worker takes a file through:

    pending -> uploading -> creating -> processing -> complete
                   |            |            |
                   v            v            v
                 error        error        error

    pending -> duplicate  (fingerprint already known)

Parts of a single file are always sent sequentially.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable

import httpx

from ..constants import (
    MAX_CONCURRENT_UPLOADS,
    SCHEDULER_UPLOAD_PROGRESS_SHARE,
    FileUploadStatus,
)
from ..errors import TransientNetwork
from .client import ResumableUploader, TransferAPI, UploadProgress, raise_for_api_error
from .fingerprint import fingerprint_file_async

_logger = logging.getLogger("scheduler")


class SourceAPI(ABC):
    """Media source operations the scheduler calls after a transfer."""

    @abstractmethod
    async def check_duplicates(self, fingerprints: list[str]) -> list[str]:
        ...

    @abstractmethod
    async def create_source(
        self,
        blob_url: str,
        file_name: str,
        label: str,
        content_type: str,
        size_bytes: int,
        fingerprint: str,
    ) -> str:
        """Create the source record and return its id."""
        ...

    @abstractmethod
    async def process_source(self, source_id: str) -> None:
        ...


class HttpSourceAPI(SourceAPI):
    """SourceAPI over HTTP for one podcast episode."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        podcast_id: str,
        episode_id: str,
        user_id: str,
    ):
        self.client = client
        self.base_url = f"{base_url.rstrip('/')}/podcasts/{podcast_id}/episodes/{episode_id}/video-sources"
        self.headers = {"X-User-Id": user_id}

    async def _post(self, path: str, body: dict | None = None) -> dict:
        try:
            response = await self.client.post(f"{self.base_url}{path}", json=body, headers=self.headers)
        except httpx.TransportError as e:
            raise TransientNetwork(f"POST {path or '/'} failed: {e}") from e
        raise_for_api_error(response)
        return response.json()

    async def check_duplicates(self, fingerprints: list[str]) -> list[str]:
        data = await self._post("/check-duplicates", {"fingerprints": fingerprints})
        return data.get("duplicates", [])

    async def create_source(
        self,
        blob_url: str,
        file_name: str,
        label: str,
        content_type: str,
        size_bytes: int,
        fingerprint: str,
    ) -> str:
        data = await self._post(
            "",
            {
                "videoBlobUrl": blob_url,
                "fileName": file_name,
                "label": label,
                "contentType": content_type,
                "sizeBytes": size_bytes,
                "contentFingerprint": fingerprint,
            },
        )
        return data["videoSource"]["id"]

    async def process_source(self, source_id: str) -> None:
        await self._post(f"/{source_id}/process")


@dataclass
class FileUpload:
    """Tracking state for one file in a batch."""

    path: Path
    fingerprint: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    status: FileUploadStatus = FileUploadStatus.PENDING
    progress: int = 0
    error: str | None = None
    blob_url: str | None = None
    source_id: str | None = None

    @property
    def name(self) -> str:
        return self.path.name


FileCallback = Callable[[FileUpload], Awaitable[None]] | None


class BoundedUploadScheduler:
    """Drains a shared queue of file uploads with a fixed worker pool.

    Usage:
        scheduler = BoundedUploadScheduler(transfer_api, source_api)
        files = await scheduler.upload_all([Path("cam1.mp4"), Path("cam2.mp4")])
    """

    def __init__(
        self,
        transfer_api: TransferAPI,
        source_api: SourceAPI,
        max_concurrent: int = MAX_CONCURRENT_UPLOADS,
        file_callback: FileCallback = None,
        uploader_factory: Callable[..., ResumableUploader] = ResumableUploader,
    ):
        self.transfer_api = transfer_api
        self.source_api = source_api
        self.max_concurrent = max_concurrent
        self.file_callback = file_callback
        self._uploader_factory = uploader_factory
        self._queue: asyncio.Queue[FileUpload] = asyncio.Queue()
        self._cancelled = False
        self.files: list[FileUpload] = []
        self.active_workers = 0

    # -------------------------------------------------------------------------
    # Counters
    # -------------------------------------------------------------------------

    @property
    def completed_count(self) -> int:
        return sum(1 for f in self.files if f.status == FileUploadStatus.COMPLETE)

    @property
    def error_count(self) -> int:
        return sum(1 for f in self.files if f.status == FileUploadStatus.ERROR)

    @property
    def total_count(self) -> int:
        return len(self.files)

    @property
    def is_uploading(self) -> bool:
        return self.active_workers > 0 or not self._queue.empty()

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def cancel(self) -> None:
        """Drop queued files. Files already in flight finish on their own."""
        self._cancelled = True
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    async def _update(self, upload: FileUpload, **changes) -> None:
        for key, value in changes.items():
            setattr(upload, key, value)
        if self.file_callback:
            await self.file_callback(upload)

    async def upload_all(self, paths: list[Path]) -> list[FileUpload]:
        """Upload a batch and return the per-file outcome.

        Files whose fingerprint already belongs to a source of the episode
        are marked duplicate and never uploaded.
        """
        if not paths:
            return []
        self._cancelled = False

        fingerprints = await asyncio.gather(*[fingerprint_file_async(Path(p)) for p in paths])
        batch = [FileUpload(path=Path(p), fingerprint=fp) for p, fp in zip(paths, fingerprints)]
        self.files.extend(batch)

        known = set(await self.source_api.check_duplicates(list(dict.fromkeys(fingerprints))))
        for upload in batch:
            if upload.fingerprint in known:
                _logger.info(f"{upload.name} already uploaded | skipping")
                await self._update(upload, status=FileUploadStatus.DUPLICATE, progress=100)
            else:
                self._queue.put_nowait(upload)

        worker_count = min(self.max_concurrent - self.active_workers, self._queue.qsize())
        _logger.info(f"Batch of {len(batch)} files | {len(known)} duplicates | starting {worker_count} workers")
        await asyncio.gather(*[self._worker(i) for i in range(worker_count)])
        return batch


    async def _worker(self, worker_id: int) -> None:
        self.active_workers += 1
        try:
            while not self._cancelled:
                try:
                    upload = self._queue.get_nowait()
                except asyncio.QueueEmpty:
                    break
                try:
                    await self._upload_one(upload)
                finally:
                    self._queue.task_done()
        finally:
            self.active_workers -= 1
            _logger.debug(f"Worker {worker_id} exiting")

    async def _upload_one(self, upload: FileUpload) -> None:
        content_type = mimetypes.guess_type(upload.name)[0] or "video/mp4"
        size = upload.path.stat().st_size

        async def on_part(progress: UploadProgress) -> None:
            if progress.total_parts:
                pct = round(progress.completed_parts / progress.total_parts * SCHEDULER_UPLOAD_PROGRESS_SHARE)
                await self._update(upload, progress=pct)

        try:
            await self._update(upload, status=FileUploadStatus.UPLOADING, progress=0)
            uploader = self._uploader_factory(self.transfer_api, progress_callback=on_part, resume=False)
            result = await uploader.upload(upload.path, content_type)
            if result is None:
                await self._update(upload, status=FileUploadStatus.ERROR, error="Cancelled")
                return

            await self._update(upload, status=FileUploadStatus.CREATING, progress=85, blob_url=result.url)
            source_id = await self.source_api.create_source(
                blob_url=result.url,
                file_name=upload.name,
                label=upload.path.stem,
                content_type=content_type,
                size_bytes=size,
                fingerprint=upload.fingerprint,
            )

            await self._update(upload, status=FileUploadStatus.PROCESSING, progress=90, source_id=source_id)
            await self.source_api.process_source(source_id)

            await self._update(upload, status=FileUploadStatus.COMPLETE, progress=100)
            _logger.info(f"{upload.name} complete | source {source_id}")
        except Exception as e:
            _logger.error(f"{upload.name} failed: {e}")
            await self._update(upload, status=FileUploadStatus.ERROR, error=str(e))
