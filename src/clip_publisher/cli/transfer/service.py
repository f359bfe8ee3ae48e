"""Transfer service - drives the uploader and scheduler against the API."""

from __future__ import annotations

from pathlib import Path
from typing import Awaitable, Callable

import httpx

from ...config import PipelineSettings
from ...transfer import (
    BoundedUploadScheduler,
    FileUpload,
    HttpSourceAPI,
    HttpTransferAPI,
    ResumableUploader,
    UploadProgress,
)
from ...transfer.models import CompleteResult


class TransferService:
    """Uploads local files to one podcast episode."""

    def __init__(self, settings: PipelineSettings, podcast_id: str, episode_id: str):
        self.settings = settings
        self.podcast_id = podcast_id
        self.episode_id = episode_id

    def _apis(self, client: httpx.AsyncClient) -> tuple[HttpTransferAPI, HttpSourceAPI]:
        args = (
            client,
            self.settings.api_base_url,
            self.podcast_id,
            self.episode_id,
            self.settings.user_id,
        )
        return HttpTransferAPI(*args), HttpSourceAPI(*args)

    async def upload_single(
        self,
        path: Path,
        on_progress: Callable[[UploadProgress], Awaitable[None]],
        resume: bool = True,
    ) -> CompleteResult | None:
        async with httpx.AsyncClient(timeout=120.0) as client:
            transfer_api, _ = self._apis(client)
            uploader = ResumableUploader(transfer_api, progress_callback=on_progress, resume=resume)
            return await uploader.upload(path)

    async def upload_batch(
        self,
        paths: list[Path],
        on_file: Callable[[FileUpload], Awaitable[None]],
    ) -> list[FileUpload]:
        async with httpx.AsyncClient(timeout=120.0) as client:
            transfer_api, source_api = self._apis(client)
            scheduler = BoundedUploadScheduler(
                transfer_api,
                source_api,
                max_concurrent=self.settings.scheduler_concurrency,
                file_callback=on_file,
            )
            return await scheduler.upload_all(paths)
