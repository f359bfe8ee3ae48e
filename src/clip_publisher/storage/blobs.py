"""Multipart blob store interface and a local filesystem backend."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import shutil
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

_logger = logging.getLogger("storage")


class BlobStore(ABC):
    """Object storage with S3-style multipart uploads."""

    @abstractmethod
    async def create_multipart_upload(self, key: str, content_type: str) -> str:
        """Start a multipart upload and return its upload id."""
        ...

    @abstractmethod
    async def upload_part(self, key: str, upload_id: str, part_number: int, data: bytes) -> str:
        """Store one part and return its etag."""
        ...

    @abstractmethod
    async def complete_multipart_upload(
        self,
        key: str,
        upload_id: str,
        parts: list[tuple[int, str]],
    ) -> str:
        """Assemble the parts in the given order and return the public URL."""
        ...


class LocalBlobStore(BlobStore):
    """Stores parts and assembled objects under a local directory.

    Storage structure:
        <root>/
            .multipart/<upload_id>/<part_number>.part
            podcasts/<podcast>/episodes/<episode>/<ms>-<filename>
    """

    def __init__(self, root: Path, base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.root.mkdir(parents=True, exist_ok=True)

    def _upload_dir(self, upload_id: str) -> Path:
        return self.root / ".multipart" / upload_id

    def _object_path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ValueError(f"Blob key escapes store root: {key!r}")
        return path

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    async def create_multipart_upload(self, key: str, content_type: str) -> str:
        upload_id = uuid.uuid4().hex
        self._upload_dir(upload_id).mkdir(parents=True, exist_ok=True)
        _logger.debug(f"Multipart upload {upload_id} started for {key} ({content_type})")
        return upload_id

    async def upload_part(self, key: str, upload_id: str, part_number: int, data: bytes) -> str:
        upload_dir = self._upload_dir(upload_id)
        if not upload_dir.exists():
            raise FileNotFoundError(f"Unknown multipart upload: {upload_id}")
        part_path = upload_dir / f"{part_number}.part"
        await asyncio.to_thread(part_path.write_bytes, data)
        return hashlib.md5(data).hexdigest()

    def _assemble(self, key: str, upload_id: str, parts: list[tuple[int, str]]) -> None:
        upload_dir = self._upload_dir(upload_id)
        target = self._object_path(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "wb") as out:
            for part_number, _etag in parts:
                part_path = upload_dir / f"{part_number}.part"
                if not part_path.exists():
                    raise FileNotFoundError(f"Missing part {part_number} for upload {upload_id}")
                with open(part_path, "rb") as part:
                    shutil.copyfileobj(part, out)
        shutil.rmtree(upload_dir, ignore_errors=True)

    async def complete_multipart_upload(
        self,
        key: str,
        upload_id: str,
        parts: list[tuple[int, str]],
    ) -> str:
        await asyncio.to_thread(self._assemble, key, upload_id, parts)
        _logger.info(f"Assembled {key} from {len(parts)} parts")
        return self.url_for(key)
