"""Content fingerprint used for duplicate detection.

The fingerprint is the SHA-256 hex digest of the file size (little-endian
unsigned 64-bit) followed by the first 2 MiB of content. Files sharing a
size and a 2 MiB prefix produce the same fingerprint.
"""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path

from ..constants import FINGERPRINT_PREFIX_BYTES


def fingerprint_bytes(data: bytes, size: int) -> str:
    """Fingerprint from a content prefix and the declared total size."""
    digest = hashlib.sha256()
    digest.update(size.to_bytes(8, "little", signed=False))
    digest.update(data[:FINGERPRINT_PREFIX_BYTES])
    return digest.hexdigest()


def fingerprint_file(path: Path) -> str:
    path = Path(path)
    size = path.stat().st_size
    with open(path, "rb") as f:
        prefix = f.read(FINGERPRINT_PREFIX_BYTES)
    return fingerprint_bytes(prefix, size)


async def fingerprint_file_async(path: Path) -> str:
    return await asyncio.to_thread(fingerprint_file, path)
