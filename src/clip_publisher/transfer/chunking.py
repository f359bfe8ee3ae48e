"""Chunk sizing policy for multipart transfers."""

from __future__ import annotations

import math

from ..constants import CHUNK_SIZE_MAX, CHUNK_SIZE_MIN, CHUNK_TARGET_PARTS


def chunk_size(total_bytes: int) -> int:
    """Part size for a file of ``total_bytes``.

    Aims for CHUNK_TARGET_PARTS parts, clamped to [5 MiB, 50 MiB].
    """
    target = math.ceil(total_bytes / CHUNK_TARGET_PARTS)
    return min(CHUNK_SIZE_MAX, max(CHUNK_SIZE_MIN, target))


def total_parts(total_bytes: int, size: int) -> int:
    return math.ceil(total_bytes / size)


def part_range(part_number: int, size: int, total_bytes: int) -> tuple[int, int]:
    """Half-open byte range ``[start, end)`` covered by a 1-based part."""
    start = (part_number - 1) * size
    end = min(part_number * size, total_bytes)
    return start, end
