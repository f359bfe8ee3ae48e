"""Rendered clip lookup and remote source access for publish drivers."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import httpx

from ..errors import NotFound, SizeUnknown, TransientNetwork
from ..storage import RecordStore

_logger = logging.getLogger("publish")

RENDERED_CLIPS_COLLECTION = "rendered_clips"

_CONTENT_RANGE_TOTAL = re.compile(r"/(\d+)$")


@dataclass
class RenderedClip:
    """A rendered output of a clip, stored at a public blob URL."""

    clip_id: str
    format: str
    blob_url: str
    size_bytes: int | None = None
    rendered_at: str = ""


def resolve_source(records: RecordStore, clip_id: str, format: str | None = None) -> RenderedClip:
    """Pick the rendered clip to publish.

    Newest render first. When ``format`` is given and rendered, that render
    wins; otherwise the newest render of any format is used.

    Raises:
        NotFound: the clip has never been rendered.
    """
    rows = records.find(RENDERED_CLIPS_COLLECTION, clip_id=clip_id)
    if not rows:
        raise NotFound("No rendered clip found")

    rows.sort(key=lambda row: row.get("rendered_at") or "", reverse=True)
    clips = [
        RenderedClip(
            clip_id=row["clip_id"],
            format=row.get("format", ""),
            blob_url=row["blob_url"],
            size_bytes=row.get("size_bytes"),
            rendered_at=row.get("rendered_at") or "",
        )
        for row in rows
    ]
    if format:
        for clip in clips:
            if clip.format == format:
                return clip
    return clips[0]


async def determine_source_size(
    client: httpx.AsyncClient,
    url: str,
    fallback: int | None = None,
) -> int:
    """Find the byte size of a remote source.

    Tries HEAD ``Content-Length``, then the total of a one-byte range
    request, then ``fallback``.

    Raises:
        SizeUnknown: none of the above yielded a size.
    """
    try:
        head = await client.head(url)
        if head.is_success and head.headers.get("content-length"):
            return int(head.headers["content-length"])
    except (httpx.HTTPError, ValueError) as e:
        _logger.warning(f"Failed to HEAD source URL: {e}")

    try:
        ranged = await client.get(url, headers={"Range": "bytes=0-0"})
        if ranged.is_success:
            match = _CONTENT_RANGE_TOTAL.search(ranged.headers.get("content-range", ""))
            if match:
                return int(match.group(1))
    except httpx.HTTPError as e:
        _logger.warning(f"Failed to range-fetch source URL: {e}")

    if fallback:
        return fallback

    raise SizeUnknown("Unable to determine source file size")


async def fetch_range(client: httpx.AsyncClient, url: str, start: int, end: int) -> bytes:
    """Fetch bytes ``start..end`` (inclusive) of the source.

    Raises:
        TransientNetwork: the source could not be read.
    """
    try:
        response = await client.get(url, headers={"Range": f"bytes={start}-{end}"})
    except httpx.TransportError as e:
        raise TransientNetwork(f"Failed to fetch source chunk: {e}") from e

    if not response.is_success:
        raise TransientNetwork(
            f"Failed to fetch source chunk ({response.status_code}): {response.text}"
        )
    if response.status_code != 206:
        # Server ignored the Range header and sent the whole file
        return response.content[start:end + 1]
    return response.content
