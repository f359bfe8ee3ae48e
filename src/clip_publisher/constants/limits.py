"""Limit constants for the upload and publish pipeline.

This module contains all limits and constraints:
- Chunk sizing for the resumable transfer
- Session lifetime and size ceiling
- Client retry and concurrency settings
- Platform chunk sizes and polling intervals

MODIFICATION GUIDE:
------------------
- CHUNK_* limits: the lower bound is the blob store's minimum part size
- YOUTUBE_CHUNK_SIZE must stay a multiple of 256 KiB
- Polling intervals are dictated by the platforms, they do not back off
"""

from typing import Final

MIB: Final[int] = 1024 * 1024
GIB: Final[int] = 1024 * MIB


# =============================================================================
# CHUNKED TRANSFER
# =============================================================================

CHUNK_SIZE_MIN: Final[int] = 5 * MIB
"""Minimum part size accepted by the blob store for multipart uploads."""

CHUNK_SIZE_MAX: Final[int] = 50 * MIB
"""Upper bound keeping a single part transfer short."""

CHUNK_TARGET_PARTS: Final[int] = 1000
"""Number of parts the sizing policy aims for."""

MAX_UPLOAD_BYTES: Final[int] = 50 * GIB
"""Largest file a transfer session accepts (inclusive)."""

SESSION_TTL_SECONDS: Final[int] = 24 * 60 * 60
"""Lifetime of a transfer session from creation."""

FINGERPRINT_PREFIX_BYTES: Final[int] = 2 * MIB
"""Content prefix hashed into the duplicate-detection fingerprint."""


# =============================================================================
# CLIENT UPLOADER
# =============================================================================

PART_MAX_ATTEMPTS: Final[int] = 3
"""Attempts per part before the client uploader gives up."""

PART_RETRY_DELAY_SECONDS: Final[float] = 1.0
"""Base delay, doubled per attempt (1s, 2s)."""

MAX_CONCURRENT_UPLOADS: Final[int] = 2
"""Worker count of the bounded upload scheduler."""

SCHEDULER_UPLOAD_PROGRESS_SHARE: Final[int] = 80
"""Percent of per-file progress attributed to part uploads."""


# =============================================================================
# PUBLISH
# =============================================================================

TOKEN_REFRESH_THRESHOLD_SECONDS: Final[int] = 10 * 60
"""Refresh an OAuth token when it expires within this window."""

PUBLISH_TIMEOUT_SECONDS: Final[int] = 60 * 60
"""Outer wall-clock limit for one run of a publish driver."""

PROCESSING_POLL_SECONDS: Final[float] = 5.0
"""Fixed interval between platform processing status checks."""

CLIENT_MAX_PUBLISH_RETRIES: Final[int] = 3
"""Client-side gate on retry requests for a single publish upload."""

CLIENT_STATUS_POLL_SECONDS: Final[float] = 2.0
"""Interval the CLI uses when watching a publish upload."""

CANCELED_MESSAGE: Final[str] = "Upload canceled"
"""Error message recorded when a publish upload is canceled."""


# =============================================================================
# PLATFORM LIMITS
# =============================================================================

YOUTUBE_CHUNK_SIZE: Final[int] = 10 * MIB
"""Bytes per resumable PUT. Multiple of 256 KiB."""

YOUTUBE_RETRY_DELAYS: Final[tuple[float, ...]] = (0.0, 5.0, 15.0, 45.0)
"""Delay before each attempt of a YouTube chunk PUT."""

YOUTUBE_TITLE_MAX_LENGTH: Final[int] = 100

YOUTUBE_DEFAULT_CATEGORY: Final[str] = "22"
"""People & Blogs."""

X_CHUNK_SIZE: Final[int] = 4 * MIB
"""Bytes per APPEND segment."""

X_DEFAULT_CHECK_AFTER_SECONDS: Final[float] = 5.0

INSTAGRAM_CAPTION_MAX_LENGTH: Final[int] = 2200
"""Maximum caption length in characters for Instagram posts."""

WAITING_PROCESSING_PROGRESS: Final[int] = 50
"""Processing percentage shown while a platform reports no progress."""

POSTING_PROCESSING_PROGRESS: Final[int] = 80
"""Processing percentage once the post/publish call starts."""
