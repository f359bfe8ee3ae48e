"""Global constants package for clip-publisher.

PACKAGE STRUCTURE:
-----------------
- limits.py   : chunk sizing, TTLs, retry and polling settings
- status.py   : status enums for transfers, client uploads and publishes

USAGE EXAMPLES:
--------------
    from clip_publisher.constants import CHUNK_SIZE_MIN, PublishStatus
"""

from .limits import (
    CANCELED_MESSAGE,
    CHUNK_SIZE_MAX,
    CHUNK_SIZE_MIN,
    CHUNK_TARGET_PARTS,
    CLIENT_MAX_PUBLISH_RETRIES,
    CLIENT_STATUS_POLL_SECONDS,
    FINGERPRINT_PREFIX_BYTES,
    GIB,
    INSTAGRAM_CAPTION_MAX_LENGTH,
    MAX_CONCURRENT_UPLOADS,
    MAX_UPLOAD_BYTES,
    MIB,
    PART_MAX_ATTEMPTS,
    PART_RETRY_DELAY_SECONDS,
    POSTING_PROCESSING_PROGRESS,
    PROCESSING_POLL_SECONDS,
    PUBLISH_TIMEOUT_SECONDS,
    SCHEDULER_UPLOAD_PROGRESS_SHARE,
    SESSION_TTL_SECONDS,
    TOKEN_REFRESH_THRESHOLD_SECONDS,
    WAITING_PROCESSING_PROGRESS,
    X_CHUNK_SIZE,
    X_DEFAULT_CHECK_AFTER_SECONDS,
    YOUTUBE_CHUNK_SIZE,
    YOUTUBE_DEFAULT_CATEGORY,
    YOUTUBE_RETRY_DELAYS,
    YOUTUBE_TITLE_MAX_LENGTH,
)
from .status import (
    STATUS_COLORS,
    ClientUploadStatus,
    FileUploadStatus,
    Platform,
    PublishStatus,
    SourceStatus,
    TransferStatus,
)

__all__ = [
    # limits
    "CANCELED_MESSAGE",
    "CHUNK_SIZE_MAX",
    "CHUNK_SIZE_MIN",
    "CHUNK_TARGET_PARTS",
    "CLIENT_MAX_PUBLISH_RETRIES",
    "CLIENT_STATUS_POLL_SECONDS",
    "FINGERPRINT_PREFIX_BYTES",
    "GIB",
    "INSTAGRAM_CAPTION_MAX_LENGTH",
    "MAX_CONCURRENT_UPLOADS",
    "MAX_UPLOAD_BYTES",
    "MIB",
    "PART_MAX_ATTEMPTS",
    "PART_RETRY_DELAY_SECONDS",
    "POSTING_PROCESSING_PROGRESS",
    "PROCESSING_POLL_SECONDS",
    "PUBLISH_TIMEOUT_SECONDS",
    "SCHEDULER_UPLOAD_PROGRESS_SHARE",
    "SESSION_TTL_SECONDS",
    "TOKEN_REFRESH_THRESHOLD_SECONDS",
    "WAITING_PROCESSING_PROGRESS",
    "X_CHUNK_SIZE",
    "X_DEFAULT_CHECK_AFTER_SECONDS",
    "YOUTUBE_CHUNK_SIZE",
    "YOUTUBE_DEFAULT_CATEGORY",
    "YOUTUBE_RETRY_DELAYS",
    "YOUTUBE_TITLE_MAX_LENGTH",
    # status
    "STATUS_COLORS",
    "ClientUploadStatus",
    "FileUploadStatus",
    "Platform",
    "PublishStatus",
    "SourceStatus",
    "TransferStatus",
]
