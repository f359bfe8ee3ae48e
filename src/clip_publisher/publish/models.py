"""Publish upload records, one model per platform.

Each record tracks one attempt to publish a rendered clip to one platform.
Platform identifiers are acquired progressively and survive until a retry
clears them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from ..constants import (
    YOUTUBE_DEFAULT_CATEGORY,
    Platform,
    PublishStatus,
)
from ..models import CamelModel, utcnow


class PublishUpload(BaseModel):
    """Fields shared by every platform."""

    id: str
    platform: Platform
    post_id: str
    clip_id: str
    source_url: str
    source_size_bytes: int | None = None

    status: PublishStatus = PublishStatus.PENDING
    upload_progress: int = 0
    processing_progress: int = 0
    bytes_uploaded: int = 0

    error_message: str | None = None
    failed_phase: PublishStatus | None = None
    retry_count: int = 0

    created_by_id: str | None = None
    completed_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def platform_url(self) -> str | None:
        return None

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class YouTubeUpload(PublishUpload):
    platform: Platform = Platform.YOUTUBE
    title: str = "Untitled"
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    privacy_status: Literal["public", "private", "unlisted"] = "public"
    category_id: str = YOUTUBE_DEFAULT_CATEGORY
    is_short: bool = False

    upload_uri: str | None = None
    video_id: str | None = None

    @property
    def platform_url(self) -> str | None:
        if not self.video_id or self.status != PublishStatus.COMPLETED:
            return None
        if self.is_short:
            return f"https://www.youtube.com/shorts/{self.video_id}"
        return f"https://www.youtube.com/watch?v={self.video_id}"


class XUpload(PublishUpload):
    platform: Platform = Platform.X
    text: str = ""

    media_id: str | None = None
    tweet_id: str | None = None
    processing_state: str | None = None

    @property
    def platform_url(self) -> str | None:
        if not self.tweet_id:
            return None
        return f"https://x.com/i/status/{self.tweet_id}"


class InstagramUpload(PublishUpload):
    platform: Platform = Platform.INSTAGRAM
    caption: str = ""
    media_type: Literal["REELS", "VIDEO"] = "REELS"
    share_to_feed: bool = True

    container_id: str | None = None
    media_id: str | None = None
    permalink: str | None = None

    @property
    def platform_url(self) -> str | None:
        return self.permalink


UPLOAD_MODELS: dict[Platform, type[PublishUpload]] = {
    Platform.YOUTUBE: YouTubeUpload,
    Platform.X: XUpload,
    Platform.INSTAGRAM: InstagramUpload,
}

UPLOAD_COLLECTIONS: dict[Platform, str] = {
    Platform.YOUTUBE: "youtube_uploads",
    Platform.X: "x_uploads",
    Platform.INSTAGRAM: "instagram_uploads",
}


# =============================================================================
# Wire models
# =============================================================================

class PublishInitRequest(CamelModel):
    """Init body. Platform-specific fields are ignored by other platforms."""

    post_id: str = ""
    clip_id: str = ""
    format: str | None = None

    # YouTube
    title: str | None = None
    description: str | None = None
    tags: list[str] | None = None
    privacy_status: Literal["public", "private", "unlisted"] | None = None
    category_id: str | None = None
    is_short: bool = False

    # X
    text: str | None = None

    # Instagram
    caption: str | None = None
    media_type: Literal["REELS", "VIDEO"] | None = None
    share_to_feed: bool | None = None


class PublishInitResponse(CamelModel):
    upload_id: str
    status: PublishStatus


class PublishStatusView(CamelModel):
    id: str
    platform: Platform
    status: PublishStatus
    upload_progress: int
    processing_progress: int
    platform_url: str | None = None
    error_message: str | None = None
    retry_count: int = 0
    identifiers: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_upload(cls, upload: PublishUpload, identifiers: tuple[str, ...]) -> "PublishStatusView":
        return cls(
            id=upload.id,
            platform=upload.platform,
            status=upload.status,
            upload_progress=upload.upload_progress,
            processing_progress=upload.processing_progress,
            platform_url=upload.platform_url,
            error_message=upload.error_message,
            retry_count=upload.retry_count,
            identifiers={
                name: value
                for name in identifiers
                if (value := getattr(upload, name, None))
            },
        )
