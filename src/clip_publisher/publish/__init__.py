"""Publishing rendered clips to YouTube, X and Instagram."""

from .client import HttpPublishAPI, PublishStatusPoller
from .events import UploadEvent, UploadEventLog, UploadEventView
from .models import (
    UPLOAD_COLLECTIONS,
    UPLOAD_MODELS,
    InstagramUpload,
    PublishInitRequest,
    PublishInitResponse,
    PublishStatusView,
    PublishUpload,
    XUpload,
    YouTubeUpload,
)
from .progress import ProgressReporter, RecordProgressReporter
from .runner import PublishRunner
from .service import PublishService, normalize_tags
from .source import RenderedClip, determine_source_size, fetch_range, resolve_source
from .state_machine import ALLOWED_TRANSITIONS, PublishStateMachine

__all__ = [
    "ALLOWED_TRANSITIONS",
    "UPLOAD_COLLECTIONS",
    "UPLOAD_MODELS",
    "HttpPublishAPI",
    "InstagramUpload",
    "ProgressReporter",
    "PublishInitRequest",
    "PublishInitResponse",
    "PublishRunner",
    "PublishService",
    "PublishStateMachine",
    "PublishStatusPoller",
    "PublishStatusView",
    "PublishUpload",
    "RecordProgressReporter",
    "RenderedClip",
    "UploadEvent",
    "UploadEventLog",
    "UploadEventView",
    "XUpload",
    "YouTubeUpload",
    "determine_source_size",
    "fetch_range",
    "normalize_tags",
    "resolve_source",
]
