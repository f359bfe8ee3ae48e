"""Resumable chunked transfer: server coordinator, client uploader, batch scheduler."""

from .chunking import chunk_size, part_range, total_parts
from .client import HttpTransferAPI, ResumableUploader, TransferAPI, UploadProgress
from .coordinator import TransferCoordinator
from .fingerprint import fingerprint_bytes, fingerprint_file
from .models import CompletedPart, TransferSession
from .scheduler import BoundedUploadScheduler, FileUpload, HttpSourceAPI, SourceAPI
from .session_store import TransferSessionStore

__all__ = [
    "chunk_size",
    "part_range",
    "total_parts",
    "fingerprint_bytes",
    "fingerprint_file",
    "CompletedPart",
    "TransferSession",
    "TransferSessionStore",
    "TransferCoordinator",
    "TransferAPI",
    "HttpTransferAPI",
    "ResumableUploader",
    "UploadProgress",
    "SourceAPI",
    "HttpSourceAPI",
    "BoundedUploadScheduler",
    "FileUpload",
]
