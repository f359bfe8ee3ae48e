"""Record and blob storage collaborators."""

from .blobs import BlobStore, LocalBlobStore
from .records import InMemoryRecordStore, JsonFileRecordStore, RecordStore

__all__ = [
    "BlobStore",
    "LocalBlobStore",
    "RecordStore",
    "InMemoryRecordStore",
    "JsonFileRecordStore",
]
