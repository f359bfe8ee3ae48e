"""Key-value record store with update-by-id.

Records are plain JSON-compatible dicts grouped in named collections and
keyed by their ``id`` field. Two backends:

- InMemoryRecordStore: tests and ephemeral servers
- JsonFileRecordStore: one JSON file per record under a data directory

Storage structure (JsonFileRecordStore):
    <root>/
        upload_sessions/
            3f2a....json
        youtube_uploads/
            9b1c....json
"""

from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

_logger = logging.getLogger("storage")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _matches(record: dict[str, Any], filters: dict[str, Any]) -> bool:
    return all(record.get(key) == value for key, value in filters.items())


class RecordStore(ABC):
    """Abstract record store.

    ``update`` merges the given fields into the stored record and stamps
    ``updated_at``. Concurrent writers to the same record are not
    coordinated: last write wins.
    """

    @abstractmethod
    def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    def insert(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        ...

    @abstractmethod
    def update(self, collection: str, record_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        ...

    @abstractmethod
    def find(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        """Return records whose fields equal every filter value."""
        ...


class InMemoryRecordStore(RecordStore):
    """Dict-backed store. Returned records are copies."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def _collection(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        record = self._collection(collection).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def insert(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        if "id" not in record:
            raise ValueError("Record must have an id")
        stored = copy.deepcopy(record)
        stored.setdefault("created_at", _now_iso())
        stored.setdefault("updated_at", stored["created_at"])
        self._collection(collection)[stored["id"]] = stored
        return copy.deepcopy(stored)

    def update(self, collection: str, record_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        records = self._collection(collection)
        if record_id not in records:
            raise KeyError(f"{collection}/{record_id} not found")
        records[record_id].update(copy.deepcopy(changes))
        records[record_id]["updated_at"] = _now_iso()
        return copy.deepcopy(records[record_id])

    def find(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        return [
            copy.deepcopy(record)
            for record in self._collection(collection).values()
            if _matches(record, filters)
        ]


class JsonFileRecordStore(RecordStore):
    """Persists each record as ``<root>/<collection>/<id>.json``."""

    def __init__(self, root: Path):
        """Initialize the store.

        Args:
            root: Directory holding one subdirectory per collection.
        """
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _collection_dir(self, collection: str) -> Path:
        collection_dir = self.root / collection
        collection_dir.mkdir(parents=True, exist_ok=True)
        return collection_dir

    def _record_path(self, collection: str, record_id: str) -> Path:
        if "/" in record_id or "\\" in record_id or record_id.startswith("."):
            raise ValueError(f"Invalid record id: {record_id!r}")
        return self._collection_dir(collection) / f"{record_id}.json"

    def _write(self, path: Path, record: dict[str, Any]) -> None:
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2, ensure_ascii=False)
        tmp_path.replace(path)

    def get(self, collection: str, record_id: str) -> dict[str, Any] | None:
        path = self._record_path(collection, record_id)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def insert(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        if "id" not in record:
            raise ValueError("Record must have an id")
        stored = dict(record)
        stored.setdefault("created_at", _now_iso())
        stored.setdefault("updated_at", stored["created_at"])
        self._write(self._record_path(collection, stored["id"]), stored)
        _logger.debug(f"Inserted {collection}/{stored['id']}")
        return stored

    def update(self, collection: str, record_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        record = self.get(collection, record_id)
        if record is None:
            raise KeyError(f"{collection}/{record_id} not found")
        record.update(changes)
        record["updated_at"] = _now_iso()
        self._write(self._record_path(collection, record_id), record)
        return record

    def find(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        results = []
        for path in sorted(self._collection_dir(collection).glob("*.json")):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    record = json.load(f)
            except json.JSONDecodeError as e:
                _logger.warning(f"Skipping unreadable record {path}: {e}")
                continue
            if _matches(record, filters):
                results.append(record)
        return results
