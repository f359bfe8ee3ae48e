"""Unit tests for the record and blob stores."""

from __future__ import annotations

from pathlib import Path

import pytest

from clip_publisher.storage import InMemoryRecordStore, JsonFileRecordStore, LocalBlobStore, RecordStore


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path: Path) -> RecordStore:
    if request.param == "memory":
        return InMemoryRecordStore()
    return JsonFileRecordStore(tmp_path / "records")


class TestRecordStore:
    """Behaviour shared by both record store backends."""

    def test_insert_and_get(self, store: RecordStore):
        stored = store.insert("things", {"id": "a", "name": "first"})

        assert stored["created_at"] == stored["updated_at"]
        assert store.get("things", "a")["name"] == "first"
        assert store.get("things", "missing") is None

    def test_insert_requires_id(self, store: RecordStore):
        with pytest.raises(ValueError):
            store.insert("things", {"name": "no id"})

    def test_update_merges(self, store: RecordStore):
        store.insert("things", {"id": "a", "name": "first", "count": 1})

        updated = store.update("things", "a", {"count": 2})

        assert updated["name"] == "first"
        assert updated["count"] == 2
        assert store.get("things", "a")["count"] == 2

    def test_update_missing(self, store: RecordStore):
        with pytest.raises(KeyError):
            store.update("things", "missing", {"count": 2})

    def test_find_filters(self, store: RecordStore):
        store.insert("things", {"id": "a", "kind": "x", "owner": "u1"})
        store.insert("things", {"id": "b", "kind": "y", "owner": "u1"})
        store.insert("things", {"id": "c", "kind": "x", "owner": "u2"})

        assert {r["id"] for r in store.find("things", owner="u1")} == {"a", "b"}
        assert [r["id"] for r in store.find("things", kind="x", owner="u2")] == ["c"]
        assert store.find("other") == []


class TestInMemoryRecordStore:
    def test_returns_copies(self):
        store = InMemoryRecordStore()
        store.insert("things", {"id": "a", "tags": ["x"]})

        store.get("things", "a")["tags"].append("y")

        assert store.get("things", "a")["tags"] == ["x"]


class TestJsonFileRecordStore:
    """Tests for the file-backed store."""

    def test_persists_across_instances(self, tmp_path: Path):
        JsonFileRecordStore(tmp_path).insert("things", {"id": "a", "name": "first"})

        assert JsonFileRecordStore(tmp_path).get("things", "a")["name"] == "first"
        assert (tmp_path / "things" / "a.json").exists()

    def test_rejects_path_like_ids(self, tmp_path: Path):
        store = JsonFileRecordStore(tmp_path)
        with pytest.raises(ValueError):
            store.get("things", "../escape")

    def test_find_skips_unreadable_files(self, tmp_path: Path):
        store = JsonFileRecordStore(tmp_path)
        store.insert("things", {"id": "a"})
        (tmp_path / "things" / "broken.json").write_text("{not json", encoding="utf-8")

        assert [r["id"] for r in store.find("things")] == ["a"]


class TestLocalBlobStore:
    """Tests for multipart assembly on disk."""

    @pytest.mark.asyncio
    async def test_assembles_in_given_order(self, blobs: LocalBlobStore):
        upload_id = await blobs.create_multipart_upload("podcasts/p1/a.mp4", "video/mp4")
        etag2 = await blobs.upload_part("podcasts/p1/a.mp4", upload_id, 2, b"world")
        etag1 = await blobs.upload_part("podcasts/p1/a.mp4", upload_id, 1, b"hello ")

        url = await blobs.complete_multipart_upload("podcasts/p1/a.mp4", upload_id, [(1, etag1), (2, etag2)])

        assert url == "http://testserver/blobs/podcasts/p1/a.mp4"
        assert (blobs.root / "podcasts/p1/a.mp4").read_bytes() == b"hello world"
        assert not (blobs.root / ".multipart" / upload_id).exists()

    @pytest.mark.asyncio
    async def test_unknown_upload(self, blobs: LocalBlobStore):
        with pytest.raises(FileNotFoundError):
            await blobs.upload_part("k", "nope", 1, b"x")

    @pytest.mark.asyncio
    async def test_missing_part(self, blobs: LocalBlobStore):
        upload_id = await blobs.create_multipart_upload("k.mp4", "video/mp4")
        etag = await blobs.upload_part("k.mp4", upload_id, 1, b"x")

        with pytest.raises(FileNotFoundError, match="Missing part 2"):
            await blobs.complete_multipart_upload("k.mp4", upload_id, [(1, etag), (2, "etag")])

    def test_key_cannot_escape_root(self, blobs: LocalBlobStore):
        with pytest.raises(ValueError):
            blobs._object_path("../outside.mp4")
