"""Unit tests for the server-side transfer coordinator."""

from __future__ import annotations

from datetime import timedelta

import pytest

from clip_publisher.constants import GIB, MIB, TransferStatus
from clip_publisher.errors import (
    AccessDenied,
    Expired,
    Incomplete,
    InvalidRequest,
    InvalidState,
    NotFound,
    SizeLimitExceeded,
)
from clip_publisher.models import utcnow
from clip_publisher.storage import InMemoryRecordStore, LocalBlobStore
from clip_publisher.transfer import TransferCoordinator


class FakeClock:
    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def coordinator(records: InMemoryRecordStore, blobs: LocalBlobStore, episode: dict, clock: FakeClock) -> TransferCoordinator:
    return TransferCoordinator(records, blobs, clock=clock)


async def _init(coordinator: TransferCoordinator, total_bytes: int = 12 * MIB, filename: str = "cam1.mp4"):
    return await coordinator.init(
        podcast_id="p1",
        episode_id="e1",
        filename=filename,
        content_type="video/mp4",
        total_bytes=total_bytes,
        user_id="user-1",
    )


class TestInit:
    """Tests for session creation."""

    @pytest.mark.asyncio
    async def test_creates_session(self, coordinator: TransferCoordinator):
        result = await _init(coordinator)

        assert result.chunk_size == 5 * MIB
        assert result.total_parts == 3
        status = coordinator.status(result.session_id)
        assert status.status == TransferStatus.UPLOADING
        assert status.uploaded_bytes == 0

    @pytest.mark.asyncio
    async def test_120_mib(self, coordinator: TransferCoordinator):
        result = await _init(coordinator, total_bytes=120 * MIB)
        assert (result.chunk_size, result.total_parts) == (5 * MIB, 24)

    @pytest.mark.asyncio
    async def test_accepts_exactly_50_gib(self, coordinator: TransferCoordinator):
        result = await _init(coordinator, total_bytes=50 * GIB)
        assert result.total_parts == 1024

    @pytest.mark.asyncio
    async def test_rejects_one_byte_over_limit(self, coordinator: TransferCoordinator):
        with pytest.raises(SizeLimitExceeded):
            await _init(coordinator, total_bytes=50 * GIB + 1)

    @pytest.mark.asyncio
    async def test_rejects_non_member(self, coordinator: TransferCoordinator):
        with pytest.raises(AccessDenied):
            await coordinator.init("p1", "e1", "a.mp4", "video/mp4", 10, user_id="stranger")

    @pytest.mark.asyncio
    async def test_rejects_episode_from_other_podcast(self, coordinator: TransferCoordinator, records: InMemoryRecordStore):
        records.insert("podcast_members", {"id": "m2", "podcast_id": "p2", "user_id": "user-1"})
        with pytest.raises(NotFound):
            await coordinator.init("p2", "e1", "a.mp4", "video/mp4", 10, user_id="user-1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("filename,total", [("", 10), ("  ", 10), ("a.mp4", 0)])
    async def test_rejects_invalid_input(self, coordinator: TransferCoordinator, filename: str, total: int):
        with pytest.raises(InvalidRequest):
            await _init(coordinator, total_bytes=total, filename=filename)


class TestUploadPart:
    """Tests for part acceptance."""

    @pytest.mark.asyncio
    async def test_accepts_part(self, coordinator: TransferCoordinator):
        session = await _init(coordinator)

        result = await coordinator.upload_part(session.session_id, 1, b"a" * 100)

        assert result.skipped is False
        assert result.uploaded_bytes == 100
        assert result.progress == 33

    @pytest.mark.asyncio
    async def test_replayed_part_is_skipped_with_same_etag(self, coordinator: TransferCoordinator):
        session = await _init(coordinator, total_bytes=30 * MIB)

        first = await coordinator.upload_part(session.session_id, 5, b"five")
        again = await coordinator.upload_part(session.session_id, 5, b"five")

        assert again.skipped is True
        assert again.etag == first.etag
        status = coordinator.status(session.session_id)
        assert status.completed_parts == 1
        assert status.uploaded_bytes == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("part_number", [0, 4])
    async def test_rejects_out_of_range_part(self, coordinator: TransferCoordinator, part_number: int):
        session = await _init(coordinator)
        with pytest.raises(InvalidRequest):
            await coordinator.upload_part(session.session_id, part_number, b"x")

    @pytest.mark.asyncio
    async def test_rejects_empty_body(self, coordinator: TransferCoordinator):
        session = await _init(coordinator)
        with pytest.raises(InvalidRequest):
            await coordinator.upload_part(session.session_id, 1, b"")

    @pytest.mark.asyncio
    async def test_unknown_session(self, coordinator: TransferCoordinator):
        with pytest.raises(NotFound):
            await coordinator.upload_part("missing", 1, b"x")

    @pytest.mark.asyncio
    async def test_expired_session_rejects_parts(self, coordinator: TransferCoordinator, clock: FakeClock):
        session = await _init(coordinator)
        clock.advance(hours=24, seconds=1)

        with pytest.raises(Expired):
            await coordinator.upload_part(session.session_id, 1, b"x")
        assert coordinator.status(session.session_id).status == TransferStatus.EXPIRED

        # Once expired the session is no longer uploading
        with pytest.raises(InvalidState):
            await coordinator.upload_part(session.session_id, 1, b"x")


class TestComplete:
    """Tests for finalizing a transfer."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("uploaded", [[], [1], [3], [1, 3], [3, 2]])
    async def test_incomplete_for_any_missing_part(self, coordinator: TransferCoordinator, uploaded: list[int]):
        session = await _init(coordinator)
        for part_number in uploaded:
            await coordinator.upload_part(session.session_id, part_number, b"x")

        with pytest.raises(Incomplete) as exc_info:
            await coordinator.complete(session.session_id)

        assert exc_info.value.uploaded == len(uploaded)
        assert exc_info.value.required == 3
        assert exc_info.value.to_dict()["error"] == "Incomplete upload"

    @pytest.mark.asyncio
    async def test_assembles_parts_in_order(
        self,
        coordinator: TransferCoordinator,
        records: InMemoryRecordStore,
        blobs: LocalBlobStore,
    ):
        session = await _init(coordinator)
        for part_number, data in [(3, b"CCC"), (1, b"AAA"), (2, b"BBB")]:
            await coordinator.upload_part(session.session_id, part_number, data)

        result = await coordinator.complete(session.session_id)

        assert result.size == 12 * MIB
        key = result.url.removeprefix("http://testserver/blobs/")
        assert (blobs.root / key).read_bytes() == b"AAABBBCCC"
        assert coordinator.status(session.session_id).status == TransferStatus.COMPLETED
        assert records.get("episodes", "e1")["audio_blob_url"] == result.url

    @pytest.mark.asyncio
    async def test_completed_session_cannot_complete_again(self, coordinator: TransferCoordinator):
        session = await _init(coordinator, total_bytes=10)
        await coordinator.upload_part(session.session_id, 1, b"0123456789")
        await coordinator.complete(session.session_id)

        with pytest.raises(InvalidState):
            await coordinator.complete(session.session_id)


class TestFindResumable:
    """Tests for resumable session lookup."""

    @pytest.mark.asyncio
    async def test_returns_newest_uploading_session(self, coordinator: TransferCoordinator, clock: FakeClock):
        await _init(coordinator, filename="old.mp4")
        clock.advance(minutes=5)
        newest = await _init(coordinator, filename="new.mp4")
        await coordinator.upload_part(newest.session_id, 1, b"x" * 10)

        info = coordinator.find_resumable("e1", "user-1")

        assert info.has_resumable is True
        assert info.session_id == newest.session_id
        assert info.filename == "new.mp4"
        assert info.completed_parts == 1

    @pytest.mark.asyncio
    async def test_ignores_other_users(self, coordinator: TransferCoordinator):
        await _init(coordinator)
        assert coordinator.find_resumable("e1", "user-2").has_resumable is False

    @pytest.mark.asyncio
    async def test_ignores_expired_sessions(self, coordinator: TransferCoordinator, clock: FakeClock):
        await _init(coordinator)
        clock.advance(hours=25)
        assert coordinator.find_resumable("e1", "user-1").has_resumable is False
