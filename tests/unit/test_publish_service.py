"""Unit tests for PublishService and PublishRunner with a scripted driver."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest

from clip_publisher.constants import CANCELED_MESSAGE, Platform, PublishStatus
from clip_publisher.errors import InvalidRequest, InvalidState, NotFound
from clip_publisher.platforms import DriverRegistry, PlatformDriver
from clip_publisher.publish import PublishInitRequest, PublishService, normalize_tags
from clip_publisher.storage import InMemoryRecordStore


class ScriptedDriver(PlatformDriver):
    """X-shaped driver whose phases can be held open by the test."""

    platform = Platform.X
    identifiers = ("media_id", "tweet_id")

    def __init__(self):
        super().__init__()
        self.transfer_gate = asyncio.Event()
        self.transfer_gate.set()
        self.processing_delay = 0.0
        self.calls: list[str] = []

    async def acquire_target(self, upload) -> dict[str, Any]:
        self.calls.append("acquire")
        return {"media_id": "m-1"}

    async def transfer(self, upload, report) -> dict[str, Any]:
        self.calls.append("transfer")
        await self.transfer_gate.wait()
        await report.upload(upload.source_size_bytes, upload.source_size_bytes)
        return {"bytes_uploaded": upload.source_size_bytes}

    async def poll_processing(self, upload, report) -> dict[str, Any]:
        self.calls.append("processing")
        if self.processing_delay:
            await asyncio.sleep(self.processing_delay)
        return {}

    async def finalize_post(self, upload) -> dict[str, Any]:
        self.calls.append("post")
        return {"tweet_id": "t-1"}


@pytest.fixture
def driver() -> ScriptedDriver:
    return ScriptedDriver()


@pytest.fixture
def make_service(records: InMemoryRecordStore, source_server, driver: ScriptedDriver):
    def make(**kwargs) -> PublishService:
        http = httpx.AsyncClient(transport=httpx.MockTransport(source_server(lambda r: httpx.Response(404))))
        return PublishService(records, DriverRegistry([driver]), http, **kwargs)

    return make


@pytest.fixture
def service(make_service) -> PublishService:
    return make_service()


def _request(**kwargs) -> PublishInitRequest:
    return PublishInitRequest(post_id="post-1", clip_id="clip-1", text="hi", **kwargs)


class TestInit:
    """Tests for PublishService.init."""

    @pytest.mark.asyncio
    async def test_creates_pending_record(self, service: PublishService, rendered_clip: dict, source_bytes: bytes):
        result = await service.init("x", _request(), user_id="user-1")

        upload = service.machine.load(Platform.X, result.upload_id)
        assert result.status == PublishStatus.PENDING
        assert upload.source_url == rendered_clip["blob_url"]
        assert upload.source_size_bytes == len(source_bytes)
        assert upload.created_by_id == "user-1"
        await service.background.join()

    @pytest.mark.asyncio
    async def test_runs_to_completion(self, service: PublishService, driver: ScriptedDriver, rendered_clip: dict):
        result = await service.init("x", _request())
        await service.background.join()

        assert service.status("x", result.upload_id).status == PublishStatus.COMPLETED
        assert driver.calls == ["acquire", "transfer", "processing", "post"]

    @pytest.mark.asyncio
    async def test_unknown_platform(self, service: PublishService, rendered_clip: dict):
        with pytest.raises(InvalidRequest, match="Unknown platform"):
            await service.init("myspace", _request())

    @pytest.mark.asyncio
    async def test_requires_post_and_clip(self, service: PublishService, rendered_clip: dict):
        with pytest.raises(InvalidRequest):
            await service.init("x", PublishInitRequest(clip_id="clip-1"))
        with pytest.raises(InvalidRequest):
            await service.init("x", PublishInitRequest(post_id="post-1"))

    @pytest.mark.asyncio
    async def test_clip_never_rendered(self, service: PublishService):
        with pytest.raises(NotFound):
            await service.init("x", _request())


class TestRunFailures:
    """Tests for failures raised while the upload runs in the background."""

    @pytest.mark.asyncio
    async def test_timeout_marks_failed(self, make_service, driver: ScriptedDriver, rendered_clip: dict):
        driver.processing_delay = 10
        service = make_service(timeout_seconds=0.05)

        result = await service.init("x", _request())
        await service.background.join()

        upload = service.machine.load(Platform.X, result.upload_id)
        assert upload.status == PublishStatus.FAILED
        assert upload.failed_phase == PublishStatus.PROCESSING
        assert "Publish timed out" in upload.error_message
        events = [e.event for e in service.list_events("x", result.upload_id)]
        assert events[-1] == "upload_failed"

    @pytest.mark.asyncio
    async def test_cancel_mid_transfer_stops_quietly(
        self,
        service: PublishService,
        driver: ScriptedDriver,
        rendered_clip: dict,
    ):
        driver.transfer_gate.clear()
        result = await service.init("x", _request())
        while "transfer" not in driver.calls:
            await asyncio.sleep(0)

        service.cancel("x", result.upload_id)
        driver.transfer_gate.set()
        await service.background.join()

        upload = service.machine.load(Platform.X, result.upload_id)
        assert upload.status == PublishStatus.FAILED
        assert upload.error_message == CANCELED_MESSAGE
        assert upload.retry_count == 0
        assert "post" not in driver.calls
        events = [e.event for e in service.list_events("x", result.upload_id)]
        assert "upload_canceled" in events
        assert "upload_failed" not in events


class TestRetryAndCancel:
    """Tests for retry, cancel and event listing."""

    @pytest.mark.asyncio
    async def test_retry_requires_failed(self, service: PublishService, rendered_clip: dict):
        result = await service.init("x", _request())
        await service.background.join()

        with pytest.raises(InvalidState):
            service.retry("x", result.upload_id)

    @pytest.mark.asyncio
    async def test_retry_after_cancel(self, service: PublishService, driver: ScriptedDriver, rendered_clip: dict):
        driver.transfer_gate.clear()
        result = await service.init("x", _request())
        service.cancel("x", result.upload_id)
        driver.transfer_gate.set()
        await service.background.join()

        service.retry("x", result.upload_id)
        await service.background.join()

        upload = service.machine.load(Platform.X, result.upload_id)
        assert upload.status == PublishStatus.COMPLETED
        assert upload.tweet_id == "t-1"

    def test_unknown_upload(self, service: PublishService):
        with pytest.raises(NotFound):
            service.status("x", "missing")
        with pytest.raises(NotFound):
            service.list_events("x", "missing")
        with pytest.raises(NotFound):
            service.cancel("x", "missing")


class TestNormalizeTags:
    def test_trims_and_drops_empty(self):
        assert normalize_tags([" a ", "", "  ", "b"], is_short=False) == ["a", "b"]

    def test_shorts_tag_added_once(self):
        assert normalize_tags(["a"], is_short=True) == ["a", "#Shorts"]
        assert normalize_tags(["#shorts"], is_short=True) == ["#shorts"]

    def test_none(self):
        assert normalize_tags(None, is_short=False) == []
