"""Tests for the YouTube resumable upload driver, run through PublishService."""

from __future__ import annotations

import json
import re
from unittest.mock import AsyncMock

import httpx
import pytest

from clip_publisher.auth import TokenRefreshGuard, TokenStore
from clip_publisher.constants import Platform, PublishStatus
from clip_publisher.errors import PlatformAPIError
from clip_publisher.platforms import DriverRegistry
from clip_publisher.platforms.youtube import YouTubeClient, YouTubeDriver, parse_range_header
from clip_publisher.publish import PublishInitRequest, PublishService
from clip_publisher.storage import InMemoryRecordStore

SESSION_URI = "https://www.googleapis.com/upload/youtube/v3/videos?uploadType=resumable&upload_id=sess-1"

_CONTENT_RANGE = re.compile(r"bytes (\d+)-(\d+)/(\d+)")


class FakeYouTube:
    """Minimal resumable upload server plus processing status."""

    def __init__(self):
        self.received = bytearray()
        self.init_bodies: list[dict] = []
        self.put_auth: list[str] = []
        self.processing = ["processing", "succeeded"]
        self.put_failures: dict[int, list[int]] = {}
        self.init_status = 200

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            self.init_bodies.append(json.loads(request.content))
            if self.init_status != 200:
                return httpx.Response(self.init_status, text="quotaExceeded")
            return httpx.Response(200, headers={"location": SESSION_URI})

        if request.method == "PUT":
            return self._put(request)

        # videos.list
        state = self.processing.pop(0) if len(self.processing) > 1 else self.processing[0]
        details = {"processingStatus": state}
        if state == "processing":
            details["processingProgress"] = {"partsTotal": "4", "partsProcessed": "2"}
        return httpx.Response(200, json={"items": [{"id": "vid-1", "processingDetails": details}]})

    def _put(self, request: httpx.Request) -> httpx.Response:
        self.put_auth.append(request.headers["authorization"])
        content_range = request.headers["content-range"]
        if content_range.startswith("bytes */"):
            if not self.received:
                return httpx.Response(308)
            return httpx.Response(308, headers={"range": f"bytes=0-{len(self.received) - 1}"})

        start, end, total = (int(v) for v in _CONTENT_RANGE.match(content_range).groups())
        failures = self.put_failures.get(start)
        if failures:
            return httpx.Response(failures.pop(0), text="chunk rejected")

        assert start == len(self.received)
        self.received.extend(request.content)
        if end + 1 == total:
            return httpx.Response(200, json={"id": "vid-1"})
        return httpx.Response(308, headers={"range": f"bytes=0-{end}"})


@pytest.fixture
def fake() -> FakeYouTube:
    return FakeYouTube()


@pytest.fixture
def make_service(records: InMemoryRecordStore, source_server, no_sleep: AsyncMock):
    def make(fake: FakeYouTube, guard: TokenRefreshGuard) -> PublishService:
        http = httpx.AsyncClient(transport=httpx.MockTransport(source_server(fake)))
        client = YouTubeClient(http, guard, sleep=no_sleep, chunk_size=4096)
        driver = YouTubeDriver(client, poll_interval=5, sleep=no_sleep)
        return PublishService(records, DriverRegistry([driver]), http)

    return make


@pytest.fixture
def service(make_service, fake: FakeYouTube, guard: TokenRefreshGuard) -> PublishService:
    return make_service(fake, guard)


def _request(**overrides) -> PublishInitRequest:
    body = {"postId": "post-1", "clipId": "clip-1", "title": "My clip", "tags": ["podcast"]}
    body.update(overrides)
    return PublishInitRequest.model_validate(body)


class TestParseRangeHeader:
    def test_parses_last_byte(self):
        assert parse_range_header("bytes=0-4095") == 4095

    def test_missing(self):
        assert parse_range_header(None) is None
        assert parse_range_header("garbage") is None


class TestYouTubePublish:
    """End-to-end YouTube uploads against a fake API."""

    @pytest.mark.asyncio
    async def test_publishes_video(
        self,
        service: PublishService,
        fake: FakeYouTube,
        rendered_clip: dict,
        source_bytes: bytes,
        no_sleep: AsyncMock,
    ):
        result = await service.init("youtube", _request(), user_id="user-1")
        await service.background.join()

        view = service.status("youtube", result.upload_id)
        assert view.status == PublishStatus.COMPLETED
        assert view.upload_progress == 100
        assert view.processing_progress == 100
        assert view.identifiers == {"upload_uri": SESSION_URI, "video_id": "vid-1"}
        assert view.platform_url == "https://www.youtube.com/watch?v=vid-1"
        assert bytes(fake.received) == source_bytes
        no_sleep.assert_awaited_with(5)

        events = [e.event for e in service.list_events("youtube", result.upload_id)]
        assert events[:3] == ["init", "process_start", "upload_start"]
        assert "upload_progress" in events
        assert events.index("upload_complete") < events.index("processing_progress")
        assert events[-1] == "processing_complete"

    @pytest.mark.asyncio
    async def test_session_acquired_during_init(self, service: PublishService, fake: FakeYouTube, rendered_clip: dict):
        result = await service.init("youtube", _request(), user_id="user-1")

        upload = service.machine.load(Platform.YOUTUBE, result.upload_id)
        assert upload.upload_uri == SESSION_URI
        assert fake.init_bodies[0]["snippet"]["title"] == "My clip"
        assert fake.init_bodies[0]["status"]["privacyStatus"] == "public"
        await service.background.join()

    @pytest.mark.asyncio
    async def test_shorts_metadata(self, service: PublishService, fake: FakeYouTube, rendered_clip: dict):
        request = _request(title="t" * 150, tags=[" podcast ", "", "clips"], isShort=True)

        result = await service.init("youtube", request)
        await service.background.join()

        snippet = fake.init_bodies[0]["snippet"]
        assert len(snippet["title"]) == 100
        assert snippet["tags"] == ["podcast", "clips", "#Shorts"]
        view = service.status("youtube", result.upload_id)
        assert view.platform_url == "https://www.youtube.com/shorts/vid-1"

    @pytest.mark.asyncio
    async def test_init_failure_marks_record_failed(self, service: PublishService, fake: FakeYouTube, rendered_clip: dict):
        fake.init_status = 403

        with pytest.raises(PlatformAPIError):
            await service.init("youtube", _request())

        [row] = service.records.find("youtube_uploads")
        assert row["status"] == "failed"
        events = [e.event for e in service.list_events("youtube", row["id"])]
        assert events == ["init_error"]

    @pytest.mark.asyncio
    async def test_retries_server_errors_with_fixed_delays(
        self,
        service: PublishService,
        fake: FakeYouTube,
        rendered_clip: dict,
        source_bytes: bytes,
        no_sleep: AsyncMock,
    ):
        fake.put_failures = {4096: [503, 429]}

        result = await service.init("youtube", _request())
        await service.background.join()

        assert service.status("youtube", result.upload_id).status == PublishStatus.COMPLETED
        assert bytes(fake.received) == source_bytes
        delays = [c.args[0] for c in no_sleep.await_args_list]
        assert delays[:2] == [5.0, 15.0]

    @pytest.mark.asyncio
    async def test_retry_resumes_at_server_offset(
        self,
        service: PublishService,
        fake: FakeYouTube,
        rendered_clip: dict,
        source_bytes: bytes,
    ):
        fake.put_failures = {4096: [400]}

        result = await service.init("youtube", _request())
        await service.background.join()

        failed = service.machine.load(Platform.YOUTUBE, result.upload_id)
        assert failed.status == PublishStatus.FAILED
        assert failed.failed_phase == PublishStatus.UPLOADING
        assert failed.bytes_uploaded == 4096

        service.retry("youtube", result.upload_id)
        await service.background.join()

        done = service.machine.load(Platform.YOUTUBE, result.upload_id)
        assert done.status == PublishStatus.COMPLETED
        assert done.upload_uri == SESSION_URI
        assert len(fake.init_bodies) == 1
        assert bytes(fake.received) == source_bytes

    @pytest.mark.asyncio
    async def test_unauthorized_chunk_forces_token_refresh(
        self,
        make_service,
        fake: FakeYouTube,
        token_store: TokenStore,
        rendered_clip: dict,
    ):
        refresher = AsyncMock()
        refresher.refresh.side_effect = lambda token: token.model_copy(update={"access_token": "yt-new"})
        service = make_service(fake, TokenRefreshGuard(token_store, {Platform.YOUTUBE: refresher}))
        fake.put_failures = {0: [401]}

        result = await service.init("youtube", _request())
        await service.background.join()

        assert service.status("youtube", result.upload_id).status == PublishStatus.COMPLETED
        assert fake.put_auth[0] == "Bearer yt-access"
        assert fake.put_auth[1] == "Bearer yt-new"
        assert token_store.get(Platform.YOUTUBE).access_token == "yt-new"

    @pytest.mark.asyncio
    async def test_unauthorized_after_refresh_needs_reconnect(
        self,
        make_service,
        fake: FakeYouTube,
        token_store: TokenStore,
        rendered_clip: dict,
    ):
        refresher = AsyncMock()
        refresher.refresh.side_effect = lambda token: token.model_copy(update={"access_token": "yt-new"})
        service = make_service(fake, TokenRefreshGuard(token_store, {Platform.YOUTUBE: refresher}))
        fake.put_failures = {0: [401, 401]}

        result = await service.init("youtube", _request())
        await service.background.join()

        upload = service.machine.load(Platform.YOUTUBE, result.upload_id)
        assert upload.status == PublishStatus.FAILED
        assert "reconnect YouTube" in upload.error_message
        refresher.refresh.assert_awaited_once()
        assert fake.put_auth == ["Bearer yt-access", "Bearer yt-new"]

    @pytest.mark.asyncio
    async def test_processing_failure(self, service: PublishService, fake: FakeYouTube, rendered_clip: dict):
        fake.processing = ["failed"]

        result = await service.init("youtube", _request())
        await service.background.join()

        upload = service.machine.load(Platform.YOUTUBE, result.upload_id)
        assert upload.status == PublishStatus.FAILED
        assert upload.failed_phase == PublishStatus.PROCESSING
        assert upload.error_message == "YouTube processing failed"
        events = [e.event for e in service.list_events("youtube", result.upload_id)]
        assert "processing_failed" in events
        assert events[-1] == "upload_failed"

    @pytest.mark.asyncio
    async def test_retry_after_processing_failure_starts_over(
        self,
        service: PublishService,
        fake: FakeYouTube,
        rendered_clip: dict,
    ):
        fake.processing = ["failed"]
        result = await service.init("youtube", _request())
        await service.background.join()

        upload = service.machine.load(Platform.YOUTUBE, result.upload_id)
        resets = service.drivers.get("youtube").identifiers_to_clear(upload)

        assert resets["upload_uri"] is None
        assert resets["video_id"] is None
        assert resets["bytes_uploaded"] == 0
