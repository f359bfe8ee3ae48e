"""Tests for the X chunked media driver and OAuth 1.0a signing."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock
from urllib.parse import parse_qs

import httpx
import pytest

from clip_publisher.auth import TokenRefreshGuard
from clip_publisher.constants import X_DEFAULT_CHECK_AFTER_SECONDS, Platform, PublishStatus
from clip_publisher.platforms import DriverRegistry
from clip_publisher.platforms.x import XClient, XDriver, oauth1_header, percent_encode
from clip_publisher.publish import PublishInitRequest, PublishService
from clip_publisher.storage import InMemoryRecordStore


class FakeX:
    """Media upload and tweet endpoints, recording what they saw."""

    def __init__(self, records: InMemoryRecordStore):
        self.records = records
        self.commands: list[str] = []
        self.segments: list[int] = []
        self.finalize_info: dict | None = {"state": "pending", "check_after_secs": 1}
        self.status_states = ["in_progress", "succeeded"]
        self.record_status_at: dict[str, str] = {}
        self.tweets: list[dict] = []
        self.auth_headers: list[str] = []
        self.status_check_after: int | None = 3
        self.init_status = 202

    def _record_status(self, label: str) -> None:
        [row] = self.records.find("x_uploads")
        self.record_status_at[label] = row["status"]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.auth_headers.append(request.headers.get("authorization", ""))

        if request.url.host == "api.x.com":
            self._record_status("tweet")
            self.tweets.append(json.loads(request.content))
            return httpx.Response(201, json={"data": {"id": "t-1", "text": "hi"}})

        command = request.url.params.get("command")
        if command is None:
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            command = form["command"]
        self.commands.append(command)

        if command == "INIT":
            if self.init_status != 202:
                return httpx.Response(self.init_status, json={"errors": [{"message": "Unauthorized"}]})
            return httpx.Response(202, json={"media_id": 710511363345354753, "media_id_string": "m-1"})
        if command == "APPEND":
            self.segments.append(int(request.url.params["segment_index"]))
            return httpx.Response(204)
        if command == "FINALIZE":
            body = {"media_id_string": "m-1"}
            if self.finalize_info:
                body["processing_info"] = self.finalize_info
            return httpx.Response(200, json=body)

        # STATUS
        self._record_status(f"status-{len(self.commands)}")
        state = self.status_states.pop(0) if len(self.status_states) > 1 else self.status_states[0]
        info = {"state": state}
        if self.status_check_after is not None:
            info["check_after_secs"] = self.status_check_after
        if state == "failed":
            info["error"] = {"code": 1, "name": "InvalidMedia"}
        return httpx.Response(200, json={"media_id_string": "m-1", "processing_info": info})


@pytest.fixture
def fake(records: InMemoryRecordStore) -> FakeX:
    return FakeX(records)


@pytest.fixture
def make_service(records: InMemoryRecordStore, guard: TokenRefreshGuard, source_server, no_sleep: AsyncMock):
    def make(fake: FakeX, consumer_key: str = "ck", consumer_secret: str = "cs") -> PublishService:
        http = httpx.AsyncClient(transport=httpx.MockTransport(source_server(fake)))
        client = XClient(http, guard, consumer_key, consumer_secret, chunk_size=4096)
        return PublishService(records, DriverRegistry([XDriver(client, sleep=no_sleep)]), http)

    return make


@pytest.fixture
def service(make_service, fake: FakeX) -> PublishService:
    return make_service(fake)


def _request() -> PublishInitRequest:
    return PublishInitRequest(post_id="post-1", clip_id="clip-1", text="New episode out now")


class TestXPublish:
    """End-to-end X uploads against a fake API."""

    @pytest.mark.asyncio
    async def test_publishes_tweet(self, service: PublishService, fake: FakeX, rendered_clip: dict, no_sleep: AsyncMock):
        result = await service.init("x", _request())
        await service.background.join()

        view = service.status("x", result.upload_id)
        assert view.status == PublishStatus.COMPLETED
        assert view.identifiers == {"media_id": "m-1", "tweet_id": "t-1"}
        assert view.platform_url == "https://x.com/i/status/t-1"
        assert fake.commands == ["INIT", "APPEND", "APPEND", "APPEND", "FINALIZE", "STATUS", "STATUS"]
        assert fake.segments == [0, 1, 2]
        assert fake.tweets == [{"text": "New episode out now", "media": {"media_ids": ["m-1"]}}]
        assert all(h.startswith("OAuth ") for h in fake.auth_headers if h)
        no_sleep.assert_awaited_once_with(3)

    @pytest.mark.asyncio
    async def test_in_progress_reaches_processing_before_posting(self, service: PublishService, fake: FakeX, rendered_clip: dict):
        await service.init("x", _request())
        await service.background.join()

        assert set(v for k, v in fake.record_status_at.items() if k.startswith("status-")) == {"processing"}
        assert fake.record_status_at["tweet"] == "posting"

    @pytest.mark.asyncio
    async def test_processing_failure_never_posts(self, service: PublishService, fake: FakeX, rendered_clip: dict):
        fake.status_states = ["failed"]

        result = await service.init("x", _request())
        await service.background.join()

        upload = service.machine.load(Platform.X, result.upload_id)
        assert upload.status == PublishStatus.FAILED
        assert upload.failed_phase == PublishStatus.PROCESSING
        assert upload.error_message == "X media processing failed"
        assert fake.tweets == []
        assert "tweet" not in fake.record_status_at

    @pytest.mark.asyncio
    async def test_zero_check_after_is_honoured(
        self, service: PublishService, fake: FakeX, rendered_clip: dict, no_sleep: AsyncMock
    ):
        fake.status_check_after = 0

        await service.init("x", _request())
        await service.background.join()

        no_sleep.assert_awaited_once_with(0)

    @pytest.mark.asyncio
    async def test_missing_check_after_uses_default(
        self, service: PublishService, fake: FakeX, rendered_clip: dict, no_sleep: AsyncMock
    ):
        fake.status_check_after = None

        await service.init("x", _request())
        await service.background.join()

        no_sleep.assert_awaited_once_with(X_DEFAULT_CHECK_AFTER_SECONDS)

    @pytest.mark.asyncio
    async def test_unauthorized_means_reconnect(self, service: PublishService, fake: FakeX, rendered_clip: dict):
        fake.init_status = 401

        result = await service.init("x", _request())
        await service.background.join()

        upload = service.machine.load(Platform.X, result.upload_id)
        assert upload.status == PublishStatus.FAILED
        assert "reconnect X" in upload.error_message
        assert fake.commands == ["INIT"]
        assert fake.tweets == []


    @pytest.mark.asyncio
    async def test_no_processing_info_posts_immediately(self, service: PublishService, fake: FakeX, rendered_clip: dict):
        fake.finalize_info = None

        result = await service.init("x", _request())
        await service.background.join()

        assert service.status("x", result.upload_id).status == PublishStatus.COMPLETED
        assert "STATUS" not in fake.commands

    @pytest.mark.asyncio
    async def test_missing_consumer_keys_fails_upload(self, make_service, fake: FakeX, rendered_clip: dict):
        service = make_service(fake, consumer_key="", consumer_secret="")

        result = await service.init("x", _request())
        await service.background.join()

        upload = service.machine.load(Platform.X, result.upload_id)
        assert upload.status == PublishStatus.FAILED
        assert upload.failed_phase == PublishStatus.PENDING
        assert "consumer key" in upload.error_message
        assert fake.commands == []

    @pytest.mark.asyncio
    async def test_retry_starts_a_new_media_upload(self, service: PublishService, fake: FakeX, rendered_clip: dict):
        fake.status_states = ["failed"]
        result = await service.init("x", _request())
        await service.background.join()

        fake.status_states = ["succeeded"]
        service.retry("x", result.upload_id)
        await service.background.join()

        upload = service.machine.load(Platform.X, result.upload_id)
        assert upload.status == PublishStatus.COMPLETED
        assert upload.retry_count == 1
        assert fake.commands.count("INIT") == 2


class TestOAuth1:
    """Tests for request signing."""

    def test_percent_encode(self):
        assert percent_encode("Ladies + Gentlemen") == "Ladies%20%2B%20Gentlemen"
        assert percent_encode("a-b.c_d~e") == "a-b.c_d~e"

    def test_reference_signature(self):
        """Signing example from the X developer documentation."""
        header = oauth1_header(
            "POST",
            "https://api.twitter.com/1.1/statuses/update.json",
            consumer_key="xvz1evFS4wEEPTGEFPHBog",
            consumer_secret="kAcSOqF21Fu85e7zjz7ZN2U4ZRhfV3WpwPAoE3Z7kBw",
            token="370773112-GmHxMAgYyLbNEtIKZeRNFsMKPR9EyMZeS9weJAEb",
            token_secret="LswwdoUaIvS8ltyTt5jkRh4J50vUPVVHtR2YPi5kE",
            query_params={"include_entities": "true"},
            body_params={"status": "Hello Ladies + Gentlemen, a signed OAuth request!"},
            nonce="kYjzVBB8Y0ZFabxSWbWovY3uYSQ2pTgmZeNu2VS4cg",
            timestamp=1318622958,
        )

        assert header.startswith("OAuth ")
        assert 'oauth_signature="hCtSmYh%2BiHYCEqBWrE7C7hYmtUk%3D"' in header
        assert "status" not in header
