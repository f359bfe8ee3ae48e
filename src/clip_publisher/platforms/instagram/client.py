"""Instagram Graph API calls for reel and video publishing.

Instagram pulls the media itself, so publishing is three calls:
- ``POST {ig-user}/media`` with ``video_url`` creates a container
- ``GET {container}?fields=status_code,status`` until FINISHED or ERROR
- ``POST {ig-user}/media_publish`` with ``creation_id`` publishes it

Docs: https://developers.facebook.com/docs/instagram-platform/content-publishing
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import httpx

from ...auth import TokenRefreshGuard
from ...constants import INSTAGRAM_CAPTION_MAX_LENGTH, Platform
from ...errors import NotConnected, PlatformAPIError, TransientNetwork

_api_logger = logging.getLogger("platform_api")


@dataclass(frozen=True)
class GraphErrorInfo:
    name: str
    retryable: bool
    hint: str


# Graph error codes seen while publishing video
GRAPH_ERRORS: dict[int, GraphErrorInfo] = {
    4: GraphErrorInfo("RATE_LIMIT", True, "Instagram rate limit hit, wait and retry."),
    9: GraphErrorInfo("APP_RATE_LIMIT", True, "App-level request limit hit."),
    10: GraphErrorInfo("PERMISSION_DENIED", False, "The app lacks content publishing permission."),
    17: GraphErrorInfo("USER_RATE_LIMIT", True, "Account request limit hit, wait a few minutes."),
    190: GraphErrorInfo("ACCESS_TOKEN_EXPIRED", False, "Reconnect Instagram to get a new token."),
    2207001: GraphErrorInfo("MEDIA_TYPE_NOT_SUPPORTED", False, "Video must be MP4 with H.264 video and AAC audio."),
    2207003: GraphErrorInfo("MEDIA_SIZE_ERROR", False, "Video exceeds Instagram's size or duration limits."),
    2207026: GraphErrorInfo("MEDIA_NOT_READY", True, "Container is still processing."),
    2207032: GraphErrorInfo("MEDIA_UPLOAD_FAILED", True, "Instagram could not process the video, usually temporary."),
}

# Subcodes override the main code
GRAPH_ERROR_SUBCODES: dict[int, GraphErrorInfo] = {
    2207069: GraphErrorInfo("DAILY_POSTING_LIMIT", False, "Daily publishing limit reached, resets at midnight UTC."),
}

_UNKNOWN_ERROR = GraphErrorInfo("UNKNOWN", False, "Instagram returned an unrecognized error.")


def lookup_error(code: int | None, subcode: int | None = None) -> GraphErrorInfo:
    """Describe a Graph API error.

    Unlisted codes are treated as transient; a missing code is not.
    """
    if subcode in GRAPH_ERROR_SUBCODES:
        return GRAPH_ERROR_SUBCODES[subcode]
    if code is None:
        return _UNKNOWN_ERROR
    return GRAPH_ERRORS.get(code) or GraphErrorInfo(f"ERROR_{code}", True, f"Instagram error {code}.")


def error_code_from_status_message(message: str) -> int | None:
    """Pull the code out of a container status like ``"... error code 2207032"``."""
    match = re.search(r"error code (\d+)", message or "", re.IGNORECASE)
    return int(match.group(1)) if match else None


class InstagramAPIError(PlatformAPIError):
    """Graph API failure carrying Instagram's error code and subcode."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: int | None = None,
        error_subcode: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message, platform=Platform.INSTAGRAM.value, status_code=status_code, body=body)
        self.error_code = error_code
        self.error_subcode = error_subcode
        self.info = lookup_error(error_code, error_subcode)
        if error_code is not None or error_subcode is not None:
            self.is_retryable = self.info.retryable


class InstagramClient:
    """Graph API client bound to the stored Instagram credential.

    The stored token carries the page access token as ``access_token`` and
    the Instagram business account id as ``account_id``.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        guard: TokenRefreshGuard,
        api_version: str = "v21.0",
    ):
        self.http = http
        self.guard = guard
        self.base_url = f"https://graph.facebook.com/{api_version}"
        self._api_call_count = 0

    async def _credentials(self) -> tuple[str, str]:
        token = await self.guard.get_valid_token(Platform.INSTAGRAM)
        if not token.account_id:
            raise NotConnected("Instagram token has no business account id")
        return token.access_token, token.account_id

    async def _call(
        self,
        method: str,
        path: str,
        access_token: str,
        query: dict | None = None,
        form: dict | None = None,
    ) -> dict:
        """One Graph call. The token goes in the query string and never in the log.

        Raises:
            InstagramAPIError: non-2xx answer or an ``error`` object in the body.
            TransientNetwork: the request never got an answer.
        """
        self._api_call_count += 1
        call = self._api_call_count
        logged = {**(query or {}), **(form or {})}
        _api_logger.info(f"INSTAGRAM API CALL #{call} | {method} {path} | params: {logged}")

        try:
            response = await self.http.request(
                method,
                f"{self.base_url}/{path}",
                params={**(query or {}), "access_token": access_token},
                data=form,
            )
        except httpx.TransportError as e:
            _api_logger.error(f"INSTAGRAM API CALL #{call} | TRANSPORT ERROR: {e}")
            raise TransientNetwork(f"Instagram request failed: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if not response.is_success or "error" in payload:
            error = payload.get("error") or {}
            _api_logger.error(f"INSTAGRAM API CALL #{call} | ERROR {response.status_code}: {error or response.text[:500]}")
            raise InstagramAPIError(
                error.get("message") or f"Instagram request failed ({response.status_code})",
                status_code=response.status_code,
                error_code=error.get("code"),
                error_subcode=error.get("error_subcode"),
                body=response.text,
            )

        _api_logger.info(f"INSTAGRAM API CALL #{call} | SUCCESS: {sorted(payload)}")
        return payload

    async def create_video_container(
        self,
        video_url: str,
        caption: str,
        media_type: str = "REELS",
        share_to_feed: bool = True,
    ) -> str:
        """Returns the container (creation) id.

        ``share_to_feed`` only applies to reels.
        """
        access_token, account_id = await self._credentials()
        form = {"video_url": video_url, "media_type": media_type}
        if caption:
            form["caption"] = caption[:INSTAGRAM_CAPTION_MAX_LENGTH]
        if media_type == "REELS":
            form["share_to_feed"] = "true" if share_to_feed else "false"

        payload = await self._call("POST", f"{account_id}/media", access_token, form=form)
        if not payload.get("id"):
            raise InstagramAPIError("Instagram container response missing id")
        return payload["id"]

    async def check_container_status(self, container_id: str) -> dict:
        """Raw ``status_code`` / ``status`` of a container."""
        access_token, _ = await self._credentials()
        return await self._call("GET", container_id, access_token, query={"fields": "status_code,status"})

    async def publish_container(self, creation_id: str) -> str:
        """Returns the published media id."""
        access_token, account_id = await self._credentials()
        payload = await self._call(
            "POST", f"{account_id}/media_publish", access_token, form={"creation_id": creation_id}
        )
        if not payload.get("id"):
            raise InstagramAPIError("Instagram publish response missing id")
        return payload["id"]

    async def get_media_permalink(self, media_id: str) -> str | None:
        access_token, _ = await self._credentials()
        try:
            payload = await self._call("GET", media_id, access_token, query={"fields": "permalink"})
        except InstagramAPIError as e:
            _api_logger.warning(f"Permalink lookup for {media_id} failed: {e}")
            return None
        return payload.get("permalink")
