"""Per-platform token refresh operations.

Features:
- YouTube: Google OAuth ``refresh_token`` grant
- Instagram: long-lived token exchange (``fb_exchange_token``) followed by a
  page/business account lookup for the publishing token
- X: OAuth 1.0a tokens never expire, refresh returns the stored token
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import timedelta

import httpx

from ..constants import Platform
from ..models import utcnow
from .models import OAuthToken

_logger = logging.getLogger("auth")

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Facebook long-lived tokens last ~60 days when expires_in is omitted
DEFAULT_LONG_LIVED_SECONDS = 60 * 24 * 60 * 60


class TokenRefreshError(Exception):
    """The platform refused or failed a refresh."""


class TokenRefresher(ABC):
    """Exchanges a stale token for a fresh one."""

    platform: Platform

    @abstractmethod
    async def refresh(self, token: OAuthToken) -> OAuthToken:
        ...


class GoogleTokenRefresher(TokenRefresher):
    platform = Platform.YOUTUBE

    def __init__(self, client: httpx.AsyncClient, client_id: str, client_secret: str):
        self.client = client
        self.client_id = client_id
        self.client_secret = client_secret

    async def refresh(self, token: OAuthToken) -> OAuthToken:
        if not self.client_id or not self.client_secret:
            raise TokenRefreshError("Google client id/secret are not configured")
        if not token.refresh_token:
            raise TokenRefreshError("No refresh token stored for YouTube")

        response = await self.client.post(
            GOOGLE_TOKEN_URL,
            data={
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": token.refresh_token,
                "grant_type": "refresh_token",
            },
        )
        if not response.is_success:
            raise TokenRefreshError(f"Failed to refresh token: {response.text}")

        data = response.json()
        _logger.info("YouTube access token refreshed")
        return token.model_copy(
            update={
                "access_token": data["access_token"],
                "refresh_token": data.get("refresh_token") or token.refresh_token,
                "expires_at": utcnow() + timedelta(seconds=int(data.get("expires_in", 3600))),
            }
        )


class InstagramTokenRefresher(TokenRefresher):
    """Refreshes the long-lived user token and re-derives the page token."""

    platform = Platform.INSTAGRAM

    def __init__(
        self,
        client: httpx.AsyncClient,
        app_id: str,
        app_secret: str,
        api_version: str = "v21.0",
        preferred_page_id: str | None = None,
    ):
        self.client = client
        self.app_id = app_id
        self.app_secret = app_secret
        self.base_url = f"https://graph.facebook.com/{api_version}"
        self.preferred_page_id = preferred_page_id

    @property
    def can_refresh(self) -> bool:
        """Check if we have credentials to refresh the token."""
        return bool(self.app_id and self.app_secret)

    async def exchange_for_long_lived_token(self, user_token: str) -> tuple[str, int]:
        """Exchange a user token for a long-lived one.

        Returns:
            Tuple of (access_token, expires_in_seconds)
        """
        response = await self.client.get(
            f"{self.base_url}/oauth/access_token",
            params={
                "grant_type": "fb_exchange_token",
                "client_id": self.app_id,
                "client_secret": self.app_secret,
                "fb_exchange_token": user_token,
            },
        )
        data = response.json()
        if "error" in data or not response.is_success:
            message = data.get("error", {}).get("message", response.text)
            raise TokenRefreshError(f"Token exchange failed: {message}")

        new_token = data.get("access_token")
        if not new_token:
            raise TokenRefreshError("No access_token in response")
        return new_token, int(data.get("expires_in") or DEFAULT_LONG_LIVED_SECONDS)

    async def get_instagram_account(self, user_token: str) -> dict:
        """Find the page with a connected Instagram business account.

        Returns:
            Dict with ig_user_id, ig_username, page_access_token, page_name
        """
        response = await self.client.get(
            f"{self.base_url}/me/accounts",
            params={
                "fields": "id,name,access_token,instagram_business_account",
                "access_token": user_token,
            },
        )
        if not response.is_success:
            raise TokenRefreshError(f"Failed to fetch Facebook pages: {response.text}")

        page = None
        for item in response.json().get("data", []):
            business = item.get("instagram_business_account") or {}
            if business.get("id") and (not self.preferred_page_id or item.get("id") == self.preferred_page_id):
                page = item
                break

        if page is None:
            raise TokenRefreshError("No Instagram business account connected to the Facebook user")
        if not page.get("access_token"):
            raise TokenRefreshError("Missing page access token for Instagram publishing")

        ig_user_id = page["instagram_business_account"]["id"]
        ig_username = None
        username_response = await self.client.get(
            f"{self.base_url}/{ig_user_id}",
            params={"fields": "username", "access_token": page["access_token"]},
        )
        if username_response.is_success:
            ig_username = username_response.json().get("username")

        return {
            "ig_user_id": ig_user_id,
            "ig_username": ig_username,
            "page_access_token": page["access_token"],
            "page_name": page.get("name"),
        }

    async def refresh(self, token: OAuthToken) -> OAuthToken:
        if not self.can_refresh:
            raise TokenRefreshError(
                "Cannot refresh Instagram token: Facebook app id and secret are required"
            )
        user_token, expires_in = await self.exchange_for_long_lived_token(
            token.refresh_token or token.access_token
        )
        account = await self.get_instagram_account(user_token)
        _logger.info(f"Instagram token refreshed for account {account['ig_user_id']}")
        return token.model_copy(
            update={
                "access_token": account["page_access_token"],
                "refresh_token": user_token,
                "expires_at": utcnow() + timedelta(seconds=expires_in),
                "account_id": account["ig_user_id"],
                "account_name": account["ig_username"] or account["page_name"] or "Instagram",
            }
        )


class XTokenRefresher(TokenRefresher):
    """OAuth 1.0a user tokens have no expiry."""

    platform = Platform.X

    async def refresh(self, token: OAuthToken) -> OAuthToken:
        return token
