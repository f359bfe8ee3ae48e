"""OAuth 1.0a HMAC-SHA1 request signing for the X API."""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import time
from urllib.parse import quote


def percent_encode(value: str) -> str:
    """RFC 3986 encoding; only unreserved characters stay literal."""
    return quote(str(value), safe="-._~")


def signature_base_string(method: str, base_url: str, params: dict[str, str]) -> str:
    normalized = "&".join(
        f"{key}={value}"
        for key, value in sorted(
            (percent_encode(k), percent_encode(v)) for k, v in params.items()
        )
    )
    return "&".join([method.upper(), percent_encode(base_url), percent_encode(normalized)])


def sign(base_string: str, consumer_secret: str, token_secret: str = "") -> str:
    key = f"{percent_encode(consumer_secret)}&{percent_encode(token_secret)}"
    digest = hmac.new(key.encode(), base_string.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode()


def oauth1_header(
    method: str,
    url: str,
    consumer_key: str,
    consumer_secret: str,
    token: str | None = None,
    token_secret: str = "",
    query_params: dict[str, str] | None = None,
    body_params: dict[str, str] | None = None,
    nonce: str | None = None,
    timestamp: int | None = None,
) -> str:
    """Build the ``Authorization`` header for one request.

    Query parameters and form-encoded body parameters are part of the
    signature; multipart and JSON bodies are not.
    """
    oauth_params = {
        "oauth_consumer_key": consumer_key,
        "oauth_nonce": nonce or secrets.token_hex(16),
        "oauth_signature_method": "HMAC-SHA1",
        "oauth_timestamp": str(timestamp if timestamp is not None else int(time.time())),
        "oauth_version": "1.0",
    }
    if token:
        oauth_params["oauth_token"] = token

    signed = {**oauth_params, **(query_params or {}), **(body_params or {})}
    base_url = url.split("?", 1)[0]
    oauth_params["oauth_signature"] = sign(
        signature_base_string(method, base_url, signed), consumer_secret, token_secret
    )

    header = ", ".join(
        f'{percent_encode(key)}="{percent_encode(value)}"' for key, value in oauth_params.items()
    )
    return f"OAuth {header}"
