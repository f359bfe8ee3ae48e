"""Request dependencies shared by the routers."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Header, Request

from ..auth import TokenRefreshGuard, TokenStore
from ..background import BackgroundTaskRunner
from ..config import PipelineSettings
from ..errors import PipelineError
from ..publish import PublishService
from ..sources import MediaSourceRegistry
from ..storage import BlobStore, RecordStore
from ..transfer import TransferCoordinator


@dataclass
class AppServices:
    """Everything the routers need, built once per app."""

    settings: PipelineSettings
    records: RecordStore
    blobs: BlobStore
    http: httpx.AsyncClient
    background: BackgroundTaskRunner
    tokens: TokenStore
    guard: TokenRefreshGuard
    coordinator: TransferCoordinator
    sources: MediaSourceRegistry
    publish: PublishService
    owns_http: bool = False


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """The caller's identity. End-user auth lives in front of this service."""
    if not x_user_id:
        raise PipelineError("Authentication required", http_status=401)
    return x_user_id


def get_optional_user_id(x_user_id: str | None = Header(default=None)) -> str | None:
    return x_user_id or None
