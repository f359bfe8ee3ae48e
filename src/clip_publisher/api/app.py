"""FastAPI application factory for the transfer and publish server."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from ..auth import (
    GoogleTokenRefresher,
    InstagramTokenRefresher,
    TokenRefreshGuard,
    TokenStore,
    XTokenRefresher,
)
from ..background import BackgroundTaskRunner
from ..config import PipelineSettings, get_settings
from ..constants import Platform
from ..errors import ERROR_CODE_HEADER, PipelineError, error_code
from ..platforms import DriverRegistry
from ..publish import PublishService, UploadEventLog
from ..sources import MediaSourceRegistry, SourceProcessor, mark_ready
from ..storage import BlobStore, JsonFileRecordStore, LocalBlobStore, RecordStore
from ..transfer import TransferCoordinator
from . import publish, transfers, video_sources
from .dependencies import AppServices

_logger = logging.getLogger("publish")


def build_services(
    settings: PipelineSettings,
    records: RecordStore | None = None,
    blobs: BlobStore | None = None,
    http_client: httpx.AsyncClient | None = None,
    drivers: DriverRegistry | None = None,
    source_processor: SourceProcessor = mark_ready,
    sleep=asyncio.sleep,
) -> AppServices:
    """Wire stores, guard, drivers and services from settings.

    Any collaborator passed in is used as-is; the rest are built from
    ``settings``.
    """
    records = records or JsonFileRecordStore(settings.records_path)
    blobs = blobs or LocalBlobStore(settings.blob_dir, settings.blob_base_url)
    owns_http = http_client is None
    http = http_client or httpx.AsyncClient(timeout=60.0, follow_redirects=True)
    background = BackgroundTaskRunner()

    tokens = TokenStore(records)
    guard = TokenRefreshGuard(
        tokens,
        {
            Platform.YOUTUBE: GoogleTokenRefresher(
                http, settings.google_client_id, settings.google_client_secret
            ),
            Platform.INSTAGRAM: InstagramTokenRefresher(
                http,
                settings.facebook_app_id,
                settings.facebook_app_secret,
                api_version=settings.graph_api_version,
            ),
            Platform.X: XTokenRefresher(),
        },
        threshold_seconds=settings.token_refresh_threshold_seconds,
    )
    drivers = drivers or DriverRegistry.from_settings(settings, http, guard, sleep=sleep)

    events = UploadEventLog(records)
    return AppServices(
        settings=settings,
        records=records,
        blobs=blobs,
        http=http,
        background=background,
        tokens=tokens,
        guard=guard,
        coordinator=TransferCoordinator(
            records,
            blobs,
            max_upload_bytes=settings.max_upload_bytes,
            session_ttl_seconds=settings.session_ttl_seconds,
        ),
        sources=MediaSourceRegistry(records, background, processor=source_processor),
        publish=PublishService(
            records,
            drivers,
            http,
            background=background,
            events=events,
            timeout_seconds=settings.publish_timeout_seconds,
        ),
        owns_http=owns_http,
    )


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    if exc.http_status >= 500:
        _logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_dict(),
        headers={ERROR_CODE_HEADER: error_code(exc)},
    )


def create_app(
    settings: PipelineSettings | None = None,
    services: AppServices | None = None,
    **overrides,
) -> FastAPI:
    """Create the API application.

    Args:
        settings: Defaults to the cached settings from env and YAML.
        services: Pre-built services (tests); otherwise built from settings
            with ``overrides`` passed to build_services.
    """
    settings = settings or get_settings()
    services = services or build_services(settings, **overrides)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _logger.info("Clip publisher API starting")
        yield
        _logger.info("Clip publisher API shutting down")
        await services.background.shutdown()
        if services.owns_http:
            await services.http.aclose()

    app = FastAPI(
        title="Clip Publisher",
        description="Resumable media transfer and multi-platform publishing",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services
    app.add_exception_handler(PipelineError, pipeline_error_handler)

    app.include_router(transfers.router)
    app.include_router(video_sources.router)
    app.include_router(publish.router)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "backgroundTasks": services.background.active}

    if isinstance(services.blobs, LocalBlobStore):
        app.mount("/blobs", StaticFiles(directory=services.blobs.root), name="blobs")

    return app
