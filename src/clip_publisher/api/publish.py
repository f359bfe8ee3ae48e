"""Publish endpoints: one set per platform, plus the upload event log."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..publish import PublishInitRequest, UploadEventView
from .dependencies import AppServices, get_optional_user_id, get_services

router = APIRouter(tags=["Publish"])


@router.post("/{platform}/upload/init")
async def init_publish(
    platform: str,
    body: PublishInitRequest,
    user_id: str | None = Depends(get_optional_user_id),
    services: AppServices = Depends(get_services),
) -> dict:
    result = await services.publish.init(platform, body, user_id=user_id)
    return result.to_wire()


@router.get("/{platform}/upload/{upload_id}/status")
async def publish_status(
    platform: str,
    upload_id: str,
    services: AppServices = Depends(get_services),
) -> dict:
    return services.publish.status(platform, upload_id).to_wire()


@router.post("/{platform}/upload/{upload_id}/retry")
async def retry_publish(
    platform: str,
    upload_id: str,
    services: AppServices = Depends(get_services),
) -> dict:
    services.publish.retry(platform, upload_id)
    return {"success": True}


@router.delete("/{platform}/upload/{upload_id}")
async def cancel_publish(
    platform: str,
    upload_id: str,
    services: AppServices = Depends(get_services),
) -> dict:
    services.publish.cancel(platform, upload_id)
    return {"success": True}


@router.get("/uploads/{platform}/{upload_id}/events")
async def upload_events(
    platform: str,
    upload_id: str,
    services: AppServices = Depends(get_services),
) -> list[dict]:
    events = services.publish.list_events(platform, upload_id)
    return [UploadEventView.from_event(event).to_wire() for event in events]
