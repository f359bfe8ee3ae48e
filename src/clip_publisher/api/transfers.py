"""Chunked transfer endpoints for episode media."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ..transfer.models import InitUploadRequest
from .dependencies import AppServices, get_services, get_user_id

router = APIRouter(prefix="/podcasts/{podcast_id}/episodes/{episode_id}/uploads", tags=["Transfers"])


@router.post("/init")
async def init_upload(
    podcast_id: str,
    episode_id: str,
    body: InitUploadRequest,
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
) -> dict:
    result = await services.coordinator.init(
        podcast_id=podcast_id,
        episode_id=episode_id,
        filename=body.filename,
        content_type=body.content_type,
        total_bytes=body.total_bytes,
        user_id=user_id,
    )
    return result.to_wire()


@router.post("/{session_id}/part/{part_number}")
async def upload_part(
    podcast_id: str,
    episode_id: str,
    session_id: str,
    part_number: int,
    request: Request,
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
) -> dict:
    data = await request.body()
    result = await services.coordinator.upload_part(session_id, part_number, data)
    return result.to_wire()


@router.post("/{session_id}/complete")
async def complete_upload(
    podcast_id: str,
    episode_id: str,
    session_id: str,
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
) -> dict:
    result = await services.coordinator.complete(session_id)
    return result.to_wire()


@router.get("/resume")
async def find_resumable(
    podcast_id: str,
    episode_id: str,
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
) -> dict:
    return services.coordinator.find_resumable(episode_id, user_id).to_wire()


@router.get("/{session_id}/status")
async def session_status(
    podcast_id: str,
    episode_id: str,
    session_id: str,
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
) -> dict:
    return services.coordinator.status(session_id).to_wire()
