"""Video source records created after a transfer completes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import Field

from ..models import CamelModel
from ..sources import CreateSourceRequest, SourceView
from .dependencies import AppServices, get_services, get_user_id

router = APIRouter(prefix="/podcasts/{podcast_id}/episodes/{episode_id}/video-sources", tags=["Video sources"])


class CheckDuplicatesRequest(CamelModel):
    fingerprints: list[str] = Field(default_factory=list)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_video_source(
    podcast_id: str,
    episode_id: str,
    body: CreateSourceRequest,
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
) -> dict:
    source = services.sources.create(podcast_id, episode_id, body, user_id)
    return {"videoSource": SourceView.from_source(source).to_wire()}


@router.post("/check-duplicates")
async def check_duplicates(
    podcast_id: str,
    episode_id: str,
    body: CheckDuplicatesRequest,
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
) -> dict:
    return {"duplicates": services.sources.check_duplicates(episode_id, body.fingerprints)}


@router.post("/{source_id}/process")
async def process_video_source(
    podcast_id: str,
    episode_id: str,
    source_id: str,
    user_id: str = Depends(get_user_id),
    services: AppServices = Depends(get_services),
) -> dict:
    source = services.sources.process(podcast_id, episode_id, source_id, user_id)
    return {"videoSource": SourceView.from_source(source).to_wire()}
