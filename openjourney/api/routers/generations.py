"""Timeline routes for the Openjourney API.

Generations are started in the background and return their id immediately;
clients poll GET /generations to watch loading records settle.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from openjourney.core.logging_config import get_logger
from openjourney.generation.media import find_media_item, flatten, locate_global_index
from openjourney.generation.models import MediaItem

from ..deps import AppServices, get_services, limiter
from ..models import ConvertItemRequest, ImproveItemRequest, StartGenerationRequest
from .providers import GENERATION_LIMIT

logger = get_logger("api.generations")

router = APIRouter()


def _media_item_or_404(services: AppServices, generation_id: str, index: int) -> MediaItem:
    item = find_media_item(services.timeline, generation_id, index)
    if item is None:
        raise HTTPException(status_code=404, detail=f"No item {index} in generation {generation_id}")
    return item


@router.get("/generations")
async def list_generations(
    order: str = Query(default="insertion", pattern="^(insertion|chronological)$"),
    services: AppServices = Depends(get_services),
):
    """List generation records, newest insertion first by default."""
    timeline = services.timeline
    records = timeline.chronological() if order == "chronological" else timeline.insertion_order()
    return {
        "generations": [record.to_dict() for record in records],
        "pending": list(timeline.pending_ids()),
    }


@router.get("/generations/{generation_id}")
async def get_generation(generation_id: str, services: AppServices = Depends(get_services)):
    record = services.timeline.get(generation_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Generation not found: {generation_id}")
    return record.to_dict()


@router.post("/generations", status_code=202)
@limiter.limit(GENERATION_LIMIT)
async def start_generation(
    request: Request,
    body: StartGenerationRequest,
    services: AppServices = Depends(get_services),
):
    """Start an image or video generation in the background."""
    generation_id = services.workflows.start_generation(
        body.type,
        body.prompt,
        source_image_bytes=body.image_bytes,
        credentials=body.api_key,
    )
    logger.info(f"Started {body.type.value} generation {generation_id}")
    return {"id": generation_id}


@router.post("/generations/{generation_id}/items/{index}/video", status_code=202)
@limiter.limit(GENERATION_LIMIT)
async def convert_item_to_video(
    request: Request,
    generation_id: str,
    index: int,
    body: Optional[ConvertItemRequest] = None,
    services: AppServices = Depends(get_services),
):
    """Animate one image of a generation into a new video generation."""
    body = body or ConvertItemRequest()
    item = _media_item_or_404(services, generation_id, index)
    new_id = services.workflows.start_image_to_video(
        item,
        body.prompt or item.prompt,
        credentials=body.api_key,
    )
    return {"id": new_id}


@router.post("/generations/{generation_id}/items/{index}/improve", status_code=202)
@limiter.limit(GENERATION_LIMIT)
async def improve_item(
    request: Request,
    generation_id: str,
    index: int,
    body: ImproveItemRequest,
    services: AppServices = Depends(get_services),
):
    """Refine one image of a generation into a new image generation."""
    item = _media_item_or_404(services, generation_id, index)
    new_id = services.workflows.start_improve_image(
        item,
        item.prompt,
        body.improvement_prompt,
        credentials=body.api_key,
    )
    return {"id": new_id}


@router.get("/media")
async def list_media(services: AppServices = Depends(get_services)):
    """Every completed image and video, newest first."""
    return {"items": [item.to_dict() for item in flatten(services.timeline)]}


@router.get("/media/locate")
async def locate_media(
    generation_id: str = Query(..., alias="generationId"),
    index: int = Query(..., ge=0),
    services: AppServices = Depends(get_services),
):
    """Position of a generation's item within GET /media."""
    return {"index": locate_global_index(services.timeline, generation_id, index)}


@router.get("/notifications")
async def list_notifications(services: AppServices = Depends(get_services)):
    return {"notifications": [n.to_dict() for n in services.notifications.list()]}


@router.delete("/notifications/{notification_id}")
async def dismiss_notification(notification_id: str, services: AppServices = Depends(get_services)):
    if services.notifications.dismiss(notification_id) is None:
        raise HTTPException(status_code=404, detail=f"Notification not found: {notification_id}")
    return {"success": True}


@router.delete("/notifications")
async def clear_notifications(services: AppServices = Depends(get_services)):
    services.notifications.clear()
    return {"success": True}
