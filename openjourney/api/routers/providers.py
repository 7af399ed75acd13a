"""Provider routes for the Openjourney API.

Thin request/response endpoints over the provider gateway. Video endpoints
poll on the server by default; with `wait=false` they return the operation
handle for the client to re-submit to /video-status.
"""

import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request

from openjourney.core.exceptions import ConfigurationError, InvalidInputError, ProviderError
from openjourney.core.logging_config import get_logger
from openjourney.core.settings import ProviderSettings, parse_provider
from openjourney.generation.poller import poll_until_done
from openjourney.providers.base import Failure, OperationHandle, Outcome, Pending
from openjourney.providers.gateway import ProviderGateway

from ..deps import AppServices, get_services, limiter
from ..models import (
    GenerateImagesRequest,
    GenerateVideosRequest,
    ImageToVideoRequest,
    ImproveImageRequest,
    VideoStatusRequest,
)

logger = get_logger("api.providers")

router = APIRouter()

GENERATION_LIMIT = "20/minute"


def _provider_config(
    services: AppServices,
    provider: Optional[str],
    model: Optional[str] = None,
) -> ProviderSettings:
    current = services.settings.provider_settings
    try:
        kind = parse_provider(provider) if provider else current.provider
    except ConfigurationError as e:
        raise InvalidInputError(e.message)
    return ProviderSettings(
        provider=kind,
        model_variant=model or current.model_variant,
    )


def _stamp() -> int:
    return int(time.time() * 1000)


def _image_payload(items) -> List[Dict[str, Any]]:
    stamp = _stamp()
    payload = []
    for index, item in enumerate(items):
        payload.append({"id": f"{stamp}-{index}", "url": item.url, "imageBytes": item.raw_bytes})
    return payload


def _video_payload(urls) -> List[Dict[str, Any]]:
    stamp = _stamp()
    return [{"id": f"{stamp}-{index}", "url": url} for index, url in enumerate(urls)]


async def _finish_video(
    services: AppServices,
    outcome: Outcome,
    credentials: Optional[str],
    requested: int,
    wait: bool,
) -> Dict[str, Any]:
    if isinstance(outcome, Failure):
        raise outcome.error

    if isinstance(outcome, Pending):
        if not wait:
            return {"success": True, "done": False, "operation": outcome.handle.to_dict()}

        async def check(handle):
            return await services.gateway.check_operation(handle, credentials)

        generation = services.config.generation
        status = await poll_until_done(
            outcome.handle,
            check,
            interval=generation.poll_interval_seconds,
            max_attempts=generation.max_poll_attempts,
            sleep=services.sleep,
        )
        provider = services.gateway.clients[outcome.handle.provider].display_name
        outcome = ProviderGateway.status_outcome(status, requested, provider)
        if isinstance(outcome, Failure):
            raise outcome.error

    return {"success": True, "done": True, "videos": _video_payload(outcome.items)}


@router.post("/generate-images")
@limiter.limit(GENERATION_LIMIT)
async def generate_images(
    request: Request,
    body: GenerateImagesRequest,
    services: AppServices = Depends(get_services),
):
    """Generate a batch of images for a prompt."""
    logger.info(f"Generating images for prompt: {body.prompt[:80]}")
    outcome = await services.gateway.request_images(
        body.prompt,
        source_image_bytes=body.image_bytes,
        credentials=body.api_key,
        provider_config=_provider_config(services, body.provider, body.model),
    )
    if isinstance(outcome, Failure):
        raise outcome.error

    return {"success": True, "images": _image_payload(outcome.items), "prompt": body.prompt}


@router.post("/generate-videos")
@limiter.limit(GENERATION_LIMIT)
async def generate_videos(
    request: Request,
    body: GenerateVideosRequest,
    services: AppServices = Depends(get_services),
):
    """Generate a video from a text prompt."""
    logger.info(f"Generating videos for prompt: {body.prompt[:80]}")
    outcome = await services.gateway.request_videos(
        body.prompt,
        credentials=body.api_key,
        provider_config=_provider_config(services, body.provider),
    )
    result = await _finish_video(services, outcome, body.api_key, 1, body.wait)
    result["prompt"] = body.prompt
    return result


@router.post("/image-to-video")
@limiter.limit(GENERATION_LIMIT)
async def image_to_video(
    request: Request,
    body: ImageToVideoRequest,
    services: AppServices = Depends(get_services),
):
    """Animate a source image into videos."""
    logger.info(f"Converting image to video for prompt: {body.prompt[:80]}")
    outcome = await services.gateway.request_image_to_video(
        body.prompt,
        body.image_bytes,
        credentials=body.api_key,
        provider_config=_provider_config(services, body.provider),
    )
    requested = services.config.generation.image_to_video_count
    result = await _finish_video(services, outcome, body.api_key, requested, body.wait)
    result["prompt"] = body.prompt
    return result


@router.post("/video-status")
async def video_status(
    body: VideoStatusRequest,
    services: AppServices = Depends(get_services),
):
    """Check a video operation handle returned earlier with wait=false."""
    handle = OperationHandle.from_dict(body.operation)
    status = await services.gateway.check_operation(handle, body.api_key)

    if not status.done:
        return {"success": True, "done": False, "operation": handle.to_dict()}
    if status.error:
        raise ProviderError(services.gateway.clients[handle.provider].display_name, status.error)
    return {"success": True, "done": True, "videos": _video_payload(status.videos)}


@router.post("/improve-image")
@limiter.limit(GENERATION_LIMIT)
async def improve_image(
    request: Request,
    body: ImproveImageRequest,
    services: AppServices = Depends(get_services),
):
    """Regenerate an image with an improvement instruction."""
    outcome = await services.gateway.request_image_improvement(
        body.original_prompt,
        body.improvement_prompt,
        body.image_bytes,
        credentials=body.api_key,
        provider_config=_provider_config(services, body.provider),
    )
    if isinstance(outcome, Failure):
        raise outcome.error

    return {
        "success": True,
        "images": _image_payload(outcome.items),
        "originalPrompt": body.original_prompt,
        "improvementPrompt": body.improvement_prompt,
        "enhancedPrompt": outcome.enhanced_prompt,
    }
