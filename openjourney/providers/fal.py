"""
FAL.ai client.

Images go through the synchronous `fal.run` endpoint, videos through the
`queue.fal.run` submit / status / result cycle.
"""

from typing import Any, Dict, List, Optional, Union

from openjourney.core.constants import (
    FAL_QUEUE_BASE,
    FAL_RUN_BASE,
    IMAGE_ASPECT_RATIO,
    VIDEO_ASPECT_RATIO,
    ProviderKind,
)
from openjourney.core.logging_config import get_logger
from openjourney.generation.models import ImageItem

from .base import OperationHandle, OperationStatus, ProviderClient
from .imaging import SourceImage

logger = get_logger("providers.fal")

QUEUE_PENDING_STATUSES = ("IN_QUEUE", "IN_PROGRESS")
QUEUE_DONE_STATUS = "COMPLETED"


class FalClient(ProviderClient):
    """Client for FLUX image models and FAL-hosted video models."""

    provider = ProviderKind.FAL

    def _headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Key {api_key}",
        }

    def supports_batch(self, with_source: bool) -> bool:
        return True

    async def generate_image_batch(
        self,
        prompt: str,
        api_key: str,
        count: int,
        source: Optional[SourceImage] = None,
        model: Optional[str] = None,
    ) -> List[Optional[ImageItem]]:
        body: Dict[str, Any] = {
            "prompt": prompt,
            "num_images": count,
            "guidance_scale": 3.5,
            "aspect_ratio": IMAGE_ASPECT_RATIO,
            "output_format": "jpeg",
            "safety_tolerance": "2",
        }
        if source is not None:
            model = self.config.fal.image_edit
            body["image_url"] = source.data_uri
        else:
            model = model or self.config.fal.image

        logger.info(f"FAL image request: model={model}, images={count}")
        result = await self._post_json(f"{FAL_RUN_BASE}/{model}", self._headers(api_key), body)

        images: List[Optional[ImageItem]] = []
        for image in result.get("images") or []:
            url = image.get("url") if isinstance(image, dict) else None
            images.append(ImageItem(url=url) if url else None)
        return images

    async def generate_single_image(
        self,
        prompt: str,
        api_key: str,
        source: Optional[SourceImage] = None,
        model: Optional[str] = None,
    ) -> Optional[ImageItem]:
        images = await self.generate_image_batch(prompt, api_key, 1, source, model)
        return next((image for image in images if image is not None), None)

    async def submit_video(
        self,
        prompt: str,
        api_key: str,
        count: int = 1,
        source: Optional[SourceImage] = None,
    ) -> Union[OperationHandle, OperationStatus]:
        body: Dict[str, Any] = {"prompt": prompt, "aspect_ratio": VIDEO_ASPECT_RATIO}
        if source is not None:
            model = self.config.fal.image_to_video
            body["image_url"] = source.data_uri
        else:
            model = self.config.fal.video

        logger.info(f"FAL video request queued: model={model}")
        result = await self._post_json(f"{FAL_QUEUE_BASE}/{model}", self._headers(api_key), body)

        request_id = result["request_id"]
        return OperationHandle(
            provider=self.provider,
            name=request_id,
            status_url=result.get("status_url") or f"{FAL_QUEUE_BASE}/{model}/requests/{request_id}/status",
            response_url=result.get("response_url") or f"{FAL_QUEUE_BASE}/{model}/requests/{request_id}",
            raw=result,
        )

    async def check_operation(self, handle: OperationHandle, api_key: str) -> OperationStatus:
        if not handle.status_url or not handle.response_url:
            return OperationStatus(done=True, error="FAL operation handle is missing its queue URLs")

        headers = self._headers(api_key)
        status = await self._get_json(handle.status_url, headers)
        state = status.get("status", "")

        if state in QUEUE_PENDING_STATUSES:
            return OperationStatus(done=False)
        if state != QUEUE_DONE_STATUS:
            return OperationStatus(done=True, error=status.get("error") or f"FAL request ended with status {state}")

        result = await self._get_json(handle.response_url, headers)
        videos = []
        video = result.get("video")
        if isinstance(video, dict) and video.get("url"):
            videos.append(video["url"])
        for item in result.get("videos") or []:
            if isinstance(item, dict) and item.get("url"):
                videos.append(item["url"])
        return OperationStatus(done=True, videos=tuple(videos))
