"""
Google Generative Language API client.

- Imagen `:predict` for text-to-image (one call, N samples)
- Gemini image model `:generateContent` for image-conditioned generation
  and improvement (one image per call)
- Veo `:predictLongRunning` for text-to-video and image-to-video
"""

from typing import Any, Dict, List, Optional, Union

from openjourney.core.constants import (
    GOOGLE_API_BASE,
    VIDEO_ASPECT_RATIO,
    ProviderKind,
)
from openjourney.core.logging_config import get_logger
from openjourney.generation.models import ImageItem

from .base import OperationHandle, OperationStatus, ProviderClient
from .imaging import SourceImage, to_data_uri

logger = get_logger("providers.google")


def with_api_key(uri: str, api_key: str) -> str:
    """Veo download links need the key appended to be fetchable."""
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}key={api_key}"


class GoogleClient(ProviderClient):
    """Client for Imagen, Gemini image and Veo models."""

    provider = ProviderKind.GOOGLE
    BASE_URL = GOOGLE_API_BASE

    def _headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-goog-api-key": api_key,
        }

    def _model_url(self, model: str, method: str) -> str:
        return f"{self.BASE_URL}/models/{model}:{method}"

    def supports_batch(self, with_source: bool) -> bool:
        # Imagen takes sampleCount; the Gemini image model returns one image per call
        return not with_source

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def generate_image_batch(
        self,
        prompt: str,
        api_key: str,
        count: int,
        source: Optional[SourceImage] = None,
        model: Optional[str] = None,
    ) -> List[Optional[ImageItem]]:
        model = model or self.config.google.image
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": {"sampleCount": count},
        }
        logger.info(f"Imagen request: model={model}, samples={count}")
        result = await self._post_json(self._model_url(model, "predict"), self._headers(api_key), body)

        images: List[Optional[ImageItem]] = []
        for prediction in result.get("predictions") or []:
            data = prediction.get("bytesBase64Encoded")
            if not data:
                images.append(None)
                continue
            mime_type = prediction.get("mimeType") or "image/png"
            images.append(ImageItem(url=to_data_uri(data, mime_type), raw_bytes=data))
        return images

    async def generate_single_image(
        self,
        prompt: str,
        api_key: str,
        source: Optional[SourceImage] = None,
        model: Optional[str] = None,
    ) -> Optional[ImageItem]:
        model = model or self.config.google.image_edit
        parts: List[Dict[str, Any]] = [{"text": prompt}]
        if source is not None:
            parts.append({"inlineData": {"mimeType": source.mime_type, "data": source.data}})

        body = {"contents": [{"parts": parts}]}
        result = await self._post_json(self._model_url(model, "generateContent"), self._headers(api_key), body)

        for candidate in result.get("candidates") or []:
            for part in (candidate.get("content") or {}).get("parts") or []:
                inline = part.get("inlineData") or part.get("inline_data")
                if inline and inline.get("data"):
                    mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                    return ImageItem(url=to_data_uri(inline["data"], mime_type), raw_bytes=inline["data"])

        logger.warning("No image data found in Gemini response")
        return None

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------

    async def submit_video(
        self,
        prompt: str,
        api_key: str,
        count: int = 1,
        source: Optional[SourceImage] = None,
    ) -> Union[OperationHandle, OperationStatus]:
        instance: Dict[str, Any] = {"prompt": prompt}
        parameters: Dict[str, Any] = {"aspectRatio": VIDEO_ASPECT_RATIO}

        if source is not None:
            model = self.config.google.image_to_video
            instance["image"] = {"bytesBase64Encoded": source.data, "mimeType": source.mime_type}
            parameters["sampleCount"] = count
        else:
            model = self.config.google.video
            parameters["personGeneration"] = "allow_all"
            if count > 1:
                parameters["sampleCount"] = count

        body = {"instances": [instance], "parameters": parameters}
        logger.info(f"Veo request: model={model}, videos={count}, image={source is not None}")
        result = await self._post_json(
            self._model_url(model, "predictLongRunning"), self._headers(api_key), body
        )

        if result.get("done"):
            return self._parse_operation(result, api_key)
        return OperationHandle(provider=self.provider, name=result["name"], raw=result)

    async def check_operation(self, handle: OperationHandle, api_key: str) -> OperationStatus:
        result = await self._get_json(f"{self.BASE_URL}/{handle.name}", self._headers(api_key))
        return self._parse_operation(result, api_key)

    def _parse_operation(self, result: Dict[str, Any], api_key: str) -> OperationStatus:
        if not result.get("done"):
            return OperationStatus(done=False)

        error = result.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            return OperationStatus(done=True, error=message or "Video generation failed")

        response = result.get("response") or {}
        samples = (response.get("generateVideoResponse") or {}).get("generatedSamples") or []
        videos = []
        for sample in samples:
            uri = (sample.get("video") or {}).get("uri")
            if uri:
                videos.append(with_api_key(uri, api_key))
        return OperationStatus(done=True, videos=tuple(videos))
