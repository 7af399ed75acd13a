"""
Provider Gateway

Turns a generation intent into exactly one normalized outcome:
Success(items), Pending(handle) or Failure(error).

The gateway only reads settings and never mutates local state; expected
failures come back as Failure outcomes rather than exceptions.
"""

import asyncio
from typing import Dict, List, Optional, Tuple, Union

import httpx

from openjourney.core.config import OpenjourneyConfig, get_config
from openjourney.core.constants import (
    IMPROVE_PROMPT_TEMPLATE,
    PROVIDER_DISPLAY_NAMES,
    ProviderKind,
)
from openjourney.core.exceptions import (
    InvalidInputError,
    MissingCredentialsError,
    NoContentGeneratedError,
    OpenjourneyError,
    ProviderError,
)
from openjourney.core.logging_config import get_logger
from openjourney.core.settings import DEFAULT_MODEL_VARIANT, ProviderSettings, SettingsContext
from openjourney.generation.models import ImageItem

from .base import (
    Failure,
    OperationHandle,
    OperationStatus,
    Outcome,
    Pending,
    ProviderClient,
    Success,
    extract_error_message,
)
from .fal import FalClient
from .google import GoogleClient
from .imaging import SourceImage, decode_source_image

logger = get_logger("providers.gateway")


def compose_improvement_prompt(original: str, improvement: str) -> str:
    return IMPROVE_PROMPT_TEMPLATE.format(original=original.strip(), improvement=improvement.strip())


def classify_exception(error: BaseException, provider: str) -> OpenjourneyError:
    """Map anything raised during a provider call onto the failure taxonomy."""
    if isinstance(error, OpenjourneyError):
        return error
    if isinstance(error, httpx.TimeoutException):
        return ProviderError(provider, f"Request to {provider} timed out")
    if isinstance(error, httpx.HTTPStatusError):
        return ProviderError(
            provider,
            extract_error_message(error.response),
            status_code=error.response.status_code,
        )
    if isinstance(error, httpx.HTTPError):
        return ProviderError(provider, str(error) or f"Could not reach {provider}")
    return ProviderError(provider, str(error) or type(error).__name__)


class ProviderGateway:
    """
    Uniform entry point to the configured image/video providers.

    Args:
        settings: Settings context used to pick the provider and resolve keys
        config: Generation configuration (batch sizes, model ids, timeouts)
        http_client: Shared httpx client; one is created on demand if omitted
        clients: Override the provider clients (used by tests)
    """

    def __init__(
        self,
        settings: Optional[SettingsContext] = None,
        config: Optional[OpenjourneyConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clients: Optional[Dict[ProviderKind, ProviderClient]] = None,
    ):
        self.settings = settings if settings is not None else SettingsContext()
        self.config = config if config is not None else get_config()
        self._owns_http = http_client is None
        self.http = http_client or httpx.AsyncClient()
        self.clients: Dict[ProviderKind, ProviderClient] = clients or {
            ProviderKind.GOOGLE: GoogleClient(self.http, self.config),
            ProviderKind.FAL: FalClient(self.http, self.config),
        }

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    # ------------------------------------------------------------------
    # Resolution helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_prompt(prompt: Optional[str], name: str = "Prompt") -> str:
        if prompt is None or not prompt.strip():
            raise InvalidInputError(f"{name} is required")
        return prompt.strip()

    def _resolve(
        self,
        credentials: Optional[str],
        provider_config: Optional[ProviderSettings],
        provider: Optional[ProviderKind] = None,
    ) -> Tuple[ProviderClient, str, Optional[str]]:
        """Pick the client and API key. No network call happens here."""
        provider_settings = provider_config or self.settings.provider_settings
        kind = provider or provider_settings.provider
        client = self.clients[kind]

        api_key = self.settings.resolve_api_key(kind, explicit=credentials)
        if not api_key:
            raise MissingCredentialsError(PROVIDER_DISPLAY_NAMES[kind])

        variant = provider_settings.model_variant
        model = variant if variant and variant != DEFAULT_MODEL_VARIANT else None
        return client, api_key, model

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def request_images(
        self,
        prompt: str,
        source_image_bytes: Optional[str] = None,
        credentials: Optional[str] = None,
        provider_config: Optional[ProviderSettings] = None,
    ) -> Outcome:
        """Generate a batch of images, tolerating partial failure."""
        try:
            prompt = self._require_prompt(prompt)
            client, api_key, model = self._resolve(credentials, provider_config)
            source = decode_source_image(source_image_bytes) if source_image_bytes else None
        except OpenjourneyError as e:
            return Failure(e)

        return await self._collect_images(client, prompt, api_key, source, model)

    async def request_image_improvement(
        self,
        original_prompt: str,
        improvement_prompt: str,
        source_image_bytes: Optional[str],
        credentials: Optional[str] = None,
        provider_config: Optional[ProviderSettings] = None,
    ) -> Outcome:
        """Regenerate an image with an improvement instruction appended to its prompt."""
        try:
            original_prompt = self._require_prompt(original_prompt, "Original prompt")
            improvement_prompt = self._require_prompt(improvement_prompt, "Improvement prompt")
            if not source_image_bytes:
                raise InvalidInputError("Image data is required for improvement")
            client, api_key, _ = self._resolve(credentials, provider_config)
            source = decode_source_image(source_image_bytes)
        except OpenjourneyError as e:
            return Failure(e)

        enhanced_prompt = compose_improvement_prompt(original_prompt, improvement_prompt)
        outcome = await self._collect_images(client, enhanced_prompt, api_key, source, None)
        if isinstance(outcome, Success):
            return Success(outcome.items, enhanced_prompt=enhanced_prompt)
        return outcome

    async def _collect_images(
        self,
        client: ProviderClient,
        prompt: str,
        api_key: str,
        source: Optional[SourceImage],
        model: Optional[str],
    ) -> Outcome:
        count = self.config.generation.image_batch_size
        provider = client.display_name
        errors: List[OpenjourneyError] = []

        try:
            if client.supports_batch(source is not None):
                results = await client.generate_image_batch(prompt, api_key, count, source, model)
            else:
                results = await self._fan_out(client, prompt, api_key, source, model, count, errors)
        except Exception as e:
            error = classify_exception(e, provider)
            logger.error(f"{provider} image request failed: {error.message}")
            return Failure(error)

        items = tuple(item for item in results if item is not None)
        if not items:
            reason = errors[0].message if errors else None
            logger.error(f"{provider} returned no images for a batch of {count}")
            return Failure(NoContentGeneratedError(count, reason))

        if len(items) < count:
            logger.warning(f"{provider} returned {len(items)} of {count} images")
        else:
            logger.info(f"{provider} returned {len(items)} images")
        return Success(items)

    async def _fan_out(
        self,
        client: ProviderClient,
        prompt: str,
        api_key: str,
        source: Optional[SourceImage],
        model: Optional[str],
        count: int,
        errors: List[OpenjourneyError],
    ) -> List[Optional[ImageItem]]:
        """Issue `count` single-image calls concurrently and keep what arrives."""
        tasks = [
            client.generate_single_image(prompt, api_key, source, model)
            for _ in range(count)
        ]
        gathered = await asyncio.gather(*tasks, return_exceptions=True)

        results: List[Optional[ImageItem]] = []
        for index, result in enumerate(gathered, 1):
            if isinstance(result, Exception):
                error = classify_exception(result, client.display_name)
                logger.warning(f"Image {index}/{count} failed: {error.message}")
                errors.append(error)
            elif isinstance(result, BaseException):
                raise result
            else:
                if result is None:
                    logger.warning(f"Image {index}/{count} came back empty")
                results.append(result)
        return results

    # ------------------------------------------------------------------
    # Videos
    # ------------------------------------------------------------------

    async def request_videos(
        self,
        prompt: str,
        credentials: Optional[str] = None,
        provider_config: Optional[ProviderSettings] = None,
    ) -> Outcome:
        """Start a text-to-video job."""
        try:
            prompt = self._require_prompt(prompt)
            client, api_key, _ = self._resolve(credentials, provider_config)
        except OpenjourneyError as e:
            return Failure(e)

        return await self._submit_video(client, prompt, api_key, 1, None)

    async def request_image_to_video(
        self,
        prompt: str,
        source_image_bytes: Optional[str],
        credentials: Optional[str] = None,
        provider_config: Optional[ProviderSettings] = None,
    ) -> Outcome:
        """Start an image-to-video job."""
        try:
            prompt = self._require_prompt(prompt)
            if not source_image_bytes:
                raise InvalidInputError("Prompt and image are required")
            client, api_key, _ = self._resolve(credentials, provider_config)
            source = decode_source_image(source_image_bytes)
        except OpenjourneyError as e:
            return Failure(e)

        count = self.config.generation.image_to_video_count
        return await self._submit_video(client, prompt, api_key, count, source)

    async def _submit_video(
        self,
        client: ProviderClient,
        prompt: str,
        api_key: str,
        count: int,
        source: Optional[SourceImage],
    ) -> Outcome:
        provider = client.display_name
        try:
            result = await client.submit_video(prompt, api_key, count, source)
        except Exception as e:
            error = classify_exception(e, provider)
            logger.error(f"{provider} video request failed: {error.message}")
            return Failure(error)

        if isinstance(result, OperationHandle):
            logger.info(f"{provider} video operation started: {result.name}")
            return Pending(result)
        return self.status_outcome(result, count, provider)

    @staticmethod
    def status_outcome(status: OperationStatus, requested: int, provider: str) -> Outcome:
        """Convert a finished operation into Success or Failure."""
        if status.error:
            return Failure(ProviderError(provider, status.error))
        if not status.videos:
            return Failure(NoContentGeneratedError(requested))
        return Success(status.videos)

    async def check_operation(
        self,
        handle: Union[OperationHandle, dict],
        credentials: Optional[str] = None,
    ) -> OperationStatus:
        """
        Check a long-running operation once.

        Raises:
            MissingCredentialsError: no key for the handle's provider
            ProviderError: the status request itself failed
        """
        if isinstance(handle, dict):
            handle = OperationHandle.from_dict(handle)

        client, api_key, _ = self._resolve(credentials, None, provider=handle.provider)
        try:
            status = await client.check_operation(handle, api_key)
        except Exception as e:
            raise classify_exception(e, client.display_name) from e

        logger.debug(f"Operation {handle.name}: done={status.done}")
        return status
