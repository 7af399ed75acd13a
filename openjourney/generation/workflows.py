"""
Generation Workflows

Orchestrates the full lifecycle of a generation: insert a loading record,
call the gateway, poll long-running operations, then complete or fail the
record by id. Also implements the two follow-up workflows that feed an
existing image back in: image-to-video and improve-image.

Every begun generation is settled exactly once, including when the request
raises unexpectedly or its task is cancelled.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Set, Union

from openjourney.core.config import OpenjourneyConfig
from openjourney.core.constants import (
    ANIMATED_PROMPT_TEMPLATE,
    IMPROVED_LABEL_TEMPLATE,
)
from openjourney.core.exceptions import (
    GenerationCancelledError,
    InvalidInputError,
    OpenjourneyError,
    UnsupportedSourceError,
)
from openjourney.core.logging_config import get_logger
from openjourney.core.settings import SettingsContext
from openjourney.providers.base import Failure, Outcome, Pending
from openjourney.providers.gateway import ProviderGateway
from openjourney.providers.imaging import decode_source_image

from .models import (
    GenerationRecord,
    ImageItem,
    ImageOutput,
    MediaItem,
    MediaKind,
    VideoOutput,
)
from .notifications import NotificationCenter
from .poller import Sleep, poll_until_done
from .timeline import GenerationTimeline

logger = get_logger("generation.workflows")

SourceItem = Union[ImageItem, MediaItem]
OutcomeRequest = Callable[[], Awaitable[Outcome]]


@dataclass(frozen=True)
class WorkflowOutcome:
    """How a workflow ended, for callers that await it."""
    generation_id: Optional[str]
    record: Optional[GenerationRecord] = None
    error: Optional[OpenjourneyError] = None

    @property
    def success(self) -> bool:
        return self.error is None and self.record is not None

    @property
    def requires_credentials(self) -> bool:
        return self.error is not None and self.error.requires_credentials

    @property
    def user_message(self) -> Optional[str]:
        return self.error.message if self.error is not None else None


def ensure_convertible(image: SourceItem) -> str:
    """
    Return the raw bytes of an image that may feed a follow-up workflow.

    Raises:
        UnsupportedSourceError: the item is a video, a sample, or has no bytes
    """
    if image.can_convert:
        return image.raw_bytes
    if isinstance(image, MediaItem) and image.kind != MediaKind.IMAGE:
        raise UnsupportedSourceError("Only images can be used as a source")
    if image.is_sample:
        raise UnsupportedSourceError("Sample images cannot be converted; generate an image first")
    raise UnsupportedSourceError("This image has no retained image data and cannot be converted")


def _require_text(value: Optional[str], name: str) -> str:
    if value is None or not value.strip():
        raise InvalidInputError(f"{name} is required")
    return value.strip()


class GenerationWorkflows:
    """
    Drives generations from request to a settled timeline record.

    Args:
        timeline: The timeline store that owns every record
        gateway: Provider gateway used for all remote calls
        settings: Settings context (defaults to the gateway's)
        config: Generation configuration (defaults to the gateway's)
        sleep: Sleep used between poll checks
        notifications: Where failures are reported for the user
    """

    def __init__(
        self,
        timeline: GenerationTimeline,
        gateway: ProviderGateway,
        settings: Optional[SettingsContext] = None,
        config: Optional[OpenjourneyConfig] = None,
        sleep: Sleep = asyncio.sleep,
        notifications: Optional[NotificationCenter] = None,
    ):
        self.timeline = timeline
        self.gateway = gateway
        self.settings = settings if settings is not None else gateway.settings
        self.config = config if config is not None else gateway.config
        self.sleep = sleep
        self.notifications = notifications if notifications is not None else NotificationCenter()
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Awaitable workflows
    # ------------------------------------------------------------------

    async def generate(
        self,
        media_kind: MediaKind,
        prompt: str,
        source_image_bytes: Optional[str] = None,
        credentials: Optional[str] = None,
    ) -> WorkflowOutcome:
        """Generate images or a text-to-video from a prompt."""
        media_kind = MediaKind(media_kind)
        context = self._context_for(media_kind)
        try:
            prompt = _require_text(prompt, "Prompt")
            source_ref = self._source_ref(media_kind, source_image_bytes)
        except OpenjourneyError as e:
            return self._reject(e, context)

        generation_id = self.timeline.begin_generation(prompt, media_kind, source_image_ref=source_ref)
        return await self._run_generation(
            generation_id, media_kind, prompt, source_image_bytes, credentials
        )

    async def image_to_video(
        self,
        image: SourceItem,
        prompt: str,
        credentials: Optional[str] = None,
    ) -> WorkflowOutcome:
        """Animate an existing generated image into a new video generation."""
        try:
            raw_bytes = ensure_convertible(image)
            derived_prompt = ANIMATED_PROMPT_TEMPLATE.format(prompt=_require_text(prompt, "Prompt"))
        except OpenjourneyError as e:
            return self._reject(e, "Video conversion")

        generation_id = self.timeline.begin_generation(
            derived_prompt, MediaKind.VIDEO, source_image_ref=image.url
        )
        return await self._run_image_to_video(generation_id, derived_prompt, raw_bytes, credentials)

    async def improve_image(
        self,
        image: SourceItem,
        original_prompt: str,
        improvement_prompt: str,
        credentials: Optional[str] = None,
    ) -> WorkflowOutcome:
        """Create a new image generation that refines an existing image."""
        try:
            raw_bytes = ensure_convertible(image)
            label = self._improved_label(original_prompt, improvement_prompt)
        except OpenjourneyError as e:
            return self._reject(e, "Image improvement")

        generation_id = self.timeline.begin_generation(label, MediaKind.IMAGE)
        return await self._run_improvement(
            generation_id, original_prompt, improvement_prompt, raw_bytes, credentials
        )

    # ------------------------------------------------------------------
    # Fire-and-forget variants
    # ------------------------------------------------------------------

    def start_generation(
        self,
        media_kind: MediaKind,
        prompt: str,
        source_image_bytes: Optional[str] = None,
        credentials: Optional[str] = None,
    ) -> str:
        """Begin a generation and return its id; the request runs as a task.

        Raises:
            InvalidInputError: the prompt is empty or the source image is unreadable
        """
        loop = asyncio.get_running_loop()
        media_kind = MediaKind(media_kind)
        context = self._context_for(media_kind)
        try:
            prompt = _require_text(prompt, "Prompt")
            source_ref = self._source_ref(media_kind, source_image_bytes)
        except OpenjourneyError as e:
            self._reject(e, context)
            raise
        generation_id = self.timeline.begin_generation(prompt, media_kind, source_image_ref=source_ref)
        self._spawn(
            loop,
            generation_id,
            context,
            self._run_generation(generation_id, media_kind, prompt, source_image_bytes, credentials),
        )
        return generation_id

    def start_image_to_video(
        self,
        image: SourceItem,
        prompt: str,
        credentials: Optional[str] = None,
    ) -> str:
        """
        Raises:
            UnsupportedSourceError: the image has no bytes or is a sample
            InvalidInputError: the prompt is empty
        """
        loop = asyncio.get_running_loop()
        try:
            raw_bytes = ensure_convertible(image)
            derived_prompt = ANIMATED_PROMPT_TEMPLATE.format(prompt=_require_text(prompt, "Prompt"))
        except OpenjourneyError as e:
            self._reject(e, "Video conversion")
            raise
        generation_id = self.timeline.begin_generation(
            derived_prompt, MediaKind.VIDEO, source_image_ref=image.url
        )
        self._spawn(
            loop,
            generation_id,
            "Video conversion",
            self._run_image_to_video(generation_id, derived_prompt, raw_bytes, credentials),
        )
        return generation_id

    def start_improve_image(
        self,
        image: SourceItem,
        original_prompt: str,
        improvement_prompt: str,
        credentials: Optional[str] = None,
    ) -> str:
        loop = asyncio.get_running_loop()
        try:
            raw_bytes = ensure_convertible(image)
            label = self._improved_label(original_prompt, improvement_prompt)
        except OpenjourneyError as e:
            self._reject(e, "Image improvement")
            raise
        generation_id = self.timeline.begin_generation(label, MediaKind.IMAGE)
        self._spawn(
            loop,
            generation_id,
            "Image improvement",
            self._run_improvement(
                generation_id, original_prompt, improvement_prompt, raw_bytes, credentials
            ),
        )
        return generation_id

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def wait_all(self) -> None:
        """Wait until every started task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        """Cancel outstanding tasks; their generations settle as cancelled."""
        for task in list(self._tasks):
            task.cancel()
        await self.wait_all()

    def _spawn(self, loop, generation_id: str, context: str, coro) -> asyncio.Task:
        task = loop.create_task(coro)
        self._tasks.add(task)

        def _finished(done: asyncio.Task) -> None:
            self._tasks.discard(done)
            # A task cancelled before it started never reached its own handler
            if done.cancelled() and not self.timeline.is_settled(generation_id):
                self._settle_failure(
                    generation_id,
                    GenerationCancelledError("Generation was cancelled"),
                    context,
                )

        task.add_done_callback(_finished)
        return task

    # ------------------------------------------------------------------
    # Lifecycle drivers
    # ------------------------------------------------------------------

    async def _run_generation(
        self,
        generation_id: str,
        media_kind: MediaKind,
        prompt: str,
        source_image_bytes: Optional[str],
        credentials: Optional[str],
    ) -> WorkflowOutcome:
        if media_kind == MediaKind.IMAGE:
            async def request() -> Outcome:
                return await self.gateway.request_images(prompt, source_image_bytes, credentials)
            requested = self.config.generation.image_batch_size
        elif source_image_bytes:
            async def request() -> Outcome:
                return await self.gateway.request_image_to_video(prompt, source_image_bytes, credentials)
            requested = self.config.generation.image_to_video_count
        else:
            async def request() -> Outcome:
                return await self.gateway.request_videos(prompt, credentials)
            requested = 1

        return await self._drive(
            generation_id, media_kind, self._context_for(media_kind), request, credentials, requested
        )

    async def _run_image_to_video(
        self,
        generation_id: str,
        prompt: str,
        raw_bytes: str,
        credentials: Optional[str],
    ) -> WorkflowOutcome:
        async def request() -> Outcome:
            return await self.gateway.request_image_to_video(prompt, raw_bytes, credentials)

        return await self._drive(
            generation_id,
            MediaKind.VIDEO,
            "Video conversion",
            request,
            credentials,
            self.config.generation.image_to_video_count,
        )

    async def _run_improvement(
        self,
        generation_id: str,
        original_prompt: str,
        improvement_prompt: str,
        raw_bytes: str,
        credentials: Optional[str],
    ) -> WorkflowOutcome:
        async def request() -> Outcome:
            return await self.gateway.request_image_improvement(
                original_prompt, improvement_prompt, raw_bytes, credentials
            )

        return await self._drive(
            generation_id,
            MediaKind.IMAGE,
            "Image improvement",
            request,
            credentials,
            self.config.generation.image_batch_size,
        )

    async def _drive(
        self,
        generation_id: str,
        media_kind: MediaKind,
        context: str,
        request: OutcomeRequest,
        credentials: Optional[str],
        requested: int,
    ) -> WorkflowOutcome:
        try:
            outcome = await request()
            if isinstance(outcome, Pending):
                outcome = await self._await_operation(outcome, credentials, requested)
            if isinstance(outcome, Failure):
                raise outcome.error

            if media_kind == MediaKind.IMAGE:
                output = ImageOutput(tuple(outcome.items))
            else:
                output = VideoOutput(tuple(outcome.items))

            record = self.timeline.complete_generation(
                generation_id, output, prompt=outcome.enhanced_prompt
            )
            return WorkflowOutcome(generation_id, record=record)

        except asyncio.CancelledError:
            self._settle_failure(
                generation_id, GenerationCancelledError("Generation was cancelled"), context
            )
            raise
        except OpenjourneyError as e:
            return self._settle_failure(generation_id, e, context)
        except Exception as e:
            logger.exception(f"Unexpected error in generation {generation_id}")
            return self._settle_failure(generation_id, OpenjourneyError(str(e) or type(e).__name__), context)

    async def _await_operation(self, pending: Pending, credentials: Optional[str], requested: int) -> Outcome:
        handle = pending.handle
        generation = self.config.generation

        async def check(h):
            return await self.gateway.check_operation(h, credentials)

        logger.info(f"Polling operation {handle.name}")
        status = await poll_until_done(
            handle,
            check,
            interval=generation.poll_interval_seconds,
            max_attempts=generation.max_poll_attempts,
            sleep=self.sleep,
        )
        provider = self.gateway.clients[handle.provider].display_name
        return ProviderGateway.status_outcome(status, requested, provider)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _context_for(media_kind: MediaKind) -> str:
        return "Image generation" if media_kind == MediaKind.IMAGE else "Video generation"

    @staticmethod
    def _source_ref(media_kind: MediaKind, source_image_bytes: Optional[str]) -> Optional[str]:
        """Data URI recorded on a video generation animated from an uploaded image."""
        if media_kind != MediaKind.VIDEO or not source_image_bytes:
            return None
        return decode_source_image(source_image_bytes).data_uri

    @staticmethod
    def _improved_label(original_prompt: str, improvement_prompt: str) -> str:
        return IMPROVED_LABEL_TEMPLATE.format(
            original=_require_text(original_prompt, "Original prompt"),
            improvement=_require_text(improvement_prompt, "Improvement prompt"),
        )

    def _settle_failure(self, generation_id: str, error: OpenjourneyError, context: str) -> WorkflowOutcome:
        self.timeline.fail_generation(generation_id, error)
        self.notifications.push(error, context)
        logger.error(f"{context} failed for {generation_id}: {error.message}")
        return WorkflowOutcome(generation_id, error=error)

    def _reject(self, error: OpenjourneyError, context: str) -> WorkflowOutcome:
        # Rejected before any record was created
        self.notifications.push(error, context)
        logger.warning(f"{context} rejected: {error.message}")
        return WorkflowOutcome(None, error=error)
