"""
Generation Timeline Store

The single owner of generation records. New generations are inserted at the
head as loading placeholders and later either replaced in place by a
completed record (same id and created_at) or removed on failure.

Every begun id settles exactly once. Completion and failure are keyed by id,
so callers never hold a record across an await.
"""

import uuid
from datetime import datetime
from typing import Callable, Iterable, Iterator, List, Optional, Set, Tuple

from openjourney.core.exceptions import InvalidInputError, OpenjourneyError
from openjourney.core.logging_config import get_logger

from .models import (
    GenerationOutput,
    GenerationRecord,
    ImageGeneration,
    ImageOutput,
    LoadingGeneration,
    MediaKind,
    VideoGeneration,
    VideoOutput,
)

logger = get_logger("generation.timeline")

TimelineListener = Callable[[str, GenerationRecord], None]


def default_generation_id() -> str:
    return f"gen-{uuid.uuid4().hex[:12]}"


class GenerationTimeline:
    """
    Ordered, in-memory collection of generation records.

    Listener signature: listener(event: str, record: GenerationRecord)
    Event types: 'begin', 'complete', 'fail', 'seed'
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._clock = clock
        self._id_factory = id_factory or default_generation_id
        self._records: List[GenerationRecord] = []
        self._known_ids: Set[str] = set()
        self._settled: Set[str] = set()
        self._listeners: List[TimelineListener] = []

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def begin_generation(
        self,
        prompt: str,
        media_kind: MediaKind,
        source_image_ref: Optional[str] = None,
    ) -> str:
        """Insert a loading placeholder at the head and return its id."""
        generation_id = self._id_factory()
        if generation_id in self._known_ids:
            raise InvalidInputError(f"Duplicate generation id: {generation_id}")

        record = LoadingGeneration(
            id=generation_id,
            prompt=prompt,
            media_kind=MediaKind(media_kind),
            created_at=self._clock(),
            source_image_ref=source_image_ref,
        )
        self._known_ids.add(generation_id)
        self._records.insert(0, record)
        logger.debug(f"Generation {generation_id} started ({record.media_kind.value})")
        self._notify("begin", record)
        return generation_id

    def complete_generation(
        self,
        generation_id: str,
        output: GenerationOutput,
        prompt: Optional[str] = None,
    ) -> Optional[GenerationRecord]:
        """
        Replace a loading record with its completed variant.

        Returns None without changes when the id is unknown or already settled.

        Raises:
            InvalidInputError: output kind does not match, or it holds no media
        """
        index = self._index_of(generation_id)
        if index is None or generation_id in self._settled:
            logger.debug(f"Ignoring completion for settled or unknown generation {generation_id}")
            return None

        loading = self._records[index]
        if not isinstance(loading, LoadingGeneration):
            return None

        if output.media_kind != loading.media_kind:
            raise InvalidInputError(
                f"Generation {generation_id} expects {loading.media_kind.value} output, "
                f"got {output.media_kind.value}"
            )

        display_prompt = prompt if prompt and prompt.strip() else loading.prompt

        if isinstance(output, ImageOutput):
            images = tuple(image for image in output.images if image is not None and image.url)
            if not images:
                raise InvalidInputError(f"Generation {generation_id} completed without images")
            record: GenerationRecord = ImageGeneration(
                id=loading.id,
                prompt=display_prompt,
                created_at=loading.created_at,
                images=images,
            )
        elif isinstance(output, VideoOutput):
            videos = tuple(url for url in output.videos if url)
            if not videos:
                raise InvalidInputError(f"Generation {generation_id} completed without videos")
            record = VideoGeneration(
                id=loading.id,
                prompt=display_prompt,
                created_at=loading.created_at,
                videos=videos,
                source_image_ref=loading.source_image_ref,
            )
        else:
            raise InvalidInputError(f"Unsupported generation output: {type(output).__name__}")

        self._records[index] = record
        self._settled.add(generation_id)
        logger.info(f"Generation {generation_id} completed with {len(output)} item(s)")
        self._notify("complete", record)
        return record

    def fail_generation(self, generation_id: str, error: OpenjourneyError) -> OpenjourneyError:
        """Remove a loading record and hand the error back for presentation."""
        index = self._index_of(generation_id)
        if index is None or generation_id in self._settled:
            logger.debug(f"Ignoring failure for settled or unknown generation {generation_id}")
            return error

        record = self._records[index]
        if not isinstance(record, LoadingGeneration):
            return error

        del self._records[index]
        self._settled.add(generation_id)
        logger.info(f"Generation {generation_id} failed: {error}")
        self._notify("fail", record)
        return error

    def seed(self, records: Iterable[GenerationRecord]) -> None:
        """Append pre-built completed records (e.g. samples) at the tail."""
        for record in records:
            if isinstance(record, LoadingGeneration):
                raise InvalidInputError("Cannot seed a loading generation")
            if record.id in self._known_ids:
                raise InvalidInputError(f"Duplicate generation id: {record.id}")
            self._known_ids.add(record.id)
            self._settled.add(record.id)
            self._records.append(record)
            self._notify("seed", record)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self) -> Tuple[GenerationRecord, ...]:
        """Snapshot, newest insertion first."""
        return tuple(self._records)

    def insertion_order(self) -> Tuple[GenerationRecord, ...]:
        return self.list()

    def chronological(self) -> Tuple[GenerationRecord, ...]:
        """Snapshot sorted by created_at, newest first. Ties keep insertion order."""
        return tuple(sorted(self._records, key=lambda r: r.created_at, reverse=True))

    def get(self, generation_id: str) -> Optional[GenerationRecord]:
        index = self._index_of(generation_id)
        return self._records[index] if index is not None else None

    def pending_ids(self) -> Tuple[str, ...]:
        return tuple(r.id for r in self._records if isinstance(r, LoadingGeneration))

    def is_settled(self, generation_id: str) -> bool:
        return generation_id in self._settled

    def _index_of(self, generation_id: str) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.id == generation_id:
                return index
        return None

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[GenerationRecord]:
        return iter(self.list())

    def __contains__(self, generation_id: object) -> bool:
        return isinstance(generation_id, str) and self._index_of(generation_id) is not None

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: TimelineListener) -> Callable[[], None]:
        """Register a mutation listener. Returns a callable that unsubscribes it."""
        if listener not in self._listeners:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: str, record: GenerationRecord) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, record)
            except Exception as e:
                logger.warning(f"Timeline listener error: {e}")
