"""
Media Addressing

Derives a flat, newest-first list of individual images and videos from the
timeline, for navigation that spans generations. Pure functions of the
records passed in.
"""

from typing import Iterable, List, Optional

from openjourney.core.exceptions import InvalidInputError

from .models import (
    GenerationRecord,
    ImageGeneration,
    MediaItem,
    MediaKind,
    VideoGeneration,
)


def image_item_id(generation_id: str, index: int) -> str:
    return f"{generation_id}-img-{index}"


def video_item_id(generation_id: str, index: int) -> str:
    return f"{generation_id}-vid-{index}"


def _records(timeline) -> Iterable[GenerationRecord]:
    # Accept the timeline store itself or any iterable of records
    if hasattr(timeline, "insertion_order"):
        return timeline.insertion_order()
    return timeline


def _expand(record: GenerationRecord) -> List[MediaItem]:
    if isinstance(record, ImageGeneration):
        return [
            MediaItem(
                id=image_item_id(record.id, index),
                kind=MediaKind.IMAGE,
                url=image.url,
                prompt=record.prompt,
                created_at=record.created_at,
                generation_id=record.id,
                local_index=index,
                raw_bytes=image.raw_bytes,
                is_sample=image.is_sample,
            )
            for index, image in enumerate(record.images)
        ]
    if isinstance(record, VideoGeneration):
        return [
            MediaItem(
                id=video_item_id(record.id, index),
                kind=MediaKind.VIDEO,
                url=url,
                prompt=record.prompt,
                created_at=record.created_at,
                generation_id=record.id,
                local_index=index,
                source_image_ref=record.source_image_ref,
            )
            for index, url in enumerate(record.videos)
        ]
    # Loading placeholders have no media yet
    return []


def flatten(timeline) -> List[MediaItem]:
    """
    Expand every completed record into its media items.

    Items are sorted by created_at, newest first. The sort is stable, so items
    sharing a timestamp keep insertion order and their local order.
    """
    items: List[MediaItem] = []
    for record in _records(timeline):
        items.extend(_expand(record))
    items.sort(key=lambda item: item.created_at, reverse=True)
    return items


def locate_global_index(timeline, generation_id: str, local_index: int) -> int:
    """
    Position of (generation_id, local_index) in flatten(timeline).

    Raises:
        InvalidInputError: no completed item matches the pair
    """
    for position, item in enumerate(flatten(timeline)):
        if item.generation_id == generation_id and item.local_index == local_index:
            return position
    raise InvalidInputError(
        f"No media item {local_index} in generation {generation_id}",
        {"generation_id": generation_id, "index": local_index},
    )


def find_media_item(timeline, generation_id: str, local_index: int) -> Optional[MediaItem]:
    for item in flatten(timeline):
        if item.generation_id == generation_id and item.local_index == local_index:
            return item
    return None
