"""
Generation Records

Tagged, immutable records for the generation timeline and the flattened
media items derived from it.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Union


class MediaKind(str, Enum):
    """What a generation produces."""
    IMAGE = "image"
    VIDEO = "video"


class GenerationKind(str, Enum):
    """Explicit tag carried by every timeline record."""
    LOADING = "loading"
    IMAGE = "image"
    VIDEO = "video"


def _timestamp(value: datetime) -> str:
    return value.isoformat()


@dataclass(frozen=True)
class ImageItem:
    """One generated (or sample) image."""
    url: str
    raw_bytes: Optional[str] = None
    is_sample: bool = False

    @property
    def can_convert(self) -> bool:
        """Only images with retained bytes can feed image-to-video or improvement."""
        return bool(self.raw_bytes) and not self.is_sample

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"url": self.url}
        if self.raw_bytes:
            data["imageBytes"] = self.raw_bytes
        if self.is_sample:
            data["isSample"] = True
        return data


@dataclass(frozen=True)
class LoadingGeneration:
    """Placeholder shown while a request is in flight."""
    id: str
    prompt: str
    media_kind: MediaKind
    created_at: datetime
    source_image_ref: Optional[str] = None

    kind: ClassVar[GenerationKind] = GenerationKind.LOADING

    @property
    def is_loading(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "kind": self.kind.value,
            "type": self.media_kind.value,
            "prompt": self.prompt,
            "createdAt": _timestamp(self.created_at),
            "isLoading": True,
        }
        if self.source_image_ref:
            data["sourceImage"] = self.source_image_ref
        return data


@dataclass(frozen=True)
class ImageGeneration:
    id: str
    prompt: str
    created_at: datetime
    images: Tuple[ImageItem, ...]

    kind: ClassVar[GenerationKind] = GenerationKind.IMAGE

    @property
    def is_loading(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "type": MediaKind.IMAGE.value,
            "prompt": self.prompt,
            "createdAt": _timestamp(self.created_at),
            "isLoading": False,
            "images": [image.to_dict() for image in self.images],
        }


@dataclass(frozen=True)
class VideoGeneration:
    id: str
    prompt: str
    created_at: datetime
    videos: Tuple[str, ...]
    source_image_ref: Optional[str] = None

    kind: ClassVar[GenerationKind] = GenerationKind.VIDEO

    @property
    def is_loading(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "kind": self.kind.value,
            "type": MediaKind.VIDEO.value,
            "prompt": self.prompt,
            "createdAt": _timestamp(self.created_at),
            "isLoading": False,
            "videos": list(self.videos),
        }
        if self.source_image_ref:
            data["sourceImage"] = self.source_image_ref
        return data


GenerationRecord = Union[LoadingGeneration, ImageGeneration, VideoGeneration]


@dataclass(frozen=True)
class MediaItem:
    """A single image or video in the flattened, cross-generation view."""
    id: str
    kind: MediaKind
    url: str
    prompt: str
    created_at: datetime
    generation_id: str
    local_index: int
    source_image_ref: Optional[str] = None
    raw_bytes: Optional[str] = None
    is_sample: bool = False

    @property
    def can_convert(self) -> bool:
        return self.kind == MediaKind.IMAGE and bool(self.raw_bytes) and not self.is_sample

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "url": self.url,
            "prompt": self.prompt,
            "createdAt": _timestamp(self.created_at),
            "generationId": self.generation_id,
            "index": self.local_index,
        }
        if self.source_image_ref:
            data["sourceImage"] = self.source_image_ref
        if self.raw_bytes:
            data["imageBytes"] = self.raw_bytes
        if self.is_sample:
            data["isSample"] = True
        return data


# =============================================================================
# OUTPUT PAYLOADS
# =============================================================================

@dataclass(frozen=True)
class ImageOutput:
    """Result handed to the timeline when an image request succeeds."""
    images: Tuple[ImageItem, ...] = field(default_factory=tuple)

    media_kind: ClassVar[MediaKind] = MediaKind.IMAGE

    def __len__(self) -> int:
        return len(self.images)


@dataclass(frozen=True)
class VideoOutput:
    """Result handed to the timeline when a video request succeeds."""
    videos: Tuple[str, ...] = field(default_factory=tuple)

    media_kind: ClassVar[MediaKind] = MediaKind.VIDEO

    def __len__(self) -> int:
        return len(self.videos)


GenerationOutput = Union[ImageOutput, VideoOutput]
