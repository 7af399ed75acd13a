"""
Openjourney Generation Module

Timeline records, the timeline store, media flattening and notifications.
The poller and workflows live in `openjourney.generation.poller` and
`openjourney.generation.workflows`.
"""

from .models import (
    GenerationKind,
    GenerationRecord,
    ImageGeneration,
    ImageItem,
    ImageOutput,
    LoadingGeneration,
    MediaItem,
    MediaKind,
    VideoGeneration,
    VideoOutput,
)
from .media import find_media_item, flatten, locate_global_index
from .notifications import Notification, NotificationCenter
from .samples import create_sample_generations
from .timeline import GenerationTimeline

__all__ = [
    'GenerationKind',
    'GenerationRecord',
    'ImageGeneration',
    'ImageItem',
    'ImageOutput',
    'LoadingGeneration',
    'MediaItem',
    'MediaKind',
    'VideoGeneration',
    'VideoOutput',
    'find_media_item',
    'flatten',
    'locate_global_index',
    'Notification',
    'NotificationCenter',
    'create_sample_generations',
    'GenerationTimeline',
]
