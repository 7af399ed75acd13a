"""Demo generations shown on a fresh timeline."""

from datetime import datetime, timedelta
from typing import Callable, List, Optional

from .models import GenerationRecord, ImageGeneration, ImageItem, VideoGeneration

SAMPLE_VIDEO_ID = "sample-video-1"
SAMPLE_IMAGE_ID = "sample-image-1"


def create_sample_generations(
    now: Optional[datetime] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> List[GenerationRecord]:
    """A video generation two minutes old and an image generation five minutes old.

    Sample images carry no bytes, so they cannot be converted or improved.
    """
    now = now or clock()
    return [
        VideoGeneration(
            id=SAMPLE_VIDEO_ID,
            prompt="a race car formula 1 style in a highspeed track",
            created_at=now - timedelta(minutes=2),
            videos=(
                "/sample-videos/video-1.mp4",
                "/sample-videos/video-2.mp4",
            ),
        ),
        ImageGeneration(
            id=SAMPLE_IMAGE_ID,
            prompt="A majestic ice warrior in blue armor standing in a snowy landscape",
            created_at=now - timedelta(minutes=5),
            images=tuple(
                ImageItem(url=f"/sample-images/generated-image-{n}.png", is_sample=True)
                for n in range(1, 5)
            ),
        ),
    ]
