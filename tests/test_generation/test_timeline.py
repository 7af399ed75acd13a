"""
Tests for the Generation Timeline Store

Tests for openjourney/generation/timeline.py
"""

from datetime import datetime, timedelta

import pytest

from openjourney.core.exceptions import InvalidInputError, ProviderError
from openjourney.generation import (
    GenerationKind,
    GenerationTimeline,
    ImageGeneration,
    ImageItem,
    ImageOutput,
    LoadingGeneration,
    MediaKind,
    VideoGeneration,
    VideoOutput,
    create_sample_generations,
)


def image_output(count: int) -> ImageOutput:
    return ImageOutput(tuple(ImageItem(url=f"data:image/png;base64,AAA{n}", raw_bytes=f"AAA{n}") for n in range(count)))


class TestBeginGeneration:

    def test_inserts_loading_record_at_head(self, clock):
        timeline = GenerationTimeline(clock=clock)
        first = timeline.begin_generation("first", MediaKind.IMAGE)
        second = timeline.begin_generation("second", MediaKind.VIDEO)

        records = timeline.list()
        assert [r.id for r in records] == [second, first]
        assert records[0].kind == GenerationKind.LOADING
        assert records[0].is_loading
        assert records[0].media_kind == MediaKind.VIDEO
        assert timeline.pending_ids() == (second, first)

    def test_ids_are_unique(self):
        timeline = GenerationTimeline()
        ids = {timeline.begin_generation(f"prompt {n}", MediaKind.IMAGE) for n in range(25)}
        assert len(ids) == 25

    def test_duplicate_id_rejected(self):
        timeline = GenerationTimeline(id_factory=lambda: "gen-fixed")
        timeline.begin_generation("a", MediaKind.IMAGE)

        with pytest.raises(InvalidInputError):
            timeline.begin_generation("b", MediaKind.IMAGE)

    def test_source_image_ref_kept_on_loading_record(self):
        timeline = GenerationTimeline()
        gen_id = timeline.begin_generation("sunset", MediaKind.VIDEO, source_image_ref="data:image/png;base64,X")

        assert timeline.get(gen_id).source_image_ref == "data:image/png;base64,X"


class TestCompleteGeneration:

    def test_replaces_in_place_keeping_id_and_created_at(self, clock):
        timeline = GenerationTimeline(clock=clock)
        older = timeline.begin_generation("older", MediaKind.IMAGE)
        target = timeline.begin_generation("a red fox", MediaKind.IMAGE)
        newer = timeline.begin_generation("newer", MediaKind.IMAGE)
        created_at = timeline.get(target).created_at

        record = timeline.complete_generation(target, image_output(4))

        assert isinstance(record, ImageGeneration)
        assert record.id == target
        assert record.created_at == created_at
        assert record.prompt == "a red fox"
        assert len(record.images) == 4
        assert [r.id for r in timeline.list()] == [newer, target, older]
        assert timeline.is_settled(target)

    def test_prompt_override(self):
        timeline = GenerationTimeline()
        gen_id = timeline.begin_generation("portrait - improved: brighter", MediaKind.IMAGE)

        record = timeline.complete_generation(gen_id, image_output(1), prompt="portrait. Please improve this image by: brighter")

        assert record.prompt == "portrait. Please improve this image by: brighter"

    def test_blank_prompt_override_ignored(self):
        timeline = GenerationTimeline()
        gen_id = timeline.begin_generation("original", MediaKind.IMAGE)

        assert timeline.complete_generation(gen_id, image_output(1), prompt="  ").prompt == "original"

    def test_video_keeps_source_reference(self):
        timeline = GenerationTimeline()
        gen_id = timeline.begin_generation("waves", MediaKind.VIDEO, source_image_ref="data:image/jpeg;base64,Y")

        record = timeline.complete_generation(gen_id, VideoOutput(("https://v/1.mp4", "https://v/2.mp4")))

        assert isinstance(record, VideoGeneration)
        assert record.source_image_ref == "data:image/jpeg;base64,Y"
        assert record.videos == ("https://v/1.mp4", "https://v/2.mp4")

    def test_empty_slots_filtered(self):
        timeline = GenerationTimeline()
        gen_id = timeline.begin_generation("partial", MediaKind.IMAGE)
        output = ImageOutput((ImageItem(url="u1"), None, ImageItem(url=""), ImageItem(url="u2")))

        record = timeline.complete_generation(gen_id, output)

        assert [image.url for image in record.images] == ["u1", "u2"]

    def test_mismatched_kind_rejected(self):
        timeline = GenerationTimeline()
        gen_id = timeline.begin_generation("mismatch", MediaKind.IMAGE)

        with pytest.raises(InvalidInputError):
            timeline.complete_generation(gen_id, VideoOutput(("https://v/1.mp4",)))

        assert timeline.get(gen_id).is_loading

    def test_empty_output_rejected(self):
        timeline = GenerationTimeline()
        gen_id = timeline.begin_generation("nothing", MediaKind.IMAGE)

        with pytest.raises(InvalidInputError):
            timeline.complete_generation(gen_id, ImageOutput(()))

    def test_unknown_or_settled_ids_are_ignored(self):
        timeline = GenerationTimeline()
        gen_id = timeline.begin_generation("once", MediaKind.IMAGE)
        timeline.complete_generation(gen_id, image_output(1))

        assert timeline.complete_generation(gen_id, image_output(2)) is None
        assert timeline.complete_generation("gen-missing", image_output(1)) is None
        assert len(timeline.get(gen_id).images) == 1


class TestFailGeneration:

    def test_removes_loading_record_and_returns_error(self):
        timeline = GenerationTimeline()
        keep = timeline.begin_generation("keep", MediaKind.IMAGE)
        drop = timeline.begin_generation("drop", MediaKind.IMAGE)
        error = ProviderError("Google Gemini", "quota exceeded")

        returned = timeline.fail_generation(drop, error)

        assert returned is error
        assert drop not in timeline
        assert [r.id for r in timeline.list()] == [keep]
        assert timeline.is_settled(drop)

    def test_failure_after_completion_does_not_remove(self):
        timeline = GenerationTimeline()
        gen_id = timeline.begin_generation("done", MediaKind.IMAGE)
        timeline.complete_generation(gen_id, image_output(2))

        timeline.fail_generation(gen_id, ProviderError("FAL.ai", "late"))

        assert gen_id in timeline
        assert not timeline.get(gen_id).is_loading

    def test_completion_after_failure_is_ignored(self):
        timeline = GenerationTimeline()
        gen_id = timeline.begin_generation("gone", MediaKind.VIDEO)
        timeline.fail_generation(gen_id, ProviderError("FAL.ai", "boom"))

        assert timeline.complete_generation(gen_id, VideoOutput(("https://v/1.mp4",))) is None
        assert len(timeline) == 0


class TestSeedAndOrdering:

    def test_seed_appends_at_tail(self):
        timeline = GenerationTimeline()
        live = timeline.begin_generation("live", MediaKind.IMAGE)

        timeline.seed(create_sample_generations(now=datetime(2025, 1, 1, 12, 0)))

        assert [r.id for r in timeline.list()] == [live, "sample-video-1", "sample-image-1"]
        assert timeline.is_settled("sample-image-1")

    def test_seed_rejects_loading_and_duplicates(self):
        timeline = GenerationTimeline()
        now = datetime(2025, 1, 1)

        with pytest.raises(InvalidInputError):
            timeline.seed([LoadingGeneration("gen-x", "p", MediaKind.IMAGE, now)])

        timeline.seed(create_sample_generations(now=now))
        with pytest.raises(InvalidInputError):
            timeline.seed(create_sample_generations(now=now))

    def test_chronological_is_stable_for_ties(self):
        same_time = datetime(2025, 1, 1, 9, 0)
        timeline = GenerationTimeline(clock=lambda: same_time)
        first = timeline.begin_generation("first", MediaKind.IMAGE)
        second = timeline.begin_generation("second", MediaKind.IMAGE)
        timeline.seed([
            ImageGeneration("gen-newest", "newest", same_time + timedelta(hours=1), (ImageItem(url="u"),)),
        ])

        assert [r.id for r in timeline.chronological()] == ["gen-newest", second, first]


class TestTimelineListeners:

    def test_events_in_order(self):
        timeline = GenerationTimeline()
        events = []
        timeline.subscribe(lambda event, record: events.append((event, record.id)))

        ok = timeline.begin_generation("ok", MediaKind.IMAGE)
        bad = timeline.begin_generation("bad", MediaKind.IMAGE)
        timeline.complete_generation(ok, image_output(1))
        timeline.fail_generation(bad, ProviderError("FAL.ai", "nope"))

        assert events == [("begin", ok), ("begin", bad), ("complete", ok), ("fail", bad)]

    def test_unsubscribe(self):
        timeline = GenerationTimeline()
        events = []
        unsubscribe = timeline.subscribe(lambda event, record: events.append(event))
        unsubscribe()

        timeline.begin_generation("quiet", MediaKind.IMAGE)

        assert events == []


class TestRecordSerialisation:

    def test_image_record_to_dict(self):
        created = datetime(2025, 3, 4, 5, 6, 7)
        record = ImageGeneration("gen-1", "fox", created, (ImageItem(url="u", raw_bytes="AAA"),))

        assert record.to_dict() == {
            "id": "gen-1",
            "kind": "image",
            "type": "image",
            "prompt": "fox",
            "createdAt": "2025-03-04T05:06:07",
            "isLoading": False,
            "images": [{"url": "u", "imageBytes": "AAA"}],
        }

    def test_sample_images_cannot_convert(self):
        sample_image = create_sample_generations(now=datetime(2025, 1, 1))[1]

        assert all(image.is_sample for image in sample_image.images)
        assert not any(image.can_convert for image in sample_image.images)
