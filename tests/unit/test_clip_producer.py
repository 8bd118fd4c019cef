"""Tests for scene and anchor clip producers."""

from unittest.mock import MagicMock

import pytest

from newsreel.models.schemas import ScriptScene, VideoScript
from newsreel.services.clip_producer import AnchorClipProducer, SceneClipProducer
from newsreel.utils.error_handler import AccessDeniedError, ExternalServiceError, ValidationFailure


def _script():
    return VideoScript(
        duration_seconds_target=25,
        hook="Europe just wrote the rulebook.",
        voiceover="Europe just agreed the first broad AI law.",
        scenes=[
            ScriptScene(seconds=5, description="Parliament chamber", overlay="AI Act"),
            ScriptScene(seconds=5, description="Server racks"),
        ],
    )


def test_scene_prompt_includes_overlay_and_style(settings, logger):
    """Test prompts carry the description, overlay and style lines."""
    producer = SceneClipProducer(settings, logger, MagicMock())

    prompt = producer.build_prompt("Parliament chamber", "AI Act")

    assert prompt.startswith("Parliament chamber")
    assert 'On-screen text overlay: "AI Act"' in prompt
    assert "Style:" in prompt


def test_scene_clips_in_scene_order(settings, logger):
    """Test one clip per scene with sequential indexes."""
    fal = MagicMock()
    fal.subscribe.side_effect = [{"video": {"url": "https://cdn/0.mp4"}}, {"video": {"url": "https://cdn/1.mp4"}}]
    producer = SceneClipProducer(settings, logger, fal)

    clips = producer.generate_clips(_script())

    assert [(c.index, c.url) for c in clips] == [(0, "https://cdn/0.mp4"), (1, "https://cdn/1.mp4")]
    arguments = fal.subscribe.call_args_list[0][0][1]
    assert arguments["aspect_ratio"] == "9:16"
    assert arguments["generate_audio"] is False


def test_scene_falls_back_on_access_denied(settings, logger):
    """Test the next candidate endpoint is tried after a denial."""
    fal = MagicMock()
    fal.subscribe.side_effect = [AccessDeniedError("fal", "Forbidden"), {"video": {"url": "https://cdn/ok.mp4"}}]
    producer = SceneClipProducer(settings, logger, fal, endpoints=["first", "second"])

    assert producer.generate("prompt") == "https://cdn/ok.mp4"
    assert [c[0][0] for c in fal.subscribe.call_args_list] == ["first", "second"]


def test_scene_all_candidates_denied(settings, logger):
    """Test exhausting every candidate raises a service error."""
    fal = MagicMock()
    fal.subscribe.side_effect = AccessDeniedError("fal", "Forbidden")
    producer = SceneClipProducer(settings, logger, fal, endpoints=["first", "second"])

    with pytest.raises(ExternalServiceError, match="All clip endpoints denied access"):
        producer.generate("prompt")


def test_scene_other_errors_do_not_fall_back(settings, logger):
    """Test non-authorization failures are raised immediately."""
    fal = MagicMock()
    fal.subscribe.side_effect = ExternalServiceError("fal", "first returned 500")
    producer = SceneClipProducer(settings, logger, fal, endpoints=["first", "second"])

    with pytest.raises(ExternalServiceError, match="500"):
        producer.generate("prompt")
    assert fal.subscribe.call_count == 1


def test_anchor_chunks_voiceover_onto_base_clip(settings, logger):
    """Test the base clip is generated once and every chunk is lip-synced."""
    fal = MagicMock()
    outputs = iter(
        [{"video": {"url": "https://cdn/base.mp4"}}]
        + [{"video": {"url": f"https://cdn/seg{i}.mp4"}} for i in range(10)]
    )
    fal.subscribe.side_effect = lambda endpoint_id, arguments: next(outputs)
    producer = AnchorClipProducer(settings, logger, fal)
    voiceover = " ".join(["Europe agreed sweeping new rules for artificial intelligence this week."] * 4)

    clips = producer.generate_clips(voiceover)

    assert len(clips) >= 2
    assert [c.index for c in clips] == list(range(len(clips)))
    lipsync_calls = fal.subscribe.call_args_list[1:]
    assert all(call[0][0] == settings.anchor_lipsync_endpoint for call in lipsync_calls)
    assert all(call[0][1]["video_url"] == "https://cdn/base.mp4" for call in lipsync_calls)
    assert all(len(call[0][1]["text"]) <= 115 for call in lipsync_calls)
    assert lipsync_calls[0][0][1]["voice_id"] == "uk_man2"


def test_anchor_rejects_long_text_and_missing_base(settings, logger):
    """Test the lip-sync limits are enforced before calling fal."""
    fal = MagicMock()
    producer = AnchorClipProducer(settings, logger, fal)

    with pytest.raises(ValueError):
        producer.generate("x" * 121, {"base_video_url": "https://cdn/base.mp4"})
    with pytest.raises(ValueError):
        producer.generate("short")
    fal.subscribe.assert_not_called()


def test_anchor_empty_voiceover(settings, logger):
    """Test an empty voiceover cannot be lip-synced."""
    with pytest.raises(ValidationFailure):
        AnchorClipProducer(settings, logger, MagicMock()).generate_clips("   ")
