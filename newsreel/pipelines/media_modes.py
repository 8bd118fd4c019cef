"""Media modes - how clips and narration are produced for one topic."""

from typing import Any, Optional, Protocol

from newsreel.models.schemas import PipelineStage, ProducedMedia, VideoMode, VideoScript
from newsreel.services.clip_producer import AnchorClipProducer, SceneClipProducer
from newsreel.services.tts_client import SpeechSynthesizer


class StageTracker(Protocol):
    """Begin/finish hooks of the current topic, supplied by the job runner."""

    def begin(self, stage: PipelineStage, message: str, items: Optional[list[str]] = None) -> None: ...

    def finish(self, stage: PipelineStage, message: str, items: Optional[list[str]] = None) -> None: ...


class TopicMediaPipeline:
    """Base class: runs the media stages of one topic."""

    mode: VideoMode

    def __init__(self, logger: Any):
        self.logger = logger

    def run(self, script: VideoScript, stages: StageTracker) -> ProducedMedia:
        """
        Produce clips (and narration, if the mode has a separate track).

        Args:
            script: Script of the topic
            stages: Stage hooks used to report progress and observe cancellation

        Returns:
            Clips in playback order plus optional separate audio
        """
        raise NotImplementedError("Subclass must implement run()")


class SceneModePipeline(TopicMediaPipeline):
    """One generated clip per scene, narrated by a synthesized voiceover."""

    mode = VideoMode.SCENE

    def __init__(self, logger: Any, clip_producer: SceneClipProducer, speech: SpeechSynthesizer):
        super().__init__(logger)
        self.clip_producer = clip_producer
        self.speech = speech

    def run(self, script: VideoScript, stages: StageTracker) -> ProducedMedia:
        stages.begin(PipelineStage.CLIP_GENERATION, f"Generating clips ({len(script.scenes)} scenes)…")
        clips = self.clip_producer.generate_clips(script)
        stages.finish(
            PipelineStage.CLIP_GENERATION,
            "Clips ready",
            [f"Scene {clip.index + 1}" for clip in clips],
        )

        stages.begin(PipelineStage.VOICE, "Synthesizing voiceover…")
        audio = self.speech.synthesize(script.voiceover)
        stages.finish(PipelineStage.VOICE, f"Voiceover ready ({round(len(audio) / 1024)} KB)")

        return ProducedMedia(clips=clips, separate_audio=audio)


class AnchorModePipeline(TopicMediaPipeline):
    """A lip-synced presenter whose clips already carry the narration."""

    mode = VideoMode.ANCHOR

    def __init__(self, logger: Any, clip_producer: AnchorClipProducer):
        super().__init__(logger)
        self.clip_producer = clip_producer

    def run(self, script: VideoScript, stages: StageTracker) -> ProducedMedia:
        stages.begin(PipelineStage.CLIP_GENERATION, "Generating presenter segments…")
        clips = self.clip_producer.generate_clips(script.voiceover)
        stages.finish(
            PipelineStage.CLIP_GENERATION,
            f"Presenter ready ({len(clips)} segments)",
            [f"Segment {clip.index + 1}" for clip in clips],
        )
        return ProducedMedia(clips=clips, separate_audio=None)
