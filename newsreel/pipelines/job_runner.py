"""Job Runner - executes the stages of one claimed generation job."""

from typing import Any, Optional

from newsreel.core.config import Settings
from newsreel.models.schemas import EventKind, Job, PipelineStage, Preference, VideoMode
from newsreel.pipelines.media_modes import AnchorModePipeline, SceneModePipeline, TopicMediaPipeline
from newsreel.services.clip_producer import AnchorClipProducer, SceneClipProducer
from newsreel.services.fal_client import FalClient
from newsreel.services.llm_client import LLMClient
from newsreel.services.media_assembler import MediaAssembler
from newsreel.services.preference_service import PreferenceService
from newsreel.services.research_service import ResearchService
from newsreel.services.rss_ingestor import RssIngestor
from newsreel.services.script_writer import ScriptWriter
from newsreel.services.storage_uploader import StorageUploader, get_storage_uploader
from newsreel.services.summarizer import Summarizer
from newsreel.services.topic_ranker import pick_top_topics
from newsreel.services.tts_client import SpeechSynthesizer
from newsreel.services.web_search_client import ExaSearchClient
from newsreel.storage.database import Database
from newsreel.storage.job_store import JobStore
from newsreel.storage.repository import ContentRepository
from newsreel.utils.error_handler import JobCancelled, PreconditionFailure

INGEST_START = 3
INGEST_DONE = 6
TOPICS_START = 10
TOPICS_DONE = 12
TOPIC_BAND_END = 90

MAX_HEADLINE_ITEMS = 10
MAX_SOURCE_ITEMS = 6

# (start, done) position of each stage within a topic's progress slice.
STAGE_FRACTIONS = {
    PipelineStage.RESEARCH: (0.0, 0.10),
    PipelineStage.SUMMARIZE: (0.10, 0.25),
    PipelineStage.SCRIPT: (0.25, 0.35),
    PipelineStage.CLIP_GENERATION: (0.35, 0.60),
    PipelineStage.VOICE: (0.60, 0.70),
    PipelineStage.ASSEMBLE: (0.70, 0.85),
    PipelineStage.UPLOAD: (0.85, 1.0),
}


class ProgressPlan:
    """
    Deterministic progress numbers for a job with a known number of topics.

    Ingest and topic selection take 0-12; each topic owns an equal slice of
    12-90; finalization sets 100.
    """

    def __init__(self, topic_count: int):
        if topic_count < 1:
            raise ValueError("topic_count must be at least 1")
        self.topic_count = topic_count
        self.slice_size = (TOPIC_BAND_END - TOPICS_DONE) / topic_count

    def topic_progress(self, index: int, stage: PipelineStage, done: bool = False) -> int:
        start, end = STAGE_FRACTIONS[stage]
        position = index + (end if done else start)
        return min(TOPIC_BAND_END, int(TOPICS_DONE + self.slice_size * position))


class StageReporter:
    """Writes the progress snapshot and event for every stage transition."""

    def __init__(self, job_store: JobStore, job_id: str, logger: Any):
        self.job_store = job_store
        self.job_id = job_id
        self.logger = logger
        self.last_progress = 0

    def report(
        self,
        kind: EventKind,
        step: str,
        progress: int,
        message: str,
        items: Optional[list[str]] = None,
    ) -> None:
        """
        Record a transition: update step/progress/payload, then append the event.

        Progress never decreases within a job.

        Raises:
            StoreError: If either write fails
        """
        progress = max(self.last_progress, min(100, progress))
        items = [str(item) for item in (items or [])]
        snapshot = {"last": {"kind": kind.value, "message": message, "items": items}}
        self.job_store.update_progress(self.job_id, step, progress, snapshot)
        self.job_store.append_event(self.job_id, kind, message, items)
        self.last_progress = progress
        self.logger.info(f"[{progress:3d}%] {step}: {message}")

    def check_cancelled(self) -> None:
        if self.job_store.is_cancel_requested(self.job_id):
            raise JobCancelled("Job cancelled by request")


class TopicStages:
    """Stage hooks bound to one topic of a job."""

    def __init__(self, reporter: StageReporter, plan: ProgressPlan, index: int, topic: str):
        self.reporter = reporter
        self.plan = plan
        self.index = index
        self.topic = topic

    def begin(self, stage: PipelineStage, message: str, items: Optional[list[str]] = None) -> None:
        """Observe cancellation, then report the start of a stage."""
        self.reporter.check_cancelled()
        self._report(stage, False, message, items)

    def finish(self, stage: PipelineStage, message: str, items: Optional[list[str]] = None) -> None:
        self._report(stage, True, message, items)

    def _report(self, stage: PipelineStage, done: bool, message: str, items: Optional[list[str]]) -> None:
        self.reporter.report(
            EventKind(stage.value),
            f"{stage.value}:{self.topic}",
            self.plan.topic_progress(self.index, stage, done),
            message,
            items,
        )


class JobRunner:
    """Runs the fixed stage sequence of a job; the first failure propagates."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        job_store: JobStore,
        repository: ContentRepository,
        preference_service: PreferenceService,
        ingestor: RssIngestor,
        research_service: ResearchService,
        summarizer: Summarizer,
        script_writer: ScriptWriter,
        media_pipeline: TopicMediaPipeline,
        assembler: MediaAssembler,
        uploader: StorageUploader,
    ):
        self.settings = settings
        self.logger = logger
        self.job_store = job_store
        self.repository = repository
        self.preference_service = preference_service
        self.ingestor = ingestor
        self.research_service = research_service
        self.summarizer = summarizer
        self.script_writer = script_writer
        self.media_pipeline = media_pipeline
        self.assembler = assembler
        self.uploader = uploader

    def run(self, job: Job) -> None:
        """
        Execute every stage for a running job.

        Rows written before a failure (articles, summaries, earlier topics'
        videos) are kept.

        Args:
            job: Job already claimed by the caller

        Raises:
            PipelineError: On the first stage failure
        """
        logger = self.logger.bind(job_id=job.id, owner=job.owner)
        reporter = StageReporter(self.job_store, job.id, logger)

        preferences = self.preference_service.get_preferences(job.owner)
        if not preferences:
            raise PreconditionFailure("No preferences found for user; complete onboarding first.")

        reporter.check_cancelled()
        reporter.report(EventKind.INGEST, "ingest", INGEST_START, "Starting RSS ingest…")
        ingest = self.ingestor.ingest()
        reporter.report(
            EventKind.INGEST,
            "ingest",
            INGEST_DONE,
            f"Ingested {ingest.inserted_or_updated} items ({len(ingest.errors)} feed errors)",
            ingest.sample_headlines[:MAX_HEADLINE_ITEMS],
        )

        reporter.check_cancelled()
        reporter.report(EventKind.TOPICS, "topics", TOPICS_START, "Selecting top topics…")
        topics = pick_top_topics(preferences, self.settings.max_topics)
        if not topics:
            raise PreconditionFailure("No topics selected from preferences.")
        reporter.report(EventKind.TOPICS, "topics", TOPICS_DONE, "Top topics chosen", [p.topic for p in topics])

        plan = ProgressPlan(len(topics))
        for index, preference in enumerate(topics):
            self._run_topic(job, preference, TopicStages(reporter, plan, index, preference.topic), logger)

    def _run_topic(self, job: Job, preference: Preference, stages: TopicStages, logger: Any) -> None:
        topic = preference.topic
        logger = logger.bind(topic=topic)

        stages.begin(PipelineStage.RESEARCH, f"Gathering sources for: {topic}")
        package = self.research_service.build_research_package(topic)
        stages.finish(
            PipelineStage.RESEARCH,
            f"Collected {len(package.sources)} sources",
            [source.title for source in package.sources[:MAX_SOURCE_ITEMS]],
        )

        stages.begin(PipelineStage.SUMMARIZE, f"Writing summary: {topic}")
        brief = self.summarizer.generate_brief(package)
        summary_id = self.repository.save_summary(topic, brief)
        stages.finish(PipelineStage.SUMMARIZE, f"Summary drafted: {brief.headline}")

        stages.begin(PipelineStage.SCRIPT, "Writing video script")
        script = self.script_writer.generate_script(brief)
        stages.finish(PipelineStage.SCRIPT, f"Script ready ({len(script.scenes)} scenes)")

        media = self.media_pipeline.run(script, stages)

        stages.begin(PipelineStage.ASSEMBLE, "Assembling final video (ffmpeg)…")
        clip_urls = [clip.url for clip in sorted(media.clips, key=lambda c: c.index)]
        assembled = self.assembler.assemble(
            clip_urls,
            overlay_text=brief.headline,
            separate_audio=media.separate_audio,
        )
        stages.finish(PipelineStage.ASSEMBLE, f"Assembled MP4 ({len(assembled.video) / 1024 / 1024:.1f} MB)")

        stages.begin(PipelineStage.UPLOAD, "Uploading assets…")
        base_path = f"{job.owner}/{job.id}/{summary_id}"
        video_url = self.uploader.upload(self.settings.videos_bucket, f"{base_path}.mp4", assembled.video, "video/mp4")
        thumbnail_url = self.uploader.upload(
            self.settings.thumbnails_bucket, f"{base_path}.png", assembled.thumbnail, "image/png"
        )
        duration = (
            round(assembled.duration_seconds)
            if assembled.duration_seconds is not None
            else script.duration_seconds_target
        )
        video_id = self.repository.save_video(summary_id, video_url, thumbnail_url, duration, script.voiceover)
        self.repository.save_user_content(job.owner, video_id)
        stages.finish(PipelineStage.UPLOAD, "Uploaded", [video_url, thumbnail_url])
        logger.info(f"Topic complete: {video_url}")


def build_media_pipeline(
    mode: VideoMode,
    settings: Settings,
    logger: Any,
    fal_client: FalClient,
    speech: Optional[SpeechSynthesizer] = None,
) -> TopicMediaPipeline:
    """Select the media pipeline for a video mode."""
    mode = VideoMode(mode)
    if mode == VideoMode.ANCHOR:
        return AnchorModePipeline(logger, AnchorClipProducer(settings, logger, fal_client))
    return SceneModePipeline(
        logger,
        SceneClipProducer(settings, logger, fal_client),
        speech or SpeechSynthesizer(settings, logger),
    )


def build_job_runner(
    settings: Settings,
    logger: Any,
    database: Database,
    mode: Optional[VideoMode] = None,
) -> JobRunner:
    """
    Wire a JobRunner and its collaborators from settings.

    Args:
        settings: Application settings
        logger: Logger instance
        database: Database shared by the store and repository
        mode: Video mode (default: settings.video_mode)

    Returns:
        Ready-to-use JobRunner
    """
    job_store = JobStore(database, logger)
    repository = ContentRepository(database, logger)
    llm_client = LLMClient(settings, logger)
    media_pipeline = build_media_pipeline(mode or VideoMode(settings.video_mode), settings, logger, FalClient(settings, logger))
    logger.info(f"Video mode: {media_pipeline.mode.value}")

    return JobRunner(
        settings=settings,
        logger=logger,
        job_store=job_store,
        repository=repository,
        preference_service=PreferenceService(settings, logger, repository),
        ingestor=RssIngestor(settings, logger, repository),
        research_service=ResearchService(settings, logger, ExaSearchClient(settings, logger), repository),
        summarizer=Summarizer(settings, logger, llm_client),
        script_writer=ScriptWriter(settings, logger, llm_client),
        media_pipeline=media_pipeline,
        assembler=MediaAssembler(settings, logger),
        uploader=get_storage_uploader(settings, logger),
    )
