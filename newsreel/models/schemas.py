"""Pydantic models and schemas for the news video pipeline."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


# ============================================================================
# Enums
# ============================================================================


class JobStatus(str, Enum):
    """Lifecycle status of a generation job."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)


class EventKind(str, Enum):
    """Kind of a job progress event."""

    INGEST = "ingest"
    TOPICS = "topics"
    RESEARCH = "research"
    SUMMARIZE = "summarize"
    SCRIPT = "script"
    CLIP_GENERATION = "clip-generation"
    VOICE = "voice"
    ASSEMBLE = "assemble"
    UPLOAD = "upload"
    ERROR = "error"
    DONE = "done"


class PipelineStage(str, Enum):
    """Per-topic stages, in execution order."""

    RESEARCH = "research"
    SUMMARIZE = "summarize"
    SCRIPT = "script"
    CLIP_GENERATION = "clip-generation"
    VOICE = "voice"
    ASSEMBLE = "assemble"
    UPLOAD = "upload"


class VideoMode(str, Enum):
    """How clips and narration are produced for each topic."""

    SCENE = "scene"
    ANCHOR = "anchor"


# ============================================================================
# Job Models
# ============================================================================


class Job(BaseModel):
    """A request to produce personalized videos for one owner."""

    id: str = Field(..., description="Opaque unique job identifier")
    owner: str = Field(..., description="User the videos are produced for")
    status: JobStatus = Field(default=JobStatus.QUEUED, description="Lifecycle status")
    step: Optional[str] = Field(default=None, description="Current stage label, e.g. 'assemble:AI policy'")
    progress: int = Field(default=0, ge=0, le=100, description="Completion percentage")
    error: Optional[str] = Field(default=None, description="Redacted failure message")
    payload: dict[str, Any] = Field(default_factory=dict, description="Latest event snapshot")
    cancel_requested: bool = Field(default=False, description="Cooperative cancellation flag")
    created_at: datetime
    updated_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class JobEvent(BaseModel):
    """Append-only progress record of a job."""

    id: Optional[int] = None
    job_id: str
    timestamp: datetime
    kind: EventKind
    message: str
    items: list[str] = Field(default_factory=list, description="Small bounded sample for display")


# ============================================================================
# Preferences & Ingest Models
# ============================================================================


class Preference(BaseModel):
    """A user's interest area."""

    topic: str = Field(..., min_length=1, description="Interest area, e.g. 'AI policy'")
    category: Optional[str] = Field(default=None, description="Grouping used for diversity when ranking")
    geographic_scope: Optional[str] = Field(default=None, description="local, national or international")
    priority: int = Field(default=5, ge=1, le=10, description="Higher is more important")


class FeedError(BaseModel):
    """A feed that could not be read during ingest."""

    feed: str
    error: str


class IngestResult(BaseModel):
    """Outcome of one RSS ingest pass."""

    inserted_or_updated: int = 0
    errors: list[FeedError] = Field(default_factory=list)
    sample_headlines: list[str] = Field(default_factory=list)


class Article(BaseModel):
    """A stored news article."""

    headline: str
    content_url: str
    source: str
    published_at: Optional[datetime] = None
    full_text: Optional[str] = None


# ============================================================================
# Research Models
# ============================================================================


class WebSearchResult(BaseModel):
    """A single web search hit with extracted text."""

    title: str
    url: str
    published_date: Optional[str] = None
    author: Optional[str] = None
    text: Optional[str] = None


class ResearchSource(BaseModel):
    """A source inside a research package."""

    title: str
    url: str
    outlet: Optional[str] = None
    published_at: Optional[str] = None
    excerpt: Optional[str] = None
    full_text: Optional[str] = None


class ResearchPackage(BaseModel):
    """Deduplicated sources gathered for one topic."""

    topic: str
    sources: list[ResearchSource] = Field(default_factory=list)
    notes: Optional[str] = None


# ============================================================================
# Brief & Script Models
# ============================================================================


class BriefSource(BaseModel):
    """A source cited by a news brief."""

    title: str = Field(..., min_length=1)
    url: str
    outlet: Optional[str] = Field(default=None, min_length=1)

    @field_validator("url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("source url must be http(s)")
        return value


class RawNewsBrief(BaseModel):
    """Permissive shape of a brief as returned by the model, before normalization."""

    headline: str = Field(..., min_length=1)
    lede: str = Field(..., min_length=1)
    why_it_matters: str = Field(..., min_length=1)
    key_facts: list[str]
    the_big_picture: str = Field(..., min_length=1)
    what_to_watch: Any = None
    sources: Any = None


class NewsBrief(BaseModel):
    """Normalized news brief for one topic."""

    headline: str = Field(..., min_length=1, max_length=80)
    lede: str = Field(..., min_length=1, max_length=220)
    why_it_matters: str = Field(..., min_length=1, max_length=420)
    key_facts: list[str] = Field(..., min_length=3, max_length=6)
    the_big_picture: str = Field(..., min_length=1, max_length=520)
    what_to_watch: Optional[list[str]] = Field(default=None, max_length=4)
    sources: list[BriefSource] = Field(..., min_length=1, max_length=12)

    @field_validator("key_facts", "what_to_watch")
    @classmethod
    def _non_empty_items(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is not None and any(not item for item in value):
            raise ValueError("items must be non-empty")
        return value


class ScriptScene(BaseModel):
    """A visual beat of a video script."""

    seconds: int = Field(..., ge=1, le=15)
    description: str = Field(..., min_length=1)
    overlay: Optional[str] = None


class VideoScript(BaseModel):
    """Narration and visual plan for one short video."""

    duration_seconds_target: int = Field(..., ge=15, le=40)
    hook: str = Field(..., min_length=1)
    voiceover: str = Field(..., min_length=1)
    pacing_notes: Optional[str] = None
    background_music_tone: Optional[str] = None
    text_overlays: Optional[list[str]] = Field(default=None, max_length=8)
    scenes: list[ScriptScene] = Field(..., min_length=2, max_length=6)


# ============================================================================
# Media Models
# ============================================================================


class Clip(BaseModel):
    """A generated clip, addressed by URL."""

    index: int
    url: str


class ProducedMedia(BaseModel):
    """Clips for one topic plus separate narration when the mode has one."""

    clips: list[Clip]
    separate_audio: Optional[bytes] = None


class AssembledMedia(BaseModel):
    """Final video and thumbnail bytes."""

    video: bytes
    thumbnail: bytes
    duration_seconds: Optional[float] = None


# ============================================================================
# API Models
# ============================================================================


class CreateJobRequest(BaseModel):
    """Request body for queueing a generation job."""

    owner: str = Field(..., min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)


class JobDetailResponse(BaseModel):
    """A job with its event log."""

    job: Job
    events: list[JobEvent] = Field(default_factory=list)


class ContentItem(BaseModel):
    """A produced video delivered to an owner."""

    id: str
    video_id: str
    video_url: str
    thumbnail_url: Optional[str] = None
    duration: Optional[int] = None
    script: Optional[str] = None
    brief: Optional[dict[str, Any]] = None
    viewed: bool = False
    view_duration: int = 0
    liked: bool = False
    created_at: datetime


class ContentFeedResponse(BaseModel):
    """Latest job status plus produced content for an owner."""

    job: Optional[Job] = None
    events: list[JobEvent] = Field(default_factory=list)
    items: list[ContentItem] = Field(default_factory=list)


class PreferencesRequest(BaseModel):
    """Replacement set of stored preferences."""

    preferences: list[Preference] = Field(default_factory=list)
