"""Application configuration using pydantic-settings."""

from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeedSource(BaseModel):
    """A named RSS endpoint."""

    name: str
    url: str


DEFAULT_FEEDS = [
    FeedSource(name="Reuters", url="https://feeds.reuters.com/reuters/topNews"),
    FeedSource(name="AP", url="https://apnews.com/apf-topnews?output=rss"),
    FeedSource(name="NPR", url="https://feeds.npr.org/1001/rss.xml"),
    FeedSource(name="BBC", url="https://feeds.bbci.co.uk/news/rss.xml"),
    FeedSource(name="Al Jazeera", url="https://www.aljazeera.com/xml/rss/all.xml"),
    FeedSource(name="Politico", url="https://www.politico.com/rss/politics08.xml"),
    FeedSource(name="The Hill", url="https://thehill.com/feed/"),
    FeedSource(name="Bloomberg", url="https://www.bloomberg.com/feed/podcast/etf-report.xml"),
]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via environment variables or a .env file.
    See .env.example for a template.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # Application Settings
    # ========================================================================
    app_name: str = Field(default="Newsreel", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_file: Optional[str] = Field(default=None, description="Optional path of a rotating log file")

    # ========================================================================
    # Database
    # ========================================================================
    database_url: str = Field(
        default="sqlite:///storage/newsreel.db",
        description="SQLAlchemy database URL shared by the API and all workers",
    )

    # ========================================================================
    # Pipeline Settings
    # ========================================================================
    video_mode: Literal["scene", "anchor"] = Field(
        default="scene",
        description="Video production mode: 'scene' (one clip per scene + synthesized voiceover) or 'anchor' (lip-synced presenter)",
    )
    max_topics: int = Field(default=5, description="Maximum number of topics produced per job")
    max_items_per_feed: int = Field(default=10, description="Maximum items read from each RSS feed")
    fetch_full_text: bool = Field(default=True, description="Fetch article pages to extract full text during ingest")
    rss_feeds: list[FeedSource] = Field(default=DEFAULT_FEEDS, description="RSS feeds polled during ingest")

    # ========================================================================
    # Research Settings
    # ========================================================================
    research_days: int = Field(default=7, description="Web search window in days")
    research_num_results: int = Field(default=12, description="Number of web search results requested per topic")
    research_max_local_articles: int = Field(default=8, description="Recent stored articles added to each research package")
    research_max_sources: int = Field(default=20, description="Maximum sources in a research package")
    research_excerpt_chars: int = Field(default=420, description="Maximum excerpt length per research source")

    # ========================================================================
    # LLM API Keys & Settings
    # ========================================================================
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI model name")
    summary_temperature: float = Field(default=0.2, description="Sampling temperature for news briefs")
    script_temperature: float = Field(default=0.35, description="Sampling temperature for video scripts")
    script_duration_seconds: int = Field(default=25, description="Target runtime enforced on every video script")

    # ========================================================================
    # Web Search (Exa)
    # ========================================================================
    exa_api_key: Optional[str] = Field(default=None, description="Exa API key")
    exa_api_url: str = Field(default="https://api.exa.ai", description="Exa API URL")

    # ========================================================================
    # Preferences (Hyperspell)
    # ========================================================================
    hyperspell_api_key: Optional[str] = Field(
        default=None, description="Hyperspell API key (optional, falls back to stored preferences)"
    )
    hyperspell_base_url: str = Field(default="https://api.hyperspell.com", description="Hyperspell API URL")

    # ========================================================================
    # Clip Generation (fal)
    # ========================================================================
    fal_key: Optional[str] = Field(default=None, description="fal.ai API key")
    fal_queue_url: str = Field(default="https://queue.fal.run", description="fal queue API URL")
    fal_poll_interval_seconds: float = Field(default=5.0, description="Seconds between fal status polls")
    fal_max_wait_seconds: float = Field(default=900.0, description="Maximum seconds to wait for one fal request")
    scene_clip_endpoints: list[str] = Field(
        default=[
            "fal-ai/kling-video/v2.6/pro/text-to-video",
            "fal-ai/kling-video/v2.5-turbo/pro/text-to-video",
        ],
        description="Scene clip endpoints, tried in order when access is denied",
    )
    scene_clip_duration: str = Field(default="5", description="Scene clip length in seconds ('5' or '10')")
    scene_aspect_ratio: str = Field(default="9:16", description="Scene clip aspect ratio")
    scene_cfg_scale: float = Field(default=0.55, description="Scene clip prompt adherence")
    anchor_base_endpoint: str = Field(
        default="fal-ai/kling-video/v2.5-turbo/pro/text-to-video",
        description="Endpoint for the presenter base clip",
    )
    anchor_lipsync_endpoint: str = Field(
        default="fal-ai/kling-video/lipsync/text-to-video",
        description="Endpoint for lip-synced presenter segments",
    )
    anchor_base_duration: str = Field(default="10", description="Presenter base clip length in seconds")
    anchor_aspect_ratio: str = Field(default="16:9", description="Presenter clip aspect ratio")
    anchor_gender: Literal["male", "female"] = Field(default="male", description="Presenter appearance")
    anchor_voice_id: str = Field(default="uk_man2", description="Lip-sync voice (uk_boy1, uk_man2, uk_oldman3)")
    anchor_voice_speed: float = Field(default=0.95, description="Lip-sync voice speed")
    lipsync_text_limit: int = Field(default=115, ge=1, le=120, description="Maximum characters per lip-sync segment (1-120)")

    # ========================================================================
    # TTS (Text-to-Speech) Settings
    # ========================================================================
    elevenlabs_api_key: Optional[str] = Field(default=None, description="ElevenLabs API key")
    elevenlabs_voice_id: str = Field(default="onwK4e9ZLuTAKqWW03F9", description="ElevenLabs voice ID")
    elevenlabs_model_id: str = Field(default="eleven_multilingual_v2", description="ElevenLabs model ID")
    elevenlabs_output_format: str = Field(default="mp3_44100_128", description="ElevenLabs output format")
    openai_tts_model: str = Field(default="tts-1", description="OpenAI speech model (used without ElevenLabs)")
    openai_tts_voice: str = Field(default="onyx", description="OpenAI speech voice")

    # ========================================================================
    # Media Assembly
    # ========================================================================
    ffmpeg_binary: Optional[str] = Field(
        default=None, description="ffmpeg executable (default: the binary bundled with imageio-ffmpeg)"
    )
    overlay_font_file: Optional[str] = Field(default=None, description="Font file used for the headline overlay")
    overlay_font_size: int = Field(default=42, description="Headline overlay font size")
    download_timeout_seconds: float = Field(default=120.0, description="Timeout for each clip download")

    # ========================================================================
    # Upload Settings
    # ========================================================================
    storage_backend: Literal["local", "supabase"] = Field(
        default="local", description="Where finished media is uploaded: 'local' or 'supabase'"
    )
    media_root: str = Field(default="storage/media", description="Root directory for local media storage")
    media_base_url: Optional[str] = Field(
        default=None, description="Public base URL for local media (default: file:// URLs)"
    )
    supabase_url: Optional[str] = Field(default=None, description="Supabase project URL")
    supabase_service_role_key: Optional[str] = Field(default=None, description="Supabase service role key")
    videos_bucket: str = Field(default="videos", description="Bucket for finished videos")
    thumbnails_bucket: str = Field(default="thumbnails", description="Bucket for thumbnails")

    # ========================================================================
    # Worker Settings
    # ========================================================================
    worker_poll_interval_seconds: float = Field(default=2.0, description="Idle sleep between queue polls")
    worker_error_backoff_seconds: float = Field(default=2.0, description="Initial backoff after a store failure")
    worker_max_backoff_seconds: float = Field(default=30.0, description="Backoff ceiling after repeated store failures")
    http_timeout_seconds: float = Field(default=30.0, description="Default timeout for outbound HTTP calls")

    def secret_values(self) -> list[str]:
        """Return every configured credential, for redaction."""
        candidates = [
            self.openai_api_key,
            self.exa_api_key,
            self.hyperspell_api_key,
            self.fal_key,
            self.elevenlabs_api_key,
            self.supabase_service_role_key,
        ]
        return [value for value in candidates if value]


# Global settings instance
settings = Settings()
