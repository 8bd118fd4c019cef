"""Clip Producers - generate video clips through fal endpoints."""

from typing import Any, Optional

from newsreel.core.config import Settings
from newsreel.models.schemas import Clip, VideoScript
from newsreel.services.fal_client import FalClient, video_url_from
from newsreel.utils.error_handler import AccessDeniedError, ExternalServiceError, ValidationFailure
from newsreel.utils.text_utils import split_voiceover_into_chunks

LIPSYNC_HARD_LIMIT = 120

SCENE_STYLE_LINES = [
    "Style: a warm, approachable presenter speaking directly to camera in a clean, modern setting. "
    "Natural lighting, minimal background distractions, friendly and confident: authentic and "
    "conversational rather than a traditional news anchor.",
    "Setting: simple, tasteful background (apartment, office, or neutral modern space). Warm color tones.",
    "Framing: medium close-up, presenter centered, making eye contact with camera.",
]

SCENE_NEGATIVE_PROMPT = (
    "blur, distort, low quality, text errors, watermarks, logos, cheap stock footage, TV studio, "
    "news desk, formal suit, stiff posture, multiple people, busy background"
)

ANCHOR_APPEARANCE = {
    "male": "A distinguished British gentleman in his 40s wearing a tailored navy suit and burgundy tie",
    "female": "An elegant British woman in her 40s wearing a sophisticated blouse and blazer",
}

ANCHOR_NEGATIVE_PROMPT = "blur, distorted, low quality, cartoon, anime, casual clothes, unprofessional"


class ClipProducer:
    """Base class for clip producers."""

    def __init__(self, settings: Settings, logger: Any, fal_client: FalClient):
        """
        Initialize clip producer.

        Args:
            settings: Application settings
            logger: Logger instance
            fal_client: fal queue client
        """
        self.settings = settings
        self.logger = logger
        self.fal_client = fal_client

    def generate(self, prompt: str, style_options: Optional[dict] = None) -> str:
        """
        Generate one clip and return its URL.

        Args:
            prompt: Scene prompt or narration text, depending on the producer
            style_options: Producer-specific options

        Returns:
            URL of the generated clip
        """
        raise NotImplementedError("Subclass must implement generate()")


class SceneClipProducer(ClipProducer):
    """One text-to-video clip per script scene, with candidate endpoint fallback."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        fal_client: FalClient,
        endpoints: Optional[list[str]] = None,
    ):
        super().__init__(settings, logger, fal_client)
        self.endpoints = list(endpoints or settings.scene_clip_endpoints)
        if not self.endpoints:
            raise ValueError("At least one scene clip endpoint is required")

    def build_prompt(self, description: str, overlay: Optional[str] = None) -> str:
        lines = [description]
        if overlay:
            lines.append(f'On-screen text overlay: "{overlay}"')
        lines.extend(SCENE_STYLE_LINES)
        return "\n".join(lines)

    def generate(self, prompt: str, style_options: Optional[dict] = None) -> str:
        """
        Generate a clip, trying each candidate endpoint in order.

        Access-denied answers move on to the next candidate; any other error
        is raised immediately.

        Raises:
            ExternalServiceError: If every candidate denied access, or on any other failure
        """
        arguments = {
            "prompt": prompt,
            "duration": self.settings.scene_clip_duration,
            "aspect_ratio": self.settings.scene_aspect_ratio,
            "generate_audio": False,
            "negative_prompt": SCENE_NEGATIVE_PROMPT,
            "cfg_scale": self.settings.scene_cfg_scale,
        }
        arguments.update(style_options or {})

        last_error: Optional[AccessDeniedError] = None
        for endpoint_id in self.endpoints:
            try:
                output = self.fal_client.subscribe(endpoint_id, arguments)
            except AccessDeniedError as e:
                self.logger.warning(f"Endpoint {endpoint_id} denied access, trying next candidate: {e}")
                last_error = e
                continue
            return video_url_from(output, endpoint_id)

        raise ExternalServiceError("fal", f"All clip endpoints denied access; last error: {last_error}")

    def generate_clips(self, script: VideoScript) -> list[Clip]:
        """Generate one clip per scene, in scene order."""
        clips = []
        for index, scene in enumerate(script.scenes):
            self.logger.info(f"Generating clip for scene {index + 1}/{len(script.scenes)}")
            url = self.generate(self.build_prompt(scene.description, scene.overlay))
            clips.append(Clip(index=index, url=url))
        return clips


class AnchorClipProducer(ClipProducer):
    """A lip-synced presenter: one base clip, re-voiced chunk by chunk."""

    def generate_base_video(self) -> str:
        """Generate the silent presenter clip every segment is lip-synced onto."""
        appearance = ANCHOR_APPEARANCE.get(self.settings.anchor_gender, ANCHOR_APPEARANCE["male"])
        prompt = " ".join(
            [
                appearance,
                "sitting at an elegant mahogany news desk.",
                "Warm professional studio lighting, modern broadcast backdrop.",
                "Looking directly at camera with a composed, authoritative expression.",
                "Subtle natural movements, ready to deliver news.",
                "Professional broadcast quality.",
            ]
        )
        endpoint_id = self.settings.anchor_base_endpoint
        output = self.fal_client.subscribe(
            endpoint_id,
            {
                "prompt": prompt,
                "duration": self.settings.anchor_base_duration,
                "aspect_ratio": self.settings.anchor_aspect_ratio,
                "negative_prompt": ANCHOR_NEGATIVE_PROMPT,
            },
        )
        return video_url_from(output, endpoint_id)

    def generate(self, prompt: str, style_options: Optional[dict] = None) -> str:
        """
        Lip-sync one narration chunk onto the base clip.

        Args:
            prompt: Narration text (at most 120 characters)
            style_options: Must contain "base_video_url"; may override "voice_id"/"voice_speed"

        Raises:
            ValueError: If the text is too long or no base clip is given
            ExternalServiceError: If the lip-sync call fails
        """
        options = style_options or {}
        base_video_url = options.get("base_video_url")
        if not base_video_url:
            raise ValueError("base_video_url is required for lip-sync")
        if len(prompt) > LIPSYNC_HARD_LIMIT:
            raise ValueError(f"Lipsync text exceeds {LIPSYNC_HARD_LIMIT} char limit: {len(prompt)} chars")

        endpoint_id = self.settings.anchor_lipsync_endpoint
        output = self.fal_client.subscribe(
            endpoint_id,
            {
                "video_url": base_video_url,
                "text": prompt,
                "voice_id": options.get("voice_id", self.settings.anchor_voice_id),
                "voice_language": "en",
                "voice_speed": options.get("voice_speed", self.settings.anchor_voice_speed),
            },
        )
        return video_url_from(output, endpoint_id)

    def generate_clips(self, voiceover: str) -> list[Clip]:
        """Split the voiceover into lip-sync chunks and produce one clip per chunk."""
        chunks = split_voiceover_into_chunks(voiceover, self.settings.lipsync_text_limit)
        if not chunks:
            raise ValidationFailure("Voiceover is empty; nothing to lip-sync")

        self.logger.info(f"Generating presenter base clip for {len(chunks)} segments")
        base_video_url = self.generate_base_video()

        clips = []
        for index, chunk in enumerate(chunks):
            self.logger.info(f"Lip-syncing segment {index + 1}/{len(chunks)} ({len(chunk)} chars)")
            url = self.generate(chunk, {"base_video_url": base_video_url})
            clips.append(Clip(index=index, url=url))
        return clips
