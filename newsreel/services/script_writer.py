"""Script Writer - turns a news brief into a short video script."""

from typing import Any

from pydantic import ValidationError

from newsreel.core.config import Settings
from newsreel.models.schemas import NewsBrief, VideoScript
from newsreel.services.llm_client import LLMClient, describe_validation_error
from newsreel.utils.error_handler import ValidationFailure

SCRIPT_SYSTEM_PROMPT = "\n".join(
    [
        "You write short-form news video scripts.",
        "Tone: conversational, crisp, not a traditional anchor read.",
        "Target length: 60-80 words of voiceover for about 25 seconds.",
        "Hook within the first 3 seconds.",
        "Add scene markers for 3-5 scenes, 5 seconds each.",
        "Include a few punchy text overlays (short phrases) suitable for vertical video.",
        "Return ONLY JSON matching the requested schema.",
    ]
)


class ScriptWriter:
    """Generates video scripts with the LLM."""

    def __init__(self, settings: Settings, logger: Any, llm_client: LLMClient):
        self.settings = settings
        self.logger = logger
        self.llm_client = llm_client

    def generate_script(self, brief: NewsBrief) -> VideoScript:
        """
        Write a script for a brief.

        The duration target is always set to settings.script_duration_seconds,
        whatever the model proposed.

        Raises:
            ExternalServiceError: If the LLM call fails
            ValidationFailure: If the output is not a valid script
        """
        target = self.settings.script_duration_seconds
        user = (
            f"Use this news brief:\n\n{brief.model_dump_json(indent=2)}\n\n"
            "Return JSON with:\n"
            f"- duration_seconds_target ({target})\n"
            "- hook\n"
            "- voiceover\n"
            "- pacing_notes\n"
            "- background_music_tone\n"
            "- text_overlays (optional)\n"
            "- scenes: 3-5 items, each with seconds (5), description and optional overlay.\n\n"
            "Visuals should be modern and news-appropriate: dynamic motion graphics, relevant "
            "b-roll feel, no cheesy stock footage.\n"
        )
        data = self.llm_client.complete_json_object(
            system=SCRIPT_SYSTEM_PROMPT,
            user=user,
            temperature=self.settings.script_temperature,
        )
        data["duration_seconds_target"] = target
        try:
            script = VideoScript.model_validate(data)
        except ValidationError as e:
            raise ValidationFailure(f"Script is invalid: {describe_validation_error(e)}") from e
        self.logger.info(f"Script ready ({len(script.scenes)} scenes, {len(script.voiceover.split())} words)")
        return script
