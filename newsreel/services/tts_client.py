"""TTS (Text-to-Speech) client for voiceover narration."""

from typing import Any, Optional

import requests
from openai import OpenAI, OpenAIError

from newsreel.core.config import Settings
from newsreel.utils.error_handler import AccessDeniedError, ExternalServiceError, redact_secrets


class SpeechSynthesizer:
    """Synthesizes narration audio, preferring ElevenLabs over OpenAI."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        http: Optional[requests.Session] = None,
        openai_client: Optional[OpenAI] = None,
    ):
        """
        Initialize speech synthesizer.

        Args:
            settings: Application settings
            logger: Logger instance
            http: Optional HTTP session for ElevenLabs
            openai_client: Optional preconfigured OpenAI client
        """
        self.settings = settings
        self.logger = logger
        self.http = http or requests.Session()
        self._openai_client = openai_client
        self.provider = self._detect_provider()

    def _detect_provider(self) -> Optional[str]:
        """Detect which TTS provider to use based on available credentials."""
        if self.settings.elevenlabs_api_key:
            return "elevenlabs"
        if self.settings.openai_api_key or self._openai_client is not None:
            return "openai"
        return None

    def synthesize(self, text: str, voice_options: Optional[dict] = None) -> bytes:
        """
        Synthesize speech for a voiceover.

        Args:
            text: Narration text
            voice_options: Optional overrides ("voice_id", "model_id", "output_format")

        Returns:
            Encoded audio bytes (MP3)

        Raises:
            ValueError: If the text is empty
            ExternalServiceError: If no provider is configured or the call fails
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        options = voice_options or {}
        self.logger.info(f"Synthesizing speech with {self.provider} for {len(text)} characters...")

        if self.provider == "elevenlabs":
            audio = self._synthesize_elevenlabs(text, options)
        elif self.provider == "openai":
            audio = self._synthesize_openai(text, options)
        else:
            raise ExternalServiceError("TTS", "No speech provider configured (set ELEVENLABS_API_KEY or OPENAI_API_KEY)")

        if not audio:
            raise ExternalServiceError("TTS", f"{self.provider} returned empty audio")
        return audio

    def _synthesize_elevenlabs(self, text: str, options: dict) -> bytes:
        """Generate speech using the ElevenLabs REST API."""
        voice_id = options.get("voice_id") or self.settings.elevenlabs_voice_id
        url = f"https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"
        params = {
            "output_format": options.get("output_format") or self.settings.elevenlabs_output_format,
            "optimize_streaming_latency": 1,
        }
        headers = {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.settings.elevenlabs_api_key,
        }
        data = {
            "text": text,
            "model_id": options.get("model_id") or self.settings.elevenlabs_model_id,
        }

        try:
            response = self.http.post(
                url, params=params, json=data, headers=headers, timeout=self.settings.http_timeout_seconds
            )
        except requests.RequestException as e:
            raise ExternalServiceError("ElevenLabs", self._redact(f"request failed: {e}")) from e

        if response.status_code in (401, 403):
            raise AccessDeniedError("ElevenLabs", f"access denied ({response.status_code})")
        if response.status_code != 200:
            raise ExternalServiceError(
                "ElevenLabs", self._redact(f"API returned status {response.status_code}: {response.text[:300]}")
            )
        return response.content

    def _synthesize_openai(self, text: str, options: dict) -> bytes:
        """Generate speech using the OpenAI speech API."""
        if self._openai_client is None:
            self._openai_client = OpenAI(api_key=self.settings.openai_api_key)
        try:
            response = self._openai_client.audio.speech.create(
                model=options.get("model_id") or self.settings.openai_tts_model,
                voice=options.get("voice_id") or self.settings.openai_tts_voice,
                input=text,
            )
        except OpenAIError as e:
            raise ExternalServiceError("OpenAI TTS", self._redact(f"speech failed: {e}")) from e
        return response.content

    def _redact(self, message: str) -> str:
        return redact_secrets(message, self.settings.secret_values())
