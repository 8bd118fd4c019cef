"""Tests for speech synthesis."""

from unittest.mock import MagicMock

import pytest
from openai import OpenAIError

from newsreel.services.tts_client import SpeechSynthesizer
from newsreel.utils.error_handler import AccessDeniedError, ExternalServiceError


def _response(status_code=200, content=b"ID3audio", text=""):
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    response.text = text
    return response


def test_provider_detection(settings, logger):
    """Test ElevenLabs is preferred, then OpenAI, then nothing."""
    assert SpeechSynthesizer(settings, logger).provider is None

    settings.openai_api_key = "sk-test"
    assert SpeechSynthesizer(settings, logger).provider == "openai"

    settings.elevenlabs_api_key = "el-test"
    assert SpeechSynthesizer(settings, logger).provider == "elevenlabs"


def test_elevenlabs_request(settings, logger):
    """Test the ElevenLabs call carries voice, model, format and key."""
    settings.elevenlabs_api_key = "el-test"
    http = MagicMock()
    http.post.return_value = _response()
    synthesizer = SpeechSynthesizer(settings, logger, http=http)

    audio = synthesizer.synthesize("Europe agreed new AI rules.")

    assert audio == b"ID3audio"
    url = http.post.call_args[0][0]
    kwargs = http.post.call_args[1]
    assert url.endswith("/v1/text-to-speech/onwK4e9ZLuTAKqWW03F9")
    assert kwargs["params"]["output_format"] == "mp3_44100_128"
    assert kwargs["json"] == {"text": "Europe agreed new AI rules.", "model_id": "eleven_multilingual_v2"}
    assert kwargs["headers"]["xi-api-key"] == "el-test"


def test_elevenlabs_errors(settings, logger):
    """Test access denial and server errors are distinguished and redacted."""
    settings.elevenlabs_api_key = "el-test"
    http = MagicMock()
    http.post.side_effect = [_response(status_code=401), _response(status_code=500, text="bad key el-test")]
    synthesizer = SpeechSynthesizer(settings, logger, http=http)

    with pytest.raises(AccessDeniedError):
        synthesizer.synthesize("Hello")
    with pytest.raises(ExternalServiceError) as exc_info:
        synthesizer.synthesize("Hello")
    assert "el-test" not in str(exc_info.value)


def test_openai_speech(settings, logger):
    """Test OpenAI speech is used without ElevenLabs."""
    client = MagicMock()
    client.audio.speech.create.return_value = MagicMock(content=b"mp3-bytes")
    synthesizer = SpeechSynthesizer(settings, logger, openai_client=client)

    assert synthesizer.synthesize("Hello") == b"mp3-bytes"
    assert client.audio.speech.create.call_args[1] == {"model": "tts-1", "voice": "onyx", "input": "Hello"}


def test_openai_speech_failure(settings, logger):
    """Test OpenAI errors become service errors."""
    client = MagicMock()
    client.audio.speech.create.side_effect = OpenAIError("quota exceeded")
    synthesizer = SpeechSynthesizer(settings, logger, openai_client=client)

    with pytest.raises(ExternalServiceError, match="quota exceeded"):
        synthesizer.synthesize("Hello")


def test_no_provider_and_empty_text(settings, logger):
    """Test missing credentials and empty text are rejected."""
    synthesizer = SpeechSynthesizer(settings, logger)

    with pytest.raises(ValueError):
        synthesizer.synthesize("  ")
    with pytest.raises(ExternalServiceError, match="No speech provider"):
        synthesizer.synthesize("Hello")


def test_empty_audio_rejected(settings, logger):
    """Test an empty audio body is a failure."""
    settings.elevenlabs_api_key = "el-test"
    http = MagicMock()
    http.post.return_value = _response(content=b"")

    with pytest.raises(ExternalServiceError, match="empty audio"):
        SpeechSynthesizer(settings, logger, http=http).synthesize("Hello")
