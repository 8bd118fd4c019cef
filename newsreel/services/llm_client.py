"""LLM Client - centralized OpenAI client returning validated JSON."""

import json
from typing import Any, Optional, Type, TypeVar

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from newsreel.core.config import Settings
from newsreel.utils.error_handler import ExternalServiceError, ValidationFailure, redact_secrets

ModelT = TypeVar("ModelT", bound=BaseModel)


def extract_json_object(content: str) -> dict:
    """
    Parse the outermost {...} block of a model response.

    Raises:
        ValidationFailure: If no object is present or it is not valid JSON
    """
    first = content.find("{")
    last = content.rfind("}")
    if first == -1 or last == -1 or last <= first:
        raise ValidationFailure(f"LLM did not return JSON. Received: {content[:400]}")

    json_text = content[first : last + 1]
    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise ValidationFailure(f"Failed to parse LLM JSON: {e}\n\nRaw: {json_text[:700]}") from e
    if not isinstance(parsed, dict):
        raise ValidationFailure("LLM JSON is not an object")
    return parsed


def describe_validation_error(error: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(p) for p in issue['loc'])}: {issue['msg']}" for issue in error.errors())


class LLMClient:
    """Centralized LLM client for OpenAI operations."""

    def __init__(self, settings: Settings, logger: Any, client: Optional[OpenAI] = None):
        """
        Initialize LLM client.

        Args:
            settings: Application settings
            logger: Logger instance
            client: Optional preconfigured OpenAI client
        """
        self.settings = settings
        self.logger = logger
        self._client = client

    def _get_client(self) -> OpenAI:
        """Get or create OpenAI client."""
        if self._client is None:
            if not self.settings.openai_api_key:
                raise ExternalServiceError("OpenAI", "API key not configured")
            self._client = OpenAI(api_key=self.settings.openai_api_key)
        return self._client

    def complete_json_object(
        self,
        system: str,
        user: str,
        temperature: float = 0.2,
        model: Optional[str] = None,
    ) -> dict:
        """
        Ask the model for a JSON object.

        Args:
            system: System prompt
            user: User prompt
            temperature: Sampling temperature
            model: Model name (default: settings.openai_model)

        Returns:
            Parsed JSON object

        Raises:
            ExternalServiceError: If the API call fails
            ValidationFailure: If the response does not contain a JSON object
        """
        client = self._get_client()
        model_name = model or self.settings.openai_model

        try:
            response = client.chat.completions.create(
                model=model_name,
                temperature=temperature,
                messages=[
                    {"role": "system", "content": f"{system}\n\nReturn ONLY valid JSON."},
                    {"role": "user", "content": user},
                ],
            )
        except OpenAIError as e:
            raise ExternalServiceError(
                "OpenAI", redact_secrets(f"chat completion failed: {e}", self.settings.secret_values())
            ) from e

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""

        return extract_json_object(content)

    def complete_json(
        self,
        model_cls: Type[ModelT],
        system: str,
        user: str,
        temperature: float = 0.2,
        model: Optional[str] = None,
    ) -> ModelT:
        """
        Ask the model for a JSON object and validate it against model_cls.

        Raises:
            ExternalServiceError: If the API call fails
            ValidationFailure: If the response is not JSON or fails validation
        """
        self.logger.debug(f"Requesting {model_cls.__name__}")
        data = self.complete_json_object(system, user, temperature=temperature, model=model)
        try:
            return model_cls.model_validate(data)
        except ValidationError as e:
            raise ValidationFailure(f"LLM JSON failed schema validation: {describe_validation_error(e)}") from e
