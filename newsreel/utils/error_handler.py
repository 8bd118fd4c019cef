"""Error Handler - pipeline exception taxonomy and safe error messages."""

from typing import Iterable, Optional

REDACTION_MARKER = "[REDACTED]"


class PipelineError(Exception):
    """Base class for every failure that ends a generation job."""


class PreconditionFailure(PipelineError):
    """A job cannot start, e.g. the owner has no stored preferences."""


class ExternalServiceError(PipelineError):
    """A search, LLM, clip, speech, preference or upload call failed."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service


class AccessDeniedError(ExternalServiceError):
    """Authorization-class failure (HTTP 401/403) from an external service."""


class ValidationFailure(PipelineError):
    """Model output could not be normalized into the canonical record."""


class MediaAssemblyError(PipelineError):
    """Downloading clips or running ffmpeg failed."""


class StoreError(PipelineError):
    """A Job Store or repository read/write failed."""


class JobCancelled(PipelineError):
    """Cancellation was requested and observed at a stage boundary."""


def redact_secrets(message: str, secrets: Iterable[str], marker: str = REDACTION_MARKER) -> str:
    """
    Replace every occurrence of a known credential value in a message.

    Longer secrets are replaced first so a secret that contains another one
    is never left half-redacted.

    Args:
        message: Text that may embed credentials (error text, log line)
        secrets: Known credential values; empty values are ignored
        marker: Replacement text

    Returns:
        The message with all secrets replaced by the marker
    """
    if not message:
        return message
    for secret in sorted({s for s in secrets if s}, key=len, reverse=True):
        message = message.replace(secret, marker)
    return message


def format_error_message(
    operation: str,
    error: Exception,
    context: Optional[dict] = None,
    suggestion: Optional[str] = None,
) -> str:
    """
    Format a user-friendly error message.

    Args:
        operation: What operation was being performed (e.g., "Assembling video")
        error: The exception that occurred
        context: Additional context (e.g., {"job_id": "...", "topic": "AI policy"})
        suggestion: Optional suggestion for how to fix the issue

    Returns:
        Formatted error message
    """
    error_type = type(error).__name__
    error_msg = str(error)

    context_str = ""
    if context:
        context_parts = [f"{k}={v}" for k, v in context.items()]
        context_str = f" ({', '.join(context_parts)})"

    message = f"{operation} failed{context_str}\n"
    message += f"   Error: {error_type}: {error_msg}"

    if suggestion:
        message += f"\n   Suggestion: {suggestion}"

    return message


def job_failure_message(error: Exception, secrets: Iterable[str]) -> str:
    """
    Build the message stored on a failed job.

    Pipeline errors carry a human-readable message already; anything else is
    prefixed with its type so unexpected crashes stay recognisable.

    Args:
        error: The exception that ended the job
        secrets: Credential values to redact

    Returns:
        Redacted, non-empty error message
    """
    if isinstance(error, PipelineError):
        text = str(error) or type(error).__name__
    else:
        text = f"{type(error).__name__}: {error}"
    return redact_secrets(text, secrets)


def get_fallback_suggestion(service: str, error: Exception) -> Optional[str]:
    """
    Get a suggestion for how to handle a service failure.

    Args:
        service: Service name (e.g., "fal", "ElevenLabs", "OpenAI")
        error: The exception

    Returns:
        Suggestion string or None
    """
    error_msg = str(error).lower()

    if "api key" in error_msg or "not configured" in error_msg:
        return f"Check the {service} credentials in your .env file."
    if "rate limit" in error_msg or "429" in error_msg:
        return f"{service} rate limit exceeded. Wait a few minutes and requeue the job."
    if "forbidden" in error_msg or "unauthorized" in error_msg or "403" in error_msg or "401" in error_msg:
        return f"The {service} account is not allowed to use this endpoint."
    if "network" in error_msg or "timeout" in error_msg:
        return "Network error. Check your internet connection and requeue the job."
    return None
