"""fal Client - submits requests to the fal queue API and waits for results."""

import math
import time
from typing import Any, Callable, Optional

import requests

from newsreel.core.config import Settings
from newsreel.utils.error_handler import AccessDeniedError, ExternalServiceError, redact_secrets

_TERMINAL_OK = "COMPLETED"
_PENDING = ("IN_QUEUE", "IN_PROGRESS")


def video_url_from(output: dict, endpoint_id: str) -> str:
    """
    Return output["video"]["url"].

    Raises:
        ExternalServiceError: If the result carries no video URL
    """
    video = output.get("video") if isinstance(output, dict) else None
    url = video.get("url") if isinstance(video, dict) else None
    if not url:
        raise ExternalServiceError("fal", f"{endpoint_id} did not return video.url")
    return url


class FalClient:
    """Thin synchronous client for fal's queue API."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        http: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize fal client.

        Args:
            settings: Application settings
            logger: Logger instance
            http: Optional HTTP session (defaults to a new requests.Session)
            sleep: Sleep function used between status polls
        """
        self.settings = settings
        self.logger = logger
        self.http = http or requests.Session()
        self.sleep = sleep

    def subscribe(self, endpoint_id: str, arguments: dict) -> dict:
        """
        Submit a request, poll until it completes and return its output.

        Args:
            endpoint_id: Model endpoint, e.g. "fal-ai/kling-video/v2.6/pro/text-to-video"
            arguments: Model input

        Returns:
            Model output JSON

        Raises:
            AccessDeniedError: If fal answers 401/403 (account may not use the endpoint)
            ExternalServiceError: On any other failure or timeout
        """
        if not self.settings.fal_key:
            raise ExternalServiceError("fal", "API key not configured")

        base = self.settings.fal_queue_url.rstrip("/")
        submitted = self._request("POST", f"{base}/{endpoint_id}", endpoint_id, json=arguments)
        request_id = submitted.get("request_id")
        status_url = submitted.get("status_url") or f"{base}/{endpoint_id}/requests/{request_id}/status"
        response_url = submitted.get("response_url") or f"{base}/{endpoint_id}/requests/{request_id}"
        self.logger.debug(f"fal request {request_id} submitted to {endpoint_id}")

        poll_interval = max(0.1, self.settings.fal_poll_interval_seconds)
        max_polls = max(1, math.ceil(self.settings.fal_max_wait_seconds / poll_interval))

        for poll_count in range(max_polls):
            status = self._request("GET", status_url, endpoint_id)
            state = status.get("status")
            if state == _TERMINAL_OK:
                if status.get("error"):
                    raise ExternalServiceError("fal", f"{endpoint_id} failed: {status['error']}")
                break
            if state not in _PENDING:
                raise ExternalServiceError("fal", f"{endpoint_id} returned unexpected status {state!r}")
            if poll_count < max_polls - 1:
                self.logger.debug(f"fal request {request_id}: {state}, waiting {poll_interval}s...")
                self.sleep(poll_interval)
        else:
            raise ExternalServiceError(
                "fal", f"{endpoint_id} did not complete within {self.settings.fal_max_wait_seconds:.0f} seconds"
            )

        return self._request("GET", response_url, endpoint_id)

    def _request(self, method: str, url: str, endpoint_id: str, **kwargs: Any) -> dict:
        headers = {"Authorization": f"Key {self.settings.fal_key}", "Content-Type": "application/json"}
        try:
            response = self.http.request(
                method, url, headers=headers, timeout=self.settings.http_timeout_seconds, **kwargs
            )
        except requests.RequestException as e:
            raise ExternalServiceError("fal", self._redact(f"{endpoint_id} request failed: {e}")) from e

        if response.status_code in (401, 403):
            reason = "Unauthorized" if response.status_code == 401 else "Forbidden"
            raise AccessDeniedError("fal", f"{endpoint_id}: {reason} ({response.status_code})")
        if not response.ok:
            raise ExternalServiceError(
                "fal", self._redact(f"{endpoint_id} returned {response.status_code}: {response.text[:500]}")
            )
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError("fal", f"{endpoint_id} returned invalid JSON: {e}") from e

    def _redact(self, message: str) -> str:
        return redact_secrets(message, self.settings.secret_values())
