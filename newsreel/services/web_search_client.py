"""Web Search Client - time-windowed news search via the Exa API."""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import requests

from newsreel.core.config import Settings
from newsreel.models.schemas import WebSearchResult
from newsreel.utils.error_handler import AccessDeniedError, ExternalServiceError, redact_secrets


class ExaSearchClient:
    """Searches recent web content with extracted page text."""

    def __init__(self, settings: Settings, logger: Any, http: Optional[requests.Session] = None):
        """
        Initialize Exa client.

        Args:
            settings: Application settings
            logger: Logger instance
            http: Optional HTTP session (defaults to a new requests.Session)
        """
        self.settings = settings
        self.logger = logger
        self.http = http or requests.Session()

    def search_news(self, topic: str, days: int = 7, num_results: int = 10) -> list[WebSearchResult]:
        """
        Search for content about a topic published in the last `days` days.

        Args:
            topic: Search query
            days: Size of the publication window
            num_results: Maximum results

        Returns:
            Results that carry a URL, in relevance order

        Raises:
            ExternalServiceError: If the API key is missing or the request fails
        """
        if not self.settings.exa_api_key:
            raise ExternalServiceError("Exa", "API key not configured")

        start = datetime.now(timezone.utc) - timedelta(days=days)
        body = {
            "query": topic,
            "numResults": num_results,
            "useAutoprompt": True,
            "startPublishedDate": start.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
            "contents": {"text": True, "highlights": False},
        }
        headers = {"x-api-key": self.settings.exa_api_key, "Content-Type": "application/json"}
        url = f"{self.settings.exa_api_url.rstrip('/')}/search"

        self.logger.debug(f"Exa search: {topic!r} (last {days} days, {num_results} results)")
        try:
            response = self.http.post(url, json=body, headers=headers, timeout=self.settings.http_timeout_seconds)
        except requests.RequestException as e:
            raise ExternalServiceError("Exa", self._redact(f"request failed: {e}")) from e

        if response.status_code in (401, 403):
            raise AccessDeniedError("Exa", f"access denied ({response.status_code})")
        if not response.ok:
            raise ExternalServiceError("Exa", self._redact(f"search failed: {response.status_code} {response.text[:300]}"))

        try:
            raw_results = response.json().get("results") or []
        except ValueError as e:
            raise ExternalServiceError("Exa", f"invalid JSON response: {e}") from e

        results = []
        for raw in raw_results:
            url_value = raw.get("url") if isinstance(raw.get("url"), str) else ""
            if not url_value:
                continue
            title = raw.get("title") if isinstance(raw.get("title"), str) and raw.get("title") else url_value
            results.append(
                WebSearchResult(
                    title=title,
                    url=url_value,
                    published_date=raw.get("publishedDate") if isinstance(raw.get("publishedDate"), str) else None,
                    author=raw.get("author") if isinstance(raw.get("author"), str) else None,
                    text=raw.get("text") if isinstance(raw.get("text"), str) else None,
                )
            )
        return results

    def _redact(self, message: str) -> str:
        return redact_secrets(message, self.settings.secret_values())
