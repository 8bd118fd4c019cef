"""Preference Service - loads an owner's weighted interests."""

from typing import Any, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError

from newsreel.core.config import Settings
from newsreel.models.schemas import Preference
from newsreel.storage.repository import ContentRepository
from newsreel.utils.error_handler import ExternalServiceError, redact_secrets


class PreferenceService:
    """Reads preferences from Hyperspell when configured, otherwise from the database."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        repository: ContentRepository,
        http: Optional[requests.Session] = None,
    ):
        """
        Initialize preference service.

        Args:
            settings: Application settings
            logger: Logger instance
            repository: Repository holding stored preferences
            http: Optional HTTP session (defaults to a new requests.Session)
        """
        self.settings = settings
        self.logger = logger
        self.repository = repository
        self.http = http or requests.Session()

    def get_preferences(self, owner: str) -> list[Preference]:
        """
        Return the owner's preferences.

        Hyperspell failures are logged and fall back to stored preferences;
        repository failures propagate.
        """
        if self.settings.hyperspell_api_key:
            try:
                remote = self.fetch_hyperspell(owner)
            except ExternalServiceError as e:
                self.logger.warning(f"Hyperspell unavailable, using stored preferences: {e}")
                remote = None
            if remote:
                self.logger.info(f"Loaded {len(remote)} preferences from Hyperspell for {owner}")
                return remote

        stored = self.repository.list_preferences(owner)
        self.logger.info(f"Loaded {len(stored)} stored preferences for {owner}")
        return stored

    def fetch_hyperspell(self, owner: str) -> Optional[list[Preference]]:
        """
        Fetch preferences from Hyperspell.

        Returns:
            Preferences, or None when Hyperspell has no record for the owner

        Raises:
            ExternalServiceError: On transport errors, non-2xx responses or malformed records
        """
        url = f"{self.settings.hyperspell_base_url.rstrip('/')}/v1/users/{quote(owner, safe='')}/preferences"
        headers = {
            "Authorization": f"Bearer {self.settings.hyperspell_api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = self.http.get(url, headers=headers, timeout=self.settings.http_timeout_seconds)
        except requests.RequestException as e:
            raise ExternalServiceError("Hyperspell", self._redact(f"request failed: {e}")) from e

        if response.status_code == 404:
            return None
        if not response.ok:
            raise ExternalServiceError(
                "Hyperspell", self._redact(f"get preferences failed: {response.status_code} {response.text[:300]}")
            )

        try:
            record = response.json()
            return [Preference.model_validate(item) for item in record.get("preferences") or []]
        except (ValueError, AttributeError, ValidationError) as e:
            raise ExternalServiceError("Hyperspell", f"malformed preferences record: {e}") from e

    def _redact(self, message: str) -> str:
        return redact_secrets(message, self.settings.secret_values())
