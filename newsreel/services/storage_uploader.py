"""Storage Uploaders - publish finished media and return public URLs."""

from pathlib import Path, PurePosixPath
from typing import Any, Optional
from urllib.parse import quote

import requests

from newsreel.core.config import Settings
from newsreel.utils.error_handler import AccessDeniedError, ExternalServiceError, redact_secrets


def _safe_relative(path: str) -> PurePosixPath:
    relative = PurePosixPath(path)
    if relative.is_absolute() or ".." in relative.parts or not relative.parts:
        raise ValueError(f"Invalid storage path: {path!r}")
    return relative


class StorageUploader:
    """Base class for storage uploaders."""

    def __init__(self, settings: Settings, logger: Any):
        """
        Initialize uploader.

        Args:
            settings: Application settings
            logger: Logger instance
        """
        self.settings = settings
        self.logger = logger

    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """
        Store bytes at bucket/path, replacing any existing object.

        Returns:
            Public URL of the stored object
        """
        raise NotImplementedError("Subclass must implement upload()")


class LocalStorageUploader(StorageUploader):
    """Writes media under settings.media_root."""

    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        relative = _safe_relative(path)
        target = Path(self.settings.media_root) / bucket / Path(*relative.parts)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise ExternalServiceError("Storage", f"Failed to write {target}: {e}") from e

        self.logger.debug(f"Stored {len(data)} bytes at {target}")
        if self.settings.media_base_url:
            return f"{self.settings.media_base_url.rstrip('/')}/{bucket}/{relative.as_posix()}"
        return target.resolve().as_uri()


class SupabaseStorageUploader(StorageUploader):
    """Uploads media through the Supabase Storage REST API."""

    def __init__(self, settings: Settings, logger: Any, http: Optional[requests.Session] = None):
        super().__init__(settings, logger)
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise ValueError("Supabase storage requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        self.http = http or requests.Session()
        self.base_url = settings.supabase_url.rstrip("/")

    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        object_path = quote(_safe_relative(path).as_posix())
        url = f"{self.base_url}/storage/v1/object/{bucket}/{object_path}"
        headers = {
            "Authorization": f"Bearer {self.settings.supabase_service_role_key}",
            "apikey": self.settings.supabase_service_role_key,
            "Content-Type": content_type,
            "x-upsert": "true",
        }
        try:
            response = self.http.post(url, data=data, headers=headers, timeout=self.settings.download_timeout_seconds)
        except requests.RequestException as e:
            raise ExternalServiceError("Supabase", self._redact(f"upload failed: {e}")) from e

        if response.status_code in (401, 403):
            raise AccessDeniedError("Supabase", f"upload to {bucket} denied ({response.status_code})")
        if not response.ok:
            raise ExternalServiceError(
                "Supabase", self._redact(f"upload to {bucket}/{path} failed: {response.status_code} {response.text[:300]}")
            )
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{object_path}"

    def _redact(self, message: str) -> str:
        return redact_secrets(message, self.settings.secret_values())


def get_storage_uploader(settings: Settings, logger: Any) -> StorageUploader:
    """
    Get the uploader for settings.storage_backend.

    Args:
        settings: Application settings
        logger: Logger instance

    Returns:
        StorageUploader instance
    """
    backend = settings.storage_backend.lower()
    if backend == "supabase":
        logger.info("Using Supabase storage uploader")
        return SupabaseStorageUploader(settings, logger)
    if backend == "local":
        logger.info(f"Using local storage uploader ({settings.media_root})")
        return LocalStorageUploader(settings, logger)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
