"""Tests for storage uploaders."""

from unittest.mock import MagicMock

import pytest

from newsreel.services.storage_uploader import (
    LocalStorageUploader,
    SupabaseStorageUploader,
    get_storage_uploader,
)
from newsreel.utils.error_handler import AccessDeniedError, ExternalServiceError


def _response(status_code=200, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text
    return response


def test_local_upload_writes_file(settings, logger, tmp_path):
    """Test local uploads land under the media root and return a file URL."""
    uploader = LocalStorageUploader(settings, logger)

    url = uploader.upload("videos", "user-1/job-1/s1.mp4", b"video", "video/mp4")

    target = tmp_path / "media" / "videos" / "user-1" / "job-1" / "s1.mp4"
    assert target.read_bytes() == b"video"
    assert url == target.resolve().as_uri()


def test_local_upload_overwrites_and_uses_base_url(settings, logger, tmp_path):
    """Test re-uploads replace the object and a base URL is honoured."""
    settings.media_base_url = "http://localhost:8080/media/"
    uploader = LocalStorageUploader(settings, logger)

    uploader.upload("thumbnails", "a/b.png", b"one", "image/png")
    url = uploader.upload("thumbnails", "a/b.png", b"two", "image/png")

    assert url == "http://localhost:8080/media/thumbnails/a/b.png"
    assert (tmp_path / "media" / "thumbnails" / "a" / "b.png").read_bytes() == b"two"


@pytest.mark.parametrize("path", ["../escape.mp4", "/abs/path.mp4", ""])
def test_local_upload_rejects_unsafe_paths(settings, logger, path):
    """Test paths may not escape the bucket."""
    with pytest.raises(ValueError):
        LocalStorageUploader(settings, logger).upload("videos", path, b"x", "video/mp4")


@pytest.fixture
def supabase_settings(settings):
    """Settings with Supabase configured."""
    settings.supabase_url = "https://proj.supabase.co/"
    settings.supabase_service_role_key = "service-key"
    return settings


def test_supabase_upload(supabase_settings, logger):
    """Test the upsert request and the public URL."""
    http = MagicMock()
    http.post.return_value = _response()
    uploader = SupabaseStorageUploader(supabase_settings, logger, http=http)

    url = uploader.upload("videos", "user 1/job/s1.mp4", b"video", "video/mp4")

    assert url == "https://proj.supabase.co/storage/v1/object/public/videos/user%201/job/s1.mp4"
    assert http.post.call_args[0][0] == "https://proj.supabase.co/storage/v1/object/videos/user%201/job/s1.mp4"
    headers = http.post.call_args[1]["headers"]
    assert headers["x-upsert"] == "true"
    assert headers["Content-Type"] == "video/mp4"
    assert headers["Authorization"] == "Bearer service-key"


def test_supabase_upload_failures(supabase_settings, logger):
    """Test denied and failed uploads raise, with the key redacted."""
    http = MagicMock()
    http.post.side_effect = [_response(status_code=403), _response(status_code=500, text="key service-key invalid")]
    uploader = SupabaseStorageUploader(supabase_settings, logger, http=http)

    with pytest.raises(AccessDeniedError):
        uploader.upload("videos", "a.mp4", b"x", "video/mp4")
    with pytest.raises(ExternalServiceError) as exc_info:
        uploader.upload("videos", "a.mp4", b"x", "video/mp4")
    assert "service-key" not in str(exc_info.value)


def test_supabase_requires_configuration(settings, logger):
    """Test Supabase uploads need a URL and key."""
    with pytest.raises(ValueError):
        SupabaseStorageUploader(settings, logger)


def test_get_storage_uploader(supabase_settings, logger):
    """Test the backend setting selects the uploader."""
    assert isinstance(get_storage_uploader(supabase_settings, logger), LocalStorageUploader)

    supabase_settings.storage_backend = "supabase"
    assert isinstance(get_storage_uploader(supabase_settings, logger), SupabaseStorageUploader)
