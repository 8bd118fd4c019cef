"""Shared pytest fixtures and configuration."""

import pytest

from newsreel.core.config import Settings
from newsreel.core.logging_config import get_logger
from newsreel.storage.database import Database
from newsreel.storage.job_store import JobStore
from newsreel.storage.repository import ContentRepository


@pytest.fixture
def settings(tmp_path):
    """Create test settings instance with no credentials and temp storage."""
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'newsreel.db'}",
        media_root=str(tmp_path / "media"),
        openai_api_key=None,
        exa_api_key=None,
        hyperspell_api_key=None,
        fal_key=None,
        elevenlabs_api_key=None,
        supabase_url=None,
        supabase_service_role_key=None,
        fal_poll_interval_seconds=0,
        worker_poll_interval_seconds=0,
        worker_error_backoff_seconds=1,
        worker_max_backoff_seconds=4,
    )


@pytest.fixture
def logger():
    """Create test logger instance."""
    return get_logger(__name__)


@pytest.fixture
def database(settings, logger):
    """Create a file-backed SQLite database with the full schema."""
    db = Database(settings, logger)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def job_store(database, logger):
    """Create job store on the temp database."""
    return JobStore(database, logger)


@pytest.fixture
def repository(database, logger):
    """Create content repository on the temp database."""
    return ContentRepository(database, logger)
