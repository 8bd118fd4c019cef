"""
FastAPI entrypoint for the Newsreel API.

Jobs are only queued here; generation runs in the worker
(`python -m newsreel.pipelines.worker_loop` or run_worker.py).
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from newsreel.api.routes_jobs import router as jobs_router
from newsreel.core.config import Settings, settings
from newsreel.core.logging_config import get_logger, setup_logging
from newsreel.storage.database import Database
from newsreel.storage.job_store import JobStore
from newsreel.storage.repository import ContentRepository

# Setup logging
setup_logging(log_level=settings.log_level, secrets=settings.secret_values())
logger = get_logger(__name__)


def create_app(app_settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        app_settings: Settings to use (default: module settings)
        database: Optional pre-built database (default: from settings.database_url)

    Returns:
        Configured FastAPI app
    """
    app_settings = app_settings or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        logger.info("=" * 60)
        logger.info(f"Starting {app_settings.app_name} API v{app_settings.app_version}")
        logger.info(f"Debug mode: {app_settings.debug}")
        logger.info("=" * 60)
        db = database or Database(app_settings, logger)
        db.create_all()
        app.state.database = db
        app.state.job_store = JobStore(db, logger)
        app.state.repository = ContentRepository(db, logger)
        yield
        # Shutdown
        logger.info("Shutting down application")
        if database is None:
            db.dispose()

    app = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description="Newsreel - queue personalized news video generation jobs and read their progress",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(jobs_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": app_settings.app_name,
            "version": app_settings.app_version,
            "status": "running",
            "endpoints": {
                "create_job": "/jobs",
                "get_job": "/jobs/{job_id}",
                "cancel_job": "/jobs/{job_id}/cancel",
                "content": "/content?owner=",
                "preferences": "/preferences/{owner}",
                "docs": "/docs",
            },
        }

    @app.get("/health")
    def health():
        """Health check endpoint with queue counts."""
        return {"status": "healthy", "jobs": app.state.job_store.count_by_status()}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "newsreel.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
