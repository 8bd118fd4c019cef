"""Worker Loop - polls the job queue, claims jobs and records their outcome."""

import argparse
import sys
import threading
import time
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from newsreel.core.config import Settings
from newsreel.core.logging_config import get_logger, setup_logging
from newsreel.models.schemas import EventKind, JobStatus, VideoMode
from newsreel.pipelines.job_runner import JobRunner, build_job_runner
from newsreel.storage.database import Database
from newsreel.storage.job_store import JobStore
from newsreel.utils.error_handler import (
    format_error_message,
    get_fallback_suggestion,
    job_failure_message,
    redact_secrets,
)


class PollResult(str, Enum):
    """Outcome of one poll of the queue."""

    IDLE = "idle"
    LOST_RACE = "lost_race"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class WorkerLoop:
    """
    Long-lived job consumer.

    Several loops (threads or processes) may share one database; the
    conditional claim guarantees each job runs at most once.
    """

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        job_store: JobStore,
        runner: JobRunner,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize worker loop.

        Args:
            settings: Application settings
            logger: Logger instance
            job_store: Store the queue is read from
            runner: Executes claimed jobs
            sleep: Sleep function used for idle waits and backoff
        """
        self.settings = settings
        self.logger = logger
        self.job_store = job_store
        self.runner = runner
        self.sleep = sleep

    def run_once(self) -> PollResult:
        """
        Poll once: claim the oldest queued job and run it to a terminal status.

        Job failures are recorded on the job and never raised. Store failures
        while polling, claiming or finalizing are raised to the caller.
        """
        job = self.job_store.find_oldest_queued()
        if job is None:
            return PollResult.IDLE

        claimed = self.job_store.claim(job.id)
        if claimed is None:
            self.logger.debug(f"Job {job.id} was claimed by another worker")
            return PollResult.LOST_RACE

        self.logger.info(f"Claimed job {claimed.id} for owner {claimed.owner}")
        started = time.monotonic()
        try:
            self.runner.run(claimed)
        except Exception as e:
            message = job_failure_message(e, self.settings.secret_values())
            service = getattr(e, "service", None)
            self.logger.error(
                format_error_message(
                    "Generation job",
                    e,
                    context={"job_id": claimed.id, "elapsed": f"{time.monotonic() - started:.1f}s"},
                    suggestion=get_fallback_suggestion(service, e) if service else None,
                )
            )
            if self.job_store.finalize(claimed.id, JobStatus.FAILED, message):
                self.job_store.append_event(claimed.id, EventKind.ERROR, message)
            return PollResult.FAILED

        if self.job_store.finalize(claimed.id, JobStatus.SUCCEEDED):
            self.job_store.append_event(claimed.id, EventKind.DONE, "Job succeeded")
        self.logger.info(f"Job {claimed.id} succeeded in {time.monotonic() - started:.1f}s")
        return PollResult.SUCCEEDED

    def run_forever(self, max_iterations: Optional[int] = None, stop: Optional[threading.Event] = None) -> None:
        """
        Poll until stopped.

        Sleeps the poll interval when idle, re-polls immediately after a lost
        claim and backs off exponentially (bounded) after store failures.

        Args:
            max_iterations: Stop after this many polls (None: run forever)
            stop: Optional event that ends the loop when set
        """
        backoff = self.settings.worker_error_backoff_seconds
        iterations = 0

        while max_iterations is None or iterations < max_iterations:
            if stop is not None and stop.is_set():
                break
            iterations += 1

            try:
                result = self.run_once()
            except Exception as e:
                message = redact_secrets(str(e), self.settings.secret_values())
                self.logger.error(f"Worker poll failed ({type(e).__name__}): {message}; retrying in {backoff:.1f}s")
                self.sleep(backoff)
                backoff = min(backoff * 2, self.settings.worker_max_backoff_seconds)
                continue

            backoff = self.settings.worker_error_backoff_seconds
            if result == PollResult.IDLE:
                self.sleep(self.settings.worker_poll_interval_seconds)


def build_worker(
    settings: Settings,
    logger: Any,
    database: Optional[Database] = None,
    mode: Optional[VideoMode] = None,
) -> WorkerLoop:
    """Create the database schema and wire a worker loop."""
    database = database or Database(settings, logger)
    database.create_all()
    runner = build_job_runner(settings, logger, database, mode)
    return WorkerLoop(settings, logger, runner.job_store, runner)


def main():
    """Main entrypoint for the worker."""
    parser = argparse.ArgumentParser(
        description="Newsreel - generation job worker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--mode",
        type=str,
        default=None,
        choices=[m.value for m in VideoMode],
        help="Video mode (default: VIDEO_MODE from settings)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Poll the queue once and exit",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Stop after this many polls (default: run until interrupted)",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds to sleep when the queue is empty (default: WORKER_POLL_INTERVAL_SECONDS)",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Database URL (default: DATABASE_URL from settings)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Optional log file path",
    )
    args = parser.parse_args()

    settings = Settings()
    if args.poll_interval is not None:
        settings.worker_poll_interval_seconds = args.poll_interval
    if args.database_url:
        settings.database_url = args.database_url

    log_file = args.log_file or settings.log_file
    setup_logging(
        log_level=settings.log_level,
        log_file=Path(log_file) if log_file else None,
        secrets=settings.secret_values(),
    )
    logger = get_logger(__name__)

    try:
        worker = build_worker(settings, logger, mode=VideoMode(args.mode) if args.mode else None)
        logger.info("=" * 60)
        logger.info(f"{settings.app_name} worker v{settings.app_version} started")
        logger.info("=" * 60)

        if args.once:
            result = worker.run_once()
            logger.info(f"Poll result: {result.value}")
            return 0

        worker.run_forever(max_iterations=args.max_iterations)
        return 0

    except KeyboardInterrupt:
        logger.warning("Worker interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Worker failed: {redact_secrets(str(e), settings.secret_values())}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
