"""Job Store - durable job records, exclusive claims and the event log."""

from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from newsreel.models.schemas import EventKind, Job, JobEvent, JobStatus
from newsreel.storage.database import Database, JobEventRecord, JobRecord, as_utc, new_id, utcnow
from newsreel.utils.error_handler import StoreError


def _to_job(record: JobRecord) -> Job:
    return Job(
        id=record.id,
        owner=record.owner,
        status=JobStatus(record.status),
        step=record.step,
        progress=record.progress,
        error=record.error,
        payload=record.payload or {},
        cancel_requested=bool(record.cancel_requested),
        created_at=as_utc(record.created_at),
        updated_at=as_utc(record.updated_at),
        started_at=as_utc(record.started_at),
        finished_at=as_utc(record.finished_at),
    )


def _to_event(record: JobEventRecord) -> JobEvent:
    return JobEvent(
        id=record.id,
        job_id=record.job_id,
        timestamp=as_utc(record.created_at),
        kind=EventKind(record.kind),
        message=record.message,
        items=list(record.items or []),
    )


class JobStore:
    """
    Durable store for generation jobs and their events.

    Safe to share between threads and processes pointed at the same
    database: claiming is a single conditional UPDATE, so at most one
    worker moves a queued job to running.
    """

    def __init__(self, database: Database, logger: Any):
        """
        Initialize job store.

        Args:
            database: Database holding the job tables
            logger: Logger instance
        """
        self.database = database
        self.logger = logger

    def create_job(self, owner: str, payload: Optional[dict] = None) -> Job:
        """
        Queue a new job for an owner.

        Args:
            owner: User the job produces videos for
            payload: Initial payload (defaults to {})

        Returns:
            The queued job
        """
        now = utcnow()
        record = JobRecord(
            id=new_id(),
            owner=owner,
            status=JobStatus.QUEUED.value,
            step="queued",
            progress=0,
            payload=payload or {},
            cancel_requested=False,
            created_at=now,
            updated_at=now,
        )
        try:
            with self.database.session() as session:
                session.add(record)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create job: {e}") from e
        self.logger.info(f"Queued job {record.id} for owner {owner}")
        return _to_job(record)

    def get_job(self, job_id: str) -> Optional[Job]:
        try:
            with self.database.session() as session:
                record = session.get(JobRecord, job_id)
                return _to_job(record) if record else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load job {job_id}: {e}") from e

    def find_oldest_queued(self) -> Optional[Job]:
        """Return the oldest queued job by creation time, or None."""
        stmt = (
            select(JobRecord)
            .where(JobRecord.status == JobStatus.QUEUED.value)
            .order_by(JobRecord.created_at.asc(), JobRecord.id.asc())
            .limit(1)
        )
        try:
            with self.database.session() as session:
                record = session.scalars(stmt).first()
                return _to_job(record) if record else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to poll queued jobs: {e}") from e

    def claim(self, job_id: str) -> Optional[Job]:
        """
        Atomically move a queued job to running.

        Args:
            job_id: Job to claim

        Returns:
            The claimed job, or None if another worker claimed it first
            (or it is no longer queued)
        """
        now = utcnow()
        stmt = (
            update(JobRecord)
            .where(JobRecord.id == job_id, JobRecord.status == JobStatus.QUEUED.value)
            .values(status=JobStatus.RUNNING.value, started_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        try:
            with self.database.session() as session:
                result = session.execute(stmt)
                if result.rowcount != 1:
                    return None
                record = session.get(JobRecord, job_id)
                return _to_job(record)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to claim job {job_id}: {e}") from e

    def update_progress(self, job_id: str, step: str, progress: int, payload: Optional[dict] = None) -> None:
        """
        Overwrite the job's step, progress and payload snapshot.

        Raises:
            StoreError: If the write fails or the job does not exist
        """
        values: dict[str, Any] = {"step": step, "progress": max(0, min(100, int(progress))), "updated_at": utcnow()}
        if payload is not None:
            values["payload"] = payload
        stmt = update(JobRecord).where(JobRecord.id == job_id).values(**values).execution_options(synchronize_session=False)
        try:
            with self.database.session() as session:
                result = session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to update job {job_id}: {e}") from e
        if result.rowcount != 1:
            raise StoreError(f"Failed to update job {job_id}: job not found")

    def append_event(self, job_id: str, kind: EventKind, message: str, items: Optional[list[str]] = None) -> JobEvent:
        """Append an event to the job's log."""
        record = JobEventRecord(job_id=job_id, kind=EventKind(kind).value, message=message, items=list(items or []), created_at=utcnow())
        try:
            with self.database.session() as session:
                if session.get(JobRecord, job_id) is None:
                    raise StoreError(f"Failed to append event to job {job_id}: job not found")
                session.add(record)
                session.flush()
                return _to_event(record)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to append event to job {job_id}: {e}") from e

    def finalize(self, job_id: str, status: JobStatus, error: Optional[str] = None) -> bool:
        """
        Move a running job to a terminal status.

        Args:
            job_id: Job to finalize
            status: SUCCEEDED or FAILED
            error: Failure message (already redacted)

        Returns:
            True if the job was running and is now terminal, False if it was
            not running (terminal jobs are never rewritten)
        """
        status = JobStatus(status)
        if not status.is_terminal:
            raise ValueError(f"Cannot finalize a job as {status.value}")
        now = utcnow()
        stmt = (
            update(JobRecord)
            .where(JobRecord.id == job_id, JobRecord.status == JobStatus.RUNNING.value)
            .values(status=status.value, error=error, progress=100, finished_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        try:
            with self.database.session() as session:
                result = session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to finalize job {job_id}: {e}") from e
        if result.rowcount != 1:
            self.logger.warning(f"Job {job_id} was not running; left unchanged")
            return False
        return True

    def request_cancel(self, job_id: str) -> bool:
        """Flag a non-terminal job for cancellation. Returns False if terminal or unknown."""
        stmt = (
            update(JobRecord)
            .where(
                JobRecord.id == job_id,
                JobRecord.status.in_([JobStatus.QUEUED.value, JobStatus.RUNNING.value]),
            )
            .values(cancel_requested=True, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        try:
            with self.database.session() as session:
                result = session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to cancel job {job_id}: {e}") from e
        return result.rowcount == 1

    def is_cancel_requested(self, job_id: str) -> bool:
        stmt = select(JobRecord.cancel_requested).where(JobRecord.id == job_id)
        try:
            with self.database.session() as session:
                return bool(session.scalar(stmt))
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read job {job_id}: {e}") from e

    def latest_job_for_owner(self, owner: str) -> Optional[Job]:
        stmt = (
            select(JobRecord)
            .where(JobRecord.owner == owner)
            .order_by(JobRecord.created_at.desc(), JobRecord.id.desc())
            .limit(1)
        )
        try:
            with self.database.session() as session:
                record = session.scalars(stmt).first()
                return _to_job(record) if record else None
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load jobs for {owner}: {e}") from e

    def list_events(self, job_id: str, limit: Optional[int] = None) -> list[JobEvent]:
        """
        Return a job's events in chronological order.

        Args:
            job_id: Job whose events to read
            limit: If set, only the most recent `limit` events (still oldest-first)
        """
        stmt = select(JobEventRecord).where(JobEventRecord.job_id == job_id)
        if limit is not None:
            stmt = stmt.order_by(JobEventRecord.id.desc()).limit(limit)
        else:
            stmt = stmt.order_by(JobEventRecord.id.asc())
        try:
            with self.database.session() as session:
                events = [_to_event(record) for record in session.scalars(stmt)]
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load events for job {job_id}: {e}") from e
        if limit is not None:
            events.reverse()
        return events

    def count_by_status(self) -> dict[str, int]:
        """Return job counts keyed by status."""
        stmt = select(JobRecord.status, func.count()).group_by(JobRecord.status)
        try:
            with self.database.session() as session:
                return {status: count for status, count in session.execute(stmt)}
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to count jobs: {e}") from e
