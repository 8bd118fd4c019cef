"""FastAPI routes for generation jobs, content feed and preferences."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from newsreel.core.logging_config import get_logger
from newsreel.models.schemas import (
    ContentFeedResponse,
    CreateJobRequest,
    Job,
    JobDetailResponse,
    Preference,
    PreferencesRequest,
)
from newsreel.storage.job_store import JobStore
from newsreel.storage.repository import ContentRepository

router = APIRouter(tags=["jobs"])
logger = get_logger(__name__)

FEED_EVENT_LIMIT = 20


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


def get_repository(request: Request) -> ContentRepository:
    return request.app.state.repository


@router.post("/jobs", response_model=Job, status_code=status.HTTP_201_CREATED)
def create_job(body: CreateJobRequest, job_store: JobStore = Depends(get_job_store)) -> Job:
    """Queue a generation job for an owner."""
    job = job_store.create_job(body.owner, body.payload)
    logger.info(f"Queued job {job.id} for owner {job.owner}")
    return job


@router.get("/jobs/{job_id}", response_model=JobDetailResponse)
def get_job(job_id: str, job_store: JobStore = Depends(get_job_store)) -> JobDetailResponse:
    """Get a job with its full event log."""
    job = job_store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    return JobDetailResponse(job=job, events=job_store.list_events(job_id))


@router.post("/jobs/{job_id}/cancel", status_code=status.HTTP_202_ACCEPTED)
def cancel_job(job_id: str, job_store: JobStore = Depends(get_job_store)) -> dict:
    """
    Request cancellation of a queued or running job.

    The worker observes the flag at its next stage boundary.
    """
    job = job_store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    if not job_store.request_cancel(job_id):
        raise HTTPException(status_code=409, detail=f"Job {job_id} is already {job_store.get_job(job_id).status.value}")
    logger.info(f"Cancellation requested for job {job_id}")
    return {"job_id": job_id, "cancel_requested": True}


@router.get("/content", response_model=ContentFeedResponse)
def get_content(
    owner: str = Query(..., min_length=1),
    job_store: JobStore = Depends(get_job_store),
    repository: ContentRepository = Depends(get_repository),
) -> ContentFeedResponse:
    """
    Content feed for an owner.

    Includes the latest job and, while it is still in flight, its most
    recent events (oldest first).
    """
    job = job_store.latest_job_for_owner(owner)
    events = []
    if job is not None and not job.status.is_terminal:
        events = job_store.list_events(job.id, limit=FEED_EVENT_LIMIT)
    return ContentFeedResponse(job=job, events=events, items=repository.list_content(owner))


@router.get("/preferences/{owner}", response_model=list[Preference])
def get_preferences(owner: str, repository: ContentRepository = Depends(get_repository)) -> list[Preference]:
    """List stored preferences for an owner."""
    return repository.list_preferences(owner)


@router.put("/preferences/{owner}", response_model=list[Preference])
def put_preferences(
    owner: str,
    body: PreferencesRequest,
    repository: ContentRepository = Depends(get_repository),
) -> list[Preference]:
    """Replace stored preferences for an owner."""
    repository.replace_preferences(owner, body.preferences)
    logger.info(f"Stored {len(body.preferences)} preferences for {owner}")
    return repository.list_preferences(owner)
