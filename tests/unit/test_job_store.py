"""Tests for the job store."""

import threading

import pytest

from newsreel.models.schemas import EventKind, JobStatus
from newsreel.utils.error_handler import StoreError


def test_create_job_is_queued(job_store):
    """Test new jobs start queued at zero progress."""
    job = job_store.create_job("user-1")

    assert job.status == JobStatus.QUEUED
    assert job.progress == 0
    assert job.step == "queued"
    assert job.payload == {}
    assert job_store.get_job(job.id).owner == "user-1"


def test_get_unknown_job_returns_none(job_store):
    """Test unknown ids return None."""
    assert job_store.get_job("missing") is None


def test_find_oldest_queued_is_fifo(job_store):
    """Test the oldest queued job is offered first."""
    first = job_store.create_job("user-1")
    job_store.create_job("user-2")

    assert job_store.find_oldest_queued().id == first.id


def test_claim_moves_job_to_running(job_store):
    """Test claim sets running and started_at."""
    job = job_store.create_job("user-1")

    claimed = job_store.claim(job.id)

    assert claimed is not None
    assert claimed.status == JobStatus.RUNNING
    assert claimed.started_at is not None
    assert job_store.find_oldest_queued() is None


def test_second_claim_fails(job_store):
    """Test a job can be claimed only once."""
    job = job_store.create_job("user-1")

    assert job_store.claim(job.id) is not None
    assert job_store.claim(job.id) is None


def test_concurrent_claims_have_single_winner(job_store):
    """Test many threads racing for one job produce exactly one claim."""
    job = job_store.create_job("user-1")
    barrier = threading.Barrier(8)
    results = []
    lock = threading.Lock()

    def worker():
        barrier.wait()
        claimed = job_store.claim(job.id)
        with lock:
            results.append(claimed)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(1 for r in results if r is not None) == 1
    assert job_store.get_job(job.id).status == JobStatus.RUNNING


def test_update_progress_overwrites_snapshot(job_store):
    """Test step, progress and payload are overwritten."""
    job = job_store.create_job("user-1")
    job_store.claim(job.id)

    job_store.update_progress(job.id, "research:AI policy", 14, {"last": {"kind": "research"}})

    stored = job_store.get_job(job.id)
    assert stored.step == "research:AI policy"
    assert stored.progress == 14
    assert stored.payload == {"last": {"kind": "research"}}


def test_update_progress_unknown_job_raises(job_store):
    """Test updating a missing job is a store error."""
    with pytest.raises(StoreError):
        job_store.update_progress("missing", "ingest", 3)


def test_append_event_unknown_job_raises(job_store):
    """Test events cannot be appended to missing jobs."""
    with pytest.raises(StoreError):
        job_store.append_event("missing", EventKind.INGEST, "Starting RSS ingest…")


def test_list_events_chronological(job_store):
    """Test events are returned oldest first."""
    job = job_store.create_job("user-1")
    for i in range(5):
        job_store.append_event(job.id, EventKind.INGEST, f"event {i}", [f"item {i}"])

    events = job_store.list_events(job.id)

    assert [e.message for e in events] == [f"event {i}" for i in range(5)]
    assert events[0].items == ["item 0"]


def test_list_events_limit_keeps_most_recent(job_store):
    """Test a limit returns the most recent events, still oldest first."""
    job = job_store.create_job("user-1")
    for i in range(5):
        job_store.append_event(job.id, EventKind.INGEST, f"event {i}")

    events = job_store.list_events(job.id, limit=2)

    assert [e.message for e in events] == ["event 3", "event 4"]


def test_finalize_running_job(job_store):
    """Test finalize sets terminal status, error and 100 progress."""
    job = job_store.create_job("user-1")
    job_store.claim(job.id)

    assert job_store.finalize(job.id, JobStatus.FAILED, "ffmpeg failed") is True

    stored = job_store.get_job(job.id)
    assert stored.status == JobStatus.FAILED
    assert stored.error == "ffmpeg failed"
    assert stored.progress == 100
    assert stored.finished_at is not None


def test_finalize_never_rewrites_terminal_job(job_store):
    """Test a terminal job keeps its first outcome."""
    job = job_store.create_job("user-1")
    job_store.claim(job.id)
    job_store.finalize(job.id, JobStatus.SUCCEEDED)

    assert job_store.finalize(job.id, JobStatus.FAILED, "late failure") is False
    assert job_store.get_job(job.id).status == JobStatus.SUCCEEDED


def test_finalize_queued_job_is_rejected(job_store):
    """Test only running jobs can be finalized."""
    job = job_store.create_job("user-1")

    assert job_store.finalize(job.id, JobStatus.SUCCEEDED) is False
    assert job_store.get_job(job.id).status == JobStatus.QUEUED


def test_finalize_requires_terminal_status(job_store):
    """Test finalize rejects non-terminal statuses."""
    job = job_store.create_job("user-1")
    job_store.claim(job.id)

    with pytest.raises(ValueError):
        job_store.finalize(job.id, JobStatus.RUNNING)


def test_request_cancel(job_store):
    """Test cancellation flags in-flight jobs and refuses terminal ones."""
    job = job_store.create_job("user-1")

    assert job_store.request_cancel(job.id) is True
    assert job_store.is_cancel_requested(job.id) is True

    job_store.claim(job.id)
    job_store.finalize(job.id, JobStatus.FAILED, "Job cancelled by request")
    assert job_store.request_cancel(job.id) is False
    assert job_store.request_cancel("missing") is False


def test_latest_job_for_owner(job_store):
    """Test the newest job of an owner is returned."""
    job_store.create_job("user-1")
    latest = job_store.create_job("user-1")
    job_store.create_job("user-2")

    assert job_store.latest_job_for_owner("user-1").id == latest.id
    assert job_store.latest_job_for_owner("nobody") is None


def test_count_by_status(job_store):
    """Test job counts are grouped by status."""
    job_store.create_job("user-1")
    running = job_store.create_job("user-2")
    job_store.claim(running.id)

    assert job_store.count_by_status() == {"queued": 1, "running": 1}
