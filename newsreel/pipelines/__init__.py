"""Pipeline orchestrators for the Newsreel worker."""

from newsreel.pipelines.job_runner import JobRunner, ProgressPlan, build_job_runner
from newsreel.pipelines.worker_loop import PollResult, WorkerLoop, build_worker, main

__all__ = ["JobRunner", "PollResult", "ProgressPlan", "WorkerLoop", "build_job_runner", "build_worker", "main"]
