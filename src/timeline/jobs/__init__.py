"""Background job processing for timeline refresh.

Provides a distributed job queue with:
- Redis-backed job storage
- Atomic job claiming with BRPOPLPUSH
- Bounded retries with a per-attempt timeout
- Failure hooks for jobs that exhaust their attempts
- Interval scheduling of the bulk refresh

Example:
    from timeline.jobs import JobQueue, JobWorker

    queue = JobQueue()
    job_id = await queue.submit("refresh_for_post", {"post_id": "p1"})

    worker = JobWorker(queue)
    orchestrator.register(worker)
    await worker.run()
"""

from timeline.jobs.queue import (
    DEFAULT_JOB_TIMEOUT,
    DEFAULT_JOB_TTL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RESULT_TTL,
    Job,
    JobQueue,
    JobStatus,
)
from timeline.jobs.scheduler import RefreshScheduler
from timeline.jobs.tasks import BULK_REFRESH, REFRESH_FOR_POST
from timeline.jobs.worker import FailureHook, JobHandler, JobWorker, WorkerConfig

__all__ = [
    # Queue
    "Job",
    "JobQueue",
    "JobStatus",
    "DEFAULT_JOB_TTL",
    "DEFAULT_RESULT_TTL",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_JOB_TIMEOUT",
    # Worker
    "JobWorker",
    "JobHandler",
    "FailureHook",
    "WorkerConfig",
    # Tasks
    "REFRESH_FOR_POST",
    "BULK_REFRESH",
    # Scheduler
    "RefreshScheduler",
]
