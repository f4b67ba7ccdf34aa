"""Redis-backed job queue for timeline refresh jobs.

Provides a distributed job queue with:
- Job submission and status tracking
- Atomic job claiming via BRPOPLPUSH
- Bounded retries with a per-attempt timeout carried on the job
- Failed list for jobs that exhausted their attempts

Lifecycle: enqueued -> running -> completed | failed. A failed attempt with
retries left goes back to enqueued.

Example:
    queue = JobQueue()
    await queue.initialize()

    job_id = await queue.submit("refresh_for_post", {"post_id": "p1"})

    async for job in queue.claim_jobs():
        await queue.complete_job(job.id, {"invalidated": 12})
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, TypeVar, cast
from uuid import uuid4

from timeline.cache.redis import get_redis

if TYPE_CHECKING:
    from redis.asyncio import Redis

T = TypeVar("T")


def _await_redis(result: Awaitable[T] | T) -> Awaitable[T]:
    """Cast redis-py async results to an awaitable for mypy."""
    return cast(Awaitable[T], result)


logger = logging.getLogger(__name__)

# Redis key prefixes
JOB_PREFIX = "timeline:job:"
QUEUE_PENDING = "timeline:jobs:pending"
QUEUE_PROCESSING = "timeline:jobs:processing"
QUEUE_FAILED = "timeline:jobs:failed"

# Default configuration
DEFAULT_JOB_TTL = 86400 * 7  # 7 days
DEFAULT_RESULT_TTL = 86400  # 24 hours
DEFAULT_MAX_RETRIES = 3
DEFAULT_JOB_TIMEOUT = 300  # seconds per attempt


class JobStatus(str, Enum):
    """Job execution status."""

    ENQUEUED = "enqueued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Job:
    """Job descriptor: task, payload, attempt count and timeout."""

    id: str
    task: str
    payload: dict[str, Any]
    status: JobStatus = JobStatus.ENQUEUED
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
    attempts: int = 0
    max_retries: int = DEFAULT_MAX_RETRIES
    timeout: float = DEFAULT_JOB_TIMEOUT

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)

    @property
    def retries_left(self) -> bool:
        return self.attempts < self.max_retries

    def to_dict(self) -> dict[str, Any]:
        """Serialize job to dictionary."""
        return {
            "id": self.id,
            "task": self.task,
            "payload": self.payload,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "result": self.result,
            "error": self.error,
            "attempts": self.attempts,
            "max_retries": self.max_retries,
            "timeout": self.timeout,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Job:
        """Deserialize job from dictionary."""
        return cls(
            id=data["id"],
            task=data["task"],
            payload=data["payload"],
            status=JobStatus(data["status"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            started_at=(
                datetime.fromisoformat(data["started_at"]) if data.get("started_at") else None
            ),
            completed_at=(
                datetime.fromisoformat(data["completed_at"]) if data.get("completed_at") else None
            ),
            result=data.get("result"),
            error=data.get("error"),
            attempts=data.get("attempts", 0),
            max_retries=data.get("max_retries", DEFAULT_MAX_RETRIES),
            timeout=data.get("timeout", DEFAULT_JOB_TIMEOUT),
        )


class JobQueue:
    """Redis-backed distributed job queue.

    Uses Redis lists for queue management:
    - LPUSH to add jobs
    - BRPOPLPUSH to atomically move jobs from pending to processing
    - Job state stored in separate keys

    Horizontally scalable: any number of workers may claim from one queue.
    """

    def __init__(
        self,
        job_ttl: int = DEFAULT_JOB_TTL,
        result_ttl: int = DEFAULT_RESULT_TTL,
        max_retries: int = DEFAULT_MAX_RETRIES,
        timeout: float = DEFAULT_JOB_TIMEOUT,
    ) -> None:
        self.job_ttl = job_ttl
        self.result_ttl = result_ttl
        self.max_retries = max_retries
        self.timeout = timeout
        self._redis: Redis | None = None

    async def initialize(self) -> None:
        """Initialize Redis connection."""
        if self._redis is None:
            self._redis = await get_redis()
        logger.info("Job queue initialized")

    async def _get_redis(self) -> Redis:
        """Get Redis client, initializing if needed."""
        if self._redis is None:
            await self.initialize()
        return self._redis  # type: ignore[return-value]

    def _job_key(self, job_id: str) -> str:
        """Redis key for job data."""
        return f"{JOB_PREFIX}{job_id}"

    async def _save(self, job: Job, ttl: int) -> None:
        redis = await self._get_redis()
        await _await_redis(redis.set(self._job_key(job.id), json.dumps(job.to_dict()), ex=ttl))

    async def submit(
        self,
        task: str,
        payload: dict[str, Any] | None = None,
        max_retries: int | None = None,
        timeout: float | None = None,
    ) -> str:
        """Submit a job to the queue.

        Args:
            task: Task name (e.g., "refresh_for_post", "bulk_refresh")
            payload: Task-specific data
            max_retries: Override the default attempt limit
            timeout: Override the default per-attempt timeout in seconds

        Returns:
            Job ID for tracking
        """
        redis = await self._get_redis()

        job = Job(
            id=str(uuid4()),
            task=task,
            payload=payload or {},
            max_retries=max_retries if max_retries is not None else self.max_retries,
            timeout=timeout if timeout is not None else self.timeout,
        )

        await self._save(job, self.job_ttl)
        await _await_redis(redis.lpush(QUEUE_PENDING, job.id))

        logger.info(f"Job submitted: {job.id} ({task})")
        return job.id

    async def get_job(self, job_id: str) -> Job | None:
        """Get job by ID, or None if unknown or expired."""
        redis = await self._get_redis()
        data = await redis.get(self._job_key(job_id))

        if data is None:
            return None

        return Job.from_dict(json.loads(data))

    async def claim_jobs(
        self,
        batch_size: int = 1,
        timeout: int | None = None,
    ) -> AsyncIterator[Job]:
        """Claim jobs from the queue for processing.

        Uses BRPOPLPUSH for atomic job claiming:
        - Blocks until a job is available
        - Atomically moves job from pending to processing
        - Prevents duplicate processing

        Args:
            batch_size: Number of jobs to claim
            timeout: Block timeout in seconds (None for forever)

        Yields:
            Jobs marked running, with their attempt count incremented
        """
        redis = await self._get_redis()
        timeout_sec = timeout if timeout is not None else 0

        for _ in range(batch_size):
            job_id_bytes = cast(
                bytes | str | None,
                await _await_redis(
                    redis.brpoplpush(
                        QUEUE_PENDING,
                        QUEUE_PROCESSING,
                        timeout=timeout_sec,
                    )
                ),
            )

            if job_id_bytes is None:
                break

            job_id = job_id_bytes.decode() if isinstance(job_id_bytes, bytes) else job_id_bytes
            job = await self.get_job(job_id)

            if job is None:
                # Job expired or deleted, remove from processing
                await _await_redis(redis.lrem(QUEUE_PROCESSING, 1, job_id))
                continue

            job.status = JobStatus.RUNNING
            job.started_at = datetime.now(timezone.utc)
            job.attempts += 1
            await self._save(job, self.job_ttl)

            logger.info(f"Job claimed: {job.id} (attempt {job.attempts}/{job.max_retries})")
            yield job

    async def complete_job(
        self,
        job_id: str,
        result: dict[str, Any] | None = None,
    ) -> None:
        """Mark job as completed and keep its result for `result_ttl`."""
        redis = await self._get_redis()
        job = await self.get_job(job_id)

        if job is None:
            logger.warning(f"Job not found for completion: {job_id}")
            return

        job.status = JobStatus.COMPLETED
        job.completed_at = datetime.now(timezone.utc)
        job.result = result
        job.error = None

        await self._save(job, self.result_ttl)
        await _await_redis(redis.lrem(QUEUE_PROCESSING, 1, job_id))

        logger.info(f"Job completed: {job_id}")

    async def fail_job(
        self,
        job_id: str,
        error: str,
        retry: bool = True,
    ) -> Job | None:
        """Record a failed attempt, re-queueing while attempts remain.

        Args:
            job_id: Job identifier
            error: Error message
            retry: Whether to retry if attempts remain

        Returns:
            The updated job (status enqueued or failed), or None if unknown
        """
        redis = await self._get_redis()
        job = await self.get_job(job_id)

        if job is None:
            logger.warning(f"Job not found for failure: {job_id}")
            return None

        job.error = error
        await _await_redis(redis.lrem(QUEUE_PROCESSING, 1, job_id))

        if retry and job.retries_left:
            job.status = JobStatus.ENQUEUED
            await self._save(job, self.job_ttl)
            await _await_redis(redis.lpush(QUEUE_PENDING, job_id))
            logger.info(
                f"Job queued for retry: {job_id} (attempt {job.attempts}/{job.max_retries})"
            )
        else:
            job.status = JobStatus.FAILED
            job.completed_at = datetime.now(timezone.utc)
            await self._save(job, self.job_ttl)
            await _await_redis(redis.lpush(QUEUE_FAILED, job_id))
            logger.warning(f"Job failed permanently: {job_id} after {job.attempts} attempts")

        return job

    async def list_jobs(
        self,
        status: JobStatus | None = None,
        limit: int = 100,
    ) -> list[Job]:
        """List jobs, optionally filtered by status."""
        redis = await self._get_redis()
        jobs: list[Job] = []

        if status == JobStatus.ENQUEUED:
            job_ids = await _await_redis(redis.lrange(QUEUE_PENDING, 0, limit - 1))
        elif status == JobStatus.RUNNING:
            job_ids = await _await_redis(redis.lrange(QUEUE_PROCESSING, 0, limit - 1))
        elif status == JobStatus.FAILED:
            job_ids = await _await_redis(redis.lrange(QUEUE_FAILED, 0, limit - 1))
        else:
            pending = await _await_redis(redis.lrange(QUEUE_PENDING, 0, limit - 1))
            processing = await _await_redis(redis.lrange(QUEUE_PROCESSING, 0, limit - 1))
            failed = await _await_redis(redis.lrange(QUEUE_FAILED, 0, limit - 1))
            job_ids = pending + processing + failed

        for job_id_bytes in job_ids[:limit]:
            job_id = job_id_bytes.decode() if isinstance(job_id_bytes, bytes) else job_id_bytes
            job = await self.get_job(job_id)
            if job is not None and (status is None or job.status == status):
                jobs.append(job)

        return jobs

    async def get_queue_stats(self) -> dict[str, int]:
        """Counts of pending, processing and failed jobs."""
        redis = await self._get_redis()

        return {
            "pending": await _await_redis(redis.llen(QUEUE_PENDING)),
            "processing": await _await_redis(redis.llen(QUEUE_PROCESSING)),
            "failed": await _await_redis(redis.llen(QUEUE_FAILED)),
        }
