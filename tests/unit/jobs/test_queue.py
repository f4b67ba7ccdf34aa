"""Tests for job queue functionality."""

import json
from unittest.mock import AsyncMock

import pytest

from timeline.jobs.queue import (
    QUEUE_FAILED,
    QUEUE_PENDING,
    QUEUE_PROCESSING,
    Job,
    JobQueue,
    JobStatus,
)


def _stored(job: Job) -> bytes:
    return json.dumps(job.to_dict()).encode()


class TestJob:
    """Tests for Job dataclass."""

    def test_job_creation(self) -> None:
        """Job can be created with minimal parameters."""
        job = Job(id="test-123", task="refresh_for_post", payload={"post_id": "p1"})

        assert job.status == JobStatus.ENQUEUED
        assert job.attempts == 0
        assert job.max_retries == 3
        assert job.timeout == 300
        assert job.retries_left is True
        assert job.is_terminal is False

    def test_job_roundtrip(self) -> None:
        """Job survives serialization roundtrip."""
        original = Job(
            id="test-123",
            task="bulk_refresh",
            payload={},
            status=JobStatus.COMPLETED,
            result={"processed": 10},
            attempts=2,
            timeout=12.5,
        )

        restored = Job.from_dict(original.to_dict())

        assert restored.id == original.id
        assert restored.status == JobStatus.COMPLETED
        assert restored.result == {"processed": 10}
        assert restored.attempts == 2
        assert restored.timeout == 12.5
        assert restored.is_terminal is True

    def test_retries_left(self) -> None:
        assert Job(id="j", task="t", payload={}, attempts=2, max_retries=3).retries_left
        assert not Job(id="j", task="t", payload={}, attempts=3, max_retries=3).retries_left


class TestJobStatus:
    def test_all_statuses_exist(self) -> None:
        """All lifecycle states are defined."""
        assert [s.value for s in JobStatus] == ["enqueued", "running", "completed", "failed"]


class TestJobQueue:
    """Tests for JobQueue class."""

    @pytest.fixture
    def mock_redis(self) -> AsyncMock:
        """Create mock Redis client."""
        mock = AsyncMock()
        mock.set = AsyncMock(return_value=True)
        mock.get = AsyncMock(return_value=None)
        mock.lpush = AsyncMock(return_value=1)
        mock.llen = AsyncMock(return_value=0)
        mock.lrange = AsyncMock(return_value=[])
        mock.lrem = AsyncMock(return_value=1)
        mock.brpoplpush = AsyncMock(return_value=None)
        return mock

    @pytest.fixture
    def queue(self, mock_redis: AsyncMock) -> JobQueue:
        """Create JobQueue with mocked Redis."""
        q = JobQueue()
        q._redis = mock_redis
        return q

    @pytest.mark.asyncio
    async def test_submit_job(self, queue: JobQueue, mock_redis: AsyncMock) -> None:
        """Submitting a job stores it and adds it to the pending list."""
        job_id = await queue.submit("refresh_for_post", {"post_id": "p1"}, timeout=30)

        stored = json.loads(mock_redis.set.call_args[0][1])
        assert stored["id"] == job_id
        assert stored["status"] == "enqueued"
        assert stored["timeout"] == 30
        mock_redis.lpush.assert_called_once_with(QUEUE_PENDING, job_id)

    @pytest.mark.asyncio
    async def test_get_job_not_found(self, queue: JobQueue) -> None:
        assert await queue.get_job("nonexistent") is None

    @pytest.mark.asyncio
    async def test_claim_marks_running_and_counts_attempt(
        self, queue: JobQueue, mock_redis: AsyncMock
    ) -> None:
        mock_redis.brpoplpush.return_value = b"test-123"
        mock_redis.get.return_value = _stored(Job(id="test-123", task="t", payload={}))

        jobs = [job async for job in queue.claim_jobs(batch_size=1, timeout=1)]

        assert len(jobs) == 1
        assert jobs[0].status == JobStatus.RUNNING
        assert jobs[0].attempts == 1
        assert jobs[0].started_at is not None
        mock_redis.brpoplpush.assert_called_once_with(QUEUE_PENDING, QUEUE_PROCESSING, timeout=1)

    @pytest.mark.asyncio
    async def test_claim_empty_queue(self, queue: JobQueue) -> None:
        assert [job async for job in queue.claim_jobs(timeout=1)] == []

    @pytest.mark.asyncio
    async def test_claim_skips_expired_job(self, queue: JobQueue, mock_redis: AsyncMock) -> None:
        mock_redis.brpoplpush.side_effect = [b"gone", None]

        jobs = [job async for job in queue.claim_jobs(batch_size=2, timeout=1)]

        assert jobs == []
        mock_redis.lrem.assert_called_once_with(QUEUE_PROCESSING, 1, "gone")

    @pytest.mark.asyncio
    async def test_complete_job(self, queue: JobQueue, mock_redis: AsyncMock) -> None:
        mock_redis.get.return_value = _stored(
            Job(id="test-123", task="t", payload={}, status=JobStatus.RUNNING)
        )

        await queue.complete_job("test-123", {"users": 3})

        stored = json.loads(mock_redis.set.call_args[0][1])
        assert stored["status"] == "completed"
        assert stored["result"] == {"users": 3}
        assert mock_redis.set.call_args[1]["ex"] == queue.result_ttl
        mock_redis.lrem.assert_called_once_with(QUEUE_PROCESSING, 1, "test-123")

    @pytest.mark.asyncio
    async def test_fail_job_with_retries_left_requeues(
        self, queue: JobQueue, mock_redis: AsyncMock
    ) -> None:
        mock_redis.get.return_value = _stored(
            Job(id="test-123", task="t", payload={}, status=JobStatus.RUNNING, attempts=1)
        )

        job = await queue.fail_job("test-123", "boom", retry=True)

        assert job is not None
        assert job.status == JobStatus.ENQUEUED
        assert job.error == "boom"
        mock_redis.lpush.assert_called_once_with(QUEUE_PENDING, "test-123")

    @pytest.mark.asyncio
    async def test_fail_job_on_last_attempt_fails(
        self, queue: JobQueue, mock_redis: AsyncMock
    ) -> None:
        mock_redis.get.return_value = _stored(
            Job(id="test-123", task="t", payload={}, status=JobStatus.RUNNING, attempts=3)
        )

        job = await queue.fail_job("test-123", "final", retry=True)

        assert job is not None
        assert job.status == JobStatus.FAILED
        assert job.completed_at is not None
        mock_redis.lpush.assert_called_once_with(QUEUE_FAILED, "test-123")

    @pytest.mark.asyncio
    async def test_fail_job_without_retry(self, queue: JobQueue, mock_redis: AsyncMock) -> None:
        mock_redis.get.return_value = _stored(
            Job(id="test-123", task="t", payload={}, status=JobStatus.RUNNING, attempts=1)
        )

        job = await queue.fail_job("test-123", "unknown task", retry=False)

        assert job is not None
        assert job.status == JobStatus.FAILED

    @pytest.mark.asyncio
    async def test_fail_unknown_job(self, queue: JobQueue) -> None:
        assert await queue.fail_job("nope", "x") is None

    @pytest.mark.asyncio
    async def test_list_failed_jobs(self, queue: JobQueue, mock_redis: AsyncMock) -> None:
        mock_redis.lrange.return_value = [b"test-123"]
        mock_redis.get.return_value = _stored(
            Job(id="test-123", task="t", payload={}, status=JobStatus.FAILED)
        )

        jobs = await queue.list_jobs(JobStatus.FAILED)

        assert [job.id for job in jobs] == ["test-123"]
        mock_redis.lrange.assert_called_once_with(QUEUE_FAILED, 0, 99)

    @pytest.mark.asyncio
    async def test_get_queue_stats(self, queue: JobQueue, mock_redis: AsyncMock) -> None:
        """Queue stats returns counts for each list."""
        mock_redis.llen.side_effect = [5, 2, 1]

        stats = await queue.get_queue_stats()

        assert stats == {"pending": 5, "processing": 2, "failed": 1}
