"""Global pytest fixtures for timeline tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from timeline.core.model import Post, Visibility
from timeline.jobs.queue import Job, JobStatus
from timeline.sources.memory import InMemoryContentStore, InMemorySocialGraph

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """Fixed clock for scoring and TTL decisions."""
    return NOW


@pytest.fixture
def make_post() -> Callable[..., Post]:
    """Build a post `hours_ago` hours before NOW."""

    def _make(
        post_id: str,
        author_id: str = "author",
        hours_ago: float = 1.0,
        visibility: Visibility = Visibility.PUBLIC,
        **kwargs: Any,
    ) -> Post:
        return Post(
            id=post_id,
            author_id=author_id,
            created_at=NOW - timedelta(hours=hours_ago),
            visibility=visibility,
            **kwargs,
        )

    return _make


@pytest.fixture
def store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture
def graph() -> InMemorySocialGraph:
    """Graph with an active viewer, an inactive viewer and a connection."""
    g = InMemorySocialGraph()
    g.add_user("alice", last_activity_at=NOW - timedelta(hours=1))
    g.add_user("bob", last_activity_at=NOW - timedelta(days=3))
    g.add_user("carol", last_activity_at=None)
    g.connect("alice", "bob")
    return g


class FakeJobQueue:
    """In-process stand-in for JobQueue with the same retry semantics."""

    def __init__(self) -> None:
        self.jobs: dict[str, Job] = {}
        self.pending: list[str] = []

    async def initialize(self) -> None:
        pass

    async def submit(
        self,
        task: str,
        payload: dict[str, Any] | None = None,
        max_retries: int | None = None,
        timeout: float | None = None,
    ) -> str:
        job = Job(
            id=f"job-{len(self.jobs) + 1}",
            task=task,
            payload=payload or {},
            max_retries=max_retries if max_retries is not None else 3,
            timeout=timeout if timeout is not None else 300,
        )
        self.jobs[job.id] = job
        self.pending.append(job.id)
        return job.id

    async def get_job(self, job_id: str) -> Job | None:
        return self.jobs.get(job_id)

    async def claim_jobs(self, batch_size: int = 1, timeout: int | None = None):
        for _ in range(batch_size):
            if not self.pending:
                return
            job = self.jobs[self.pending.pop(0)]
            job.status = JobStatus.RUNNING
            job.attempts += 1
            yield job

    async def complete_job(self, job_id: str, result: dict[str, Any] | None = None) -> None:
        job = self.jobs[job_id]
        job.status = JobStatus.COMPLETED
        job.result = result

    async def fail_job(self, job_id: str, error: str, retry: bool = True) -> Job | None:
        job = self.jobs.get(job_id)
        if job is None:
            return None
        job.error = error
        if retry and job.retries_left:
            job.status = JobStatus.ENQUEUED
            self.pending.append(job_id)
        else:
            job.status = JobStatus.FAILED
        return job


@pytest.fixture
def fake_queue() -> FakeJobQueue:
    return FakeJobQueue()
