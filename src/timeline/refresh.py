"""Cache refresh after content changes.

Two kinds of work run through the job queue:
- refresh_for_post: a new post invalidates the cached pages of everyone who
  may see it (its author, its circle and group members, and for public
  posts the author's connections)
- bulk_refresh: every user active in the recent window is invalidated, and
  optionally has the first page rebuilt

Targeted jobs let errors propagate so the worker retries them; bulk refresh
tolerates per-user failures and reports counts instead.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from timeline.config import Settings, settings
from timeline.core.model import Post, Visibility
from timeline.jobs.tasks import BULK_REFRESH, REFRESH_FOR_POST
from timeline.observability.logging import LogContext
from timeline.observability.metrics import get_metrics

if TYPE_CHECKING:
    from timeline.errors import JobRetriesExhausted
    from timeline.jobs.queue import Job, JobQueue
    from timeline.jobs.worker import JobWorker
    from timeline.service import TimelineService
    from timeline.sources.base import SocialGraph

logger = logging.getLogger(__name__)


@dataclass
class BulkRefreshReport:
    """Outcome of one bulk refresh run."""

    processed: int = 0
    refreshed: int = 0
    failed: int = 0
    duration_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "refreshed": self.refreshed,
            "failed": self.failed,
            "duration_seconds": round(self.duration_seconds, 3),
        }


def post_payload(post: Post) -> dict[str, Any]:
    """Job payload describing a post's audience-relevant fields."""
    return {
        "post_id": post.id,
        "author_id": post.author_id,
        "created_at": post.created_at.isoformat(),
        "visibility": post.visibility.value,
        "circle_ids": sorted(post.circle_ids),
        "group_ids": sorted(post.group_ids),
    }


def post_from_payload(payload: dict[str, Any]) -> Post:
    return Post(
        id=payload["post_id"],
        author_id=payload["author_id"],
        created_at=datetime.fromisoformat(payload["created_at"]),
        visibility=Visibility(payload.get("visibility", Visibility.PUBLIC.value)),
        circle_ids=frozenset(payload.get("circle_ids", ())),
        group_ids=frozenset(payload.get("group_ids", ())),
    )


class RefreshOrchestrator:
    """Decides whose timelines to invalidate and runs refresh jobs."""

    def __init__(
        self,
        service: TimelineService,
        graph: SocialGraph,
        queue: JobQueue,
        config: Settings | None = None,
    ) -> None:
        self.service = service
        self.graph = graph
        self.queue = queue
        self.config = config or settings

    async def enqueue_targeted(self, post: Post) -> str:
        """Queue invalidation of every timeline `post` may appear in."""
        job_id = await self.queue.submit(
            REFRESH_FOR_POST,
            post_payload(post),
            max_retries=self.config.refresh_max_attempts,
            timeout=self.config.refresh_job_timeout,
        )
        logger.info(f"Queued timeline refresh for post {post.id}: {job_id}")
        return job_id

    async def enqueue_bulk(self) -> str:
        return await self.queue.submit(
            BULK_REFRESH,
            {},
            max_retries=self.config.refresh_max_attempts,
            timeout=self.config.refresh_job_timeout,
        )

    async def audience_for(self, post: Post) -> set[str]:
        """Users whose timelines may contain `post`."""
        audience = {post.author_id}
        if post.circle_ids:
            audience |= await self.graph.circle_members(post.circle_ids)
        if post.group_ids:
            audience |= await self.graph.group_members(post.group_ids)
        if post.visibility == Visibility.PUBLIC:
            audience |= await self.graph.connections(post.author_id)
        return audience

    async def run_targeted(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Invalidate the audience of one post. Errors propagate."""
        post = post_from_payload(payload)
        audience = await self.audience_for(post)

        deleted = 0
        for user_id in sorted(audience):
            deleted += await self.service.invalidate_for_user(user_id)

        logger.info(
            f"Refreshed timelines for post {post.id}: "
            f"{len(audience)} users, {deleted} cache keys"
        )
        return {"post_id": post.id, "users": len(audience), "keys_deleted": deleted}

    async def run_bulk(self, now: datetime | None = None) -> BulkRefreshReport:
        """Invalidate every recently active user, tolerating per-user failures."""
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(hours=self.config.bulk_active_window_hours)
        interval = max(1, self.config.bulk_progress_interval)
        metrics = get_metrics()

        report = BulkRefreshReport()
        start = time.perf_counter()
        logger.info(f"Starting bulk timeline refresh for users active since {since}")

        async for user in self.graph.active_users(since):
            report.processed += 1
            with LogContext(user_id=user.id):
                try:
                    await self.service.invalidate_for_user(user.id)
                    if self.config.bulk_refresh_warm:
                        await self.service.get_timeline(user.id)
                except Exception as e:
                    report.failed += 1
                    metrics.bulk_users_processed_total.labels(outcome="failed").inc()
                    logger.warning(f"Bulk refresh failed for user {user.id}: {e}")
                else:
                    report.refreshed += 1
                    metrics.bulk_users_processed_total.labels(outcome="refreshed").inc()

            if report.processed % interval == 0:
                logger.info(
                    f"Bulk refresh progress: {report.processed} processed, "
                    f"{report.failed} failed"
                )

        report.duration_seconds = time.perf_counter() - start
        logger.info(f"Bulk timeline refresh finished: {report.to_dict()}")
        return report

    async def handle_refresh_for_post(self, job: Job) -> dict[str, Any]:
        result = await self.run_targeted(job.payload)
        get_metrics().refresh_jobs_total.labels(task=job.task, outcome="completed").inc()
        return result

    async def handle_bulk_refresh(self, job: Job) -> dict[str, Any]:
        report = await self.run_bulk()
        get_metrics().refresh_jobs_total.labels(task=job.task, outcome="completed").inc()
        return report.to_dict()

    async def on_job_failed(self, job: Job, error: JobRetriesExhausted | None = None) -> None:
        """Record a job that will not be retried again."""
        with LogContext(job_id=job.id):
            logger.error(
                f"Refresh job {job.id} ({job.task}) failed permanently after "
                f"{job.attempts} attempts: {job.error}",
                extra={"task": job.task, "payload": job.payload},
            )
        get_metrics().refresh_jobs_total.labels(task=job.task, outcome="failed").inc()

    def register(self, worker: JobWorker) -> None:
        """Bind refresh handlers and the failure hook to a worker."""
        worker.register_handler(REFRESH_FOR_POST, self.handle_refresh_for_post)
        worker.register_handler(BULK_REFRESH, self.handle_bulk_refresh)
        worker.add_failure_hook(self.on_job_failed)
