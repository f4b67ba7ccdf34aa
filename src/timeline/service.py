"""Timeline service: the operations exposed to callers.

- get_timeline: cache-aside read of one page of a user's timeline
- invalidate_for_user: drop every cached page of a user
- invalidate_for_new_post: queue a targeted refresh for a post's audience
- run_bulk_refresh / enqueue_bulk: refresh every recently active user

Example:
    service = create_service(store, graph, InMemoryCacheBackend())
    page = await service.get_timeline("u-1")
    more = await service.get_timeline("u-1", cursor=page.next_cursor)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from timeline.cache.manager import TimelineCache
from timeline.cache.policy import TtlPolicy
from timeline.config import Settings, settings
from timeline.core.cursor import decode_cursor
from timeline.core.scoring import RelevanceScorer, ScoringWeights
from timeline.errors import CacheUnavailable, InvalidCursor, TimelineError, UserNotFound
from timeline.feed.aggregator import TimelineAggregator
from timeline.jobs.queue import JobQueue
from timeline.observability.logging import LogContext
from timeline.observability.metrics import get_metrics
from timeline.refresh import RefreshOrchestrator
from timeline.sources.providers import default_providers

if TYPE_CHECKING:
    from timeline.cache.backend import CacheBackend
    from timeline.core.model import Post, TimelinePage, User
    from timeline.refresh import BulkRefreshReport
    from timeline.sources.base import ContentStore, SocialGraph

logger = logging.getLogger(__name__)


class TimelineService:
    """Entry point for reading and refreshing timelines."""

    def __init__(
        self,
        graph: SocialGraph,
        aggregator: TimelineAggregator,
        cache: TimelineCache,
        orchestrator: RefreshOrchestrator | None = None,
        config: Settings | None = None,
    ) -> None:
        self.graph = graph
        self.aggregator = aggregator
        self.cache = cache
        self.orchestrator = orchestrator
        self.config = config or settings

    def clamp_page_size(self, page_size: int | None) -> int:
        if page_size is None:
            page_size = self.config.default_page_size
        return max(1, min(page_size, self.config.max_page_size))

    async def get_timeline(
        self,
        user_id: str,
        page_size: int | None = None,
        cursor: str | None = None,
        now: datetime | None = None,
    ) -> TimelinePage:
        """Return one page of `user_id`'s timeline.

        Args:
            user_id: Timeline owner
            page_size: Posts per page, clamped to [1, max_page_size]
            cursor: `next_cursor` of the previous page; None for the first page

        Raises:
            UserNotFound: If the social graph does not know the user
        """
        page_size = self.clamp_page_size(page_size)
        user = await self.graph.get_user(user_id)
        if user is None:
            raise UserNotFound(user_id)

        with LogContext(user_id=user_id):
            if cursor:
                try:
                    decode_cursor(cursor)
                except InvalidCursor as e:
                    logger.warning(f"{e}; serving first page")
                    cursor = None

            # Cache entries are keyed without the page size
            cacheable = page_size == self.config.default_page_size

            if cacheable:
                cached = await self._cache_get(user_id, cursor)
                if cached is not None:
                    return cached

            page = await self.aggregator.build(user, page_size, cursor, now=now)

            if cacheable:
                await self._cache_put(user, cursor, page, now)
            return page

    async def _cache_get(self, user_id: str, cursor: str | None) -> TimelinePage | None:
        try:
            return await self.cache.get(user_id, cursor)
        except CacheUnavailable as e:
            get_metrics().cache_errors_total.labels(operation="get").inc()
            logger.warning(f"Timeline cache read failed, rebuilding: {e}")
            return None

    async def _cache_put(
        self,
        user: User,
        cursor: str | None,
        page: TimelinePage,
        now: datetime | None,
    ) -> None:
        try:
            await self.cache.put(user, cursor, page, now=now)
        except CacheUnavailable as e:
            get_metrics().cache_errors_total.labels(operation="put").inc()
            logger.warning(f"Timeline cache write failed, serving uncached page: {e}")

    async def invalidate_for_user(self, user_id: str) -> int:
        """Remove every cached page of a user; returns keys deleted."""
        with LogContext(user_id=user_id):
            return await self.cache.invalidate(user_id)

    async def invalidate_for_new_post(self, post: Post) -> str:
        """Queue a refresh of every timeline the post may appear in."""
        return await self.require_orchestrator().enqueue_targeted(post)

    async def run_bulk_refresh(self, now: datetime | None = None) -> BulkRefreshReport:
        """Refresh every recently active user inline."""
        return await self.require_orchestrator().run_bulk(now)

    async def enqueue_bulk(self) -> str:
        """Queue a bulk refresh for a worker."""
        return await self.require_orchestrator().enqueue_bulk()

    def require_orchestrator(self) -> RefreshOrchestrator:
        if self.orchestrator is None:
            raise TimelineError("Timeline service has no refresh orchestrator")
        return self.orchestrator


def create_service(
    store: ContentStore,
    graph: SocialGraph,
    backend: CacheBackend,
    queue: JobQueue | None = None,
    config: Settings | None = None,
) -> TimelineService:
    """Wire a TimelineService with default providers, scoring and refresh."""
    config = config or settings
    aggregator = TimelineAggregator(
        default_providers(store),
        scorer=RelevanceScorer(ScoringWeights.from_settings(config)),
        oversample=config.candidate_oversample,
    )
    cache = TimelineCache(backend, TtlPolicy.from_settings(config))
    service = TimelineService(graph, aggregator, cache, config=config)
    service.orchestrator = RefreshOrchestrator(service, graph, queue or JobQueue(), config)
    return service
