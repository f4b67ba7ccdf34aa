"""Timeline cache manager.

Owns every read and write of cached timeline pages:
- get/put of a page keyed by user and optional cursor
- TTL chosen per user from recent activity
- invalidation of every cached page of a user, not just the first

Each put also records the page key in a per-user index set. Invalidation
deletes the indexed keys and anything matching the user's key pattern, so
no cursor page survives even if the index was lost.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from timeline.cache.keys import CacheKeys
from timeline.cache.policy import TtlPolicy
from timeline.core.model import TimelinePage
from timeline.observability.metrics import get_metrics

if TYPE_CHECKING:
    from timeline.cache.backend import CacheBackend
    from timeline.core.model import User

logger = logging.getLogger(__name__)


def _page_label(cursor: str | None) -> str:
    return "next" if cursor else "first"


class TimelineCache:
    """Cache-aside storage for timeline pages.

    Backend errors propagate as CacheUnavailable; callers decide whether to
    bypass the cache.
    """

    def __init__(self, backend: CacheBackend, policy: TtlPolicy | None = None) -> None:
        self.backend = backend
        self.policy = policy or TtlPolicy.from_settings()

    async def get(self, user_id: str, cursor: str | None = None) -> TimelinePage | None:
        """Get a cached page, or None on miss."""
        key = CacheKeys.page(user_id, cursor)
        data = await self.backend.get(key)
        metrics = get_metrics()

        if data is None:
            metrics.cache_misses_total.labels(page=_page_label(cursor)).inc()
            return None

        try:
            page = TimelinePage.from_bytes(data)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding corrupt cache entry {key}: {e}")
            await self.backend.delete(key)
            metrics.cache_misses_total.labels(page=_page_label(cursor)).inc()
            return None

        metrics.cache_hits_total.labels(page=_page_label(cursor)).inc()
        return page

    async def put(
        self,
        user: User,
        cursor: str | None,
        page: TimelinePage,
        ttl: int | None = None,
        now: datetime | None = None,
    ) -> int:
        """Cache a page for `user`.

        Args:
            user: Timeline owner; selects the TTL when `ttl` is None
            cursor: Cursor the page was built for (None for the first page)
            page: The page to store
            ttl: Explicit TTL in seconds

        Returns:
            The TTL applied
        """
        if ttl is None:
            ttl = self.policy.ttl_for(user, now)
        key = CacheKeys.page(user.id, cursor)

        await self.backend.set(key, page.to_bytes(), ttl)
        # The index must outlive every page it lists
        index_ttl = max(ttl, self.policy.active_ttl, self.policy.inactive_ttl)
        await self.backend.add_to_index(CacheKeys.index(user.id), key, index_ttl)

        logger.debug(f"Cached timeline page {key} for {ttl}s")
        return ttl

    async def invalidate(self, user_id: str) -> int:
        """Remove every cached page of a user.

        Returns the number of keys deleted.
        """
        index_key = CacheKeys.index(user_id)
        keys = await self.backend.index_members(index_key)
        keys.add(CacheKeys.first_page(user_id))
        async for key in self.backend.scan(CacheKeys.user_pattern(user_id)):
            keys.add(key)
        keys.discard(index_key)

        deleted = await self.backend.delete(*sorted(keys), index_key)
        logger.debug(f"Invalidated {deleted} timeline keys for {user_id}")
        return deleted

    async def invalidate_all(self) -> int:
        """Remove every cached timeline page for every user."""
        keys = [key async for key in self.backend.scan(CacheKeys.all_pattern())]
        deleted = await self.backend.delete(*keys) if keys else 0
        logger.info(f"Invalidated all timeline cache entries ({deleted} keys)")
        return deleted

    async def health_check(self) -> bool:
        """Check cache store connectivity."""
        return await self.backend.ping()
