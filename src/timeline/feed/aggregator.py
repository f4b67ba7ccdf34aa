"""Timeline aggregation: merge, deduplicate, score and paginate candidates.

Pages are cut from the candidate set in keyset order (created_at, id
descending) and ranked by relevance inside the page. The next cursor is
the keyset position of the oldest post on the page, so following cursors
walks every candidate exactly once for a fixed snapshot of posts.

Ranking is per page: an older post that outscores newer ones still lands
on the later page its keyset position falls in.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from timeline.core.cursor import CursorData, decode_cursor, encode_cursor
from timeline.core.model import TimelinePage
from timeline.core.scoring import RelevanceScorer, rank
from timeline.errors import InvalidCursor, ProviderUnavailable
from timeline.observability.metrics import get_metrics

if TYPE_CHECKING:
    from timeline.core.model import Post, User
    from timeline.sources.providers import SourceProvider

logger = logging.getLogger(__name__)

DEFAULT_OVERSAMPLE = 2


class TimelineAggregator:
    """Builds one timeline page from all source providers."""

    def __init__(
        self,
        providers: Sequence[SourceProvider],
        scorer: RelevanceScorer | None = None,
        oversample: int = DEFAULT_OVERSAMPLE,
    ) -> None:
        if oversample < 1:
            raise ValueError("oversample must be at least 1")
        self.providers = list(providers)
        self.scorer = scorer or RelevanceScorer()
        self.oversample = oversample

    def fetch_limit(self, page_size: int) -> int:
        """Per-provider fetch size; always leaves room to detect a next page."""
        return max(page_size * self.oversample, page_size + 1)

    async def build(
        self,
        user: User,
        page_size: int,
        cursor: str | None = None,
        now: datetime | None = None,
    ) -> TimelinePage:
        """Build the page of `user`'s timeline that follows `cursor`.

        An undecodable cursor restarts the timeline from the first page.
        """
        if page_size < 1:
            raise ValueError("page_size must be at least 1")

        start = time.perf_counter()
        now = now or datetime.now(timezone.utc)
        position = self._decode(cursor)

        candidates = await self._collect(user, self.fetch_limit(page_size), position)
        if position is not None:
            candidates = [
                post for post in candidates if position.precedes(post.created_at, post.id)
            ]

        candidates.sort(key=lambda p: p.keyset, reverse=True)
        window = candidates[:page_size]
        has_more = len(candidates) > page_size

        ranked = rank(self.scorer.score_all(window, user, now))
        next_cursor = None
        if has_more and window:
            last = window[-1]
            next_cursor = encode_cursor(last.id, last.created_at)

        get_metrics().feed_build_duration_seconds.observe(time.perf_counter() - start)
        logger.debug(
            f"Built timeline page for {user.id}: {len(window)} of "
            f"{len(candidates)} candidates, has_more={has_more}"
        )
        return TimelinePage(
            posts=[scored.ref() for scored in ranked],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    def _decode(self, cursor: str | None) -> CursorData | None:
        if not cursor:
            return None
        try:
            return decode_cursor(cursor)
        except InvalidCursor as e:
            logger.warning(f"Ignoring cursor, restarting from first page: {e}")
            return None

    async def _collect(
        self,
        user: User,
        limit: int,
        before: CursorData | None,
    ) -> list[Post]:
        """Fetch from every provider concurrently and deduplicate by post id."""
        results = await asyncio.gather(
            *(self._fetch_one(provider, user, limit, before) for provider in self.providers)
        )

        merged: dict[str, Post] = {}
        for posts in results:
            for post in posts:
                merged.setdefault(post.id, post)
        return list(merged.values())

    async def _fetch_one(
        self,
        provider: SourceProvider,
        user: User,
        limit: int,
        before: CursorData | None,
    ) -> list[Post]:
        try:
            return await provider.fetch(user, limit, before)
        except Exception as e:
            error = ProviderUnavailable(provider.name, e)
            logger.warning(f"{error}; continuing with partial timeline for {user.id}")
            get_metrics().provider_failures_total.labels(provider=provider.name).inc()
            return []
