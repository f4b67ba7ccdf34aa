"""Activity-aware TTL selection for cached timelines.

Active users see new content often, so their pages expire sooner. Users with
no recorded activity are treated as inactive.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from timeline.config import Settings, settings

if TYPE_CHECKING:
    from timeline.core.model import User

ACTIVE_USER_TTL = 900  # 15 minutes
INACTIVE_USER_TTL = 3600  # 1 hour
ACTIVE_THRESHOLD = timedelta(hours=24)


@dataclass(frozen=True, slots=True)
class TtlPolicy:
    """Chooses a cache TTL from the user's last activity."""

    active_ttl: int = ACTIVE_USER_TTL
    inactive_ttl: int = INACTIVE_USER_TTL
    active_threshold: timedelta = ACTIVE_THRESHOLD

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> TtlPolicy:
        config = config or settings
        return cls(
            active_ttl=config.cache_active_ttl,
            inactive_ttl=config.cache_inactive_ttl,
            active_threshold=timedelta(hours=config.cache_active_threshold_hours),
        )

    def is_active(self, user: User, now: datetime | None = None) -> bool:
        if user.last_activity_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now - user.last_activity_at < self.active_threshold

    def ttl_for(self, user: User, now: datetime | None = None) -> int:
        """TTL in seconds for a page cached on behalf of `user`."""
        return self.active_ttl if self.is_active(user, now) else self.inactive_ttl
