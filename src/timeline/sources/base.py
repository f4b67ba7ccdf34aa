"""Collaborator interfaces consumed by the timeline engine.

The content store and the social graph are owned by other services; the
engine only reads from them. Implementations may be backed by a database,
a remote API or, for tests and local runs, memory.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Iterable
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from timeline.core.cursor import CursorData
    from timeline.core.model import Post, User, Visibility


class ContentStore(ABC):
    """Read-only access to posts."""

    @abstractmethod
    async def recent_posts(
        self,
        *,
        limit: int,
        visibility: Iterable[Visibility] | None = None,
        circle_ids: Iterable[str] | None = None,
        group_ids: Iterable[str] | None = None,
        author_ids: Iterable[str] | None = None,
        before: CursorData | None = None,
    ) -> list[Post]:
        """Return up to `limit` posts matching every given predicate.

        Args:
            limit: Maximum number of posts
            visibility: Allowed visibility modes (None for any)
            circle_ids: Post must share at least one of these circles
            group_ids: Post must share at least one of these groups
            author_ids: Post must be written by one of these users
            before: Only posts strictly older than this keyset position

        Returns:
            Posts ordered by (created_at, id) descending
        """


class SocialGraph(ABC):
    """Read-only access to users and their memberships."""

    @abstractmethod
    async def get_user(self, user_id: str) -> User | None:
        """Load a user with connections and memberships resolved."""

    @abstractmethod
    async def connections(self, user_id: str) -> set[str]:
        """Ids of users with an accepted connection to `user_id`."""

    @abstractmethod
    async def circle_memberships(self, user_id: str) -> set[str]:
        """Circles the user belongs to."""

    @abstractmethod
    async def group_memberships(self, user_id: str) -> set[str]:
        """Groups the user belongs to."""

    @abstractmethod
    async def circle_members(self, circle_ids: Iterable[str]) -> set[str]:
        """Active members of any of the given circles."""

    @abstractmethod
    async def group_members(self, group_ids: Iterable[str]) -> set[str]:
        """Active members of any of the given groups."""

    @abstractmethod
    def active_users(self, since: datetime) -> AsyncIterator[User]:
        """Iterate users whose last activity is at or after `since`."""
