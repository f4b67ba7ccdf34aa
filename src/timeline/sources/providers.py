"""Source providers: candidate posts for a viewer from one origin each.

Every provider returns up to `limit` posts visible to the viewer, newest
first, strictly older than the `before` cursor when one is given. A provider
that needs a membership the viewer lacks returns an empty list without
touching the store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from timeline.core.model import Visibility

if TYPE_CHECKING:
    from timeline.core.cursor import CursorData
    from timeline.core.model import Post, User
    from timeline.sources.base import ContentStore


class SourceProvider(ABC):
    """One origin of timeline candidates."""

    name: str = "source"

    def __init__(self, store: ContentStore) -> None:
        self.store = store

    @abstractmethod
    async def fetch(
        self,
        user: User,
        limit: int,
        before: CursorData | None = None,
    ) -> list[Post]:
        """Return candidate posts for the viewer."""


class PublicPostsProvider(SourceProvider):
    """All public posts."""

    name = "public"

    async def fetch(
        self,
        user: User,
        limit: int,
        before: CursorData | None = None,
    ) -> list[Post]:
        return await self.store.recent_posts(
            limit=limit,
            visibility=[Visibility.PUBLIC],
            before=before,
        )


class CirclePostsProvider(SourceProvider):
    """Circle-scoped posts from the viewer's circles."""

    name = "circles"

    async def fetch(
        self,
        user: User,
        limit: int,
        before: CursorData | None = None,
    ) -> list[Post]:
        if not user.circle_ids:
            return []
        return await self.store.recent_posts(
            limit=limit,
            visibility=[Visibility.CIRCLES],
            circle_ids=user.circle_ids,
            before=before,
        )


class GroupPostsProvider(SourceProvider):
    """Group-scoped posts from the viewer's groups."""

    name = "groups"

    async def fetch(
        self,
        user: User,
        limit: int,
        before: CursorData | None = None,
    ) -> list[Post]:
        if not user.group_ids:
            return []
        return await self.store.recent_posts(
            limit=limit,
            visibility=[Visibility.GROUPS],
            group_ids=user.group_ids,
            before=before,
        )


class ConnectionPostsProvider(SourceProvider):
    """Posts written by the viewer's accepted connections.

    Keeps connection posts in the candidate set when public volume would
    otherwise push them past the fetch limit. Scoped posts are kept only
    when the viewer shares the circle or group.
    """

    name = "connections"

    async def fetch(
        self,
        user: User,
        limit: int,
        before: CursorData | None = None,
    ) -> list[Post]:
        if not user.connections:
            return []
        posts = await self.store.recent_posts(
            limit=limit,
            author_ids=user.connections,
            before=before,
        )
        return [post for post in posts if post.is_visible_to(user)]


def default_providers(store: ContentStore) -> list[SourceProvider]:
    """The standard provider set for a content store."""
    return [
        PublicPostsProvider(store),
        CirclePostsProvider(store),
        GroupPostsProvider(store),
        ConnectionPostsProvider(store),
    ]
