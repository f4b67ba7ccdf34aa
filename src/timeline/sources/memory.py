"""In-memory content store and social graph.

Suitable for tests, local runs and single-process demos. They define the
reference semantics of the collaborator queries; production deployments
plug in database- or API-backed implementations of the same interfaces.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import AsyncIterator, Iterable
from datetime import datetime
from typing import TYPE_CHECKING

from timeline.core.model import Connection, ConnectionStatus, Post, User, ensure_utc
from timeline.sources.base import ContentStore, SocialGraph

if TYPE_CHECKING:
    from timeline.core.cursor import CursorData
    from timeline.core.model import Visibility


class InMemoryContentStore(ContentStore):
    """Posts held in a dict keyed by post id."""

    def __init__(self, posts: Iterable[Post] = ()) -> None:
        self._posts: dict[str, Post] = {}
        for post in posts:
            self.add(post)

    def add(self, post: Post) -> None:
        self._posts[post.id] = post

    def remove(self, post_id: str) -> None:
        self._posts.pop(post_id, None)

    def __len__(self) -> int:
        return len(self._posts)

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
        allowed = set(visibility) if visibility is not None else None
        circles = set(circle_ids) if circle_ids is not None else None
        groups = set(group_ids) if group_ids is not None else None
        authors = set(author_ids) if author_ids is not None else None

        matches = [
            post
            for post in self._posts.values()
            if (allowed is None or post.visibility in allowed)
            and (circles is None or post.circle_ids & circles)
            and (groups is None or post.group_ids & groups)
            and (authors is None or post.author_id in authors)
            and (before is None or before.precedes(post.created_at, post.id))
        ]
        matches.sort(key=lambda p: p.keyset, reverse=True)
        return matches[: max(0, limit)]


class InMemorySocialGraph(SocialGraph):
    """Users, connection edges and memberships held in memory.

    Connections are bidirectional once accepted: an accepted edge a->b makes
    a and b connections of each other.
    """

    def __init__(self) -> None:
        self._activity: dict[str, datetime | None] = {}
        self._edges: list[Connection] = []
        self._circles: dict[str, set[str]] = defaultdict(set)
        self._groups: dict[str, set[str]] = defaultdict(set)

    def add_user(
        self,
        user_id: str,
        last_activity_at: datetime | None = None,
        circle_ids: Iterable[str] = (),
        group_ids: Iterable[str] = (),
    ) -> None:
        self._activity[user_id] = ensure_utc(last_activity_at) if last_activity_at else None
        for circle_id in circle_ids:
            self._circles[circle_id].add(user_id)
        for group_id in group_ids:
            self._groups[group_id].add(user_id)

    def touch(self, user_id: str, at: datetime) -> None:
        """Record user activity."""
        self._activity[user_id] = ensure_utc(at)

    def connect(
        self,
        user_id: str,
        other_id: str,
        status: ConnectionStatus = ConnectionStatus.ACCEPTED,
    ) -> None:
        self._edges.append(Connection(user_id, other_id, status))

    async def get_user(self, user_id: str) -> User | None:
        if user_id not in self._activity:
            return None
        return User(
            id=user_id,
            last_activity_at=self._activity[user_id],
            connections=frozenset(await self.connections(user_id)),
            circle_ids=frozenset(await self.circle_memberships(user_id)),
            group_ids=frozenset(await self.group_memberships(user_id)),
        )

    async def connections(self, user_id: str) -> set[str]:
        result: set[str] = set()
        for edge in self._edges:
            if not edge.is_accepted:
                continue
            if edge.user_id == user_id:
                result.add(edge.connected_user_id)
            elif edge.connected_user_id == user_id:
                result.add(edge.user_id)
        return result

    async def circle_memberships(self, user_id: str) -> set[str]:
        return {cid for cid, members in self._circles.items() if user_id in members}

    async def group_memberships(self, user_id: str) -> set[str]:
        return {gid for gid, members in self._groups.items() if user_id in members}

    async def circle_members(self, circle_ids: Iterable[str]) -> set[str]:
        members: set[str] = set()
        for circle_id in circle_ids:
            members |= self._circles.get(circle_id, set())
        return members

    async def group_members(self, group_ids: Iterable[str]) -> set[str]:
        members: set[str] = set()
        for group_id in group_ids:
            members |= self._groups.get(group_id, set())
        return members

    async def active_users(self, since: datetime) -> AsyncIterator[User]:
        since = ensure_utc(since)
        for user_id in sorted(self._activity):
            last_activity = self._activity[user_id]
            if last_activity is None or last_activity < since:
                continue
            user = await self.get_user(user_id)
            if user is not None:
                yield user


def in_memory_sources() -> tuple[InMemoryContentStore, InMemorySocialGraph]:
    """Empty store and graph; the default collaborator pair for the CLI."""
    return InMemoryContentStore(), InMemorySocialGraph()
