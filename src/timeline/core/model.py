"""Domain types for timeline generation.

Post and User are read-only snapshots supplied by the content store and the
social graph. ScoredPost lives for a single feed build; PostRef and
TimelinePage are what gets cached.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import orjson


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and normalise aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Visibility(str, Enum):
    """Who may see a post."""

    PUBLIC = "public"
    CIRCLES = "circles"
    GROUPS = "groups"


class ConnectionStatus(str, Enum):
    """State of a social edge."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    BLOCKED = "blocked"


@dataclass(frozen=True, slots=True)
class Connection:
    """Directed edge between two users."""

    user_id: str
    connected_user_id: str
    status: ConnectionStatus = ConnectionStatus.PENDING

    @property
    def is_accepted(self) -> bool:
        return self.status == ConnectionStatus.ACCEPTED


@dataclass(frozen=True, slots=True)
class Post:
    """A post as seen by the timeline engine."""

    id: str
    author_id: str
    created_at: datetime
    visibility: Visibility = Visibility.PUBLIC
    circle_ids: frozenset[str] = frozenset()
    group_ids: frozenset[str] = frozenset()
    engagement_count: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "created_at", ensure_utc(self.created_at))
        object.__setattr__(self, "circle_ids", frozenset(self.circle_ids))
        object.__setattr__(self, "group_ids", frozenset(self.group_ids))

        if self.visibility == Visibility.CIRCLES and not self.circle_ids:
            raise ValueError(f"Circle-scoped post {self.id} has no circle ids")
        if self.visibility == Visibility.GROUPS and not self.group_ids:
            raise ValueError(f"Group-scoped post {self.id} has no group ids")
        if self.engagement_count < 0:
            raise ValueError(f"Post {self.id} has negative engagement count")

    @property
    def keyset(self) -> tuple[datetime, str]:
        """Total order used for pagination: creation time, then id."""
        return (self.created_at, self.id)

    def is_visible_to(self, user: User) -> bool:
        if self.visibility == Visibility.PUBLIC:
            return True
        if self.visibility == Visibility.CIRCLES:
            return bool(self.circle_ids & user.circle_ids)
        return bool(self.group_ids & user.group_ids)


@dataclass(frozen=True, slots=True)
class User:
    """A user and the parts of their social context that affect ranking."""

    id: str
    last_activity_at: datetime | None = None
    connections: frozenset[str] = frozenset()
    circle_ids: frozenset[str] = frozenset()
    group_ids: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if self.last_activity_at is not None:
            object.__setattr__(self, "last_activity_at", ensure_utc(self.last_activity_at))
        object.__setattr__(self, "connections", frozenset(self.connections))
        object.__setattr__(self, "circle_ids", frozenset(self.circle_ids))
        object.__setattr__(self, "group_ids", frozenset(self.group_ids))

    def is_connected_to(self, user_id: str) -> bool:
        return user_id in self.connections


@dataclass(frozen=True, slots=True)
class PostRef:
    """Reference to a post inside a cached timeline page."""

    id: str
    author_id: str
    created_at: datetime
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "author_id": self.author_id,
            "created_at": self.created_at.isoformat(),
            "score": self.score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PostRef:
        return cls(
            id=data["id"],
            author_id=data["author_id"],
            created_at=ensure_utc(datetime.fromisoformat(data["created_at"])),
            score=float(data["score"]),
        )


@dataclass(frozen=True, slots=True)
class ScoredPost:
    """A candidate post with its relevance score for one request."""

    post: Post
    score: float

    def ref(self) -> PostRef:
        return PostRef(
            id=self.post.id,
            author_id=self.post.author_id,
            created_at=self.post.created_at,
            score=self.score,
        )


@dataclass(slots=True)
class TimelinePage:
    """One page of a user's timeline; the payload of a cache entry."""

    posts: list[PostRef] = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False

    @property
    def post_ids(self) -> list[str]:
        return [ref.id for ref in self.posts]

    def to_dict(self) -> dict[str, Any]:
        return {
            "posts": [ref.to_dict() for ref in self.posts],
            "next_cursor": self.next_cursor,
            "has_more": self.has_more,
        }

    def to_bytes(self) -> bytes:
        return orjson.dumps(self.to_dict())

    @classmethod
    def from_bytes(cls, data: bytes | str) -> TimelinePage:
        parsed = orjson.loads(data)
        return cls(
            posts=[PostRef.from_dict(item) for item in parsed["posts"]],
            next_cursor=parsed.get("next_cursor"),
            has_more=bool(parsed.get("has_more", False)),
        )
