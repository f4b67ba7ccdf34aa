"""Event schemas for content mutations.

The content service publishes one PostCreatedEvent per new post. The event
carries what the refresh path needs to find the post's audience; the post
body stays with the content store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import orjson

from timeline.core.model import Post, Visibility, ensure_utc


@dataclass(frozen=True, slots=True)
class PostCreatedEvent:
    """A post was created."""

    post_id: str
    author_id: str
    created_at: datetime
    visibility: Visibility = Visibility.PUBLIC
    circle_ids: tuple[str, ...] = ()
    group_ids: tuple[str, ...] = ()
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_post(cls, post: Post) -> PostCreatedEvent:
        return cls(
            post_id=post.id,
            author_id=post.author_id,
            created_at=post.created_at,
            visibility=post.visibility,
            circle_ids=tuple(sorted(post.circle_ids)),
            group_ids=tuple(sorted(post.group_ids)),
        )

    def to_post(self) -> Post:
        return Post(
            id=self.post_id,
            author_id=self.author_id,
            created_at=self.created_at,
            visibility=self.visibility,
            circle_ids=frozenset(self.circle_ids),
            group_ids=frozenset(self.group_ids),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "post_id": self.post_id,
            "author_id": self.author_id,
            "created_at": self.created_at.isoformat(),
            "visibility": self.visibility.value,
            "circle_ids": list(self.circle_ids),
            "group_ids": list(self.group_ids),
        }

    def to_bytes(self) -> bytes:
        """Serialize to JSON bytes."""
        return orjson.dumps(self.to_dict())

    @classmethod
    def from_bytes(cls, data: bytes | str) -> PostCreatedEvent:
        """Deserialize from JSON bytes.

        Raises:
            ValueError: If the payload is not a valid event
        """
        try:
            parsed = orjson.loads(data)
            extra: dict[str, Any] = {}
            if parsed.get("event_id"):
                extra["event_id"] = parsed["event_id"]
            if parsed.get("timestamp"):
                extra["timestamp"] = ensure_utc(datetime.fromisoformat(parsed["timestamp"]))
            return cls(
                post_id=parsed["post_id"],
                author_id=parsed["author_id"],
                created_at=ensure_utc(datetime.fromisoformat(parsed["created_at"])),
                visibility=Visibility(parsed.get("visibility", Visibility.PUBLIC.value)),
                circle_ids=tuple(parsed.get("circle_ids") or ()),
                group_ids=tuple(parsed.get("group_ids") or ()),
                **extra,
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Malformed post event: {e}") from e
