"""Cache key schema for timeline pages.

Key format: {prefix}:user:{user_id}:{variant}

Where:
- prefix: "timeline" (namespace shared with other Redis users)
- user_id: the timeline owner, with "%" and ":" percent-encoded so an id
  always fills exactly one segment
- variant: "page:first" for the first page, "page:{md5(cursor)}" for a
  cursor page, "index" for the set of page keys written for the user
"""

from __future__ import annotations

import hashlib
from urllib.parse import unquote

FIRST_PAGE = "first"

# Bracket classes read the same under Redis MATCH and fnmatch
_GLOB_ESCAPES = str.maketrans({"*": "[*]", "?": "[?]", "[": "[[]", "\\": "[\\\\]"})


def _segment(user_id: str) -> str:
    return user_id.replace("%", "%25").replace(":", "%3A")


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    PREFIX = "timeline"

    @classmethod
    def first_page(cls, user_id: str) -> str:
        """Key for the first page of a user's timeline."""
        return f"{cls.PREFIX}:user:{_segment(user_id)}:page:{FIRST_PAGE}"

    @classmethod
    def page(cls, user_id: str, cursor: str | None = None) -> str:
        """Key for the page that follows `cursor` (first page when None).

        Cursors are hashed so keys stay short; a hex digest can never equal
        the first-page marker.
        """
        if not cursor:
            return cls.first_page(user_id)
        digest = hashlib.md5(cursor.encode("utf-8"), usedforsecurity=False).hexdigest()
        return f"{cls.PREFIX}:user:{_segment(user_id)}:page:{digest}"

    @classmethod
    def index(cls, user_id: str) -> str:
        """Key for the set of page keys cached for a user."""
        return f"{cls.PREFIX}:user:{_segment(user_id)}:index"

    @classmethod
    def user_pattern(cls, user_id: str) -> str:
        """Pattern matching every cached key of exactly this user.

        Use with SCAN + DEL for invalidation.
        """
        escaped = _segment(user_id).translate(_GLOB_ESCAPES)
        return f"{cls.PREFIX}:user:{escaped}:*"

    @classmethod
    def all_pattern(cls) -> str:
        """Pattern matching every timeline key."""
        return f"{cls.PREFIX}:user:*"

    @classmethod
    def parse_key(cls, key: str) -> dict[str, str] | None:
        """Parse a cache key into its components.

        Returns None if the key doesn't match the expected format.
        """
        parts = key.split(":")
        if len(parts) < 4 or parts[0] != cls.PREFIX or parts[1] != "user":
            return None

        variant = ":".join(parts[3:])
        return {
            "prefix": parts[0],
            "user_id": unquote(parts[2]),
            "variant": variant,
        }
