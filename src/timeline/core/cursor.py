"""Opaque pagination cursors.

The cursor is URL-safe base64 (padding stripped) of a small JSON record
holding the last post's id and creation time. Callers must treat it as
opaque; only this module builds or reads one.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from datetime import datetime

from timeline.core.model import ensure_utc
from timeline.errors import InvalidCursor


@dataclass(frozen=True, slots=True)
class CursorData:
    """Decoded cursor: the keyset position of the last post served."""

    id: str
    created_at: datetime

    def precedes(self, created_at: datetime, post_id: str) -> bool:
        """True if a post at (created_at, post_id) sorts strictly after this cursor.

        Pages run newest first, so "after" means strictly older, with the
        post id breaking ties between equal timestamps.
        """
        return (ensure_utc(created_at), post_id) < (self.created_at, self.id)


def encode_cursor(id: str, created_at: datetime) -> str:
    """Encode a pagination cursor for the post (id, created_at).

    Naive timestamps are taken as UTC, so decoding returns an aware
    datetime: the round trip is exact only for aware inputs.
    """
    data = {
        "id": id,
        "created_at": ensure_utc(created_at).isoformat(),
    }
    json_bytes = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(json_bytes).decode("ascii").rstrip("=")


def decode_cursor(cursor: str) -> CursorData:
    """Decode a pagination cursor.

    Raises:
        InvalidCursor: if the token is not a cursor produced by encode_cursor
    """
    if not cursor:
        raise InvalidCursor(cursor, "empty cursor")

    try:
        padded = cursor + "=" * ((4 - len(cursor) % 4) % 4)
        json_bytes = base64.urlsafe_b64decode(padded.encode("ascii"))
        data = json.loads(json_bytes)
    except (UnicodeError, binascii.Error, ValueError) as e:
        raise InvalidCursor(cursor, "not a valid token") from e

    if not isinstance(data, dict):
        raise InvalidCursor(cursor, "unexpected payload")

    post_id = data.get("id")
    created_at = data.get("created_at")
    if not isinstance(post_id, str) or not isinstance(created_at, str):
        raise InvalidCursor(cursor, "missing id or created_at")

    try:
        timestamp = datetime.fromisoformat(created_at)
    except ValueError as e:
        raise InvalidCursor(cursor, "bad timestamp") from e

    return CursorData(id=post_id, created_at=ensure_utc(timestamp))
