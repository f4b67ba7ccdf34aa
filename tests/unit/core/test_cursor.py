"""Tests for pagination cursor encoding."""

import base64
from datetime import datetime, timedelta, timezone

import pytest

from timeline.core.cursor import CursorData, decode_cursor, encode_cursor
from timeline.errors import InvalidCursor


class TestCursorEncoding:
    """Tests for encode_cursor/decode_cursor."""

    def test_roundtrip(self) -> None:
        """Decoding an encoded cursor yields the same id and timestamp."""
        created = datetime(2026, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)

        data = decode_cursor(encode_cursor("post-1", created))

        assert data == CursorData(id="post-1", created_at=created)

    def test_roundtrip_non_utc_offset(self) -> None:
        """Aware timestamps in other zones come back as the same instant in UTC."""
        tz = timezone(timedelta(hours=5, minutes=30))
        created = datetime(2026, 1, 2, 9, 0, tzinfo=tz)

        data = decode_cursor(encode_cursor("p", created))

        assert data.created_at == created
        assert data.created_at.tzinfo == timezone.utc

    def test_naive_timestamp_treated_as_utc(self) -> None:
        created = datetime(2026, 1, 2, 3, 4, 5)

        data = decode_cursor(encode_cursor("p", created))

        assert data.created_at == created.replace(tzinfo=timezone.utc)
        assert data.created_at.tzinfo is not None
        assert encode_cursor("p", created) == encode_cursor(
            "p", created.replace(tzinfo=timezone.utc)
        )

    def test_cursor_is_url_safe(self) -> None:
        """Cursors contain no padding or URL-unsafe characters."""
        cursor = encode_cursor("id/with+chars?", datetime.now(timezone.utc))

        assert "=" not in cursor
        assert "+" not in cursor
        assert "/" not in cursor

    def test_unicode_id(self) -> None:
        created = datetime(2026, 1, 1, tzinfo=timezone.utc)

        assert decode_cursor(encode_cursor("пост-1", created)).id == "пост-1"


class TestInvalidCursor:
    """Tests for rejected cursors."""

    @pytest.mark.parametrize(
        "cursor",
        [
            "",
            "not base64 at all!!",
            base64.urlsafe_b64encode(b"not json").decode(),
            base64.urlsafe_b64encode(b"[1, 2]").decode(),
            base64.urlsafe_b64encode(b'{"id": "p"}').decode(),
            base64.urlsafe_b64encode(b'{"id": 5, "created_at": "2026-01-01"}').decode(),
            base64.urlsafe_b64encode(b'{"id": "p", "created_at": "yesterday"}').decode(),
        ],
    )
    def test_invalid_cursor_raises(self, cursor: str) -> None:
        with pytest.raises(InvalidCursor):
            decode_cursor(cursor)

    def test_error_message(self) -> None:
        with pytest.raises(InvalidCursor) as exc_info:
            decode_cursor("%%%")

        assert str(exc_info.value).startswith("Invalid pagination token")
        assert exc_info.value.cursor == "%%%"


class TestCursorData:
    """Tests for keyset comparison."""

    def test_precedes_older_post(self) -> None:
        cursor = CursorData(id="b", created_at=datetime(2026, 1, 2, tzinfo=timezone.utc))

        assert cursor.precedes(datetime(2026, 1, 1, tzinfo=timezone.utc), "z")

    def test_does_not_precede_newer_post(self) -> None:
        cursor = CursorData(id="b", created_at=datetime(2026, 1, 2, tzinfo=timezone.utc))

        assert not cursor.precedes(datetime(2026, 1, 3, tzinfo=timezone.utc), "a")

    def test_equal_timestamp_breaks_tie_on_id(self) -> None:
        ts = datetime(2026, 1, 2, tzinfo=timezone.utc)
        cursor = CursorData(id="b", created_at=ts)

        assert cursor.precedes(ts, "a")
        assert not cursor.precedes(ts, "b")
        assert not cursor.precedes(ts, "c")
