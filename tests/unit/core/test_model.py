"""Tests for timeline domain types."""

from datetime import datetime, timedelta, timezone

import pytest

from timeline.core.model import (
    Connection,
    ConnectionStatus,
    Post,
    PostRef,
    TimelinePage,
    User,
    Visibility,
)

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestPost:
    """Tests for Post validation and visibility."""

    def test_defaults(self) -> None:
        post = Post(id="p1", author_id="a", created_at=T0)

        assert post.visibility == Visibility.PUBLIC
        assert post.circle_ids == frozenset()
        assert post.engagement_count == 0

    def test_naive_created_at_becomes_utc(self) -> None:
        post = Post(id="p1", author_id="a", created_at=datetime(2026, 1, 1, 12, 0))

        assert post.created_at == T0

    def test_circle_post_requires_circles(self) -> None:
        with pytest.raises(ValueError, match="circle"):
            Post(id="p1", author_id="a", created_at=T0, visibility=Visibility.CIRCLES)

    def test_group_post_requires_groups(self) -> None:
        with pytest.raises(ValueError, match="group"):
            Post(id="p1", author_id="a", created_at=T0, visibility=Visibility.GROUPS)

    def test_negative_engagement_rejected(self) -> None:
        with pytest.raises(ValueError):
            Post(id="p1", author_id="a", created_at=T0, engagement_count=-1)

    def test_ids_normalised_to_frozenset(self) -> None:
        post = Post(
            id="p1",
            author_id="a",
            created_at=T0,
            visibility=Visibility.CIRCLES,
            circle_ids={"c1", "c2"},  # type: ignore[arg-type]
        )

        assert post.circle_ids == frozenset({"c1", "c2"})

    def test_keyset(self) -> None:
        post = Post(id="p1", author_id="a", created_at=T0)

        assert post.keyset == (T0, "p1")

    def test_visibility(self) -> None:
        viewer = User(id="v", circle_ids=frozenset({"c1"}), group_ids=frozenset({"g1"}))
        public = Post(id="p1", author_id="a", created_at=T0)
        in_circle = Post(
            id="p2",
            author_id="a",
            created_at=T0,
            visibility=Visibility.CIRCLES,
            circle_ids=frozenset({"c1"}),
        )
        other_group = Post(
            id="p3",
            author_id="a",
            created_at=T0,
            visibility=Visibility.GROUPS,
            group_ids=frozenset({"g2"}),
        )

        assert public.is_visible_to(viewer)
        assert in_circle.is_visible_to(viewer)
        assert not other_group.is_visible_to(viewer)


class TestConnection:
    def test_only_accepted_counts(self) -> None:
        assert Connection("a", "b", ConnectionStatus.ACCEPTED).is_accepted
        assert not Connection("a", "b", ConnectionStatus.PENDING).is_accepted
        assert not Connection("a", "b", ConnectionStatus.BLOCKED).is_accepted


class TestTimelinePage:
    """Tests for cached page serialization."""

    def test_bytes_roundtrip(self) -> None:
        page = TimelinePage(
            posts=[
                PostRef(id="p2", author_id="a", created_at=T0, score=12.5),
                PostRef(id="p1", author_id="b", created_at=T0 - timedelta(hours=1), score=3.0),
            ],
            next_cursor="abc",
            has_more=True,
        )

        restored = TimelinePage.from_bytes(page.to_bytes())

        assert restored == page
        assert restored.post_ids == ["p2", "p1"]

    def test_empty_page(self) -> None:
        restored = TimelinePage.from_bytes(TimelinePage().to_bytes())

        assert restored.posts == []
        assert restored.next_cursor is None
        assert restored.has_more is False

    def test_corrupt_bytes_raise(self) -> None:
        with pytest.raises(ValueError):
            TimelinePage.from_bytes(b"{not json")
