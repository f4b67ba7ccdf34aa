"""Tests for candidate source providers."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from timeline.core.cursor import CursorData
from timeline.core.model import User, Visibility
from timeline.sources.memory import InMemoryContentStore
from timeline.sources.providers import (
    CirclePostsProvider,
    ConnectionPostsProvider,
    GroupPostsProvider,
    PublicPostsProvider,
    default_providers,
)


@pytest.fixture
def populated(store: InMemoryContentStore, make_post) -> InMemoryContentStore:
    store.add(make_post("pub-1", author_id="bob", hours_ago=1))
    store.add(make_post("pub-2", author_id="dave", hours_ago=2))
    store.add(
        make_post(
            "circle-1",
            author_id="bob",
            hours_ago=3,
            visibility=Visibility.CIRCLES,
            circle_ids=frozenset({"c1"}),
        )
    )
    store.add(
        make_post(
            "circle-2",
            author_id="bob",
            hours_ago=4,
            visibility=Visibility.CIRCLES,
            circle_ids=frozenset({"c2"}),
        )
    )
    store.add(
        make_post(
            "group-1",
            author_id="erin",
            hours_ago=5,
            visibility=Visibility.GROUPS,
            group_ids=frozenset({"g1"}),
        )
    )
    return store


class TestPublicPostsProvider:
    @pytest.mark.asyncio
    async def test_returns_public_posts_newest_first(self, populated) -> None:
        posts = await PublicPostsProvider(populated).fetch(User(id="v"), limit=10)

        assert [p.id for p in posts] == ["pub-1", "pub-2"]

    @pytest.mark.asyncio
    async def test_respects_limit_and_cursor(self, populated, now) -> None:
        provider = PublicPostsProvider(populated)
        first = await provider.fetch(User(id="v"), limit=1)
        cursor = CursorData(id=first[0].id, created_at=first[0].created_at)

        rest = await provider.fetch(User(id="v"), limit=10, before=cursor)

        assert [p.id for p in first] == ["pub-1"]
        assert [p.id for p in rest] == ["pub-2"]


class TestMembershipProviders:
    @pytest.mark.asyncio
    async def test_no_memberships_returns_empty_without_querying(self) -> None:
        store = AsyncMock()
        viewer = User(id="v")

        assert await CirclePostsProvider(store).fetch(viewer, limit=10) == []
        assert await GroupPostsProvider(store).fetch(viewer, limit=10) == []
        store.recent_posts.assert_not_called()

    @pytest.mark.asyncio
    async def test_circle_posts_only_from_own_circles(self, populated) -> None:
        viewer = User(id="v", circle_ids=frozenset({"c1"}))

        posts = await CirclePostsProvider(populated).fetch(viewer, limit=10)

        assert [p.id for p in posts] == ["circle-1"]

    @pytest.mark.asyncio
    async def test_group_posts_only_from_own_groups(self, populated) -> None:
        viewer = User(id="v", group_ids=frozenset({"g1", "g9"}))

        posts = await GroupPostsProvider(populated).fetch(viewer, limit=10)

        assert [p.id for p in posts] == ["group-1"]


class TestConnectionPostsProvider:
    @pytest.mark.asyncio
    async def test_no_connections(self, populated) -> None:
        assert await ConnectionPostsProvider(populated).fetch(User(id="v"), limit=10) == []

    @pytest.mark.asyncio
    async def test_hides_scoped_posts_the_viewer_cannot_see(self, populated) -> None:
        viewer = User(id="v", connections=frozenset({"bob"}), circle_ids=frozenset({"c1"}))

        posts = await ConnectionPostsProvider(populated).fetch(viewer, limit=10)

        assert [p.id for p in posts] == ["pub-1", "circle-1"]


def test_default_providers_cover_every_origin(store) -> None:
    names = [p.name for p in default_providers(store)]

    assert names == ["public", "circles", "groups", "connections"]


@pytest.mark.asyncio
async def test_memory_store_orders_equal_timestamps_by_id(store, make_post, now) -> None:
    for post_id in ("a", "c", "b"):
        store.add(make_post(post_id, hours_ago=1))
    store.add(make_post("older", hours_ago=2))

    posts = await store.recent_posts(limit=10)

    assert [p.id for p in posts] == ["c", "b", "a", "older"]
    assert posts[-1].created_at == now - timedelta(hours=2)
