"""Tests for the in-memory social graph."""

from datetime import timedelta

import pytest

from timeline.core.model import ConnectionStatus
from timeline.sources.base import ContentStore
from timeline.sources.memory import InMemorySocialGraph, in_memory_sources


class TestInMemorySocialGraph:
    @pytest.mark.asyncio
    async def test_unknown_user(self, graph: InMemorySocialGraph) -> None:
        assert await graph.get_user("nobody") is None

    @pytest.mark.asyncio
    async def test_accepted_connections_are_bidirectional(
        self, graph: InMemorySocialGraph
    ) -> None:
        assert await graph.connections("alice") == {"bob"}
        assert await graph.connections("bob") == {"alice"}

    @pytest.mark.asyncio
    async def test_pending_connection_ignored(self, graph: InMemorySocialGraph) -> None:
        graph.connect("alice", "carol", status=ConnectionStatus.PENDING)

        assert await graph.connections("carol") == set()

    @pytest.mark.asyncio
    async def test_user_snapshot_resolves_memberships(self) -> None:
        graph = InMemorySocialGraph()
        graph.add_user("u", circle_ids=["c1"], group_ids=["g1", "g2"])

        user = await graph.get_user("u")

        assert user is not None
        assert user.circle_ids == frozenset({"c1"})
        assert user.group_ids == frozenset({"g1", "g2"})
        assert await graph.group_members(["g2"]) == {"u"}

    @pytest.mark.asyncio
    async def test_active_users_skips_stale_and_never_active(
        self, graph: InMemorySocialGraph, now
    ) -> None:
        users = [u.id async for u in graph.active_users(now - timedelta(hours=24))]

        assert users == ["alice"]

    @pytest.mark.asyncio
    async def test_touch_makes_user_active(self, graph: InMemorySocialGraph, now) -> None:
        graph.touch("carol", now)

        users = [u.id async for u in graph.active_users(now - timedelta(hours=24))]

        assert users == ["alice", "carol"]


def test_in_memory_sources_are_empty() -> None:
    store, graph = in_memory_sources()

    assert len(store) == 0
    assert isinstance(graph, InMemorySocialGraph)


@pytest.mark.asyncio
async def test_content_store_needs_only_recent_posts(make_post) -> None:
    """Posts carry their engagement count, so a store only answers queries."""

    class SinglePostStore(ContentStore):
        async def recent_posts(self, **kwargs):
            return [make_post("p1", engagement_count=12)]

    posts = await SinglePostStore().recent_posts(limit=1)

    assert posts[0].engagement_count == 12
