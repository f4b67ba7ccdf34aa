"""Tests for the in-memory cache backend."""

import pytest

from timeline.cache.backend import InMemoryCacheBackend


class Clock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestInMemoryCacheBackend:
    @pytest.fixture
    def clock(self) -> Clock:
        return Clock()

    @pytest.fixture
    def backend(self, clock: Clock) -> InMemoryCacheBackend:
        return InMemoryCacheBackend(clock=clock)

    @pytest.mark.asyncio
    async def test_set_get_expire(self, backend: InMemoryCacheBackend, clock: Clock) -> None:
        await backend.set("k", b"v", 10)
        assert await backend.get("k") == b"v"

        clock.now = 10
        assert await backend.get("k") is None

    @pytest.mark.asyncio
    async def test_delete_counts_existing_keys(self, backend: InMemoryCacheBackend) -> None:
        await backend.set("a", b"1", 10)
        await backend.add_to_index("idx", "a", 10)

        assert await backend.delete("a", "idx", "missing") == 2

    @pytest.mark.asyncio
    async def test_index_ttl_refreshed_on_add(
        self, backend: InMemoryCacheBackend, clock: Clock
    ) -> None:
        await backend.add_to_index("idx", "a", 10)
        clock.now = 8
        await backend.add_to_index("idx", "b", 10)
        clock.now = 15

        assert await backend.index_members("idx") == {"a", "b"}

    @pytest.mark.asyncio
    async def test_scan_matches_pattern_and_skips_expired(
        self, backend: InMemoryCacheBackend, clock: Clock
    ) -> None:
        await backend.set("timeline:user:u1:page:first", b"x", 100)
        await backend.set("timeline:user:u1:page:abc", b"x", 5)
        await backend.set("timeline:user:u2:page:first", b"x", 100)
        clock.now = 6

        keys = [k async for k in backend.scan("timeline:user:u1:*")]

        assert keys == ["timeline:user:u1:page:first"]

    @pytest.mark.asyncio
    async def test_ping(self, backend: InMemoryCacheBackend) -> None:
        assert await backend.ping() is True
