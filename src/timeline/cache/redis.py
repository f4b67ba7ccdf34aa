"""Redis cache backend for timeline pages.

Uses the redis-py async client with a module-level connection pool.
Connection and protocol errors surface as CacheUnavailable so callers can
fall back to computing the page live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable
from typing import TYPE_CHECKING, TypeVar, cast

import redis.asyncio as redis
from redis.exceptions import RedisError

from timeline.cache.backend import CacheBackend
from timeline.config import settings
from timeline.errors import CacheUnavailable

if TYPE_CHECKING:
    from redis.asyncio import Redis

T = TypeVar("T")

# Module-level connection pool
_redis_client: Redis | None = None


def _await_redis(result: Awaitable[T] | T) -> Awaitable[T]:
    """Cast redis-py async results to an awaitable for mypy."""
    return cast(Awaitable[T], result)


def _decode(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


async def get_redis() -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            encoding="utf-8",
            decode_responses=False,  # Pages are stored as bytes
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


class RedisCacheBackend(CacheBackend):
    """CacheBackend over a Redis client."""

    def __init__(self, client: Redis) -> None:
        self.client = client

    @classmethod
    async def connect(cls) -> RedisCacheBackend:
        """Backend over the shared module-level client."""
        return cls(await get_redis())

    async def get(self, key: str) -> bytes | None:
        try:
            return cast(bytes | None, await self.client.get(key))
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"GET {key} failed: {e}") from e

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        try:
            await self.client.setex(key, ttl, value)
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"SETEX {key} failed: {e}") from e

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return cast(int, await self.client.delete(*keys))
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"DEL of {len(keys)} keys failed: {e}") from e

    async def add_to_index(self, index_key: str, member: str, ttl: int) -> None:
        try:
            async with self.client.pipeline() as pipe:
                pipe.sadd(index_key, member)
                pipe.expire(index_key, ttl)
                await pipe.execute()
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"SADD {index_key} failed: {e}") from e

    async def index_members(self, index_key: str) -> set[str]:
        try:
            members = await _await_redis(self.client.smembers(index_key))
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"SMEMBERS {index_key} failed: {e}") from e
        return {_decode(member) for member in members}

    async def scan(self, pattern: str) -> AsyncIterator[str]:
        # SCAN instead of KEYS to avoid blocking on large keyspaces
        try:
            async for key in self.client.scan_iter(match=pattern):
                yield _decode(key)
        except (RedisError, OSError) as e:
            raise CacheUnavailable(f"SCAN {pattern} failed: {e}") from e

    async def ping(self) -> bool:
        try:
            await _await_redis(self.client.ping())
            return True
        except (RedisError, OSError):
            return False
