"""Cache layer for timeline pages.

Provides the cache-aside store behind GetTimeline:
- Pages keyed by user and cursor, with a per-user index of page keys
- TTL chosen from the user's recent activity
- Invalidation of every page of a user
- Redis and in-memory backends
"""

from timeline.cache.backend import CacheBackend, InMemoryCacheBackend
from timeline.cache.keys import CacheKeys
from timeline.cache.manager import TimelineCache
from timeline.cache.policy import TtlPolicy
from timeline.cache.redis import RedisCacheBackend, close_redis, get_redis

__all__ = [
    # Core cache
    "CacheKeys",
    "TimelineCache",
    "TtlPolicy",
    # Backends
    "CacheBackend",
    "InMemoryCacheBackend",
    "RedisCacheBackend",
    "get_redis",
    "close_redis",
]
