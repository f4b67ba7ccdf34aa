"""Key/value stores behind the timeline cache.

- CacheBackend: the narrow interface TimelineCache relies on
- InMemoryCacheBackend: single-process store with TTL expiry

The Redis implementation lives in timeline.cache.redis. Backends raise
CacheUnavailable when the store cannot be reached.
"""

from __future__ import annotations

import fnmatch
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable


class CacheBackend(ABC):
    """Abstract key/value store with TTLs and per-user key index sets."""

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Get a value, or None if missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: bytes, ttl: int) -> None:
        """Store a value that expires after `ttl` seconds."""

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys; returns how many existed."""

    @abstractmethod
    async def add_to_index(self, index_key: str, member: str, ttl: int) -> None:
        """Add a member to a set and (re)set the set's TTL."""

    @abstractmethod
    async def index_members(self, index_key: str) -> set[str]:
        """Members of a set (empty if missing)."""

    @abstractmethod
    def scan(self, pattern: str) -> AsyncIterator[str]:
        """Iterate keys matching a glob-style pattern."""

    @abstractmethod
    async def ping(self) -> bool:
        """Check connectivity."""


class InMemoryCacheBackend(CacheBackend):
    """Dict-backed store with lazy expiry.

    Suitable for single-instance deployments and tests. Expiry uses a
    monotonic clock, which tests may replace via `clock`.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._values: dict[str, tuple[bytes, float]] = {}
        self._sets: dict[str, tuple[set[str], float]] = {}

    def _alive(self, expires_at: float) -> bool:
        return self._clock() < expires_at

    def _purge(self, key: str) -> None:
        entry = self._values.get(key)
        if entry is not None and not self._alive(entry[1]):
            del self._values[key]
        members = self._sets.get(key)
        if members is not None and not self._alive(members[1]):
            del self._sets[key]

    async def get(self, key: str) -> bytes | None:
        self._purge(key)
        entry = self._values.get(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: bytes, ttl: int) -> None:
        self._values[key] = (value, self._clock() + ttl)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            self._purge(key)
            if self._values.pop(key, None) is not None:
                deleted += 1
            if self._sets.pop(key, None) is not None:
                deleted += 1
        return deleted

    async def add_to_index(self, index_key: str, member: str, ttl: int) -> None:
        self._purge(index_key)
        members, _ = self._sets.get(index_key, (set(), 0.0))
        members.add(member)
        self._sets[index_key] = (members, self._clock() + ttl)

    async def index_members(self, index_key: str) -> set[str]:
        self._purge(index_key)
        entry = self._sets.get(index_key)
        return set(entry[0]) if entry else set()

    async def scan(self, pattern: str) -> AsyncIterator[str]:
        for key in list(self._values) + list(self._sets):
            self._purge(key)
            if (key in self._values or key in self._sets) and fnmatch.fnmatchcase(key, pattern):
                yield key

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        for key in list(self._values) + list(self._sets):
            self._purge(key)
        return len(self._values) + len(self._sets)
