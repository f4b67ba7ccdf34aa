"""Leader election for the refresh scheduler.

Several scheduler processes may run for availability, but the periodic
bulk refresh must be enqueued by one of them only. Leadership is a lease:

1. The leader acquires a lock with a TTL (SET NX EX)
2. The leader renews the lock periodically
3. If the leader dies, the lock expires and another instance claims it

Example:
    election = LeaderElection("refresh-scheduler")
    await election.start()

    while running:
        if election.is_leader:
            await enqueue_bulk_refresh()
        await asyncio.sleep(1)

    await election.stop()
"""

from __future__ import annotations

import asyncio
import logging
import os
from types import TracebackType
from typing import TYPE_CHECKING, Awaitable, cast
from uuid import uuid4

from timeline.cache.redis import get_redis

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

LOCK_PREFIX = "timeline:leader:"
DEFAULT_LEASE_TTL = 30  # Seconds
RENEWAL_INTERVAL = 10  # Seconds, well inside the lease

# Delete the lock only if this instance still owns it
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


def _generate_instance_id() -> str:
    hostname = os.environ.get("HOSTNAME", os.environ.get("POD_NAME", "unknown"))
    return f"{hostname}-{uuid4().hex[:8]}"


def _as_str(value: bytes | str) -> str:
    return value.decode() if isinstance(value, bytes) else value


class LeaderElection:
    """Redis lease lock for a singleton role.

    Args:
        name: Name of the leadership role (e.g., "refresh-scheduler")
        instance_id: Unique identifier for this instance (auto-generated if None)
        lease_ttl: Lock TTL in seconds
        renewal_interval: How often to renew or retry, in seconds
    """

    def __init__(
        self,
        name: str,
        instance_id: str | None = None,
        lease_ttl: int = DEFAULT_LEASE_TTL,
        renewal_interval: float = RENEWAL_INTERVAL,
        redis: Redis | None = None,
    ):
        self.name = name
        self.instance_id = instance_id or _generate_instance_id()
        self.lease_ttl = lease_ttl
        self.renewal_interval = renewal_interval

        self._lock_key = f"{LOCK_PREFIX}{name}"
        self._is_leader = False
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._redis = redis

    @property
    def is_leader(self) -> bool:
        return self._is_leader

    @property
    def lock_key(self) -> str:
        return self._lock_key

    async def _get_redis(self) -> Redis:
        if self._redis is None:
            self._redis = await get_redis()
        return self._redis

    async def start(self) -> None:
        """Start competing for leadership in a background task."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._election_loop())
        logger.info(f"Started leader election for '{self.name}' as {self.instance_id}")

    async def stop(self) -> None:
        """Stop competing and hand the lock back if held."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._is_leader:
            await self._release_lock()

        logger.info(f"Stopped leader election for '{self.name}'")

    async def _election_loop(self) -> None:
        while self._running:
            try:
                await self.tick()
                await asyncio.sleep(self.renewal_interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in election loop for '{self.name}': {e}")
                self._is_leader = False
                await asyncio.sleep(self.renewal_interval)

    async def tick(self) -> bool:
        """Run one acquire-or-renew round and return leadership state."""
        if self._is_leader:
            if not await self._renew_lock():
                self._is_leader = False
                logger.warning(f"Lost leadership for '{self.name}'")
        elif await self._acquire_lock():
            self._is_leader = True
            logger.info(f"Elected as leader for '{self.name}'")
        return self._is_leader

    async def _acquire_lock(self) -> bool:
        redis = await self._get_redis()
        acquired = await redis.set(
            self._lock_key,
            self.instance_id,
            nx=True,
            ex=self.lease_ttl,
        )
        return bool(acquired)

    async def _renew_lock(self) -> bool:
        redis = await self._get_redis()

        current_owner = await redis.get(self._lock_key)
        if current_owner is None:
            return False

        owner = _as_str(current_owner)
        if owner != self.instance_id:
            logger.warning(f"Lock for '{self.name}' taken by {owner}")
            return False

        await redis.expire(self._lock_key, self.lease_ttl)
        logger.debug(f"Renewed leadership for '{self.name}'")
        return True

    async def _release_lock(self) -> bool:
        redis = await self._get_redis()
        result = await cast(
            Awaitable[int],
            redis.eval(_RELEASE_SCRIPT, 1, self._lock_key, self.instance_id),
        )
        self._is_leader = False
        if result:
            logger.info(f"Released leadership for '{self.name}'")
            return True
        return False

    async def get_current_leader(self) -> str | None:
        """Instance id of the current leader, if any."""
        redis = await self._get_redis()
        value = await redis.get(self._lock_key)
        if value is None:
            return None
        return _as_str(value)

    async def __aenter__(self) -> "LeaderElection":
        """Try to acquire leadership once."""
        self._is_leader = await self._acquire_lock()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._is_leader:
            await self._release_lock()
