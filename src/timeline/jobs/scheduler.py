"""Interval scheduler for the periodic bulk refresh.

Submits a `bulk_refresh` job every `interval` seconds. With leader election
enabled, any number of scheduler processes may run but only the leader
submits.

Example:
    scheduler = RefreshScheduler(interval=3600)
    await scheduler.run()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from timeline.config import settings
from timeline.distributed.leader import LeaderElection
from timeline.jobs.queue import JobQueue
from timeline.jobs.tasks import BULK_REFRESH

logger = logging.getLogger(__name__)

LEADER_ROLE = "refresh-scheduler"


class RefreshScheduler:
    """Periodically enqueue bulk refresh jobs."""

    def __init__(
        self,
        queue: JobQueue | None = None,
        interval: float | None = None,
        check_interval: float = 5.0,
        use_leader_election: bool = True,
        leader: LeaderElection | None = None,
    ) -> None:
        self.queue = queue or JobQueue()
        self.interval = interval if interval is not None else settings.bulk_refresh_interval
        self.check_interval = min(check_interval, self.interval)
        self.use_leader_election = use_leader_election
        self._leader = leader
        self._running = False
        self.last_run: datetime | None = None
        self.next_run: datetime | None = None

    async def start(self) -> None:
        """Start the scheduler."""
        await self.queue.initialize()
        self._running = True
        self.next_run = datetime.now(timezone.utc)

        if self.use_leader_election:
            if self._leader is None:
                self._leader = LeaderElection(LEADER_ROLE, instance_id=settings.instance_id)
            await self._leader.start()
            logger.info("Refresh scheduler started with leader election")
        else:
            logger.info("Refresh scheduler started (no leader election)")

    async def stop(self) -> None:
        """Stop the scheduler."""
        self._running = False
        if self._leader and self.use_leader_election:
            await self._leader.stop()
        logger.info("Refresh scheduler stopped")

    @property
    def is_leader(self) -> bool:
        return not self.use_leader_election or (
            self._leader is not None and self._leader.is_leader
        )

    async def run(self) -> None:
        """Run the scheduler until stopped."""
        await self.start()

        try:
            while self._running:
                if self.is_leader:
                    await self.check(datetime.now(timezone.utc))
                await asyncio.sleep(self.check_interval)
        finally:
            await self.stop()

    async def check(self, now: datetime) -> str | None:
        """Submit a bulk refresh if one is due; returns the job id if submitted."""
        if self.next_run is not None and now < self.next_run:
            return None

        try:
            job_id = await self.queue.submit(BULK_REFRESH, {"_scheduled": True})
        except Exception as e:
            logger.error(f"Failed to submit scheduled bulk refresh: {e}")
            return None

        self.last_run = now
        self.next_run = now + timedelta(seconds=self.interval)
        logger.info(f"Scheduled bulk refresh submitted: {job_id}, next run: {self.next_run}")
        return job_id

    async def run_now(self) -> str:
        """Manually trigger a bulk refresh immediately."""
        job_id = await self.queue.submit(BULK_REFRESH, {"_manual_trigger": True})
        logger.info(f"Manually triggered bulk refresh: {job_id}")
        return job_id
