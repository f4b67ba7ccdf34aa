"""Background worker for processing queued refresh jobs.

Provides a worker that:
- Claims and processes jobs from the queue with bounded concurrency
- Enforces each job's per-attempt timeout
- Re-queues failed attempts until the job's retries are exhausted
- Reports terminally failed jobs to registered failure hooks
- Supports graceful shutdown

Example:
    worker = JobWorker()
    worker.register_handler("refresh_for_post", handle_refresh)
    worker.add_failure_hook(alert_operator)

    # Run worker (blocks until shutdown)
    await worker.run()
"""

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Awaitable, Callable

from timeline.errors import JobRetriesExhausted, JobTimeout
from timeline.jobs.queue import Job, JobQueue, JobStatus
from timeline.observability.logging import LogContext

logger = logging.getLogger(__name__)

# Type alias for job handlers
JobHandler = Callable[[Job], Awaitable[dict[str, Any] | None]]

# Called once per job that ends in the failed state
FailureHook = Callable[[Job, JobRetriesExhausted], Awaitable[None]]


@dataclass
class WorkerConfig:
    """Worker configuration."""

    # Worker identification
    name: str = "default"

    # Job processing
    concurrency: int = 4
    batch_size: int = 1
    poll_interval: float = 1.0
    claim_timeout: int = 5


class JobWorker:
    """Background worker for processing queued jobs.

    Features:
    - Handler registration for task types
    - Per-attempt wall-clock timeout taken from the job
    - Retries through the queue, terminal failure hooks
    - Graceful shutdown with signal handling
    """

    def __init__(
        self,
        queue: JobQueue | None = None,
        config: WorkerConfig | None = None,
    ) -> None:
        self.queue = queue or JobQueue()
        self.config = config or WorkerConfig()
        self._handlers: dict[str, JobHandler] = {}
        self._failure_hooks: list[FailureHook] = []
        self._running = False
        self._shutdown_event = asyncio.Event()
        self._slots = asyncio.Semaphore(max(1, self.config.concurrency))
        self._tasks: set[asyncio.Task[None]] = set()

    def register_handler(self, task: str, handler: JobHandler) -> None:
        """Register a handler for a task type.

        Args:
            task: Task name (e.g., "refresh_for_post")
            handler: Async function that processes the job
        """
        self._handlers[task] = handler
        logger.info(f"Registered handler for task: {task}")

    def add_failure_hook(self, hook: FailureHook) -> None:
        """Register a hook for jobs that exhausted their attempts."""
        self._failure_hooks.append(hook)

    async def start(self) -> None:
        """Start the worker.

        Initializes the queue and sets up signal handlers.
        """
        await self.queue.initialize()
        self._running = True
        self._shutdown_event.clear()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._signal_handler)

        logger.info(f"Worker started: {self.config.name}")

    async def stop(self) -> None:
        """Stop the worker gracefully.

        Waits for in-flight jobs to finish.
        """
        logger.info(f"Stopping worker: {self.config.name}")
        self._running = False
        self._shutdown_event.set()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        logger.info(f"Worker stopped: {self.config.name}")

    def _signal_handler(self) -> None:
        logger.info("Received shutdown signal")
        self._running = False
        self._shutdown_event.set()

    async def run(self) -> None:
        """Run the worker until shutdown.

        Main loop that claims jobs and processes them in background tasks.
        """
        await self.start()

        try:
            while self._running:
                try:
                    claimed = await self._claim_batch()
                except asyncio.CancelledError:
                    break
                except Exception as e:
                    logger.error(f"Error claiming jobs: {e}")
                    await asyncio.sleep(self.config.poll_interval)
                    continue

                # Brief pause when the queue is empty
                if not claimed:
                    await asyncio.sleep(self.config.poll_interval)

        finally:
            await self.stop()

    async def _claim_batch(self) -> int:
        """Claim up to batch_size jobs, each started in its own slot.

        A slot is taken before every claim, so a batch never runs more
        jobs at once than `concurrency` allows.
        """
        claimed = 0
        held = False
        try:
            await self._slots.acquire()
            held = True
            async for job in self.queue.claim_jobs(
                batch_size=self.config.batch_size,
                timeout=self.config.claim_timeout,
            ):
                task = asyncio.create_task(self._run_in_slot(job))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
                held = False
                claimed += 1

                await self._slots.acquire()
                held = True
        finally:
            if held:
                self._slots.release()
        return claimed

    async def _run_in_slot(self, job: Job) -> None:
        try:
            await self._process_job(job)
        finally:
            self._slots.release()

    async def _process_job(self, job: Job) -> None:
        """Process a single claimed job attempt."""
        handler = self._handlers.get(job.task)

        with LogContext(job_id=job.id):
            if handler is None:
                logger.error(f"No handler for task: {job.task}")
                failed = await self.queue.fail_job(
                    job.id,
                    f"Unknown task type: {job.task}",
                    retry=False,
                )
                await self._report_failure(failed)
                return

            try:
                logger.info(
                    f"Processing job: {job.id} ({job.task}), "
                    f"attempt {job.attempts}/{job.max_retries}"
                )
                try:
                    result = await asyncio.wait_for(handler(job), timeout=job.timeout)
                except asyncio.TimeoutError as e:
                    raise JobTimeout(job.id, job.timeout) from e

                await self.queue.complete_job(job.id, result)
                logger.info(f"Job completed successfully: {job.id}")

            except Exception as e:
                logger.error(f"Job failed: {job.id} - {e}")
                failed = await self.queue.fail_job(job.id, str(e), retry=True)
                await self._report_failure(failed)

    async def _report_failure(self, job: Job | None) -> None:
        """Run failure hooks if the job has reached the failed state."""
        if job is None or job.status != JobStatus.FAILED:
            return

        error = JobRetriesExhausted(job.id, job.attempts, job.error)
        for hook in self._failure_hooks:
            try:
                await hook(job, error)
            except Exception:
                logger.exception(f"Failure hook raised for job {job.id}")

    async def run_once(self) -> int:
        """Process one batch of jobs and return.

        Useful for testing or cron-like execution.

        Returns:
            Number of jobs processed
        """
        await self.queue.initialize()
        count = 0

        async for job in self.queue.claim_jobs(
            batch_size=self.config.batch_size,
            timeout=1,
        ):
            await self._process_job(job)
            count += 1

        return count

    async def __aenter__(self) -> "JobWorker":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()
