"""CLI command for running a refresh job worker.

Usage:
    timeline worker
    timeline worker --concurrency 8
    timeline worker --once
    timeline worker --metrics-port 9100
"""

from __future__ import annotations

import asyncio

import typer

from timeline.cli.common import (
    BACKEND_OPTION,
    CACHE_OPTION,
    METRICS_PORT_OPTION,
    build_service,
    setup_logging,
)
from timeline.config import settings
from timeline.observability.metrics import serve_metrics

app = typer.Typer(help="Run a timeline refresh worker")


async def _run(backend: str, cache: str, concurrency: int, once: bool) -> int:
    from timeline.cache.redis import close_redis
    from timeline.jobs.worker import JobWorker, WorkerConfig

    service = await build_service(backend, cache)
    orchestrator = service.require_orchestrator()
    worker = JobWorker(
        orchestrator.queue,
        WorkerConfig(
            name=f"worker-{settings.instance_id}",
            concurrency=concurrency,
            poll_interval=settings.worker_poll_interval,
        ),
    )
    orchestrator.register(worker)

    try:
        if once:
            return await worker.run_once()
        await worker.run()
        return 0
    finally:
        await close_redis()


@app.callback(invoke_without_command=True)
def worker(
    backend: str = BACKEND_OPTION,
    cache: str = CACHE_OPTION,
    concurrency: int = typer.Option(
        settings.worker_concurrency,
        "--concurrency",
        "-n",
        help="Maximum jobs processed at once",
    ),
    once: bool = typer.Option(
        False,
        "--once",
        help="Process one batch of jobs and exit",
    ),

    metrics_port: int | None = METRICS_PORT_OPTION,
) -> None:
    """Process refresh_for_post and bulk_refresh jobs until stopped."""
    setup_logging()
    serve_metrics(metrics_port)
    processed = asyncio.run(_run(backend, cache, concurrency, once))
    if once:
        typer.echo(f"Processed {processed} job(s)")
