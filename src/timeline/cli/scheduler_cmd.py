"""CLI command for running the bulk refresh scheduler.

Usage:
    timeline scheduler
    timeline scheduler --interval 600 --no-leader-election
"""

from __future__ import annotations

import asyncio

import typer

from timeline.cli.common import setup_logging
from timeline.config import settings

app = typer.Typer(help="Schedule periodic bulk timeline refresh")


async def _run(interval: float, leader_election: bool) -> None:
    from timeline.cache.redis import close_redis
    from timeline.jobs.scheduler import RefreshScheduler

    scheduler = RefreshScheduler(interval=interval, use_leader_election=leader_election)
    try:
        await scheduler.run()
    finally:
        await close_redis()


@app.callback(invoke_without_command=True)
def scheduler(
    interval: float = typer.Option(
        float(settings.bulk_refresh_interval),
        "--interval",
        "-i",
        help="Seconds between bulk refresh jobs",
    ),
    leader_election: bool = typer.Option(
        True,
        "--leader-election/--no-leader-election",
        help="Only schedule while holding the scheduler lease",
    ),
) -> None:
    """Enqueue a bulk_refresh job every interval."""
    setup_logging()
    typer.echo(f"Scheduling bulk refresh every {interval:g}s")
    asyncio.run(_run(interval, leader_election))
