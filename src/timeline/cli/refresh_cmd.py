"""CLI commands for cache refresh.

Usage:
    timeline refresh-all
    timeline refresh-all --inline
    timeline invalidate u-42
"""

from __future__ import annotations

import asyncio
from typing import Any

import typer

from timeline.cli.common import BACKEND_OPTION, CACHE_OPTION, build_service, setup_logging

refresh_app = typer.Typer(help="Refresh timelines of every recently active user")
invalidate_app = typer.Typer(help="Drop every cached timeline page of a user")


async def _refresh_all(backend: str, cache: str, inline: bool) -> Any:
    from timeline.cache.redis import close_redis

    service = await build_service(backend, cache)
    try:
        if inline:
            return await service.run_bulk_refresh()
        return await service.enqueue_bulk()
    finally:
        await close_redis()


async def _invalidate(backend: str, cache: str, user_id: str) -> int:
    from timeline.cache.redis import close_redis

    service = await build_service(backend, cache)
    try:
        return await service.invalidate_for_user(user_id)
    finally:
        await close_redis()


@refresh_app.callback(invoke_without_command=True)
def refresh_all(
    backend: str = BACKEND_OPTION,
    cache: str = CACHE_OPTION,
    inline: bool = typer.Option(
        False,
        "--inline",
        help="Run the refresh in this process instead of queueing a job",
    ),
) -> None:
    """Queue (or run) a bulk refresh."""
    from rich.console import Console
    from rich.table import Table

    setup_logging()
    console = Console()
    result = asyncio.run(_refresh_all(backend, cache, inline))

    if not inline:
        console.print(f"[green]Queued bulk refresh:[/green] {result}")
        return

    table = Table(title="Bulk refresh")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    for name, value in result.to_dict().items():
        table.add_row(name, str(value))
    console.print(table)

    if result.failed:
        raise typer.Exit(code=1)


@invalidate_app.callback(invoke_without_command=True)
def invalidate(
    user_id: str = typer.Argument(..., help="User whose cached pages to drop"),
    backend: str = BACKEND_OPTION,
    cache: str = CACHE_OPTION,
) -> None:
    """Invalidate a user's cached timeline."""
    setup_logging()
    deleted = asyncio.run(_invalidate(backend, cache, user_id))
    typer.echo(f"Deleted {deleted} cache key(s) for {user_id}")
