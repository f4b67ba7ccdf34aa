"""CLI command for the post-created event subscriber.

Usage:
    timeline subscribe
    timeline subscribe --channel timeline:events:post_created
    timeline subscribe --metrics-port 9101
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
from timeline.events.subscriber import POST_CREATED_CHANNEL
from timeline.observability.metrics import serve_metrics

app = typer.Typer(help="Queue targeted refresh for post-created events")


async def _run(backend: str, cache: str, channel: str) -> None:
    from timeline.cache.redis import close_redis
    from timeline.events.subscriber import PostEventSubscriber

    service = await build_service(backend, cache)
    subscriber = PostEventSubscriber(service.require_orchestrator(), channel=channel)
    await subscriber.start()
    try:
        await subscriber.wait()
    finally:
        await subscriber.stop()
        await close_redis()


@app.callback(invoke_without_command=True)
def subscribe(
    backend: str = BACKEND_OPTION,
    cache: str = CACHE_OPTION,
    channel: str = typer.Option(
        POST_CREATED_CHANNEL,
        "--channel",
        help="Redis Pub/Sub channel to listen on",
    ),

    metrics_port: int | None = METRICS_PORT_OPTION,
) -> None:
    """Listen for new posts until interrupted."""
    setup_logging()
    serve_metrics(metrics_port)
    typer.echo(f"Listening on {channel}")
    asyncio.run(_run(backend, cache, channel))
