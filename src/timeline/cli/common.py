"""Shared wiring for CLI commands."""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

import typer

from timeline.cache.backend import InMemoryCacheBackend
from timeline.cache.redis import RedisCacheBackend
from timeline.config import settings
from timeline.observability.logging import configure_logging
from timeline.service import create_service

if TYPE_CHECKING:
    from timeline.cache.backend import CacheBackend
    from timeline.service import TimelineService
    from timeline.sources.base import ContentStore, SocialGraph

DEFAULT_SOURCES = "timeline.sources.memory:in_memory_sources"

BACKEND_OPTION: Any = typer.Option(
    DEFAULT_SOURCES,
    "--backend",
    "-b",
    help="Import path 'module:factory' returning (ContentStore, SocialGraph)",
)

CACHE_OPTION: Any = typer.Option(
    "redis",
    "--cache",
    "-c",
    help="Timeline cache store: redis, memory",
)

METRICS_PORT_OPTION: Any = typer.Option(
    None,
    "--metrics-port",
    help="Serve Prometheus metrics on this port",
)


def setup_logging() -> None:
    configure_logging(json_format=settings.log_json, level=settings.log_level)


def load_sources(path: str) -> tuple[ContentStore, SocialGraph]:
    """Resolve a 'module:factory' path and call the factory."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise typer.BadParameter(f"Expected 'module:factory', got {path!r}")

    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise typer.BadParameter(f"Cannot load backend {path!r}: {e}") from e

    store, graph = factory()
    return store, graph


async def open_cache(kind: str) -> CacheBackend:
    if kind == "memory":
        return InMemoryCacheBackend()
    if kind == "redis":
        return await RedisCacheBackend.connect()
    raise typer.BadParameter(f"Unknown cache store: {kind}")


async def build_service(backend: str, cache: str) -> TimelineService:
    store, graph = load_sources(backend)
    return create_service(store, graph, await open_cache(cache))
