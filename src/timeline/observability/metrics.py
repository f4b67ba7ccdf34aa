"""Prometheus metrics for the timeline engine.

Provides metrics for:
- Timeline cache hits and misses
- Source provider failures
- Feed build latency
- Refresh job outcomes and bulk refresh progress

Usage:
    from timeline.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.cache_hits_total.labels(page="first").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, Counter, Histogram, start_http_server

from timeline.config import settings

logger = logging.getLogger(__name__)


class NoOpMetric:
    """No-op metric for when metrics are disabled."""

    def labels(self, **kwargs: Any) -> "NoOpMetric":
        return self

    def inc(self, amount: float = 1) -> None:
        pass

    def observe(self, value: float) -> None:
        pass


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    cache_hits_total: Any = field(default_factory=NoOpMetric)
    cache_misses_total: Any = field(default_factory=NoOpMetric)
    cache_errors_total: Any = field(default_factory=NoOpMetric)
    provider_failures_total: Any = field(default_factory=NoOpMetric)
    feed_build_duration_seconds: Any = field(default_factory=NoOpMetric)
    refresh_jobs_total: Any = field(default_factory=NoOpMetric)
    bulk_users_processed_total: Any = field(default_factory=NoOpMetric)

    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = REGISTRY

        self.cache_hits_total = Counter(
            "timeline_cache_hits_total",
            "Timeline cache hits",
            ["page"],
        )
        self.cache_misses_total = Counter(
            "timeline_cache_misses_total",
            "Timeline cache misses",
            ["page"],
        )
        self.cache_errors_total = Counter(
            "timeline_cache_errors_total",
            "Timeline cache operations that failed and were bypassed",
            ["operation"],
        )
        self.provider_failures_total = Counter(
            "timeline_provider_failures_total",
            "Source provider fetches that failed",
            ["provider"],
        )
        self.feed_build_duration_seconds = Histogram(
            "timeline_feed_build_duration_seconds",
            "Time to aggregate, score and paginate a timeline page",
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
        )
        self.refresh_jobs_total = Counter(
            "timeline_refresh_jobs_total",
            "Refresh jobs by task and outcome",
            ["task", "outcome"],
        )
        self.bulk_users_processed_total = Counter(
            "timeline_bulk_users_processed_total",
            "Users visited by bulk refresh",
            ["outcome"],
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def serve(self, port: int, addr: str = "0.0.0.0") -> bool:
        """Expose the registry over HTTP for Prometheus to scrape.

        Returns False without binding a port when metrics are disabled.
        """
        if self._registry is None:
            logger.info("Metrics are disabled, not serving")
            return False
        start_http_server(port, addr=addr, registry=self._registry)
        logger.info(f"Serving metrics on {addr}:{port}")
        return True


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


def serve_metrics(port: int | None, addr: str = "0.0.0.0") -> bool:
    """Start the metrics endpoint when a port is given."""
    if port is None:
        return False
    return get_metrics().serve(port, addr)
