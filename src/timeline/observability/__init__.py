"""Observability for the timeline engine.

Provides structured logging with user/job context and Prometheus metrics.
"""

from timeline.observability.logging import (
    LogContext,
    configure_logging,
    job_id_var,
    user_id_var,
)
from timeline.observability.metrics import (
    MetricsRegistry,
    get_metrics,
    metrics_registry,
    serve_metrics,
)

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "user_id_var",
    "job_id_var",
    # Metrics
    "MetricsRegistry",
    "metrics_registry",
    "get_metrics",
    "serve_metrics",
]
