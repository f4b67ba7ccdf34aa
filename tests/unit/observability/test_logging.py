"""Tests for structured logging and metrics helpers."""

import json
import logging
from unittest.mock import patch

from timeline.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    job_id_var,
    user_id_var,
)
from timeline.observability.metrics import MetricsRegistry, NoOpMetric, serve_metrics


def _record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("timeline.refresh", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogContext:
    def test_binds_and_resets(self) -> None:
        with LogContext(user_id="u-1", job_id="job-9"):
            assert user_id_var.get() == "u-1"
            assert job_id_var.get() == "job-9"

        assert user_id_var.get() == ""
        assert job_id_var.get() == ""

    def test_nested_contexts_restore_outer(self) -> None:
        with LogContext(job_id="outer"):
            with LogContext(user_id="u-2", job_id="inner"):
                assert job_id_var.get() == "inner"
            assert job_id_var.get() == "outer"
            assert user_id_var.get() == ""

    def test_unknown_keys_ignored(self) -> None:
        with LogContext(tenant="t1"):
            assert user_id_var.get() == ""


class TestJsonFormatter:
    def test_includes_context_and_extra(self) -> None:
        with LogContext(user_id="u-42"):
            line = JsonFormatter().format(_record("Bulk refresh progress", processed=100))

        data = json.loads(line)
        assert data["message"] == "Bulk refresh progress"
        assert data["level"] == "INFO"
        assert data["user_id"] == "u-42"
        assert data["processed"] == 100
        assert "job_id" not in data

    def test_unserializable_extra_is_stringified(self) -> None:
        data = json.loads(JsonFormatter().format(_record("x", payload={1, 2})))

        assert isinstance(data["payload"], str)


class TestConsoleFormatter:
    def test_context_suffix(self) -> None:
        formatter = ConsoleFormatter(use_colors=False)

        with LogContext(user_id="u-1", job_id="0123456789"):
            line = formatter.format(_record("Refreshing"))

        assert "| INFO" in line
        assert line.endswith("| user=u-1 job=01234567")


class TestMetricsRegistry:
    def test_uninitialized_registry_is_noop(self) -> None:
        registry = MetricsRegistry()

        assert isinstance(registry.cache_hits_total, NoOpMetric)
        registry.cache_hits_total.labels(page="first").inc()
        registry.feed_build_duration_seconds.observe(0.1)

    def test_disabled_registry_does_not_serve(self) -> None:
        with patch("timeline.observability.metrics.start_http_server") as start_http_server:
            assert MetricsRegistry().serve(9100) is False

        start_http_server.assert_not_called()

    def test_serve_metrics_without_port(self) -> None:
        with patch("timeline.observability.metrics.start_http_server") as start_http_server:
            assert serve_metrics(None) is False

        start_http_server.assert_not_called()
