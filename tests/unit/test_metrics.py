"""Tests for Prometheus metrics."""

from __future__ import annotations

import pytest
from prometheus_client import REGISTRY

from nats_tower_operator import metrics


class TestMetricsExist:
    """Test that all expected metrics are defined."""

    @pytest.mark.parametrize(
        "metric,name",
        [
            (metrics.reconcile_total, "nats_tower_operator_reconcile"),
            (metrics.reconcile_duration_seconds, "nats_tower_operator_reconcile_duration_seconds"),
            (metrics.error_total, "nats_tower_operator_error"),
            (metrics.workqueue_depth, "nats_tower_operator_workqueue_depth"),
            (metrics.workqueue_adds_total, "nats_tower_operator_workqueue_adds"),
            (metrics.workqueue_retries_total, "nats_tower_operator_workqueue_retries"),
            (metrics.workqueue_dropped_total, "nats_tower_operator_workqueue_dropped"),
            (metrics.watch_errors_total, "nats_tower_operator_watch_errors"),
            (metrics.watch_reconnects_total, "nats_tower_operator_watch_reconnects"),
            (metrics.cache_synced, "nats_tower_operator_cache_synced"),
            (metrics.api_call_total, "nats_tower_operator_api_call"),
            (metrics.api_call_duration_seconds, "nats_tower_operator_api_call_duration_seconds"),
            (metrics.secret_upserts_total, "nats_tower_operator_secret_upserts"),
            (metrics.events_emitted_total, "nats_tower_operator_events_emitted"),
        ],
    )
    def test_metric_name(self, metric, name):
        """Test metric names carry the operator prefix."""
        # Prometheus counters don't include "_total" in their _name attribute
        assert metric._name == name


class TestMetricLabels:
    """Test that metrics have correct labels."""

    def test_reconcile_total_labels(self):
        """Test reconcile_total is labelled by kind and result."""
        before = REGISTRY.get_sample_value(
            "nats_tower_operator_reconcile_total", {"kind": "v1/pods", "result": "success"}
        ) or 0.0

        metrics.reconcile_total.labels(kind="v1/pods", result="success").inc()

        after = REGISTRY.get_sample_value(
            "nats_tower_operator_reconcile_total", {"kind": "v1/pods", "result": "success"}
        )
        assert after == before + 1

    def test_api_call_total_labels(self):
        """Test api_call_total is labelled by api type, operation and result."""
        labels = {"api_type": "natstower", "operation": "get_operator", "result": "error"}
        before = REGISTRY.get_sample_value("nats_tower_operator_api_call_total", labels) or 0.0

        metrics.api_call_total.labels(**labels).inc()

        assert REGISTRY.get_sample_value("nats_tower_operator_api_call_total", labels) == before + 1

    def test_workqueue_depth_gauge(self):
        """Test the depth gauge can be set per kind."""
        metrics.workqueue_depth.labels(kind="v1/secrets").set(3)

        assert REGISTRY.get_sample_value("nats_tower_operator_workqueue_depth", {"kind": "v1/secrets"}) == 3
