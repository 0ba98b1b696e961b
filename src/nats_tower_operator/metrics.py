"""Prometheus metrics for the NATS Tower Operator."""

from prometheus_client import Counter, Gauge, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "nats_tower_operator_reconcile_total",
    "Total number of handler invocations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "nats_tower_operator_reconcile_duration_seconds",
    "Duration of handler invocations in seconds",
    ["kind"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

error_total = Counter(
    "nats_tower_operator_error_total",
    "Total number of handler errors",
    ["kind", "error_type"],
)

# Work queue metrics
workqueue_depth = Gauge(
    "nats_tower_operator_workqueue_depth",
    "Current number of items waiting in the work queue",
    ["kind"],
)

workqueue_adds_total = Counter(
    "nats_tower_operator_workqueue_adds_total",
    "Total number of items added to the work queue",
    ["kind", "action"],
)

workqueue_retries_total = Counter(
    "nats_tower_operator_workqueue_retries_total",
    "Total number of rate limited requeues",
    ["kind"],
)

workqueue_dropped_total = Counter(
    "nats_tower_operator_workqueue_dropped_total",
    "Total number of items dropped after exhausting retries",
    ["kind"],
)

# Informer metrics
watch_errors_total = Counter(
    "nats_tower_operator_watch_errors_total",
    "Total number of list/watch errors",
    ["kind"],
)

watch_reconnects_total = Counter(
    "nats_tower_operator_watch_reconnects_total",
    "Total number of watch stream reconnects",
    ["kind"],
)

cache_synced = Gauge(
    "nats_tower_operator_cache_synced",
    "Whether the informer cache has completed its initial sync",
    ["kind"],
)

# API call metrics
api_call_total = Counter(
    "nats_tower_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "nats_tower_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

# Orchestration metrics
secret_upserts_total = Counter(
    "nats_tower_operator_secret_upserts_total",
    "Total number of credential secret upserts",
    ["operation", "result"],
)

events_emitted_total = Counter(
    "nats_tower_operator_events_emitted_total",
    "Total number of Kubernetes events emitted",
    ["type", "reason"],
)
