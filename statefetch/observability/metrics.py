# MIT License
# Copyright (c) 2025 Hashborn

"""
Prometheus Metrics

Counters for remote state retrieval.

Metrics:
- RPC requests and failures, per method
- Key pages, enumerated keys, fetched values (and empty values)
- Snapshot bytes written / read
- Build duration and size of the last build
"""

from prometheus_client import Counter, Gauge, Histogram, CollectorRegistry

# Create registry for metrics
metrics_registry = CollectorRegistry()

# ═══════════════════════════════════════════════════════════════════
# RPC METRICS
# ═══════════════════════════════════════════════════════════════════

rpc_requests_total = Counter(
    'statefetch_rpc_requests_total',
    'Total RPC requests issued',
    ['method'],
    registry=metrics_registry
)

rpc_failures_total = Counter(
    'statefetch_rpc_failures_total',
    'Total RPC requests that failed',
    ['method'],
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# RETRIEVAL METRICS
# ═══════════════════════════════════════════════════════════════════

pages_fetched_total = Counter(
    'statefetch_pages_fetched_total',
    'Total key pages received',
    registry=metrics_registry
)

keys_enumerated_total = Counter(
    'statefetch_keys_enumerated_total',
    'Total storage keys enumerated',
    registry=metrics_registry
)

values_fetched_total = Counter(
    'statefetch_values_fetched_total',
    'Total storage values fetched',
    registry=metrics_registry
)

empty_values_total = Counter(
    'statefetch_empty_values_total',
    'Enumerated keys whose value came back empty',
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# SNAPSHOT METRICS
# ═══════════════════════════════════════════════════════════════════

snapshot_bytes_written_total = Counter(
    'statefetch_snapshot_bytes_written_total',
    'Encoded snapshot bytes written to disk',
    registry=metrics_registry
)

snapshot_bytes_read_total = Counter(
    'statefetch_snapshot_bytes_read_total',
    'Encoded snapshot bytes read from disk',
    registry=metrics_registry
)

# ═══════════════════════════════════════════════════════════════════
# BUILD METRICS
# ═══════════════════════════════════════════════════════════════════

build_duration_seconds = Histogram(
    'statefetch_build_duration_seconds',
    'Wall time of a complete build',
    ['mode'],
    buckets=[0.1, 1, 5, 30, 60, 300, 1800, 3600],
    registry=metrics_registry
)

builds_failed_total = Counter(
    'statefetch_builds_failed_total',
    'Builds aborted with an error',
    ['mode'],
    registry=metrics_registry
)

last_build_pairs = Gauge(
    'statefetch_last_build_pairs',
    'Number of key/value pairs handed to the sink by the last build',
    registry=metrics_registry
)


# ═══════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════

def record_rpc(method: str, ok: bool):
    """
    Count one RPC request.

    Args:
        method: RPC method name
        ok: False if the request raised
    """
    rpc_requests_total.labels(method=method).inc()
    if not ok:
        rpc_failures_total.labels(method=method).inc()


def record_page(page_len: int):
    pages_fetched_total.inc()
    keys_enumerated_total.inc(page_len)


def record_value(value: bytes):
    values_fetched_total.inc()
    if not value:
        empty_values_total.inc()
