"""
Shipper metrics, registered in the Prometheus global REGISTRY on import.
"""

from prometheus_client import Counter, Gauge, Histogram


SHIPPER_TICKS_TOTAL = Counter(
    "seq_shipper_ticks_total",
    "Total number of shipping ticks run",
    ["outcome"],  # completed | locked | failed
)

SHIPPER_BATCHES_TOTAL = Counter(
    "seq_shipper_batches_total",
    "Total number of batches posted to the ingestion endpoint",
    ["outcome"],  # accepted | rejected | transient
)

SHIPPER_EVENTS_SHIPPED_TOTAL = Counter(
    "seq_shipper_events_shipped_total",
    "Total number of events accepted by the ingestion endpoint",
)

SHIPPER_EVENTS_DROPPED_TOTAL = Counter(
    "seq_shipper_events_dropped_total",
    "Total number of buffered lines skipped instead of shipped",
    ["reason"],  # oversized_or_blank | rejected
)

SHIPPER_FILES_DELETED_TOTAL = Counter(
    "seq_shipper_files_deleted_total",
    "Total number of fully shipped buffer files deleted",
)

SHIPPER_DELIVERY_LATENCY_MS = Histogram(
    "seq_shipper_delivery_latency_ms",
    "Bulk POST latency in milliseconds",
    buckets=[5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000],
)

SHIPPER_MINIMUM_LEVEL = Gauge(
    "seq_shipper_minimum_level",
    "Minimum level accepted by the server (0=Verbose .. 5=Fatal)",
)


class MetricsRegistry:
    """Centralized access to shipper metrics."""

    ticks_total = SHIPPER_TICKS_TOTAL
    batches_total = SHIPPER_BATCHES_TOTAL
    events_shipped_total = SHIPPER_EVENTS_SHIPPED_TOTAL
    events_dropped_total = SHIPPER_EVENTS_DROPPED_TOTAL
    files_deleted_total = SHIPPER_FILES_DELETED_TOTAL
    delivery_latency_ms = SHIPPER_DELIVERY_LATENCY_MS
    minimum_level = SHIPPER_MINIMUM_LEVEL


# Singleton instance
metrics_registry = MetricsRegistry()
