"""
Prometheus metrics for transit-monitor

Instruments CSV parsing, imports, the record store's persistence path and
the backend facade's fallbacks. All metrics live on a private registry so
tests and embedding applications do not collide with the default one.
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()


# =======================
# PARSER METRICS
# =======================

rows_parsed_total = Counter(
    name="transit_rows_parsed_total",
    documentation="Total number of CSV data rows seen by the parser",
    labelnames=["status"],  # status: valid, invalid
    registry=REGISTRY,
)

parse_duration_seconds = Histogram(
    name="transit_parse_duration_seconds",
    documentation="Time spent parsing one CSV text",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0],
    registry=REGISTRY,
)

# =======================
# IMPORT METRICS
# =======================

imports_total = Counter(
    name="transit_imports_total",
    documentation="Import attempts by mode and outcome",
    labelnames=["mode", "outcome"],  # outcome: completed, rejected, no_valid_rows
    registry=REGISTRY,
)

records_imported_total = Counter(
    name="transit_records_imported_total",
    documentation="Records handed to the record store by imports",
    labelnames=["mode"],
    registry=REGISTRY,
)

duplicate_records_total = Counter(
    name="transit_duplicate_records_total",
    documentation="Records dropped as duplicates of an id already seen",
    labelnames=["stage"],  # stage: batch, store
    registry=REGISTRY,
)

# =======================
# STORAGE METRICS
# =======================

snapshot_writes_total = Counter(
    name="transit_snapshot_writes_total",
    documentation="Snapshots written to key-value storage, by shape",
    labelnames=["kind"],  # kind: full, compact, stats-only, emergency
    registry=REGISTRY,
)

storage_failures_total = Counter(
    name="transit_storage_failures_total",
    documentation="Storage operations that failed outright",
    labelnames=["operation"],  # operation: write, load
    registry=REGISTRY,
)

store_records = Gauge(
    name="transit_store_records",
    documentation="Records currently held in memory by the record store",
    registry=REGISTRY,
)

# =======================
# BACKEND FACADE METRICS
# =======================

backend_fallbacks_total = Counter(
    name="transit_backend_fallbacks_total",
    documentation="Backend calls answered from a static fixture",
    labelnames=["endpoint"],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """Render the registry in Prometheus text format."""
    return generate_latest(REGISTRY)


class track_duration:
    """
    Context manager for timing a block into a histogram

    Usage:
        with track_duration(parse_duration_seconds):
            ...
    """

    def __init__(self, histogram: Histogram, **labels):
        self.histogram = histogram
        self.labels = labels
        self.timer = None

    def __enter__(self):
        target = self.histogram.labels(**self.labels) if self.labels else self.histogram
        self.timer = target.time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        return False


def record_parse(valid_rows: int, total_rows: int) -> None:
    """Record row counts from one parser run."""
    if valid_rows:
        rows_parsed_total.labels(status="valid").inc(valid_rows)
    invalid = total_rows - valid_rows
    if invalid > 0:
        rows_parsed_total.labels(status="invalid").inc(invalid)


def record_import(mode: str, outcome: str, imported: int = 0, duplicates: int = 0) -> None:
    """
    Record the outcome of one import attempt.

    Args:
        mode: "append" or "replace"
        outcome: "completed", "rejected" or "no_valid_rows"
        imported: Records handed to the store
        duplicates: In-batch duplicates dropped before reaching the store
    """
    imports_total.labels(mode=mode, outcome=outcome).inc()
    if imported:
        records_imported_total.labels(mode=mode).inc(imported)
    if duplicates:
        duplicate_records_total.labels(stage="batch").inc(duplicates)
