"""Prometheus metrics for range reading."""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Splitting
FILES_SPLIT = Counter(
    "filerange_files_split_total",
    "Files passed through the range splitter",
    ["splittable"],
)
RANGES_PRODUCED = Counter(
    "filerange_ranges_produced_total", "Work items produced by the splitter"
)

# Reading
WORK_ITEMS_FINISHED = Counter(
    "filerange_work_items_finished_total",
    "Work items reaching a terminal state",
    ["outcome"],
)
RECORDS_READ = Counter("filerange_records_read_total", "Records emitted by readers")
READ_FAILURES = Counter(
    "filerange_read_failures_total",
    "Record source failures routed through the exception policy",
    ["stage", "error_type"],
)

# Concurrency
PERMITS_IN_USE = Gauge(
    "filerange_permits_in_use",
    "Permits currently held",
    ["limiter"],
)
PERMIT_WAIT_SECONDS = Histogram(
    "filerange_permit_wait_seconds",
    "Time spent waiting for a concurrency permit",
)

__all__ = [
    "FILES_SPLIT",
    "RANGES_PRODUCED",
    "WORK_ITEMS_FINISHED",
    "RECORDS_READ",
    "READ_FAILURES",
    "PERMITS_IN_USE",
    "PERMIT_WAIT_SECONDS",
    "CONTENT_TYPE_LATEST",
    "generate_latest",
]
