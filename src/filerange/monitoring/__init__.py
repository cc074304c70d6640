"""
Monitoring utilities for filerange.
"""

from filerange.monitoring.metrics import (
    CONTENT_TYPE_LATEST,
    PERMITS_IN_USE,
    RECORDS_READ,
    WORK_ITEMS_FINISHED,
    generate_latest,
)
from filerange.monitoring.server import start_metrics_server

__all__ = [
    "WORK_ITEMS_FINISHED",
    "RECORDS_READ",
    "PERMITS_IN_USE",
    "CONTENT_TYPE_LATEST",
    "generate_latest",
    "start_metrics_server",
]
