"""filerange core: splitting, concurrency limiting and range reading."""

from .errors import (
    FileRangeError,
    MetadataError,
    OpenError,
    PermitTimeoutError,
    ReadError,
    SourceError,
)
from .limiter import ConcurrencyLimiter, Permit, shared_limiter
from .models import ByteRange, Compression, FileHandle, ReadStats, WorkItem, WorkItemState
from .policy import ExceptionPolicy, always_rethrow, never_rethrow, skip_on
from .reader import RangeReader
from .splitter import redistribute, split_into_ranges

__all__ = [
    "ByteRange",
    "Compression",
    "FileHandle",
    "WorkItem",
    "WorkItemState",
    "ReadStats",
    "ConcurrencyLimiter",
    "Permit",
    "shared_limiter",
    "RangeReader",
    "split_into_ranges",
    "redistribute",
    "ExceptionPolicy",
    "always_rethrow",
    "never_rethrow",
    "skip_on",
    "FileRangeError",
    "MetadataError",
    "PermitTimeoutError",
    "SourceError",
    "OpenError",
    "ReadError",
]
