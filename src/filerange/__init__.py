"""filerange - bounded, fault-tolerant reading of large file collections."""

__version__ = "0.1.0"

from .config import ReadAllConfig  # noqa: E402
from .core import (  # noqa: E402
    ByteRange,
    Compression,
    ConcurrencyLimiter,
    FileHandle,
    RangeReader,
    WorkItem,
    always_rethrow,
    never_rethrow,
    skip_on,
    split_into_ranges,
)
from .io import JsonLinesSource, RecordSource, TextLineSource, match_files  # noqa: E402
from .pipeline import ReadAllFromFiles, read_all  # noqa: E402

__all__ = [
    "ReadAllConfig",
    "ReadAllFromFiles",
    "read_all",
    "ByteRange",
    "Compression",
    "ConcurrencyLimiter",
    "FileHandle",
    "RangeReader",
    "WorkItem",
    "always_rethrow",
    "never_rethrow",
    "skip_on",
    "split_into_ranges",
    "RecordSource",
    "TextLineSource",
    "JsonLinesSource",
    "match_files",
]
