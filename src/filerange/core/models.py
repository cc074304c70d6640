"""
Data models for range reading: file handles, byte ranges and work items.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Dict, List

from filerange.core.errors import MetadataError


class Compression(str, Enum):
    """Compression applied to a file's bytes."""

    AUTO = "auto"
    UNCOMPRESSED = "uncompressed"
    GZIP = "gzip"
    BZIP2 = "bzip2"
    LZMA = "lzma"

    @classmethod
    def detect(cls, path: str) -> "Compression":
        """Guess compression from the file suffix."""
        lowered = path.lower()
        for suffix, compression in _SUFFIXES.items():
            if lowered.endswith(suffix):
                return compression
        return cls.UNCOMPRESSED

    def resolve(self, path: str) -> "Compression":
        """Replace AUTO with the compression detected from ``path``."""
        if self is Compression.AUTO:
            return Compression.detect(path)
        return self

    @property
    def is_compressed(self) -> bool:
        return self not in (Compression.UNCOMPRESSED, Compression.AUTO)


_SUFFIXES: Dict[str, Compression] = {
    ".gz": Compression.GZIP,
    ".gzip": Compression.GZIP,
    ".bz2": Compression.BZIP2,
    ".xz": Compression.LZMA,
    ".lzma": Compression.LZMA,
}


@dataclass(frozen=True)
class ByteRange:
    """
    Half-open span ``[start, end)`` of a file's bytes.

    ``start == end`` only describes the whole-file range of an empty file.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"Range start must be >= 0, got {self.start}")
        if self.end < self.start:
            raise ValueError(f"Invalid range [{self.start}, {self.end})")

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def split(self, desired_size: int) -> List["ByteRange"]:
        """
        Partition the range into contiguous pieces of at most ``desired_size``.

        Only the last piece may be shorter. An empty range yields no pieces.

        Raises:
            ValueError: If desired_size is not positive
        """
        if desired_size <= 0:
            raise ValueError(f"desired_size must be > 0, got {desired_size}")

        pieces: List[ByteRange] = []
        offset = self.start
        while offset < self.end:
            stop = min(offset + desired_size, self.end)
            pieces.append(ByteRange(offset, stop))
            offset = stop
        return pieces

    def __repr__(self) -> str:
        return f"ByteRange[{self.start}, {self.end})"


@dataclass(frozen=True)
class FileHandle:
    """
    Immutable reference to a discovered file.

    Attributes:
        path: Local path or URL (e.g. "s3://bucket/key")
        size_bytes: File size in bytes
        supports_efficient_seek: Whether random-offset reads are cheap
        compression: Compression of the stored bytes
    """

    path: str
    size_bytes: int
    supports_efficient_seek: bool = True
    compression: Compression = Compression.UNCOMPRESSED

    def __post_init__(self) -> None:
        if self.size_bytes < 0:
            raise MetadataError(
                f"Negative size reported for {self.path}: {self.size_bytes}"
            )

    @property
    def whole_range(self) -> ByteRange:
        return ByteRange(0, self.size_bytes)


@dataclass(frozen=True)
class WorkItem:
    """One file plus one byte range: the unit of scheduled reading."""

    file: FileHandle
    range: ByteRange

    @classmethod
    def whole_file(cls, file: FileHandle) -> "WorkItem":
        return cls(file=file, range=file.whole_range)

    @property
    def is_whole_file(self) -> bool:
        return self.range == self.file.whole_range

    def __str__(self) -> str:
        return f"{self.file.path}@{self.range.start}-{self.range.end}"


class WorkItemState(str, Enum):
    """Processing state of a single work item."""

    PENDING = "pending"
    PERMIT_ACQUIRED = "permit_acquired"
    OPEN = "open"
    READING = "reading"
    COMPLETED = "completed"
    FAILED_HANDLED = "failed_handled"
    FAILED_FATAL = "failed_fatal"

    @property
    def is_terminal(self) -> bool:
        return self in (
            WorkItemState.COMPLETED,
            WorkItemState.FAILED_HANDLED,
            WorkItemState.FAILED_FATAL,
        )


@dataclass
class ReadStats:
    """Thread-safe counters for one read run."""

    started: int = 0
    completed: int = 0
    failed_handled: int = 0
    failed_fatal: int = 0
    records: int = 0
    error_breakdown: Dict[str, int] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def record_started(self) -> None:
        with self._lock:
            self.started += 1

    def record_records(self, count: int) -> None:
        with self._lock:
            self.records += count

    def record_outcome(self, state: WorkItemState, error_type: str = "") -> None:
        """Count a work item reaching a terminal state."""
        with self._lock:
            if state is WorkItemState.COMPLETED:
                self.completed += 1
            elif state is WorkItemState.FAILED_HANDLED:
                self.failed_handled += 1
            elif state is WorkItemState.FAILED_FATAL:
                self.failed_fatal += 1
            else:
                raise ValueError(f"Not a terminal state: {state}")
            if error_type:
                self.error_breakdown[error_type] = (
                    self.error_breakdown.get(error_type, 0) + 1
                )

    @property
    def finished(self) -> int:
        return self.completed + self.failed_handled + self.failed_fatal


__all__ = [
    "Compression",
    "ByteRange",
    "FileHandle",
    "WorkItem",
    "WorkItemState",
    "ReadStats",
]
