"""
Record sources: decode a file (or a byte range of it) into records.
"""

from __future__ import annotations

import copy
import json
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any, BinaryIO, Generator, Generic, Iterator, Optional, Type, TypeVar

from filerange.core.models import ByteRange, Compression
from filerange.io.compression import open_decompressed
from filerange.io.filesystems import FileSystem, get_filesystem

T = TypeVar("T")


class RecordReader(Generic[T]):
    """
    An opened record source.

    Owns the raw stream, the decompressing wrapper and the record generator;
    ``close()`` releases all three and may be called any number of times.
    Records can be iterated only once.
    """

    def __init__(self, source: "RecordSource[T]", byte_range: Optional[ByteRange]) -> None:
        self.source = source
        self.byte_range = byte_range
        self.closed = False
        self._raw: Optional[BinaryIO] = None
        self._stream: Optional[BinaryIO] = None
        self._records: Optional[Generator[T, None, None]] = None

    def start(self) -> "RecordReader[T]":
        if self._records is not None:
            raise RuntimeError("RecordReader already started")
        try:
            self._raw = self.source.filesystem.open(self.source.path)
            self._stream = open_decompressed(self._raw, self.source.compression)
            self._records = self.source.read_records(self._stream, self.byte_range)
        except BaseException:
            self.close()
            raise
        return self

    def __iter__(self) -> Iterator[T]:
        if self._records is None:
            raise RuntimeError("RecordReader not started")
        return self._records

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            if self._records is not None:
                self._records.close()
            if self._stream is not None and self._stream is not self._raw:
                self._stream.close()
        finally:
            if self._raw is not None:
                self._raw.close()

    def __enter__(self) -> "RecordReader[T]":
        return self.start()

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()


class RecordSource(ABC, Generic[T]):
    """
    Decoder bound to one file path.

    Subclasses that can start reading at an arbitrary offset set
    ``supports_subrange = True`` and honour the ``byte_range`` passed to
    ``read_records``: a record belongs to the range holding its first byte.
    """

    supports_subrange: bool = False

    def __init__(
        self,
        path: str,
        compression: Compression = Compression.AUTO,
        filesystem: Optional[FileSystem] = None,
    ) -> None:
        self.path = path
        self.compression = compression.resolve(path)
        self._filesystem = filesystem

    @property
    def filesystem(self) -> FileSystem:
        return self._filesystem or get_filesystem(self.path)

    @property
    def splittable(self) -> bool:
        """Sub-range reads are possible (never for compressed data)."""
        return self.supports_subrange and not self.compression.is_compressed

    def with_compression(self, compression: Compression) -> "RecordSource[T]":
        """Return a copy reading through the given decompression."""
        clone = copy.copy(self)
        clone.compression = compression.resolve(self.path)
        return clone

    def open(self, byte_range: Optional[ByteRange] = None) -> RecordReader[T]:
        """
        Create a reader over the whole file or over ``byte_range``.

        Raises:
            ValueError: If a range is requested from an unsplittable source
        """
        if byte_range is not None and not self.splittable:
            raise ValueError(
                f"{type(self).__name__} cannot read sub-ranges of {self.path}"
            )
        return RecordReader(self, byte_range)

    @abstractmethod
    def read_records(
        self, stream: BinaryIO, byte_range: Optional[ByteRange]
    ) -> Generator[T, None, None]:
        """Yield records decoded from ``stream``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path!r}, compression={self.compression.value})"


def _strip_newline(line: bytes) -> bytes:
    if line.endswith(b"\n"):
        line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
    return line


class _LineDelimitedSource(RecordSource[T]):
    supports_subrange = True

    def __init__(
        self,
        path: str,
        compression: Compression = Compression.AUTO,
        filesystem: Optional[FileSystem] = None,
        encoding: str = "utf-8",
    ) -> None:
        super().__init__(path, compression=compression, filesystem=filesystem)
        self.encoding = encoding

    def _iter_lines(
        self, stream: BinaryIO, byte_range: Optional[ByteRange]
    ) -> Iterator[bytes]:
        if byte_range is None:
            for line in stream:
                yield _strip_newline(line)
            return

        offset = byte_range.start
        stream.seek(max(offset - 1, 0))
        if offset > 0:
            # A line starting before the range belongs to the previous range;
            # one starting exactly at `start` is preceded by a newline at start-1.
            offset = offset - 1 + len(stream.readline())

        while offset < byte_range.end:
            line = stream.readline()
            if not line:
                break
            offset += len(line)
            yield _strip_newline(line)


class TextLineSource(_LineDelimitedSource[str]):
    """Newline-delimited text; ``\\n`` and ``\\r\\n`` endings are stripped."""

    def read_records(
        self, stream: BinaryIO, byte_range: Optional[ByteRange]
    ) -> Generator[str, None, None]:
        for line in self._iter_lines(stream, byte_range):
            yield line.decode(self.encoding)


class JsonLinesSource(_LineDelimitedSource[Any]):
    """One JSON document per line. Blank lines are skipped."""

    def read_records(
        self, stream: BinaryIO, byte_range: Optional[ByteRange]
    ) -> Generator[Any, None, None]:
        for line in self._iter_lines(stream, byte_range):
            if not line.strip():
                continue
            yield json.loads(line.decode(self.encoding))


__all__ = ["RecordReader", "RecordSource", "TextLineSource", "JsonLinesSource"]
