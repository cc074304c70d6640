import fnmatch
import io
import sys
import threading
import time
from functools import partial
from pathlib import Path
from typing import Any, BinaryIO, Dict, Generator, Iterator, Optional

import boto3
import pytest
from moto import mock_aws

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from filerange.core.models import ByteRange, Compression, FileHandle  # noqa: E402
from filerange.io.filesystems import FileSystem  # noqa: E402
from filerange.io.sources import TextLineSource  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast unit tests")
    config.addinivalue_line(
        "markers",
        "integration: tests that exercise several components or threads together",
    )
    config.addinivalue_line("markers", "s3: tests that interact with moto S3")
    config.addinivalue_line("markers", "slow: slow-running tests")


class _TrackedStream(io.BytesIO):
    def __init__(self, fs: "MemoryFileSystem", data: bytes) -> None:
        super().__init__(data)
        self._fs = fs

    def close(self) -> None:
        if not self.closed:
            self._fs._stream_closed()
        super().close()


class MemoryFileSystem(FileSystem):
    """In-memory files that count how many streams are open at once."""

    def __init__(self, files: Optional[Dict[str, bytes]] = None) -> None:
        self.files: Dict[str, bytes] = dict(files or {})
        self._lock = threading.Lock()
        self.open_now = 0
        self.max_open = 0
        self.opened = 0

    def add(self, path: str, data: bytes) -> FileHandle:
        self.files[path] = data
        return self.handle(path)

    def handle(self, path: str, seekable: bool = True) -> FileHandle:
        compression = Compression.detect(path)
        return FileHandle(
            path=path,
            size_bytes=len(self.files.get(path, b"")),
            supports_efficient_seek=seekable and not compression.is_compressed,
            compression=compression,
        )

    def match(self, pattern: str) -> Iterator[FileHandle]:
        for path in sorted(self.files):
            if fnmatch.fnmatchcase(path, pattern):
                yield self.handle(path)

    def open(self, path: str) -> BinaryIO:
        if path not in self.files:
            raise FileNotFoundError(path)
        with self._lock:
            self.open_now += 1
            self.opened += 1
            self.max_open = max(self.max_open, self.open_now)
        return _TrackedStream(self, self.files[path])

    def _stream_closed(self) -> None:
        with self._lock:
            self.open_now -= 1


class SlowTextSource(TextLineSource):
    """Sleeps before every record so reads overlap in time."""

    delay = 0.005

    def read_records(
        self, stream: BinaryIO, byte_range: Optional[ByteRange]
    ) -> Generator[str, None, None]:
        for record in super().read_records(stream, byte_range):
            time.sleep(self.delay)
            yield record


class WholeFileTextSource(TextLineSource):
    """Text source that can only be read from the beginning."""

    supports_subrange = False


class FailAfterSource(TextLineSource):
    """Yields ``fail_after`` records, then raises ValueError."""

    fail_after = 2

    def read_records(
        self, stream: BinaryIO, byte_range: Optional[ByteRange]
    ) -> Generator[str, None, None]:
        for index, record in enumerate(super().read_records(stream, byte_range)):
            if index == self.fail_after:
                raise ValueError(f"corrupt record in {self.path}")
            yield record


class ReaderAborted(BaseException):
    """Stands in for interpreter-level interruptions such as cancellation."""


class AbortAfterSource(TextLineSource):
    """Yields one record, then raises a non-Exception BaseException."""

    def read_records(
        self, stream: BinaryIO, byte_range: Optional[ByteRange]
    ) -> Generator[str, None, None]:
        for record in super().read_records(stream, byte_range):
            yield record
            raise ReaderAborted(self.path)


def lines_blob(prefix: str, count: int) -> bytes:
    return "".join(f"{prefix}-{i}\n" for i in range(count)).encode()


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    return MemoryFileSystem()


@pytest.fixture
def source_for(memory_fs: MemoryFileSystem):
    """Build a source factory bound to the in-memory filesystem."""

    def make(source_cls: Any = TextLineSource, **kwargs: Any):
        return partial(source_cls, filesystem=memory_fs, **kwargs)

    return make


@pytest.fixture
def s3_client_mock():
    """Moto-backed S3 client with a test bucket."""
    with mock_aws():
        s3 = boto3.client("s3", region_name="us-east-1")
        s3.create_bucket(Bucket="test-data")
        yield s3
