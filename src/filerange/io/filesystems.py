"""
File discovery and byte access for local paths and S3 objects.
"""

from __future__ import annotations

import fnmatch
import glob
import io
import os
from abc import ABC, abstractmethod
from threading import Lock
from typing import Any, BinaryIO, Dict, Iterator, Optional, Tuple, cast

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from filerange.core.constants import DEFAULT_READ_BUFFER_SIZE, S3_SCHEME
from filerange.core.errors import MetadataError
from filerange.core.models import Compression, FileHandle
from filerange.utils.logging import get_logger

logger = get_logger(__name__)

_GLOB_CHARS = "*?["


def _make_handle(path: str, size: int, seekable: bool) -> FileHandle:
    compression = Compression.detect(path)
    # Compressed streams can only be read from the beginning.
    return FileHandle(
        path=path,
        size_bytes=size,
        supports_efficient_seek=seekable and not compression.is_compressed,
        compression=compression,
    )


class FileSystem(ABC):
    """Lists files matching a pattern and opens them for binary reading."""

    @abstractmethod
    def match(self, pattern: str) -> Iterator[FileHandle]:
        """
        Yield handles for regular files matching ``pattern``.

        Raises:
            MetadataError: If listing or size lookup fails
        """

    @abstractmethod
    def open(self, path: str) -> BinaryIO:
        """Open ``path`` as a seekable binary stream."""


class LocalFileSystem(FileSystem):
    """Local disk; glob patterns support ``**``."""

    def match(self, pattern: str) -> Iterator[FileHandle]:
        for path in sorted(glob.glob(pattern, recursive=True)):
            if os.path.isdir(path):
                continue
            try:
                size = os.path.getsize(path)
            except OSError as exc:
                raise MetadataError(f"Cannot stat {path}: {exc}") from exc
            yield _make_handle(path, size, seekable=True)

    def open(self, path: str) -> BinaryIO:
        return open(path, "rb")


def parse_s3_url(url: str) -> Tuple[str, str]:
    """
    Split ``s3://bucket/key`` into (bucket, key).

    Raises:
        ValueError: If url is not an s3:// URL with a bucket
    """
    if not url.startswith(S3_SCHEME):
        raise ValueError(f"Not an S3 URL: {url}")
    bucket, _, key = url[len(S3_SCHEME):].partition("/")
    if not bucket:
        raise ValueError(f"S3 URL without bucket: {url}")
    return bucket, key


class S3RangeStream(io.RawIOBase):
    """
    Seekable read-only view of an S3 object backed by Range GETs.

    Each ``readinto`` issues one GET, so wrap it in a large BufferedReader.
    """

    def __init__(self, s3_client: Any, bucket: str, key: str, size: int) -> None:
        super().__init__()
        self.s3 = s3_client
        self.bucket = bucket
        self.key = key
        self.size = size
        self._pos = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._pos

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._pos + offset
        elif whence == io.SEEK_END:
            target = self.size + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if target < 0:
            raise ValueError(f"Negative seek position {target}")
        self._pos = target
        return self._pos

    def readinto(self, buffer: Any) -> int:
        if self._pos >= self.size:
            return 0
        length = min(len(buffer), self.size - self._pos)
        if length == 0:
            return 0
        end = self._pos + length - 1
        resp = self.s3.get_object(
            Bucket=self.bucket,
            Key=self.key,
            Range=f"bytes={self._pos}-{end}",
        )
        data = resp["Body"].read()
        count = len(data)
        buffer[:count] = data
        self._pos += count
        return count


class S3FileSystem(FileSystem):
    """S3 objects addressed as ``s3://bucket/key``."""

    def __init__(
        self,
        s3_client: Any = None,
        read_buffer_size: int = DEFAULT_READ_BUFFER_SIZE,
    ) -> None:
        """
        Args:
            s3_client: Optional boto3 S3 client (creates default if None)
            read_buffer_size: Bytes fetched per Range GET when reading
        """
        self.s3 = s3_client or boto3.client("s3")
        self.read_buffer_size = read_buffer_size

    def match(self, pattern: str) -> Iterator[FileHandle]:
        bucket, key_pattern = parse_s3_url(pattern)
        prefix = key_pattern
        for i, char in enumerate(key_pattern):
            if char in _GLOB_CHARS:
                prefix = key_pattern[:i]
                break

        paginator = self.s3.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    # Zero-byte "folder" markers.
                    if key.endswith("/"):
                        continue
                    if not fnmatch.fnmatchcase(key, key_pattern):
                        continue
                    yield _make_handle(
                        f"{S3_SCHEME}{bucket}/{key}", int(obj["Size"]), seekable=True
                    )
        except (ClientError, BotoCoreError) as exc:
            raise MetadataError(f"Cannot list {pattern}: {exc}") from exc

    def open(self, path: str) -> BinaryIO:
        bucket, key = parse_s3_url(path)
        head = self.s3.head_object(Bucket=bucket, Key=key)
        raw = S3RangeStream(self.s3, bucket, key, int(head["ContentLength"]))
        return cast(BinaryIO, io.BufferedReader(raw, buffer_size=self.read_buffer_size))


_DEFAULTS: Dict[str, FileSystem] = {}
_DEFAULTS_LOCK = Lock()


def get_filesystem(path: str) -> FileSystem:
    """Return the default filesystem for the scheme of ``path``."""
    scheme = S3_SCHEME if path.startswith(S3_SCHEME) else "file"
    with _DEFAULTS_LOCK:
        fs = _DEFAULTS.get(scheme)
        if fs is None:
            fs = S3FileSystem() if scheme == S3_SCHEME else LocalFileSystem()
            _DEFAULTS[scheme] = fs
        return fs


def match_files(pattern: str, filesystem: Optional[FileSystem] = None) -> Iterator[FileHandle]:
    """Yield file handles for ``pattern`` using the matching filesystem."""
    fs = filesystem or get_filesystem(pattern)
    count = 0
    for handle in fs.match(pattern):
        count += 1
        yield handle
    logger.info("files_matched", pattern=pattern, count=count)


__all__ = [
    "FileSystem",
    "LocalFileSystem",
    "S3FileSystem",
    "S3RangeStream",
    "parse_s3_url",
    "get_filesystem",
    "match_files",
]
