"""
Filesystems, decompression and record sources.
"""

from .compression import open_decompressed
from .filesystems import (
    FileSystem,
    LocalFileSystem,
    S3FileSystem,
    get_filesystem,
    match_files,
)
from .sources import JsonLinesSource, RecordReader, RecordSource, TextLineSource

__all__ = [
    "FileSystem",
    "LocalFileSystem",
    "S3FileSystem",
    "get_filesystem",
    "match_files",
    "open_decompressed",
    "RecordReader",
    "RecordSource",
    "TextLineSource",
    "JsonLinesSource",
]
