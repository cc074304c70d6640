"""Transparent decompression of binary streams."""

from __future__ import annotations

import bz2
import gzip
import lzma
from typing import BinaryIO, cast

from filerange.core.models import Compression


def open_decompressed(raw: BinaryIO, compression: Compression) -> BinaryIO:
    """
    Wrap ``raw`` so reads return decompressed bytes.

    The wrapper does not close ``raw``; callers close both.

    Raises:
        ValueError: If compression is AUTO (resolve it against the path first)
    """
    if compression is Compression.AUTO:
        raise ValueError("Compression.AUTO must be resolved before opening")
    if compression is Compression.UNCOMPRESSED:
        return raw
    if compression is Compression.GZIP:
        return cast(BinaryIO, gzip.GzipFile(fileobj=raw, mode="rb"))
    if compression is Compression.BZIP2:
        return cast(BinaryIO, bz2.BZ2File(raw, mode="rb"))
    if compression is Compression.LZMA:
        return cast(BinaryIO, lzma.LZMAFile(raw, mode="rb"))
    raise ValueError(f"Unsupported compression: {compression}")


__all__ = ["open_decompressed"]
