"""Tests for record sources and readers."""

import bz2
import gzip
import json
import lzma

import pytest

from conftest import WholeFileTextSource, lines_blob
from filerange.core.models import ByteRange, Compression
from filerange.io.compression import open_decompressed
from filerange.io.filesystems import LocalFileSystem
from filerange.io.sources import JsonLinesSource, TextLineSource


def _read(source, byte_range=None):
    with source.open(byte_range) as reader:
        return list(reader)


@pytest.mark.unit
def test_text_lines_strip_line_endings(memory_fs):
    memory_fs.add("/a.txt", b"one\r\ntwo\n\nthree")
    source = TextLineSource("/a.txt", filesystem=memory_fs)

    assert _read(source) == ["one", "two", "", "three"]
    assert memory_fs.open_now == 0


@pytest.mark.unit
@pytest.mark.parametrize("bundle", [1, 2, 5, 6, 7, 64, 1000])
def test_ranges_together_equal_whole_file(memory_fs, bundle):
    data = b"alpha\nb\n\nlonger line here\nx\r\nlast-no-newline"
    memory_fs.add("/a.txt", data)
    source = TextLineSource("/a.txt", filesystem=memory_fs)

    pieces = []
    for r in ByteRange(0, len(data)).split(bundle):
        pieces.extend(_read(source, r))

    assert pieces == _read(source)


@pytest.mark.unit
def test_line_starting_at_range_start_belongs_to_that_range(memory_fs):
    memory_fs.add("/a.txt", b"aaa\nbbb\nccc\n")
    source = TextLineSource("/a.txt", filesystem=memory_fs)

    assert _read(source, ByteRange(0, 4)) == ["aaa"]
    assert _read(source, ByteRange(4, 8)) == ["bbb"]
    # Starts mid-line: "bbb" belongs to the earlier range.
    assert _read(source, ByteRange(5, 12)) == ["ccc"]
    # Line "bbb" starts at 4, inside [1, 5).
    assert _read(source, ByteRange(1, 5)) == ["bbb"]


@pytest.mark.unit
def test_jsonl_decodes_and_skips_blank_lines(memory_fs):
    memory_fs.add("/a.jsonl", b'{"id": 1}\n\n  \n{"id": 2, "tags": ["x"]}\n')
    source = JsonLinesSource("/a.jsonl", filesystem=memory_fs)

    assert _read(source) == [{"id": 1}, {"id": 2, "tags": ["x"]}]


@pytest.mark.unit
def test_jsonl_invalid_line_raises(memory_fs):
    memory_fs.add("/a.jsonl", b'{"id": 1}\nnot json\n')
    source = JsonLinesSource("/a.jsonl", filesystem=memory_fs)

    with pytest.raises(json.JSONDecodeError):
        _read(source)
    assert memory_fs.open_now == 0


@pytest.mark.unit
def test_compressed_source_refuses_ranges(memory_fs):
    memory_fs.add("/a.txt.gz", gzip.compress(b"a\nb\n"))
    source = TextLineSource("/a.txt.gz", filesystem=memory_fs)

    assert source.compression is Compression.GZIP
    assert not source.splittable
    with pytest.raises(ValueError):
        source.open(ByteRange(0, 2))


@pytest.mark.unit
def test_unsplittable_source_refuses_ranges(memory_fs):
    memory_fs.add("/a.txt", b"a\n")
    source = WholeFileTextSource("/a.txt", filesystem=memory_fs)

    with pytest.raises(ValueError):
        source.open(ByteRange(0, 1))


@pytest.mark.unit
def test_with_compression_returns_copy(memory_fs):
    memory_fs.add("/blob", bz2.compress(b"x\ny\n"))
    plain = TextLineSource("/blob", filesystem=memory_fs)

    packed = plain.with_compression(Compression.BZIP2)

    assert plain.compression is Compression.UNCOMPRESSED
    assert packed.compression is Compression.BZIP2
    assert _read(packed) == ["x", "y"]


@pytest.mark.unit
def test_reader_lifecycle(memory_fs):
    memory_fs.add("/a.txt", lines_blob("r", 3))
    reader = TextLineSource("/a.txt", filesystem=memory_fs).open()

    with pytest.raises(RuntimeError):
        iter(reader)

    reader.start()
    assert next(iter(reader)) == "r-0"
    reader.close()
    reader.close()

    assert reader.closed
    assert memory_fs.open_now == 0


@pytest.mark.unit
def test_open_decompressed_variants():
    import io

    payload = b"hello\n"
    for compression, packed in [
        (Compression.UNCOMPRESSED, payload),
        (Compression.GZIP, gzip.compress(payload)),
        (Compression.BZIP2, bz2.compress(payload)),
        (Compression.LZMA, lzma.compress(payload)),
    ]:
        assert open_decompressed(io.BytesIO(packed), compression).read() == payload

    with pytest.raises(ValueError):
        open_decompressed(io.BytesIO(payload), Compression.AUTO)


@pytest.mark.unit
def test_local_gzip_file(tmp_path):
    path = tmp_path / "events.txt.gz"
    path.write_bytes(gzip.compress(lines_blob("e", 4)))
    source = TextLineSource(str(path), filesystem=LocalFileSystem())

    assert _read(source) == ["e-0", "e-1", "e-2", "e-3"]
