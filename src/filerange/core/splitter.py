"""Carving files into independently readable work items."""

from __future__ import annotations

import random
from typing import Iterable, Iterator, List, Optional

from filerange.core.models import FileHandle, WorkItem


def split_into_ranges(
    file: FileHandle, desired_bundle_size_bytes: int
) -> Iterator[WorkItem]:
    """
    Split a file into work items of at most ``desired_bundle_size_bytes``.

    Files without efficient seek are never split: each range would have to be
    re-read from the start of the file. They always produce exactly one item
    covering ``[0, size)``, even when empty.

    A seekable zero-byte file produces no work items.

    Args:
        file: File to split
        desired_bundle_size_bytes: Maximum range length (> 0)

    Raises:
        ValueError: If desired_bundle_size_bytes is not positive
    """
    if desired_bundle_size_bytes <= 0:
        raise ValueError(
            f"desired_bundle_size_bytes must be > 0, got {desired_bundle_size_bytes}"
        )

    if not file.supports_efficient_seek:
        yield WorkItem.whole_file(file)
        return

    for piece in file.whole_range.split(desired_bundle_size_bytes):
        yield WorkItem(file=file, range=piece)


def redistribute(
    items: Iterable[WorkItem], rng: Optional[random.Random] = None
) -> List[WorkItem]:
    """Return the items in random order so large files spread across workers."""
    shuffled = list(items)
    (rng or random).shuffle(shuffled)
    return shuffled


__all__ = ["split_into_ranges", "redistribute"]
