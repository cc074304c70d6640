"""Exception hierarchy for range reading."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from filerange.core.models import WorkItem


class FileRangeError(Exception):
    """Base class for all filerange errors."""


class MetadataError(FileRangeError):
    """Raised when a file's size or seekability cannot be determined."""


class PermitTimeoutError(FileRangeError):
    """Raised when a permit could not be acquired within the timeout."""


class SourceError(FileRangeError):
    """
    Failure of a record source bound to a work item.

    The original exception is kept as ``__cause__``.
    """

    def __init__(self, message: str, item: Optional["WorkItem"] = None) -> None:
        super().__init__(message)
        self.item = item


class OpenError(SourceError):
    """Record source could not be constructed or opened."""


class ReadError(SourceError):
    """Record source failed while being iterated."""


__all__ = [
    "FileRangeError",
    "MetadataError",
    "PermitTimeoutError",
    "SourceError",
    "OpenError",
    "ReadError",
]
