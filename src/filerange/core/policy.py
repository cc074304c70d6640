"""Exception policies deciding whether a read failure is fatal."""

from __future__ import annotations

from typing import Callable, Tuple, Type

from filerange.core.models import ByteRange, FileHandle

# (file, range, error) -> True to rethrow, False to skip the rest of the item.
ExceptionPolicy = Callable[[FileHandle, ByteRange, BaseException], bool]


def always_rethrow(file: FileHandle, byte_range: ByteRange, error: BaseException) -> bool:
    """Default policy: every failure fails the job."""
    return True


def never_rethrow(file: FileHandle, byte_range: ByteRange, error: BaseException) -> bool:
    """Swallow every failure; the affected item is truncated."""
    return False


def skip_on(*exc_types: Type[BaseException]) -> ExceptionPolicy:
    """
    Build a policy that skips the given exception types and rethrows the rest.

    Example:
        policy = skip_on(FileNotFoundError, UnicodeDecodeError)
    """
    if not exc_types:
        raise ValueError("skip_on() needs at least one exception type")
    skipped: Tuple[Type[BaseException], ...] = tuple(exc_types)

    def policy(file: FileHandle, byte_range: ByteRange, error: BaseException) -> bool:
        return not isinstance(error, skipped)

    return policy


__all__ = ["ExceptionPolicy", "always_rethrow", "never_rethrow", "skip_on"]
