"""Fair, process-wide bound on concurrently open record sources."""

from __future__ import annotations

import time
from collections import deque
from threading import Event, Lock
from types import TracebackType
from typing import Deque, Optional, Set, Type

from filerange.core.constants import DEFAULT_CONCURRENCY_LIMIT
from filerange.core.errors import PermitTimeoutError
from filerange.monitoring.metrics import PERMIT_WAIT_SECONDS, PERMITS_IN_USE
from filerange.utils.logging import get_logger

logger = get_logger(__name__)


class Permit:
    """
    One unit of capacity drawn from a ConcurrencyLimiter.

    Usable as a context manager; releasing twice is a no-op.
    """

    def __init__(self, limiter: "ConcurrencyLimiter") -> None:
        self._limiter = limiter
        self.released = False

    def release(self) -> None:
        self._limiter.release(self)

    def __enter__(self) -> "Permit":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else "held"
        return f"Permit({self._limiter.name}, {state})"


class _Waiter:
    def __init__(self) -> None:
        self.event = Event()
        self.permit: Optional[Permit] = None


class ConcurrencyLimiter:
    """
    Counting semaphore with first-come, first-served hand-off.

    A released permit goes straight to the oldest waiter instead of back to
    the pool, so a thread arriving later can never overtake a queued one.
    """

    def __init__(self, limit: int = DEFAULT_CONCURRENCY_LIMIT, name: str = "") -> None:
        """
        Args:
            limit: Number of permits (> 0)
            name: Label used in logs and metrics
        """
        if limit <= 0:
            raise ValueError(f"limit must be > 0, got {limit}")
        self.limit = limit
        self.name = name or f"limiter-{limit}"
        self._lock = Lock()
        self._available = limit
        self._waiters: Deque[_Waiter] = deque()
        self._outstanding: Set[Permit] = set()
        self._gauge = PERMITS_IN_USE.labels(limiter=self.name)

    @property
    def available(self) -> int:
        with self._lock:
            return self._available

    @property
    def in_use(self) -> int:
        with self._lock:
            return len(self._outstanding)

    @property
    def waiting(self) -> int:
        with self._lock:
            return len(self._waiters)

    def acquire(self, timeout: Optional[float] = None) -> Permit:
        """
        Block until a permit is available.

        Args:
            timeout: Seconds to wait (None = forever)

        Raises:
            PermitTimeoutError: If no permit became available in time
        """
        started = time.monotonic()
        with self._lock:
            if self._available > 0 and not self._waiters:
                self._available -= 1
                permit = self._issue_locked()
                PERMIT_WAIT_SECONDS.observe(time.monotonic() - started)
                return permit
            waiter = _Waiter()
            self._waiters.append(waiter)

        try:
            waiter.event.wait(timeout)
        except BaseException:
            # Interrupted while queued: give back anything handed to us.
            self._abandon(waiter)
            raise

        with self._lock:
            permit = waiter.permit
            if permit is None:
                self._waiters.remove(waiter)

        if permit is None:
            raise PermitTimeoutError(
                f"No permit from {self.name} within {timeout} seconds"
            )
        PERMIT_WAIT_SECONDS.observe(time.monotonic() - started)
        return permit

    def release(self, permit: Permit) -> None:
        """
        Return a permit to the pool (or to the oldest waiter).

        Releasing an already released permit does nothing.

        Raises:
            ValueError: If the permit belongs to another limiter
        """
        if permit._limiter is not self:
            raise ValueError(f"{permit!r} does not belong to {self.name}")
        with self._lock:
            if permit.released:
                return
            self._return_locked(permit)

    def permit(self, timeout: Optional[float] = None) -> Permit:
        """Acquire a permit for use in a ``with`` block."""
        return self.acquire(timeout=timeout)

    def reclaim_all(self) -> int:
        """
        Release every outstanding permit.

        Used on abnormal teardown when holders can no longer release their own
        permits. Returns the number of permits reclaimed.
        """
        with self._lock:
            leaked = list(self._outstanding)
            for permit in leaked:
                self._return_locked(permit)
        if leaked:
            logger.warning("permits_reclaimed", limiter=self.name, count=len(leaked))
        return len(leaked)

    def _issue_locked(self) -> Permit:
        permit = Permit(self)
        self._outstanding.add(permit)
        self._gauge.set(len(self._outstanding))
        return permit

    def _return_locked(self, permit: Permit) -> None:
        permit.released = True
        self._outstanding.discard(permit)
        if self._waiters:
            waiter = self._waiters.popleft()
            waiter.permit = self._issue_locked()
            waiter.event.set()
        else:
            self._available += 1
            self._gauge.set(len(self._outstanding))

    def _abandon(self, waiter: _Waiter) -> None:
        with self._lock:
            if waiter.permit is None:
                self._waiters.remove(waiter)
                return
            if not waiter.permit.released:
                self._return_locked(waiter.permit)

    def __repr__(self) -> str:
        return (
            f"ConcurrencyLimiter(name={self.name!r}, limit={self.limit}, "
            f"in_use={len(self._outstanding)}, waiting={len(self._waiters)})"
        )


_SHARED: Optional[ConcurrencyLimiter] = None
_SHARED_LOCK = Lock()


def shared_limiter(limit: int = DEFAULT_CONCURRENCY_LIMIT) -> ConcurrencyLimiter:
    """
    Return the process-wide limiter.

    The first call fixes its size; later calls asking for a different
    ``limit`` get the same pool and a warning.
    """
    global _SHARED
    with _SHARED_LOCK:
        if _SHARED is None:
            _SHARED = ConcurrencyLimiter(limit, name="shared")
        elif _SHARED.limit != limit:
            logger.warning(
                "shared_limiter_size_fixed", requested=limit, limit=_SHARED.limit
            )
        return _SHARED


__all__ = ["ConcurrencyLimiter", "Permit", "shared_limiter"]
