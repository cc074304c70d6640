"""Signal helpers for graceful shutdown."""

from __future__ import annotations

import signal
from typing import Any, Callable, Dict

from filerange.utils.logging import get_logger

logger = get_logger(__name__)


def _make_handler(callback: Callable[[], None]) -> Callable[[int, Any], None]:
    def handler(signum: int, _frame: Any) -> None:
        logger.info("signal_received", signal=signal.Signals(signum).name)
        callback()

    return handler


def setup_signal_handlers(on_stop: Any) -> Dict[int, Any]:
    """
    Register SIGINT/SIGTERM handlers calling ``on_stop.stop()``.

    Returns the previous handlers so callers can restore them.
    """
    stop = getattr(on_stop, "stop", None)
    if not callable(stop):
        raise TypeError(f"{on_stop!r} has no stop() method")

    handler = _make_handler(stop)
    previous: Dict[int, Any] = {}
    for sig in (signal.SIGINT, signal.SIGTERM):
        previous[sig] = signal.signal(sig, handler)
    return previous


def restore_signal_handlers(previous: Dict[int, Any]) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


__all__ = ["setup_signal_handlers", "restore_signal_handlers"]
