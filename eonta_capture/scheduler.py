"""
Fixed-period timers for the PathRecorder.

The recorder only needs ``schedule(interval_s, callback)`` returning
something with ``cancel()``; tests substitute a manual scheduler.
"""

import logging
import threading
import time
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def schedule(self, interval_s: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class RepeatingTimer(threading.Thread):
    """
    Daemon thread calling ``callback`` every ``interval_s`` seconds.

    Ticks are spaced from the end of the previous callback, so a slow
    callback delays the next tick instead of piling ticks up.
    """

    def __init__(self, interval_s: float, callback: Callable[[], None], name: str = "eonta-timer"):
        super().__init__(name=name, daemon=True)
        self.interval_s = interval_s
        self.callback = callback
        self._cancelled = threading.Event()

    def run(self) -> None:
        while not self._cancelled.wait(self.interval_s):
            try:
                self.callback()
            except Exception as e:
                logger.error(f"❌ Timer callback failed: {e}", exc_info=True)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


class ThreadScheduler:
    """Scheduler backed by one RepeatingTimer thread per schedule() call."""

    def schedule(self, interval_s: float, callback: Callable[[], None]) -> RepeatingTimer:
        timer = RepeatingTimer(interval_s, callback)
        timer.start()
        return timer


def wall_clock_ms() -> float:
    """Current Unix time in milliseconds."""
    return time.time() * 1000.0
