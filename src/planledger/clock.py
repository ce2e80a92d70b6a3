"""
Logical clock used for every duration and window computation.

The ledger never reads wall-clock time. The environment advances the clock
between operations; each operation reads it exactly once.
"""

import threading
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Monotonically non-decreasing integer tick source."""

    def now(self) -> int: ...


class ClockError(ValueError):
    """Raised when a clock would move backwards."""


class ManualClock:
    """Clock advanced explicitly by the caller.

    Usage:
        clock = ManualClock(start=1000)
        clock.advance(500)
        clock.now()  # 1500
    """

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ClockError(f"Clock cannot start at negative tick {start}")
        self._tick = start
        self._lock = threading.Lock()

    def now(self) -> int:
        return self._tick

    def advance(self, ticks: int) -> int:
        """Move the clock forward by ``ticks`` and return the new tick."""
        if ticks < 0:
            raise ClockError(f"Cannot advance clock by negative ticks ({ticks})")
        with self._lock:
            self._tick += ticks
            return self._tick

    def set(self, tick: int) -> int:
        """Jump to ``tick``; it must not be earlier than the current tick."""
        with self._lock:
            if tick < self._tick:
                raise ClockError(f"Clock cannot move backwards from {self._tick} to {tick}")
            self._tick = tick
            return self._tick

    def __repr__(self) -> str:
        return f"ManualClock(tick={self._tick})"
