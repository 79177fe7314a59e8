# src/llmtrace/clock.py
"""Clock abstraction for segment timing.

Segment durations are measured through a Clock so tests can assert exact
durations without sleeping. Production code uses SystemClock.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Abstract monotonic clock used to time segments."""

    def monotonic(self) -> float:
        """Return monotonic time in seconds.

        Must never go backwards; only differences between two readings
        are meaningful.
        """
        ...


class SystemClock:
    """Production clock using time.perf_counter()."""

    def monotonic(self) -> float:
        """Return the high-resolution performance counter."""
        return time.perf_counter()


class MockClock:
    """Controllable clock for deterministic testing.

    Example:
        clock = MockClock(start=0.0)
        tracer = Tracer(clock=clock)

        with tracer.transaction("web"):
            segment = tracer.open_segment("work")
            clock.advance(0.25)
            tracer.close_segment(segment)

        assert segment.duration == 0.25
    """

    def __init__(self, start: float = 0.0) -> None:
        self._current = start

    def monotonic(self) -> float:
        """Return current mock time."""
        return self._current

    def advance(self, seconds: float) -> None:
        """Advance the clock.

        Raises:
            ValueError: If seconds is negative (monotonic clocks never go back)
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance clock by negative amount: {seconds}")
        self._current += seconds


DEFAULT_CLOCK: Clock = SystemClock()
