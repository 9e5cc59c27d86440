# src/signalflow/engine/clock.py
"""Clock abstraction for testable timing.

Stage durations are measured on a monotonic clock; timestamps written into
stage metadata, trace entries and replay metadata come from the wall clock.
Both go through one Clock so tests can pin them.

Production code uses SystemClock (the default).
Tests inject MockClock to control time advancement.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Abstract clock for durations and timestamps.

    Implementations:
    - SystemClock: time.monotonic() and datetime.now(UTC) (production)
    - MockClock: controllable times (testing)
    """

    def monotonic(self) -> float:
        """Return monotonic time in seconds.

        Must never go backwards; used for duration_ms.
        """
        ...

    def now(self) -> datetime:
        """Return the current timezone-aware UTC wall-clock time."""
        ...


class SystemClock:
    """Production clock."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now(UTC)


# Fixed, arbitrary origin so MockClock timestamps are reproducible
_MOCK_EPOCH = datetime(2025, 1, 1, tzinfo=UTC)


class MockClock:
    """Controllable clock for deterministic testing.

    Monotonic and wall-clock time advance together.

    Example:
        clock = MockClock()
        executor = DAGExecutor(handlers, clock=clock)
        clock.advance(0.5)  # both monotonic() and now() move 500ms
    """

    def __init__(self, start: float = 0.0, *, wall_start: datetime | None = None) -> None:
        """Initialize mock clock.

        Args:
            start: Initial monotonic time value (default 0.0).
            wall_start: Initial wall-clock time (default 2025-01-01T00:00Z).
        """
        self._current = start
        self._wall = wall_start or _MOCK_EPOCH

    def monotonic(self) -> float:
        return self._current

    def now(self) -> datetime:
        return self._wall

    def advance(self, seconds: float) -> None:
        """Advance mock time by specified seconds.

        Raises:
            ValueError: If seconds is negative.
        """
        if seconds < 0:
            raise ValueError(f"Cannot advance time by negative amount: {seconds}")
        self._current += seconds
        self._wall += timedelta(seconds=seconds)

    def set(self, value: float) -> None:
        """Set monotonic time to an absolute value.

        Unlike advance(), this can move time backwards and leaves the wall
        clock untouched.
        """
        self._current = value


DEFAULT_CLOCK: Clock = SystemClock()
