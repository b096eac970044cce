"""
Clock — wall-clock abstraction.

Claim ages, staleness and expiry are all computed from a Clock so tests can
move time without sleeping.

    clock = MockClock()
    ledger = MemoryLedger(clock=clock)
    clock.advance(minutes=11)
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Source of timezone-aware UTC timestamps."""

    def now(self) -> datetime: ...


class SystemClock:
    """Production clock."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class MockClock:
    """
    Controllable clock for deterministic tests.

    Example:
        clock = MockClock()
        clock.advance(seconds=31)  # pending claims are now stale
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._current = start if start is not None else datetime(2024, 1, 1, tzinfo=UTC)

    def now(self) -> datetime:
        return self._current

    def advance(
        self,
        *,
        seconds: float = 0,
        minutes: float = 0,
        hours: float = 0,
        delta: timedelta | None = None,
    ) -> datetime:
        step = delta if delta is not None else timedelta(seconds=seconds, minutes=minutes, hours=hours)
        if step < timedelta(0):
            raise ValueError("MockClock cannot go backwards")
        self._current += step
        return self._current


__all__ = ("Clock", "SystemClock", "MockClock")
