"""Injectable clock so every "today" and "now" in the core can be pinned in tests."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Source of the current date and time."""

    def today(self) -> date: ...

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def today(self) -> date:
        return datetime.now(UTC).date()

    def now(self) -> datetime:
        return datetime.now(UTC)


class FixedClock:
    """Clock frozen at a given instant."""

    def __init__(self, now: datetime) -> None:
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        self._now = now

    @classmethod
    def on(cls, day: date) -> FixedClock:
        """Build a clock frozen at midnight UTC of ``day``."""
        return cls(datetime(day.year, day.month, day.day, tzinfo=UTC))

    def today(self) -> date:
        return self._now.date()

    def now(self) -> datetime:
        return self._now


_clock: Clock = SystemClock()


def get_clock() -> Clock:
    """Return the active clock."""
    return _clock


def set_clock(clock: Clock) -> None:
    """Override the clock (for testing or backfills)."""
    global _clock
    _clock = clock
