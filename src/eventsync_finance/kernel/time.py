"""
Time provider abstraction for deterministic testing

Every timestamp the ledger writes (requested_at, approved_at, reimbursed_at,
history entries) comes from an injected provider, so replaying the same
commands in tests produces byte-identical events.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class TimeProvider(Protocol):
    """Protocol for time providers - allows deterministic testing"""

    def now(self) -> datetime:
        """Return current UTC datetime"""
        ...


class RealTimeProvider:
    """Production time provider using system clock"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedTimeProvider:
    """
    Controllable time provider for deterministic tests

    Starts at a fixed instant and only moves when told to.
    """

    def __init__(self, initial_time: datetime | None = None) -> None:
        self._current_time = initial_time or datetime(1970, 1, 1, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current_time

    def set_time(self, dt: datetime) -> None:
        self._current_time = dt

    def advance_seconds(self, seconds: int) -> None:
        self._current_time += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        self._current_time += timedelta(days=days)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with stored timestamps"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
