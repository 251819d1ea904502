"""Injectable wall clock.

All ledger timestamps are naive UTC datetimes. Every read of "now" in the
ingest path goes through a Clock so tests can drive time explicitly.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Reads the system time, truncated to naive UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        if value < self._now:
            msg = f"Clock cannot move backwards ({value} < {self._now})"
            raise ValueError(msg)
        self._now = value

    def advance(self, delta: timedelta) -> datetime:
        self.set(self._now + delta)
        return self._now
