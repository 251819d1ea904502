"""Clock implementations."""

from datetime import datetime, timedelta, timezone

import pytest

from viewerledger.clock import ManualClock, SystemClock


def test_system_clock_is_naive_utc():
    now = SystemClock().now()
    assert now.tzinfo is None
    assert abs(now - datetime.now(timezone.utc).replace(tzinfo=None)) < timedelta(seconds=5)


def test_manual_clock_advances():
    start = datetime(2026, 3, 1, 12, 0, 0)
    clock = ManualClock(start)
    assert clock.now() == start
    assert clock.advance(timedelta(minutes=2)) == start + timedelta(minutes=2)
    assert clock.now() == start + timedelta(minutes=2)


def test_manual_clock_refuses_to_go_backwards():
    clock = ManualClock(datetime(2026, 3, 1, 12, 0, 0))
    with pytest.raises(ValueError, match="backwards"):
        clock.set(datetime(2026, 3, 1, 11, 59, 59))
