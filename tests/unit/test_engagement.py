"""Watch-time and currency accrual: pure arithmetic, no store."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from viewerledger.db.models import User
from viewerledger.engagement import accrue, split_nanos, timedelta_to_nanos

T0 = datetime(2026, 3, 1, 12, 0, 0)


def _user(**fields: object) -> User:
    values: dict[str, object] = {
        "channel_id": "c1",
        "display_name": "Alice",
        "hours_seconds": 0,
        "hours_nanos": 0,
        "money": 0,
        "first_seen_at": T0,
        "last_seen_at": T0,
    }
    values.update(fields)
    return User(**values)


class TestAccrue:
    def test_ten_minute_gap(self):
        """A 10 minute gap adds 600 seconds and 10 money."""
        user = _user()
        accrual = accrue(user, T0 + timedelta(minutes=10))

        assert user.hours_seconds == 600
        assert user.hours_nanos == 0
        assert user.money == 10
        assert accrual.money_added == 10
        assert accrual.seconds_added == 600

    def test_adds_to_existing_totals(self):
        user = _user(hours_seconds=3600, hours_nanos=250_000_000, money=42)
        accrue(user, T0 + timedelta(minutes=7, seconds=30))

        assert user.hours_seconds == 3600 + 450
        assert user.hours_nanos == 250_000_000
        assert user.money == 42 + 7

    def test_money_rounds_down_to_whole_minutes(self):
        user = _user()
        accrue(user, T0 + timedelta(minutes=5, seconds=59, microseconds=999_999))
        assert user.money == 5

    def test_sub_minute_gap_grants_no_money(self):
        user = _user()
        accrue(user, T0 + timedelta(seconds=59))
        assert user.hours_seconds == 59
        assert user.money == 0

    def test_nanos_carry_into_seconds(self):
        """A sub-second remainder overflowing 10^9 carries into whole seconds."""
        user = _user(hours_seconds=10, hours_nanos=999_999_000)
        accrue(user, T0 + timedelta(microseconds=1_500))

        assert user.hours_seconds == 11
        assert user.hours_nanos == 1_499_000

    def test_nanos_stay_in_range(self):
        user = _user(hours_nanos=999_999_999)
        for step in range(1, 50):
            accrue(user, user.last_seen_at + timedelta(microseconds=step * 7_919))
            assert 0 <= user.hours_nanos < 1_000_000_000

    def test_does_not_move_last_seen_at(self):
        user = _user()
        accrue(user, T0 + timedelta(hours=1))
        assert user.last_seen_at == T0

    def test_zero_gap_is_a_no_op(self):
        user = _user(hours_seconds=5, hours_nanos=7, money=3)
        accrual = accrue(user, T0)
        assert (user.hours_seconds, user.hours_nanos, user.money) == (5, 7, 3)
        assert accrual.delta_nanos == 0

    def test_now_before_last_seen_raises(self):
        user = _user()
        with pytest.raises(ValueError, match="before last_seen_at"):
            accrue(user, T0 - timedelta(seconds=1))


class TestDurationHelpers:
    def test_timedelta_to_nanos_is_exact_across_days(self):
        delta = timedelta(days=3, seconds=7, microseconds=123_456)
        assert timedelta_to_nanos(delta) == (3 * 86_400 + 7) * 1_000_000_000 + 123_456_000

    def test_split_nanos(self):
        assert split_nanos(0) == (0, 0)
        assert split_nanos(1_000_000_000) == (1, 0)
        assert split_nanos(2_500_000_001) == (2, 500_000_001)
