"""Watch-time and currency accrual.

Watch-time is stored as a (seconds, nanos) pair. All arithmetic happens on
a single integer count of nanoseconds which is split back into the pair
once, so the sub-second remainder never drifts and always stays in
[0, 10^9).

Currency is granted at one unit per whole minute of the elapsed gap.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from viewerledger.db.models import NANOS_PER_SECOND, User

NANOS_PER_MICROSECOND = 1_000
MONEY_PER_MINUTE = 1
_NANOS_PER_MINUTE = 60 * NANOS_PER_SECOND


@dataclass(frozen=True)
class Accrual:
    """What a single accrual added to a user."""

    delta_nanos: int
    seconds_added: int
    money_added: int


def timedelta_to_nanos(delta: timedelta) -> int:
    """Exact integer nanoseconds of a timedelta (no float rounding)."""
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    return micros * NANOS_PER_MICROSECOND


def split_nanos(total_nanos: int) -> tuple[int, int]:
    """Split a non-negative nanosecond count into (whole seconds, remainder nanos)."""
    return divmod(total_nanos, NANOS_PER_SECOND)


def watch_time_nanos(user: User) -> int:
    return user.hours_seconds * NANOS_PER_SECOND + user.hours_nanos


def accrue(user: User, now: datetime) -> Accrual:
    """Add the gap since ``user.last_seen_at`` to watch-time and money.

    Mutates ``user`` in place. ``last_seen_at`` is left untouched; moving it
    forward is the caller's job.

    Raises:
        ValueError: If ``now`` is earlier than ``user.last_seen_at``.
    """
    if now < user.last_seen_at:
        msg = f"now ({now.isoformat()}) is before last_seen_at ({user.last_seen_at.isoformat()})"
        raise ValueError(msg)

    previous_seconds = user.hours_seconds
    delta = timedelta_to_nanos(now - user.last_seen_at)

    user.hours_seconds, user.hours_nanos = split_nanos(watch_time_nanos(user) + delta)

    # TODO: apply the payout bonus of the user's ranks once ranks carry one
    money_added = (delta // _NANOS_PER_MINUTE) * MONEY_PER_MINUTE
    user.money += money_added

    return Accrual(
        delta_nanos=delta,
        seconds_added=user.hours_seconds - previous_seconds,
        money_added=money_added,
    )
