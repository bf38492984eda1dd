"""Lazy expiry evaluation shared by profile locks and hire requests.

Nothing in the engagement core depends on a background scheduler. Every
read or mutation recomputes expiry from the wall clock, so repeated
evaluation after the deadline always gives the same answer. Periodic
sweeps exist only to reclaim records for metrics.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def is_expired(expires_at: Optional[datetime], now: datetime) -> bool:
    """True once ``now`` has reached ``expires_at``. No deadline never expires."""
    if expires_at is None:
        return False
    return now >= expires_at


def is_live(expires_at: Optional[datetime], now: datetime) -> bool:
    return not is_expired(expires_at, now)


def end_of_day(day: date) -> datetime:
    """Start of the following day in UTC - the moment ``day`` has passed."""
    return datetime.combine(day + timedelta(days=1), time.min, tzinfo=timezone.utc)


def earliest(*deadlines: Optional[datetime]) -> Optional[datetime]:
    present = [d for d in deadlines if d is not None]
    return min(present) if present else None
