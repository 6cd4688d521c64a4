"""Calendar-day utilities in the fixed reference time zone.

Streaks, daily cadences and monthly leaderboard periods all count calendar
days in one zone (US Eastern by default) regardless of where the user is.
Naive datetimes are treated as UTC.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from rocket.config import get_settings

_SECONDS_PER_DAY = 86400


@lru_cache
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def reference_zone() -> ZoneInfo:
    """Get the configured reference time zone."""
    return _zone(get_settings().reference_timezone)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def to_reference_date(value: datetime | date) -> date:
    """Calendar date of `value` in the reference zone.

    Plain dates are assumed to already be reference-zone dates.
    """
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone(reference_zone()).date()
    return value


def calendar_days_between(earlier: datetime | date, later: datetime | date) -> int:
    """Number of reference-zone calendar days from `earlier` to `later`.

    Same day → 0, next day → 1. Negative when `later` precedes `earlier`.
    """
    return (to_reference_date(later) - to_reference_date(earlier)).days


def whole_days_elapsed(since: datetime, now: datetime) -> int:
    """Whole 24h periods elapsed between two instants (floored, never negative)."""
    seconds = (ensure_aware(now) - ensure_aware(since)).total_seconds()
    return max(0, math.floor(seconds / _SECONDS_PER_DAY))


def days_until(target: datetime, now: datetime) -> int:
    """Days until `target`, rounded up. 0 once `target` has passed."""
    seconds = (ensure_aware(target) - ensure_aware(now)).total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / _SECONDS_PER_DAY)


def reference_midnight(day: date) -> datetime:
    """00:00 of `day` in the reference zone, as an aware UTC datetime."""
    return datetime.combine(day, time.min, tzinfo=reference_zone()).astimezone(timezone.utc)


def get_month_start(now: datetime | None = None) -> datetime:
    """First instant of the current reference-zone month (UTC-aware)."""
    if now is None:
        now = utcnow()
    local = to_reference_date(now)
    return reference_midnight(local.replace(day=1))


def get_previous_month(now: datetime | None = None) -> tuple[int, int]:
    """(year, month) of the reference-zone month before the one containing `now`."""
    if now is None:
        now = utcnow()
    first = to_reference_date(now).replace(day=1)
    last_of_previous = first - timedelta(days=1)
    return last_of_previous.year, last_of_previous.month


def get_month_boundaries(year: int, month: int) -> tuple[datetime, datetime]:
    """(start, end) of a reference-zone month as UTC-aware datetimes, end exclusive."""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return reference_midnight(start), reference_midnight(end)
