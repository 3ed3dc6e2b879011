"""
Time helpers shared by the scoring services.

Every service takes an explicit `now`; these helpers only normalise it.
SQLite hands back naive datetimes, so anything read from the store goes
through `as_utc` before arithmetic.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_now(now: Optional[datetime]) -> datetime:
    return as_utc(now) if now is not None else utcnow()


def whole_days_between(later: datetime, earlier: datetime) -> int:
    """Floor of the day delta, never negative."""
    delta = as_utc(later) - as_utc(earlier)
    return max(0, delta.days)


def days_from(now: datetime, days: float) -> date:
    """Calendar date `days` (possibly fractional) after `now`."""
    return (now + timedelta(days=days)).date()


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the ISO week containing `day`."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)
