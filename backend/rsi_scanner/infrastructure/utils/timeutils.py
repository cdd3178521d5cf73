"""UTC helpers and calendar windows for higher-timeframe levels."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_millis(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def from_millis(ms: int) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def _start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def previous_week_bounds(now: Optional[datetime] = None) -> Tuple[int, int]:
    """(start_ms, end_ms) of the previous ISO week: Monday 00:00 UTC to the next Monday 00:00."""
    now = (now or utc_now()).astimezone(timezone.utc)
    this_monday = _start_of_day(now) - timedelta(days=now.weekday())
    prev_monday = this_monday - timedelta(days=7)
    return to_millis(prev_monday), to_millis(this_monday)


def previous_month_bounds(now: Optional[datetime] = None) -> Tuple[int, int]:
    """(start_ms, end_ms) of the previous calendar month in UTC."""
    now = (now or utc_now()).astimezone(timezone.utc)
    this_month = _start_of_day(now).replace(day=1)
    if this_month.month == 1:
        prev_month = this_month.replace(year=this_month.year - 1, month=12)
    else:
        prev_month = this_month.replace(month=this_month.month - 1)
    return to_millis(prev_month), to_millis(this_month)
