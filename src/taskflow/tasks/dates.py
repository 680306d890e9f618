# src/taskflow/tasks/dates.py

"""
Calendar helpers for task due dates.

Timestamps are stored as epoch seconds. All calendar arithmetic happens on
naive local wall-clock datetimes, so "one day later" keeps the same clock time
across DST changes and "one month later" keeps the same day of month.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta

from .task_models import RecurKind

_INPUT_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
)


def to_local(ts: float) -> datetime:
    return datetime.fromtimestamp(ts)


def from_local(dt: datetime) -> float:
    return dt.timestamp()


def add_months(dt: datetime, months: int) -> datetime:
    """
    Shift `dt` by whole calendar months, clamping the day to the target month.

    The target month is computed from the 1st of the source month, so
    Jan 31 + 1 -> Feb 28/29 and Jan 31 + 2 -> Mar 31.
    """
    first = dt.replace(day=1)
    index = first.year * 12 + (first.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))


def advance(dt: datetime, kind: RecurKind, steps: int = 1) -> datetime:
    """Move `dt` forward by `steps` periods of `kind`."""
    if kind == RecurKind.DAILY:
        return dt + timedelta(days=steps)
    if kind == RecurKind.WEEKLY:
        return dt + timedelta(weeks=steps)
    if kind == RecurKind.MONTHLY:
        return add_months(dt, steps)
    raise ValueError(f"unsupported recurrence kind: {kind!r}")


def add_days(ts: float, days: int) -> float:
    """Add calendar days (local wall clock) to an epoch timestamp."""
    return from_local(to_local(ts) + timedelta(days=days))


def local_day_bounds(day: date) -> tuple[float, float]:
    """Half-open [local midnight, next local midnight) for `day`."""
    start = datetime.combine(day, time.min)
    end = start + timedelta(days=1)
    return from_local(start), from_local(end)


def parse_when(text: str) -> float:
    """
    Parse a user-supplied date/time in local time.

    Accepts 'YYYY-MM-DD' (midnight), 'YYYY-MM-DD HH:MM[:SS]' and the 'T' variants.
    """
    raw = (text or "").strip()
    if not raw:
        raise ValueError("empty date")
    for fmt in _INPUT_FORMATS:
        try:
            return from_local(datetime.strptime(raw, fmt))
        except ValueError:
            continue
    raise ValueError(f"unrecognized date: {raw!r} (expected YYYY-MM-DD[ HH:MM])")


def parse_day(text: str) -> date:
    try:
        return datetime.strptime((text or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"unrecognized day: {text!r} (expected YYYY-MM-DD)") from None


def format_ts(ts: float | None) -> str:
    if ts is None:
        return ""
    dt = to_local(ts)
    if dt.hour == 0 and dt.minute == 0 and dt.second == 0:
        return dt.strftime("%Y-%m-%d")
    return dt.strftime("%Y-%m-%d %H:%M")
