# tests/test_dates.py

from __future__ import annotations

from datetime import date, datetime

import pytest

from taskflow.tasks.dates import (
    add_days,
    add_months,
    advance,
    format_ts,
    local_day_bounds,
    parse_day,
    parse_when,
)
from taskflow.tasks.task_models import RecurKind


@pytest.mark.parametrize(
    ("start", "months", "expected"),
    [
        (datetime(2024, 1, 31, 9, 0), 1, datetime(2024, 2, 29, 9, 0)),
        (datetime(2023, 1, 31, 9, 0), 1, datetime(2023, 2, 28, 9, 0)),
        (datetime(2024, 1, 31, 9, 0), 2, datetime(2024, 3, 31, 9, 0)),
        (datetime(2024, 1, 31, 9, 0), 3, datetime(2024, 4, 30, 9, 0)),
        (datetime(2024, 11, 15), 2, datetime(2025, 1, 15)),
        (datetime(2024, 12, 31), 12, datetime(2025, 12, 31)),
    ],
)
def test_add_months_clamps_day_to_target_month(start, months, expected) -> None:
    assert add_months(start, months) == expected


def test_advance_daily_and_weekly_keep_wall_clock_time() -> None:
    start = datetime(2024, 3, 30, 8, 15)
    assert advance(start, RecurKind.DAILY, 2) == datetime(2024, 4, 1, 8, 15)
    assert advance(start, RecurKind.WEEKLY) == datetime(2024, 4, 6, 8, 15)


def test_parse_when_accepts_date_and_datetime_forms() -> None:
    midnight = parse_when("2024-05-01")
    assert datetime.fromtimestamp(midnight) == datetime(2024, 5, 1)
    assert parse_when("2024-05-01 14:30") == parse_when("2024-05-01T14:30:00")
    assert parse_when("2024-05-01 14:30") - midnight == 14.5 * 3600


@pytest.mark.parametrize("raw", ["", "   ", "tomorrow", "2024-13-01", "01/05/2024"])
def test_parse_when_rejects_garbage(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_when(raw)


def test_parse_day() -> None:
    assert parse_day(" 2024-02-29 ") == date(2024, 2, 29)
    with pytest.raises(ValueError):
        parse_day("2023-02-29")


def test_local_day_bounds_is_half_open_day() -> None:
    start, end = local_day_bounds(date(2024, 5, 1))
    assert start == parse_when("2024-05-01")
    assert end == parse_when("2024-05-02")


def test_add_days_and_format_ts() -> None:
    ts = parse_when("2024-01-30 07:05")
    assert format_ts(add_days(ts, 3)) == "2024-02-02 07:05"
    assert format_ts(parse_when("2024-01-30")) == "2024-01-30"
    assert format_ts(None) == ""
