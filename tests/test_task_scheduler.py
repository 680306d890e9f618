# tests/test_task_scheduler.py

from __future__ import annotations

import asyncio

import pytest

from taskflow.tasks.dates import parse_when
from taskflow.tasks.recurrence import RecurrenceEngine
from taskflow.tasks.task_scheduler import SummaryLedger, run_task_scheduler, send_daily_summaries
from taskflow.tasks.task_store import TaskStore

from .fakes import FakeMessenger, FixedClock


class FailingMessenger:
    async def send_text(self, *, text: str, room_id=None, to_user_id=None) -> None:
        raise RuntimeError("transport down")


@pytest.mark.asyncio
async def test_scheduler_expands_and_sends_one_summary_per_day(store: TaskStore) -> None:
    clock = FixedClock(parse_when("2024-01-03 10:00"))
    engine = RecurrenceEngine(store, clock=clock)
    tmpl = store.create_task(
        "alice", title="Stand-up", due_at="2024-01-01 09:00", recur="daily", recur_until="2024-01-05 23:00"
    )
    messenger = FakeMessenger()

    runner = asyncio.create_task(
        run_task_scheduler(store, engine, messenger, interval_seconds=0.01, clock=clock)
    )
    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert store.count_series(tmpl.series_id, "alice") == 5
    assert len(messenger.sent) == 1
    msg = messenger.sent[0]
    assert msg.to_user_id == "alice"
    assert "Overdue (3):" in msg.text
    assert "Upcoming (1):" in msg.text


@pytest.mark.asyncio
async def test_scheduler_stops_on_event(store: TaskStore) -> None:
    engine = RecurrenceEngine(store)
    stop = asyncio.Event()
    stop.set()

    await asyncio.wait_for(
        run_task_scheduler(store, engine, None, interval_seconds=10, stop_event=stop),
        timeout=1.0,
    )


@pytest.mark.asyncio
async def test_no_summary_before_summary_hour(store: TaskStore) -> None:
    store.create_task("alice", title="late", due_at="2024-01-01")
    messenger = FakeMessenger()
    ledger = SummaryLedger()

    sent = await send_daily_summaries(
        store, messenger, ledger, now_ts=parse_when("2024-01-02 08:59"), summary_hour=9
    )

    assert sent == 0
    assert messenger.sent == []


@pytest.mark.asyncio
async def test_summary_repeats_on_next_day_and_skips_empty_owners(store: TaskStore) -> None:
    store.create_task("alice", title="late", due_at="2024-01-01")
    store.create_task("bob", title="someday")
    messenger = FakeMessenger()
    ledger = SummaryLedger()

    day1 = parse_when("2024-01-02 09:30")
    assert await send_daily_summaries(store, messenger, ledger, now_ts=day1) == 1
    assert await send_daily_summaries(store, messenger, ledger, now_ts=day1 + 60) == 0
    assert ledger.sent == {"alice", "bob"}

    day2 = parse_when("2024-01-03 09:30")
    assert await send_daily_summaries(store, messenger, ledger, now_ts=day2) == 1
    assert [m.to_user_id for m in messenger.sent] == ["alice", "alice"]


@pytest.mark.asyncio
async def test_failed_send_is_retried_next_tick(store: TaskStore) -> None:
    store.create_task("alice", title="late", due_at="2024-01-01")
    ledger = SummaryLedger()
    now = parse_when("2024-01-02 10:00")

    assert await send_daily_summaries(store, FailingMessenger(), ledger, now_ts=now) == 0
    assert "alice" not in ledger.sent

    messenger = FakeMessenger()
    assert await send_daily_summaries(store, messenger, ledger, now_ts=now + 60) == 1
