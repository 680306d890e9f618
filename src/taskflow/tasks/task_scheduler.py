# src/taskflow/tasks/task_scheduler.py

from __future__ import annotations

"""
Periodic trigger.

A small polling loop that:
- re-expands every recurring template so the rolling horizon keeps moving,
- once per local day (at/after summary_hour) sends each owner a summary of
  overdue and upcoming tasks via an injected messenger port.

Formatting/transport of the summary belongs to the messenger, not the scheduler.
"""

import asyncio
import contextlib
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from ..core.ports import OutboundMessenger, TaskRepo
from ..core.state import AppState
from .dates import to_local
from .recurrence import RecurrenceEngine
from .summary import build_daily_summary

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SummaryLedger:
    """Which owners already got today's summary."""

    day: date | None = None
    sent: set[str] = field(default_factory=set)

    def roll(self, today: date) -> None:
        if self.day != today:
            self.day = today
            self.sent.clear()


async def send_daily_summaries(
        task_store: TaskRepo,
        messenger: OutboundMessenger,
        ledger: SummaryLedger,
        *,
        now_ts: float,
        summary_hour: int = 9,
        upcoming_days: int = 1,
) -> int:
    """
    Send today's summary to every owner that has not received it yet.

    Returns the number of summaries sent. A failed send is logged and retried
    on the next tick.
    """
    local_now = to_local(now_ts)
    ledger.roll(local_now.date())
    if local_now.hour < int(summary_hour):
        return 0

    sent = 0
    for owner_id in task_store.list_owner_ids():
        if owner_id in ledger.sent:
            continue
        try:
            text = build_daily_summary(
                task_store, owner_id, now_ts=now_ts, upcoming_days=upcoming_days
            )
            if text:
                await messenger.send_text(text=text, to_user_id=owner_id)
                sent += 1
            ledger.sent.add(owner_id)
        except Exception:
            logger.exception("daily summary failed owner=%s", owner_id)
    if sent:
        logger.info("Daily summaries sent: %d", sent)
    return sent


async def run_task_scheduler(
        task_store: TaskRepo,
        engine: RecurrenceEngine,
        messenger: OutboundMessenger | None,
        *,
        interval_seconds: float = 3600.0,
        summary_hour: int = 9,
        upcoming_days: int = 1,
        clock: Callable[[], float] = time.time,
        stop_event: asyncio.Event | None = None,
) -> None:
    """
    Simple polling scheduler.

    Every interval_seconds:
    - engine.expand_all() (idempotent; only missing occurrences are inserted)
    - send daily summaries if a messenger is configured

    To stop the scheduler, set stop_event or cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    ledger = SummaryLedger()

    while stop_event is None or not stop_event.is_set():
        try:
            created = engine.expand_all()
            if created:
                logger.info("Periodic expansion created %d instance(s)", created)
        except Exception:
            logger.exception("expand_all failed")

        if messenger is not None:
            try:
                await send_daily_summaries(
                    task_store,
                    messenger,
                    ledger,
                    now_ts=clock(),
                    summary_hour=summary_hour,
                    upcoming_days=upcoming_days,
                )
            except Exception:
                logger.exception("send_daily_summaries failed")

        if stop_event is None:
            await asyncio.sleep(sleep_s)
        else:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=sleep_s)


@dataclass(slots=True)
class SchedulerBackgroundRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except RuntimeError:
            logger.debug("Failed to signal scheduler stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


def start_scheduler_in_background(state: AppState) -> SchedulerBackgroundRunner | None:
    """
    Start the periodic trigger in a background thread (so the console REPL can run in parallel).

    The console REPL is blocking (input()); the scheduler is async and wants its own event loop.
    """
    settings = state.settings
    if not getattr(settings, "scheduler_enabled", True):
        logger.info("Scheduler disabled, not starting.")
        return None

    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(
                run_task_scheduler(
                    state.task_store,
                    state.recurrence,
                    state.messenger,
                    interval_seconds=float(getattr(settings, "scheduler_interval_seconds", 3600)),
                    summary_hour=int(getattr(settings, "summary_hour", 9)),
                    upcoming_days=int(getattr(settings, "summary_upcoming_days", 1)),
                    stop_event=stop_event,
                )
            )
        except Exception:
            logger.exception("Scheduler loop crashed.")
        finally:
            aclose = getattr(state.messenger, "aclose", None)
            if aclose is not None:
                try:
                    loop.run_until_complete(aclose())
                except Exception:
                    logger.debug("Messenger close failed.", exc_info=True)
            with contextlib.suppress(Exception):
                loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    t = threading.Thread(target=runner, name="taskflow-scheduler", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Scheduler thread did not initialize properly.")
        return None

    logger.info("Scheduler background thread started.")
    return SchedulerBackgroundRunner(thread=t, loop=loop, stop_event=stop_event)
