# tests/test_series.py

from __future__ import annotations

from taskflow.tasks.dates import parse_when
from taskflow.tasks.recurrence import RecurrenceEngine
from taskflow.tasks.series import SeriesManager
from taskflow.tasks.task_store import TaskStore

from .fakes import FixedClock


def _make_series(store: TaskStore, owner_id: str = "alice"):
    engine = RecurrenceEngine(store, clock=FixedClock(parse_when("2024-01-01")))
    tmpl = store.create_task(
        owner_id, title="Daily", due_at="2024-01-01 09:00", recur="daily", recur_until="2024-01-05 23:00"
    )
    assert engine.expand(tmpl) == 4
    return tmpl


def test_delete_future_keeps_history_and_ends_template(store: TaskStore) -> None:
    tmpl = _make_series(store)
    now = FixedClock(parse_when("2024-01-02 12:00"))
    series = SeriesManager(store, clock=now)

    deleted = series.delete_series_by_series_id(tmpl.series_id, "alice", only_future=True)

    assert deleted == 3
    assert store.count_series(tmpl.series_id, "alice") == 2
    survivor = store.get_task(tmpl.id, "alice")
    assert survivor.recur_until == now.now

    # Re-expansion must not bring the removed days back.
    engine = RecurrenceEngine(store, clock=now)
    assert engine.expand_all() == 0
    assert store.count_series(tmpl.series_id, "alice") == 2


def test_delete_whole_series(store: TaskStore) -> None:
    tmpl = _make_series(store)
    other = store.create_task("alice", title="unrelated")

    assert SeriesManager(store).delete_series_by_series_id(tmpl.series_id, "alice") == 5
    assert store.count_tasks("alice") == 1
    assert store.get_task(other.id, "alice") is not None


def test_delete_series_is_owner_scoped(store: TaskStore) -> None:
    tmpl = _make_series(store)
    series = SeriesManager(store)

    assert series.delete_series_by_series_id(tmpl.series_id, "bob") == 0
    assert series.delete_series_by_task_id(tmpl.id, "bob") == 0
    assert store.count_series(tmpl.series_id, "alice") == 5


def test_delete_by_task_id_resolves_series(store: TaskStore) -> None:
    tmpl = _make_series(store)
    plain = store.create_task("alice", title="plain")
    series = SeriesManager(store)

    instance = next(
        t for t in store.list_tasks("alice", limit=100).items if t.parent_id == tmpl.id
    )

    assert series.delete_series_by_task_id(plain.id, "alice") == 0
    assert series.delete_series_by_task_id("missing", "alice") == 0
    assert series.delete_series_by_task_id(instance.id, "alice") == 5
    assert store.count_tasks("alice") == 1
