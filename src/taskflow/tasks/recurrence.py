# src/taskflow/tasks/recurrence.py

"""
Recurrence expansion.

A template task (recur + due_at + recur_until) is materialized into concrete
instance rows that share its series_id. Expansion is a rolling window: each call
covers [due_at, min(recur_until, now + horizon)] and only inserts occurrences
that are not stored yet, so calling it again is always safe.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import timedelta

from ..core.ports import TaskRepo
from .dates import advance, from_local, to_local
from .task_models import RecurKind, Task

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 60


@dataclass(frozen=True, slots=True)
class OccurrenceSequence:
    """
    Candidate due dates from `start` up to and including `end`.

    Iterating yields `start` first, then `start` advanced by 1, 2, ... periods.
    Every value is derived from the anchor (not from the previous value), so
    monthly clamping never drifts: Jan 31 -> Feb 29 -> Mar 31 -> Apr 30.
    Each iter() walks again from the anchor.
    """

    start: float
    end: float
    kind: RecurKind

    def __iter__(self) -> Iterator[float]:
        if self.start > self.end:
            return
        yield self.start

        anchor = to_local(self.start)
        step = 1
        while True:
            ts = from_local(advance(anchor, self.kind, step))
            if ts > self.end:
                return
            yield ts
            step += 1


class RecurrenceEngine:
    """
    Materializes instances of template tasks.

    Failure policy (best-effort): if inserting one occurrence fails, it is logged
    and skipped and the remaining occurrences are still attempted. The returned
    count only includes rows that were actually inserted.
    """

    def __init__(
        self,
        task_store: TaskRepo,
        *,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = task_store
        self._horizon_days = max(1, int(horizon_days))
        self._clock = clock

    @property
    def horizon_days(self) -> int:
        return self._horizon_days

    def effective_until(self, template: Task, horizon_days: int | None = None) -> float | None:
        if template.recur_until is None:
            return None
        days = self._horizon_days if horizon_days is None else max(0, int(horizon_days))
        horizon_end = from_local(to_local(self._clock()) + timedelta(days=days))
        return min(template.recur_until, horizon_end)

    def expand(self, template: Task, horizon_days: int | None = None) -> int:
        """
        Insert the template's missing occurrences inside the generation window.

        Returns the number of rows created. A task that is not a complete
        template is a no-op (returns 0).
        """
        if (
            template.recur is None
            or template.recur_until is None
            or template.due_at is None
            or not template.series_id
        ):
            logger.debug("expand: task %s is not a template; skipping", template.id)
            return 0

        until = self.effective_until(template, horizon_days)
        if until is None:
            return 0
        sequence = OccurrenceSequence(start=template.due_at, end=until, kind=template.recur)

        created = 0
        skipped = 0
        failed = 0
        try:
            with self._store.write_batch() as batch:
                for due_at in sequence:
                    if due_at == template.due_at:
                        continue
                    if batch.instance_exists(template.owner_id, template.series_id, due_at):
                        skipped += 1
                        continue
                    try:
                        batch.insert_instance(template, due_at)
                    except sqlite3.Error:
                        failed += 1
                        logger.exception(
                            "expand: insert failed template=%s due_at=%s", template.id, due_at
                        )
                        continue
                    created += 1
        except sqlite3.Error:
            logger.exception("expand: batch failed template=%s (nothing committed)", template.id)
            return 0

        if created or failed:
            logger.info(
                "Expanded template=%s series=%s created=%d existing=%d failed=%d until=%s",
                template.id,
                template.series_id,
                created,
                skipped,
                failed,
                until,
            )
        return created

    def on_template_written(self, task: Task) -> int:
        """Post-write hook for TaskStore: expansion never fails the triggering write."""
        try:
            return self.expand(task)
        except Exception:
            logger.exception("on_template_written: expansion failed task_id=%s", task.id)
            return 0

    def expand_all(self, owner_id: str | None = None) -> int:
        """Re-expand every stored template (optionally only one owner's)."""
        total = 0
        for template in self._store.list_templates(owner_id):
            try:
                total += self.expand(template)
            except Exception:
                logger.exception("expand_all: template %s failed", template.id)
        return total
