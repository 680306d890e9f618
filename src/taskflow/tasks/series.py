# src/taskflow/tasks/series.py

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ..core.ports import TaskRepo

logger = logging.getLogger(__name__)


class SeriesManager:
    """
    Deletes recurring series (template + generated instances).

    only_future=True keeps rows due before "now" as history and ends the
    surviving template at "now", so the periodic re-expansion does not
    regenerate the rows that were just removed.
    """

    def __init__(self, task_store: TaskRepo, *, clock: Callable[[], float] = time.time) -> None:
        self._store = task_store
        self._clock = clock

    def delete_series_by_series_id(
        self,
        series_id: str,
        owner_id: str,
        only_future: bool = False,
    ) -> int:
        if not series_id:
            return 0

        if not only_future:
            deleted = self._store.delete_series_rows(series_id, owner_id)
            logger.info("Series %s deleted owner=%s rows=%d", series_id, owner_id, deleted)
            return deleted

        now_ts = self._clock()
        deleted = self._store.delete_series_rows(series_id, owner_id, min_due_at=now_ts)
        capped = self._store.cap_series_until(series_id, owner_id, now_ts)
        logger.info(
            "Series %s future rows deleted owner=%s rows=%d templates_ended=%d",
            series_id,
            owner_id,
            deleted,
            capped,
        )
        return deleted

    def delete_series_by_task_id(
        self,
        task_id: str,
        owner_id: str,
        only_future: bool = False,
    ) -> int:
        task = self._store.get_task(task_id, owner_id)
        if task is None or not task.series_id:
            return 0
        return self.delete_series_by_series_id(task.series_id, owner_id, only_future)
