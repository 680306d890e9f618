# src/taskflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the task store, recurrence engine, series manager and messenger into AppState,
- registers the engine as the store's template post-write hook.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.console_connector import ConsoleMessenger
from ..core.ports import OutboundMessenger
from ..core.state import AppState
from ..tasks.recurrence import RecurrenceEngine
from ..tasks.series import SeriesManager
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def _create_messenger(settings) -> OutboundMessenger:
    if getattr(settings, "matrix_enabled", False):
        from ..connectors.matrix_messenger import MatrixMessenger

        logger.info("Notifications via Matrix room=%s", settings.matrix_notify_room or "(unset)")
        return MatrixMessenger(settings)
    return ConsoleMessenger()


def create_initial_state(*, settings=None, messenger: OutboundMessenger | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    task_store = TaskStore(settings.tasks_db_path)
    recurrence = RecurrenceEngine(task_store, horizon_days=settings.recur_horizon_days)
    task_store.add_template_listener(recurrence.on_template_written)

    return AppState(
        settings=settings,
        task_store=task_store,
        recurrence=recurrence,
        series=SeriesManager(task_store),
        messenger=messenger if messenger is not None else _create_messenger(settings),
    )
