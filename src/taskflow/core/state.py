# src/taskflow/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .ports import OutboundMessenger

if TYPE_CHECKING:
    from ..tasks.recurrence import RecurrenceEngine
    from ..tasks.series import SeriesManager
    from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    """
    Process-wide handles, built once in cli.bootstrap and passed by reference.

    settings is typed as Any so tests can pass a SimpleNamespace.
    """

    settings: Any

    task_store: TaskStore
    recurrence: RecurrenceEngine
    series: SeriesManager
    messenger: OutboundMessenger | None = None

    # Serializes console commands with anything else touching state from other threads.
    lock: threading.RLock = field(default_factory=threading.RLock)

    @property
    def owner_id(self) -> str:
        return str(getattr(self.settings, "owner_id", "") or "")
