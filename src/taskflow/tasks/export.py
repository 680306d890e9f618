# src/taskflow/tasks/export.py

from __future__ import annotations

import csv
from datetime import datetime
from typing import TextIO

from ..core.ports import TaskRepo

CSV_COLUMNS = (
    ("id", "ID"),
    ("title", "Title"),
    ("description", "Description"),
    ("status", "Status"),
    ("priority", "Priority"),
    ("due_at", "Due At"),
    ("recur", "Recur"),
    ("recur_until", "Recur Until"),
    ("created_at", "Created At"),
    ("updated_at", "Updated At"),
)

_TS_FIELDS = {"due_at", "recur_until", "created_at", "updated_at"}


def _cell(name: str, value: object) -> str:
    if value is None:
        return ""
    if name in _TS_FIELDS:
        return datetime.fromtimestamp(float(value)).isoformat(timespec="seconds")  # type: ignore[arg-type]
    return str(value)


def export_tasks_csv(task_store: TaskRepo, owner_id: str, out: TextIO) -> int:
    """Write all of the owner's tasks as CSV (with header). Returns the number of rows."""
    writer = csv.writer(out)
    writer.writerow([header for _, header in CSV_COLUMNS])

    n = 0
    for task in task_store.iter_owner_tasks(owner_id):
        writer.writerow([_cell(name, getattr(task, name)) for name, _ in CSV_COLUMNS])
        n += 1
    return n
