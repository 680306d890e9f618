# src/taskflow/tasks/summary.py

from __future__ import annotations

from ..core.ports import TaskRepo
from .dates import add_days, format_ts
from .task_models import Task

SUMMARY_SECTION_LIMIT = 20


def _render_line(task: Task) -> str:
    return f"  - [{task.priority.value}] {task.title} (due {format_ts(task.due_at)})"


def build_daily_summary(
    task_store: TaskRepo,
    owner_id: str,
    *,
    now_ts: float,
    upcoming_days: int = 1,
) -> str | None:
    """
    Plain-text digest of the owner's open tasks:
    - overdue: due before now
    - upcoming: due within the next `upcoming_days` calendar days

    Returns None when there is nothing to report.
    """
    overdue = task_store.list_open_due_between(
        owner_id, end_ts=now_ts, limit=SUMMARY_SECTION_LIMIT
    )
    upcoming = task_store.list_open_due_between(
        owner_id,
        start_ts=now_ts,
        end_ts=add_days(now_ts, max(1, int(upcoming_days))),
        limit=SUMMARY_SECTION_LIMIT,
    )
    if not overdue and not upcoming:
        return None

    lines = ["Task summary"]
    if overdue:
        lines.append(f"Overdue ({len(overdue)}):")
        lines.extend(_render_line(t) for t in overdue)
    if upcoming:
        lines.append(f"Upcoming ({len(upcoming)}):")
        lines.extend(_render_line(t) for t in upcoming)
    return "\n".join(lines)
