# src/taskflow/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class TaskStatus(StrEnum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.TODO
        try:
            return cls(raw)
        except ValueError:
            return cls.TODO


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.LOW
        try:
            return cls(raw)
        except ValueError:
            return cls.LOW


class RecurKind(StrEnum):
    """Repetition rule carried by a template task."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def from_db(cls, raw: str | None) -> RecurKind | None:
        # Unknown values in old rows are treated as "not recurring".
        if not raw:
            return None
        try:
            return cls(raw)
        except ValueError:
            return None


@dataclass(slots=True)
class Task:
    id: str
    owner_id: str
    title: str
    status: TaskStatus
    priority: TaskPriority
    created_at: float
    updated_at: float

    description: str | None = None
    due_at: float | None = None

    series_id: str | None = None
    recur: RecurKind | None = None
    recur_until: float | None = None
    parent_id: str | None = None

    @property
    def is_template(self) -> bool:
        """A row the expansion engine can generate instances from."""
        return (
            self.recur is not None
            and self.due_at is not None
            and self.recur_until is not None
            and self.series_id is not None
        )


@dataclass(slots=True)
class TaskPage:
    total: int
    limit: int
    offset: int
    items: list[Task] = field(default_factory=list)
