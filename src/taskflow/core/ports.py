# src/taskflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the task core.

The engine, series manager and scheduler depend on Protocols instead of the
concrete SQLite store and transports. This keeps storage/notification swappable
and makes testing easier.
"""

from collections.abc import Iterator, Mapping
from contextlib import AbstractContextManager
from typing import Any, Awaitable, Protocol


class OutboundMessenger(Protocol):
    """
    Notification port: how services (the periodic scheduler) send text outward.

    The transport decides how to interpret:
    - room_id (can be None)
    - to_user_id (can be None)
    E.g. the Matrix messenger falls back to its configured notify room.
    """

    def send_text(
            self,
            *,
            text: str,
            room_id: str | None = None,
            to_user_id: str | None = None,
    ) -> Awaitable[None]: ...


class InstanceWriter(Protocol):
    def instance_exists(self, owner_id: str, series_id: str, due_at: float) -> bool: ...
    def insert_instance(self, template: Any, due_at: float) -> Any: ...


class TaskRepo(Protocol):
    # Owner-scoped CRUD
    def create_task(self, owner_id: str, *, title: str, **fields: Any) -> Any: ...
    def get_task(self, task_id: str, owner_id: str) -> Any | None: ...
    def list_tasks(self, owner_id: str, **filters: Any) -> Any: ...
    def update_task(self, task_id: str, owner_id: str, patch: Mapping[str, Any]) -> Any | None: ...
    def delete_task(self, task_id: str, owner_id: str) -> bool: ...

    # Expansion
    def write_batch(self) -> AbstractContextManager[InstanceWriter]: ...
    def list_templates(self, owner_id: str | None = None) -> list[Any]: ...

    # Series lifecycle
    def delete_series_rows(
            self,
            series_id: str,
            owner_id: str,
            *,
            min_due_at: float | None = None,
    ) -> int: ...
    def cap_series_until(self, series_id: str, owner_id: str, until_ts: float) -> int: ...

    # Summary / export
    def list_open_due_between(
            self,
            owner_id: str,
            *,
            start_ts: float | None = None,
            end_ts: float,
            limit: int = 50,
    ) -> list[Any]: ...
    def list_owner_ids(self) -> list[str]: ...
    def iter_owner_tasks(self, owner_id: str) -> Iterator[Any]: ...
