# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow.cli.bootstrap import create_initial_state
from taskflow.core.state import AppState
from taskflow.tasks.task_store import TaskStore

from .fakes import FakeMessenger


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskflow-test",
        owner_id="alice",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        recur_horizon_days=60,
        scheduler_enabled=False,
        scheduler_interval_seconds=3600,
        summary_hour=9,
        summary_upcoming_days=1,
        matrix_enabled=False,
    )


@pytest.fixture()
def messenger() -> FakeMessenger:
    return FakeMessenger()


@pytest.fixture()
def state(settings: SimpleNamespace, messenger: FakeMessenger) -> AppState:
    """
    AppState wired through the real composition root.

    NOTE: We keep the real SQLite TaskStore here because its correctness
    is part of what we want to test.
    """
    return create_initial_state(settings=settings, messenger=messenger)


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    """A bare TaskStore without the expansion hook (engine tests drive expand() by hand)."""
    return TaskStore(tmp_path / "bare.sqlite3")
