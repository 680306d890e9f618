# tests/test_config.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskflow.config import Settings


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("TASKFLOW_OWNER_ID", "TASKFLOW_DATA_DIR", "TASKFLOW_TASKS_DB_PATH", "TASKFLOW_RECUR_HORIZON_DAYS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("USER", "carol")

    s = Settings.from_env()

    assert s.owner_id == "carol"
    assert s.recur_horizon_days == 60
    assert s.tasks_db_path == Path(".local/taskflow") / "tasks.sqlite3"


def test_from_env_overrides_and_clamps(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TASKFLOW_OWNER_ID", " dave ")
    monkeypatch.setenv("TASKFLOW_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TASKFLOW_RECUR_HORIZON_DAYS", "0")
    monkeypatch.setenv("TASKFLOW_SUMMARY_HOUR", "42")
    monkeypatch.setenv("TASKFLOW_SCHEDULER_INTERVAL_SECONDS", "not a number")
    monkeypatch.setenv("TASKFLOW_MATRIX_ENABLED", "yes")

    s = Settings.from_env()

    assert s.owner_id == "dave"
    assert s.tasks_db_path == tmp_path / "tasks.sqlite3"
    assert s.recur_horizon_days == 1
    assert s.summary_hour == 23
    assert s.scheduler_interval_seconds == 3600
    assert s.matrix_enabled is True
