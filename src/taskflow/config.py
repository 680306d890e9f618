# src/taskflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time.
- Every knob has a safe default so a bare checkout runs locally.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKFLOW"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Identity of the local session ----
    owner_id: str

    # ---- Recurrence ----
    recur_horizon_days: int

    # ---- Periodic trigger ----
    scheduler_enabled: bool
    scheduler_interval_seconds: int
    summary_hour: int
    summary_upcoming_days: int

    # ---- Connector flags ----
    console_enabled: bool
    matrix_enabled: bool

    # ---- Matrix ----
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_notify_room: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    matrix_store_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskflow").strip() or "taskflow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        owner_id = _env(_k("OWNER_ID"), "").strip() or os.getenv("USER", "").strip() or "local"

        recur_horizon_days = max(1, _env_int(_k("RECUR_HORIZON_DAYS"), 60))

        scheduler_enabled = _env_bool(_k("SCHEDULER_ENABLED"), True)
        scheduler_interval_seconds = max(1, _env_int(_k("SCHEDULER_INTERVAL_SECONDS"), 3600))
        summary_hour = min(23, max(0, _env_int(_k("SUMMARY_HOUR"), 9)))
        summary_upcoming_days = max(1, _env_int(_k("SUMMARY_UPCOMING_DAYS"), 1))

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)
        matrix_enabled = _env_bool(_k("MATRIX_ENABLED"), False)

        matrix_homeserver = _env(_k("MATRIX_HOMESERVER"), "").strip()
        matrix_user_id = _env(_k("MATRIX_USER_ID"), "").strip()
        matrix_password = _env(_k("MATRIX_PASSWORD"), "").strip()
        matrix_notify_room = _env(_k("MATRIX_NOTIFY_ROOM"), "").strip()

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskflow"))
        tasks_db_path = _env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3")
        matrix_store_path = _env_path(_k("MATRIX_STORE_PATH"), data_dir / "matrix_store")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            owner_id=owner_id,
            recur_horizon_days=recur_horizon_days,
            scheduler_enabled=scheduler_enabled,
            scheduler_interval_seconds=scheduler_interval_seconds,
            summary_hour=summary_hour,
            summary_upcoming_days=summary_upcoming_days,
            console_enabled=console_enabled,
            matrix_enabled=matrix_enabled,
            matrix_homeserver=matrix_homeserver,
            matrix_user_id=matrix_user_id,
            matrix_password=matrix_password,
            matrix_notify_room=matrix_notify_room,
            data_dir=data_dir,
            tasks_db_path=tasks_db_path,
            matrix_store_path=matrix_store_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
