# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep them in .env (local, gitignored).

Lists every TASKFLOW_* variable read by taskflow.config.Settings.from_env().
"""

ENV_VARS = {
    # App / logging
    "TASKFLOW_APP_NAME": "App display name (default: taskflow).",
    "TASKFLOW_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Identity
    "TASKFLOW_OWNER_ID": "Owner of the local session (default: $USER, else 'local').",
    # Recurrence
    "TASKFLOW_RECUR_HORIZON_DAYS": "How far ahead recurring series are materialized (default: 60).",
    # Periodic trigger
    "TASKFLOW_SCHEDULER_ENABLED": "Run periodic re-expansion and daily summaries (true/false).",
    "TASKFLOW_SCHEDULER_INTERVAL_SECONDS": "Seconds between scheduler ticks (default: 3600).",
    "TASKFLOW_SUMMARY_HOUR": "Local hour (0-23) from which the daily summary is sent (default: 9).",
    "TASKFLOW_SUMMARY_UPCOMING_DAYS": "Days ahead listed as 'upcoming' in the summary (default: 1).",
    # Connectors
    "TASKFLOW_CONSOLE_ENABLED": "Enable the console REPL (true/false).",
    "TASKFLOW_MATRIX_ENABLED": "Deliver summaries to a Matrix room instead of the console (true/false).",
    # Matrix
    "TASKFLOW_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "TASKFLOW_MATRIX_USER_ID": "Matrix user ID used to post notices.",
    "TASKFLOW_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "TASKFLOW_MATRIX_NOTIFY_ROOM": "Room ID that receives the daily summaries.",
    # Paths (gitignored)
    "TASKFLOW_DATA_DIR": "Local data directory (default: .local/taskflow).",
    "TASKFLOW_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    "TASKFLOW_MATRIX_STORE_PATH": "Matrix store path (default: <data_dir>/matrix_store).",
}
