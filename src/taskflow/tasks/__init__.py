"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, TaskPriority, RecurKind)
- dates.py: day/week/month advancement with month-end clamping
- task_store.py: SQLite-backed, owner-scoped storage + migrations
- recurrence.py: occurrence sequence + rolling-horizon expansion engine
- series.py: whole-series / future-only deletion
- summary.py, export.py: daily digest and CSV export
- task_scheduler.py: periodic re-expansion + daily summary loop
"""
