# src/taskflow/tasks/task_store.py

from __future__ import annotations

import contextlib
import dataclasses
import logging
import sqlite3
import time
import uuid
from collections.abc import Callable, Iterator, Mapping
from datetime import date, datetime
from pathlib import Path
from typing import Any

from .dates import local_day_bounds, parse_when
from .task_models import RecurKind, Task, TaskPage, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)

TemplateListener = Callable[[Task], object]

TITLE_MAX_LEN = 200
PAGE_LIMIT_MAX = 100

# Fields a caller may change through update_task().
PATCHABLE_FIELDS = frozenset(
    {"title", "description", "status", "priority", "due_at", "recur", "recur_until"}
)
# Identity / store-managed fields: silently dropped from patches.
PROTECTED_FIELDS = frozenset(
    {"id", "owner_id", "created_at", "updated_at", "series_id", "parent_id"}
)


def _new_id() -> str:
    return uuid.uuid4().hex


def _require_owner(owner_id: str) -> str:
    owner = (owner_id or "").strip()
    if not owner:
        raise ValueError("owner_id is required")
    return owner


def _clean_title(title: Any) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValueError("title is required")
    title = title.strip()
    if len(title) > TITLE_MAX_LEN:
        raise ValueError(f"title must be at most {TITLE_MAX_LEN} characters")
    return title


def _clean_description(description: Any) -> str | None:
    if description is None:
        return None
    text = str(description).strip()
    return text or None


def _coerce_ts(value: Any, field: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a timestamp or date string")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        if not value.strip():
            return None
        return parse_when(value)
    raise ValueError(f"{field} must be a timestamp or date string")


def _coerce_recur(value: Any) -> RecurKind | None:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in ("", "none", "off"):
        return None
    try:
        return RecurKind(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"recur must be one of: {', '.join(k.value for k in RecurKind)}") from None


def _coerce_status(value: Any) -> TaskStatus:
    try:
        return TaskStatus(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"status must be one of: {', '.join(s.value for s in TaskStatus)}") from None


def _coerce_priority(value: Any) -> TaskPriority:
    try:
        return TaskPriority(str(value).strip().lower())
    except ValueError:
        raise ValueError(
            f"priority must be one of: {', '.join(p.value for p in TaskPriority)}"
        ) from None


_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    id          TEXT PRIMARY KEY,
    owner_id    TEXT NOT NULL,
    title       TEXT NOT NULL,
    description TEXT,
    status      TEXT NOT NULL DEFAULT 'todo',
    priority    TEXT NOT NULL DEFAULT 'low',
    due_at      REAL,
    series_id   TEXT,
    recur       TEXT,
    recur_until REAL,
    parent_id   TEXT,
    created_at  REAL NOT NULL,
    updated_at  REAL NOT NULL
)
"""

_TS_COLUMNS = ("due_at", "recur_until", "created_at", "updated_at")


def _iso_to_ts(raw: str) -> float | None:
    """ISO-8601 text to epoch seconds. Naive values are read as local time."""
    if not raw:
        return None
    return datetime.fromisoformat(raw).timestamp()


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=str(row["id"]),
        owner_id=str(row["owner_id"]),
        title=str(row["title"] or ""),
        status=TaskStatus.from_db(row["status"]),
        priority=TaskPriority.from_db(row["priority"]),
        created_at=float(row["created_at"] or 0.0),
        updated_at=float(row["updated_at"] or 0.0),
        description=row["description"],
        due_at=float(row["due_at"]) if row["due_at"] is not None else None,
        series_id=row["series_id"],
        recur=RecurKind.from_db(row["recur"]),
        recur_until=float(row["recur_until"]) if row["recur_until"] is not None else None,
        parent_id=row["parent_id"],
    )


class TaskWriteBatch:
    """
    Writes issued inside one BEGIN IMMEDIATE transaction.

    Used by the recurrence engine so that the "does this occurrence exist?" check
    and the insert that follows it run under the database write lock.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def instance_exists(self, owner_id: str, series_id: str, due_at: float) -> bool:
        cur = self._conn.execute(
            """
            SELECT 1
            FROM tasks
            WHERE owner_id = ?
              AND series_id = ?
              AND due_at = ?
            LIMIT 1
            """,
            (owner_id, series_id, float(due_at)),
        )
        return cur.fetchone() is not None

    def insert_instance(self, template: Task, due_at: float) -> Task:
        """Insert one generated occurrence, snapshotting the template's fields."""
        now = time.time()
        task = Task(
            id=_new_id(),
            owner_id=template.owner_id,
            title=template.title,
            status=TaskStatus.TODO,
            priority=template.priority,
            created_at=now,
            updated_at=now,
            description=template.description,
            due_at=float(due_at),
            series_id=template.series_id,
            parent_id=template.id,
        )
        self._conn.execute(
            """
            INSERT INTO tasks(
                id, owner_id, title, description, status, priority,
                due_at, series_id, recur, recur_until, parent_id,
                created_at, updated_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, NULL, NULL, ?, ?, ?)
            """,
            (
                task.id,
                task.owner_id,
                task.title,
                task.description,
                task.status.value,
                task.priority.value,
                task.due_at,
                task.series_id,
                task.parent_id,
                task.created_at,
                task.updated_at,
            ),
        )
        return task


class TaskStore:
    """
    SQLite task store. Every public read/write is scoped by owner_id.

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed
    - legacy layouts (user_id owner column, TEXT timestamps) are rebuilt once

    Thread-safety:
    - each method opens its own SQLite connection

    Template hooks:
    - listeners registered via add_template_listener() are called synchronously
      after create_task()/update_task() writes a row that is a valid template.
      A failing listener is logged and never fails the write.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._template_listeners: list[TemplateListener] = []
        self._ensure_schema()
        try:
            total = self.count_tasks()
        except sqlite3.Error:
            total = -1
        logger.info("TaskStore ready db=%s total=%s", self._db_path, total)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    def add_template_listener(self, listener: TemplateListener) -> None:
        self._template_listeners.append(listener)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()

            cur.execute("PRAGMA table_info(tasks)")
            decl = {row["name"]: str(row["type"] or "").upper() for row in cur.fetchall()}
            if decl and self._is_legacy_layout(decl):
                self._rebuild_legacy_table(cur, set(decl))

            cur.execute(_TASKS_DDL)

            # Migrations (safe): add missing columns.
            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                cols.add(name)
                logger.info("TaskStore migration: added column %s", name)

            add_col("owner_id", "TEXT NOT NULL DEFAULT ''")
            add_col("description", "TEXT")
            add_col("status", "TEXT NOT NULL DEFAULT 'todo'")
            add_col("priority", "TEXT NOT NULL DEFAULT 'low'")
            add_col("due_at", "REAL")
            add_col("series_id", "TEXT")
            add_col("recur", "TEXT")
            add_col("recur_until", "REAL")
            add_col("parent_id", "TEXT")
            add_col("created_at", "REAL NOT NULL DEFAULT 0")
            add_col("updated_at", "REAL NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_due_at ON tasks(due_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_due ON tasks(owner_id, due_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_series ON tasks(series_id)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_owner_created ON tasks(owner_id, created_at)"
            )

            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _is_legacy_layout(decl: dict[str, str]) -> bool:
        """Owner kept in user_id, or timestamps declared as TEXT (ISO-8601 strings)."""
        if "user_id" in decl:
            return True
        return any(col in decl and decl[col] != "REAL" for col in _TS_COLUMNS)

    @staticmethod
    def _rebuild_legacy_table(cur: sqlite3.Cursor, cols: set[str]) -> None:
        """
        Copy a legacy tasks table into the current layout.

        ADD COLUMN cannot change a column's type affinity, so TEXT timestamps
        would keep comparing as strings; the table is rebuilt instead.
        """
        cur.execute("ALTER TABLE tasks RENAME TO tasks_legacy")
        cur.execute(_TASKS_DDL)

        cur.execute("SELECT * FROM tasks_legacy")
        rows = cur.fetchall()

        def pick(row: sqlite3.Row, name: str) -> Any:
            return row[name] if name in cols else None

        def ts(row: sqlite3.Row, name: str) -> float | None:
            raw = pick(row, name)
            if raw is None or isinstance(raw, (int, float)):
                return raw
            try:
                return _iso_to_ts(str(raw).strip())
            except ValueError:
                logger.warning("TaskStore migration: unparseable %s=%r", name, raw)
                return None

        copied = 0
        for row in rows:
            owner = pick(row, "owner_id") or pick(row, "user_id")
            if not owner:
                logger.warning("TaskStore migration: dropping row without owner id=%s", pick(row, "id"))
                continue
            created = ts(row, "created_at") or 0.0
            cur.execute(
                """
                INSERT INTO tasks(
                    id, owner_id, title, description, status, priority,
                    due_at, series_id, recur, recur_until, parent_id,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(pick(row, "id") or _new_id()),
                    str(owner),
                    str(pick(row, "title") or ""),
                    pick(row, "description"),
                    TaskStatus.from_db(pick(row, "status")).value,
                    TaskPriority.from_db(pick(row, "priority")).value,
                    ts(row, "due_at"),
                    pick(row, "series_id"),
                    pick(row, "recur"),
                    ts(row, "recur_until"),
                    pick(row, "parent_id"),
                    created,
                    ts(row, "updated_at") or created,
                ),
            )
            copied += 1

        cur.execute("DROP TABLE tasks_legacy")
        logger.info("TaskStore migration: rebuilt legacy tasks table rows=%d/%d", copied, len(rows))

    def _notify_template_written(self, task: Task) -> None:
        for listener in list(self._template_listeners):
            try:
                listener(task)
            except Exception:
                logger.exception("Template listener failed task_id=%s", task.id)

    @staticmethod
    def _fetch_owned(conn: sqlite3.Connection, task_id: str, owner_id: str) -> Task | None:
        cur = conn.execute(
            "SELECT * FROM tasks WHERE id = ? AND owner_id = ?",
            (str(task_id), owner_id),
        )
        row = cur.fetchone()
        return _row_to_task(row) if row else None

    @staticmethod
    def _series_slot_taken(conn: sqlite3.Connection, task: Task) -> bool:
        """Another row of the same (owner, series) already due at task.due_at."""
        cur = conn.execute(
            """
            SELECT 1
            FROM tasks
            WHERE owner_id = ?
              AND series_id = ?
              AND due_at = ?
              AND id != ?
            LIMIT 1
            """,
            (task.owner_id, task.series_id, task.due_at, task.id),
        )
        return cur.fetchone() is not None

    @staticmethod
    def _validate_patch(patch: Mapping[str, Any]) -> dict[str, Any]:
        clean: dict[str, Any] = {}
        for key, value in (patch or {}).items():
            if key in PROTECTED_FIELDS:
                logger.debug("Ignoring protected field in patch: %s", key)
                continue
            if key not in PATCHABLE_FIELDS:
                raise ValueError(f"unknown field: {key}")

            if key == "title":
                clean[key] = _clean_title(value)
            elif key == "description":
                clean[key] = _clean_description(value)
            elif key == "status":
                clean[key] = _coerce_status(value)
            elif key == "priority":
                clean[key] = _coerce_priority(value)
            elif key == "recur":
                clean[key] = _coerce_recur(value)
            else:
                clean[key] = _coerce_ts(value, key)
        return clean

    # ---- public API ----

    def count_tasks(self, owner_id: str | None = None) -> int:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            if owner_id is None:
                cur.execute("SELECT COUNT(*) FROM tasks")
            else:
                cur.execute("SELECT COUNT(*) FROM tasks WHERE owner_id = ?", (owner_id,))
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def count_series(self, series_id: str, owner_id: str) -> int:
        owner = _require_owner(owner_id)
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "SELECT COUNT(*) FROM tasks WHERE owner_id = ? AND series_id = ?",
                (owner, series_id),
            )
            (n,) = cur.fetchone()
            return int(n)
        finally:
            conn.close()

    def create_task(
        self,
        owner_id: str,
        *,
        title: str,
        description: str | None = None,
        status: TaskStatus | str = TaskStatus.TODO,
        priority: TaskPriority | str = TaskPriority.LOW,
        due_at: float | str | None = None,
        recur: RecurKind | str | None = None,
        recur_until: float | str | None = None,
    ) -> Task:
        owner = _require_owner(owner_id)
        recur_kind = _coerce_recur(recur)
        due_ts = _coerce_ts(due_at, "due_at")
        until_ts = _coerce_ts(recur_until, "recur_until")

        if recur_kind is not None and due_ts is None:
            raise ValueError("due_at is required when recur is set")
        if recur_kind is None:
            # recur_until without a rule means nothing; drop it.
            until_ts = None

        now = time.time()
        task = Task(
            id=_new_id(),
            owner_id=owner,
            title=_clean_title(title),
            status=_coerce_status(status),
            priority=_coerce_priority(priority),
            created_at=now,
            updated_at=now,
            description=_clean_description(description),
            due_at=due_ts,
            series_id=_new_id() if recur_kind is not None else None,
            recur=recur_kind,
            recur_until=until_ts,
        )

        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO tasks(
                    id, owner_id, title, description, status, priority,
                    due_at, series_id, recur, recur_until, parent_id,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, NULL, ?, ?)
                """,
                (
                    task.id,
                    task.owner_id,
                    task.title,
                    task.description,
                    task.status.value,
                    task.priority.value,
                    task.due_at,
                    task.series_id,
                    task.recur.value if task.recur else None,
                    task.recur_until,
                    task.created_at,
                    task.updated_at,
                ),
            )
            conn.commit()
        finally:
            conn.close()

        logger.debug(
            "Task created id=%s owner=%s recur=%s due_at=%s",
            task.id,
            owner,
            task.recur,
            task.due_at,
        )

        if task.is_template:
            self._notify_template_written(task)
        return task

    def get_task(self, task_id: str, owner_id: str) -> Task | None:
        owner = _require_owner(owner_id)
        conn = self._get_conn()
        try:
            return self._fetch_owned(conn, task_id, owner)
        finally:
            conn.close()

    def list_tasks(
        self,
        owner_id: str,
        *,
        status: TaskStatus | str | None = None,
        priority: TaskPriority | str | None = None,
        q: str | None = None,
        on: date | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> TaskPage:
        """
        One page of the owner's tasks.

        Filters combine with AND:
        - status / priority: exact match
        - q: case-insensitive substring of the title
        - on: due_at within the local calendar day [midnight, next midnight)

        Ordering: by due_at for the "on" view, newest first otherwise.
        """
        owner = _require_owner(owner_id)
        limit = max(1, min(PAGE_LIMIT_MAX, int(limit)))
        offset = max(0, int(offset))

        where = ["owner_id = ?"]
        params: list[Any] = [owner]

        if status:
            where.append("status = ?")
            params.append(_coerce_status(status).value)
        if priority:
            where.append("priority = ?")
            params.append(_coerce_priority(priority).value)
        if q and q.strip():
            where.append("LOWER(title) LIKE LOWER(?) ESCAPE '\\'")
            params.append(f"%{_escape_like(q.strip())}%")
        if on is not None:
            start, end = local_day_bounds(on)
            where.append("due_at >= ? AND due_at < ?")
            params.extend([start, end])

        where_sql = " AND ".join(where)
        order_sql = "due_at ASC, created_at ASC" if on is not None else "created_at DESC, rowid DESC"

        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(f"SELECT COUNT(*) FROM tasks WHERE {where_sql}", params)
            (total,) = cur.fetchone()
            cur.execute(
                f"""
                SELECT *
                FROM tasks
                WHERE {where_sql}
                ORDER BY {order_sql}
                LIMIT ? OFFSET ?
                """,
                (*params, limit, offset),
            )
            items = [_row_to_task(r) for r in cur.fetchall()]
            return TaskPage(total=int(total), limit=limit, offset=offset, items=items)
        finally:
            conn.close()

    def update_task(self, task_id: str, owner_id: str, patch: Mapping[str, Any]) -> Task | None:
        """
        Merge an allow-listed patch onto the owner's row.

        Returns the updated Task, or None if the row does not exist for this owner.
        Raises ValueError for unknown fields or invalid values.
        """
        owner = _require_owner(owner_id)
        clean = self._validate_patch(patch)

        conn = self._get_conn()
        try:
            # Write lock before the reads: the sibling check below must hold until commit.
            conn.execute("BEGIN IMMEDIATE")
            current = self._fetch_owned(conn, task_id, owner)
            if current is None:
                return None

            merged = dataclasses.replace(current, **clean)
            if merged.recur is None:
                merged.recur_until = None
            elif merged.due_at is None:
                raise ValueError("due_at is required when recur is set")
            if merged.recur is not None and current.parent_id is not None:
                raise ValueError("a series occurrence cannot carry its own rule")
            if (
                merged.series_id is not None
                and merged.due_at is not None
                and merged.due_at != current.due_at
                and self._series_slot_taken(conn, merged)
            ):
                raise ValueError("another task of this series is already due at that time")
            if merged.recur is not None and merged.series_id is None:
                merged.series_id = _new_id()
                logger.info("Task %s promoted to template series_id=%s", merged.id, merged.series_id)
            merged.updated_at = time.time()

            cur = conn.execute(
                """
                UPDATE tasks
                SET title = ?,
                    description = ?,
                    status = ?,
                    priority = ?,
                    due_at = ?,
                    series_id = ?,
                    recur = ?,
                    recur_until = ?,
                    updated_at = ?
                WHERE id = ? AND owner_id = ?
                """,
                (
                    merged.title,
                    merged.description,
                    merged.status.value,
                    merged.priority.value,
                    merged.due_at,
                    merged.series_id,
                    merged.recur.value if merged.recur else None,
                    merged.recur_until,
                    merged.updated_at,
                    merged.id,
                    owner,
                ),
            )
            conn.commit()
            if cur.rowcount != 1:
                return None
        finally:
            conn.close()

        if merged.is_template:
            self._notify_template_written(merged)
        return merged

    def delete_task(self, task_id: str, owner_id: str) -> bool:
        owner = _require_owner(owner_id)
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "DELETE FROM tasks WHERE id = ? AND owner_id = ?",
                (str(task_id), owner),
            )
            conn.commit()
            return cur.rowcount > 0
        finally:
            conn.close()

    # ---- series / expansion support ----

    @contextlib.contextmanager
    def write_batch(self) -> Iterator[TaskWriteBatch]:
        """
        Yield a TaskWriteBatch bound to one BEGIN IMMEDIATE transaction.

        Commits on normal exit, rolls back if the body raises.
        """
        conn = self._get_conn()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield TaskWriteBatch(conn)
            except BaseException:
                if conn.in_transaction:
                    conn.rollback()
                raise
            if conn.in_transaction:
                conn.commit()
            else:
                logger.warning("write_batch: transaction was rolled back by SQLite before commit")
        finally:
            conn.close()

    def delete_series_rows(
        self,
        series_id: str,
        owner_id: str,
        *,
        min_due_at: float | None = None,
    ) -> int:
        """Delete the owner's rows in a series, optionally only those due at/after min_due_at."""
        owner = _require_owner(owner_id)
        if not series_id:
            return 0

        sql = "DELETE FROM tasks WHERE owner_id = ? AND series_id = ?"
        params: list[Any] = [owner, series_id]
        if min_due_at is not None:
            sql += " AND due_at IS NOT NULL AND due_at >= ?"
            params.append(float(min_due_at))

        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            conn.commit()
            return int(cur.rowcount)
        finally:
            conn.close()

    def cap_series_until(self, series_id: str, owner_id: str, until_ts: float) -> int:
        """Pull recur_until of the series' surviving template(s) back to until_ts."""
        owner = _require_owner(owner_id)
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                UPDATE tasks
                SET recur_until = ?, updated_at = ?
                WHERE owner_id = ?
                  AND series_id = ?
                  AND recur IS NOT NULL
                  AND (recur_until IS NULL OR recur_until > ?)
                """,
                (float(until_ts), time.time(), owner, series_id, float(until_ts)),
            )
            conn.commit()
            return int(cur.rowcount)
        finally:
            conn.close()

    def list_templates(self, owner_id: str | None = None) -> list[Task]:
        """
        Templates with everything expansion needs (recur, due_at, recur_until, series_id).

        owner_id=None lists templates of all owners; only the periodic trigger does that.
        """
        sql = """
            SELECT *
            FROM tasks
            WHERE recur IS NOT NULL
              AND due_at IS NOT NULL
              AND recur_until IS NOT NULL
              AND series_id IS NOT NULL
        """
        params: list[Any] = []
        if owner_id is not None:
            sql += " AND owner_id = ?"
            params.append(_require_owner(owner_id))
        sql += " ORDER BY owner_id, created_at"

        conn = self._get_conn()
        try:
            cur = conn.execute(sql, params)
            return [_row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def list_open_due_between(
        self,
        owner_id: str,
        *,
        start_ts: float | None = None,
        end_ts: float,
        limit: int = 50,
    ) -> list[Task]:
        """Not-done tasks with start_ts <= due_at < end_ts (no lower bound if start_ts is None)."""
        owner = _require_owner(owner_id)
        where = ["owner_id = ?", "status != 'done'", "due_at IS NOT NULL", "due_at < ?"]
        params: list[Any] = [owner, float(end_ts)]
        if start_ts is not None:
            where.append("due_at >= ?")
            params.append(float(start_ts))

        conn = self._get_conn()
        try:
            cur = conn.execute(
                f"""
                SELECT *
                FROM tasks
                WHERE {' AND '.join(where)}
                ORDER BY due_at ASC
                LIMIT ?
                """,
                (*params, int(limit)),
            )
            return [_row_to_task(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def list_owner_ids(self) -> list[str]:
        conn = self._get_conn()
        try:
            cur = conn.execute("SELECT DISTINCT owner_id FROM tasks WHERE owner_id != '' ORDER BY owner_id")
            return [str(r["owner_id"]) for r in cur.fetchall()]
        finally:
            conn.close()

    def iter_owner_tasks(self, owner_id: str) -> Iterator[Task]:
        """Every row of the owner, due tasks first (chronological), then undated ones."""
        owner = _require_owner(owner_id)
        conn = self._get_conn()
        try:
            cur = conn.execute(
                """
                SELECT *
                FROM tasks
                WHERE owner_id = ?
                ORDER BY due_at IS NULL, due_at ASC, created_at ASC
                """,
                (owner,),
            )
            for row in cur:
                yield _row_to_task(row)
        finally:
            conn.close()
