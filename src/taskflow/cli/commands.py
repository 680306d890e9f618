# src/taskflow/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
import shlex
import sqlite3
import time
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any, cast

from ..core.state import AppState
from ..tasks.dates import format_ts, parse_day
from ..tasks.export import export_tasks_csv
from ..tasks.summary import build_daily_summary
from ..tasks.task_models import Task

CommandEmitter = Callable[[str], None]
CommandHandler3 = Callable[[AppState, list[str], str], str]
CommandHandler4 = Callable[[AppState, list[str], str, CommandEmitter | None], str]
CommandHandler = CommandHandler3 | CommandHandler4

logger = logging.getLogger(__name__)

# key=value aliases accepted by /add and /edit -> Task field names.
_FIELD_ALIASES = {
    "title": "title",
    "desc": "description",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "prio": "priority",
    "due": "due_at",
    "due_at": "due_at",
    "recur": "recur",
    "until": "recur_until",
    "recur_until": "recur_until",
}

PAGE_SIZE = 20


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        owner_id: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like '/command args'.
        Returns a reply string or None if not a command.

        owner_id is the authenticated identity of the caller; handlers never
        take an owner from the command arguments.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 4

        try:
            if nparams >= 4:
                h4 = cast(CommandHandler4, handler)
                return h4(state, args, owner_id, emit)
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, owner_id)
        except ValueError as e:
            return f"Error: {e}"
        except sqlite3.Error:
            logger.exception("Command /%s failed (storage error)", name)
            return "Storage error; see log for details."

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def split_fields(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Split ['Pay', 'rent', 'due=2024-01-31'] into (['Pay', 'rent'], {'due': '2024-01-31'})."""
    words: list[str] = []
    opts: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if sep and key:
            opts[key.lower()] = value
        else:
            words.append(arg)
    return words, opts


def _to_fields(opts: dict[str, str]) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in opts.items():
        name = _FIELD_ALIASES.get(key)
        if name is None:
            raise ValueError(f"unknown option: {key}=")
        fields[name] = value
    return fields


def render_task(task: Task) -> str:
    line = f"{task.id}  [{task.status.value}] [{task.priority.value}] {task.title}"
    if task.due_at is not None:
        line += f"  due {format_ts(task.due_at)}"
    if task.recur is not None:
        line += f"  (repeats {task.recur.value} until {format_ts(task.recur_until) or '?'})"
    elif task.parent_id:
        line += "  (series)"
    return line


def cmd_help(state: AppState, args: list[str], owner_id: str) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], owner_id: str) -> str:
    settings = state.settings
    return (
        "Status:\n"
        f"  Owner: {owner_id}\n"
        f"  Tasks: {state.task_store.count_tasks(owner_id)}\n"
        f"  Recurrence horizon: {state.recurrence.horizon_days} days\n"
        f"  Scheduler: {'ON' if getattr(settings, 'scheduler_enabled', False) else 'OFF'}"
    )


def cmd_add(state: AppState, args: list[str], owner_id: str) -> str:
    """
    /add Pay rent due=2024-01-31 recur=monthly until=2024-12-31 priority=high
    """
    words, opts = split_fields(args)
    fields = _to_fields(opts)
    title = fields.pop("title", None) or " ".join(words)
    if not title.strip():
        return "Usage: /add <title> [due=YYYY-MM-DD[ HH:MM]] [priority=low|medium|high] [recur=daily|weekly|monthly until=YYYY-MM-DD] [desc=...]"

    task = state.task_store.create_task(owner_id, title=title, **fields)
    reply = f"Created: {render_task(task)}"
    if task.series_id is not None:
        n = state.task_store.count_series(task.series_id, owner_id) - 1
        reply += f"\n  {n} occurrence(s) scheduled."
    return reply


def cmd_list(state: AppState, args: list[str], owner_id: str) -> str:
    """
    /list [status=todo] [priority=high] [q=text] [on=YYYY-MM-DD|today] [page=N]
    """
    words, opts = split_fields(args)
    q = opts.get("q") or (" ".join(words) or None)

    on: date | None = None
    raw_on = opts.get("on")
    if raw_on:
        on = date.today() if raw_on.lower() == "today" else parse_day(raw_on)

    try:
        page_no = max(1, int(opts.get("page", "1")))
    except ValueError:
        return "page must be a number."

    page = state.task_store.list_tasks(
        owner_id,
        status=opts.get("status") or None,
        priority=opts.get("priority") or None,
        q=q,
        on=on,
        limit=PAGE_SIZE,
        offset=(page_no - 1) * PAGE_SIZE,
    )
    if not page.items:
        return "No tasks." if page.total == 0 else f"No tasks on page {page_no} (total {page.total})."

    lines = [f"Tasks {page.offset + 1}-{page.offset + len(page.items)} of {page.total}:"]
    lines.extend(render_task(t) for t in page.items)
    return "\n".join(lines)


def cmd_show(state: AppState, args: list[str], owner_id: str) -> str:
    if not args:
        return "Usage: /show <id>"
    task = state.task_store.get_task(args[0], owner_id)
    if task is None:
        return "Not found."
    lines = [render_task(task)]
    if task.description:
        lines.append(f"  {task.description}")
    if task.series_id:
        lines.append(f"  series: {task.series_id}")
    if task.parent_id:
        lines.append(f"  template: {task.parent_id}")
    return "\n".join(lines)


def cmd_edit(state: AppState, args: list[str], owner_id: str) -> str:
    """
    /edit <id> title="New title" due=2024-02-01 recur=weekly until=2024-06-30 recur=none
    """
    if len(args) < 2:
        return "Usage: /edit <id> key=value ... (title, desc, status, priority, due, recur, until)"
    words, opts = split_fields(args[1:])
    if words:
        return f"Unexpected arguments: {' '.join(words)} (use key=value)"
    task = state.task_store.update_task(args[0], owner_id, _to_fields(opts))
    if task is None:
        return "Not found."
    return f"Updated: {render_task(task)}"


def cmd_done(state: AppState, args: list[str], owner_id: str) -> str:
    if not args:
        return "Usage: /done <id>"
    task = state.task_store.update_task(args[0], owner_id, {"status": "done"})
    if task is None:
        return "Not found."
    return f"Done: {task.title}"


def cmd_rm(state: AppState, args: list[str], owner_id: str) -> str:
    if not args:
        return "Usage: /rm <id>"
    if not state.task_store.delete_task(args[0], owner_id):
        return "Not found."
    return "Deleted."


def cmd_rmseries(state: AppState, args: list[str], owner_id: str) -> str:
    """
    /rmseries <id>         -> delete the whole series of that task
    /rmseries <id> future  -> delete only occurrences due from now on
    """
    if not args:
        return "Usage: /rmseries <id> [future]"
    only_future = len(args) > 1 and args[1].lower() in ("future", "--future", "f")
    deleted = state.series.delete_series_by_task_id(args[0], owner_id, only_future=only_future)
    if not deleted:
        return "Not found or not a series."
    return f"Deleted {deleted} task(s) from the series."


def cmd_expand(state: AppState, args: list[str], owner_id: str) -> str:
    created = state.recurrence.expand_all(owner_id)
    return f"Expansion done: {created} new occurrence(s)."


def cmd_summary(state: AppState, args: list[str], owner_id: str) -> str:
    days = int(getattr(state.settings, "summary_upcoming_days", 1))
    text = build_daily_summary(state.task_store, owner_id, now_ts=time.time(), upcoming_days=days)
    return text or "Nothing overdue or upcoming."


def cmd_export(
    state: AppState,
    args: list[str],
    owner_id: str,
    emit: CommandEmitter | None = None,
) -> str:
    if not args:
        return "Usage: /export <path.csv>"
    path = Path(args[0]).expanduser()
    if emit:
        with contextlib.suppress(Exception):
            emit(f"[EXPORT] Writing {path} ...")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as fh:
            n = export_tasks_csv(state.task_store, owner_id, fh)
    except OSError as e:
        logger.warning("CSV export failed path=%s: %r", path, e)
        return f"Export failed: {e}"
    return f"Exported {n} task(s) to {path}."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show owner, task count and settings.")
registry.register("add", cmd_add, help_text="Create a task: /add <title> [due=] [priority=] [recur= until=].")
registry.register(
    "list", cmd_list, help_text="List tasks: /list [status=] [priority=] [q=] [on=] [page=].", aliases=["ls"]
)
registry.register("show", cmd_show, help_text="Show one task: /show <id>.")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> key=value ...")
registry.register("done", cmd_done, help_text="Mark a task done: /done <id>.")
registry.register("rm", cmd_rm, help_text="Delete one task: /rm <id>.")
registry.register("rmseries", cmd_rmseries, help_text="Delete a series: /rmseries <id> [future].")
registry.register("expand", cmd_expand, help_text="Generate missing occurrences of your recurring tasks.")
registry.register("summary", cmd_summary, help_text="Show overdue and upcoming tasks.")
registry.register("export", cmd_export, help_text="Export your tasks as CSV: /export <path>.")
