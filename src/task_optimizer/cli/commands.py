# src/task_optimizer/cli/commands.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from ..core.state import AppState
from ..errors import TaskOptimizerError, ValidationError, friendly_error_message
from ..tasks.query import ALL, SortKey, TaskQuery
from ..tasks.risk import classify_risk, today_utc
from ..tasks.task_models import SessionKey, Task, TaskDraft, TaskStatus, parse_deadline

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, str, CommandEmitter | None], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

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

    def handle(self, state: AppState, line: str, emit: CommandEmitter | None = None) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        name, _, rest = line[1:].strip().partition(" ")
        if not name:
            return "Empty command. Use /help to list available commands."

        handler = self._handlers.get(name.lower())
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, rest.strip(), emit)
        except TaskOptimizerError as e:
            logger.info("/%s failed: %s", name, e)
            return friendly_error_message(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _require_session(state: AppState) -> SessionKey:
    if state.session is None:
        raise ValidationError("No session selected. Use /session <department> <sub-department>.")
    return state.session


def _parse_id(raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError as e:
        raise ValidationError(f"Not a task id: {raw!r}") from e


def format_task(task: Task) -> str:
    mark = "x" if task.status == TaskStatus.COMPLETED else " "
    line = f"[{mark}] #{task.id} {task.title}"
    if task.deadline is not None:
        risk = classify_risk(task.deadline, today_utc())
        line += f" (due {task.deadline.isoformat()}, {risk.label})"
    if task.annotation is not None:
        line += f" | {task.priority.value} {task.confidence}%: {task.reason}"
    return line


def cmd_help(state: AppState, arg: str, emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_session(state: AppState, arg: str, emit: CommandEmitter | None = None) -> str:
    """
    /session                      -> show current session
    /session <dept> <sub-dept>    -> switch session
    """
    if not arg:
        return f"Current session: {state.session}" if state.session else "No session selected."

    parts = arg.split(maxsplit=1)
    if len(parts) != 2:
        return "Usage: /session <department> <sub-department>"
    try:
        state.session = SessionKey(parts[0], parts[1])
    except ValueError as e:
        return f"Usage: /session <department> <sub-department> ({e})"
    return f"Session: {state.session}"


def cmd_add(state: AppState, arg: str, emit: CommandEmitter | None = None) -> str:
    """/add <title> [| description] [| YYYY-MM-DD]"""
    key = _require_session(state)
    parts = [p.strip() for p in arg.split("|")]
    if not parts[0]:
        return "Usage: /add <title> [| description] [| YYYY-MM-DD]"

    deadline = None
    if len(parts) > 2 and parts[2]:
        deadline = parse_deadline(parts[2])
        if deadline is None:
            return f"Not a date (YYYY-MM-DD): {parts[2]}"

    task = state.service.store.add(
        key,
        TaskDraft(title=parts[0], description=parts[1] if len(parts) > 1 else "", deadline=deadline),
    )
    return f"Added {format_task(task)}"


def cmd_edit(state: AppState, arg: str, emit: CommandEmitter | None = None) -> str:
    """/edit <id> <title> [| description] [| YYYY-MM-DD or -]"""
    key = _require_session(state)
    head, _, rest = arg.partition(" ")
    task_id = _parse_id(head)
    parts = [p.strip() for p in rest.split("|")]

    kwargs: dict = {}
    if parts[0]:
        kwargs["title"] = parts[0]
    if len(parts) > 1:
        kwargs["description"] = parts[1]
    if len(parts) > 2:
        kwargs["deadline"] = None if parts[2] in ("", "-") else parts[2]

    task = state.service.store.update(key, task_id, **kwargs)
    return f"Updated {format_task(task)}" if task else f"No task #{task_id}."


def cmd_done(state: AppState, arg: str, emit: CommandEmitter | None = None) -> str:
    """/done <id> -> toggle completed / active"""
    key = _require_session(state)
    task = state.service.store.toggle_status(key, _parse_id(arg))
    return format_task(task) if task else f"No task #{arg}."


def cmd_rm(state: AppState, arg: str, emit: CommandEmitter | None = None) -> str:
    key = _require_session(state)
    task_id = _parse_id(arg)
    removed = state.service.store.remove(key, task_id)
    return f"Deleted #{task_id}." if removed else f"No task #{task_id}."


def _parse_query(arg: str) -> TaskQuery:
    """
    /list [status=...] [priority=...] [risk=...] [sort=...] [search words]
    Multi-word values use underscores: risk=High_Urgency.
    """
    opts = {"status": ALL, "priority": ALL, "risk": ALL, "sort": SortKey.NEWEST.value}
    words: list[str] = []
    for token in arg.split():
        name, sep, value = token.partition("=")
        if sep and name in opts:
            opts[name] = value.replace("_", " ")
        else:
            words.append(token)

    try:
        return TaskQuery(
            search=" ".join(words),
            status=opts["status"],
            priority=opts["priority"],
            risk=opts["risk"],
            sort=SortKey(opts["sort"]),
        )
    except ValueError as e:
        raise ValidationError(f"Bad filter: {e}") from e


def cmd_list(state: AppState, arg: str, emit: CommandEmitter | None = None) -> str:
    key = _require_session(state)
    try:
        view = state.service.render(key, _parse_query(arg))
    except ValueError as e:
        raise ValidationError(f"Bad filter: {e}") from e

    lines: list[str] = []
    badge = view.status.describe()
    if badge:
        lines.append(f"[{badge}]")
    if view.summary:
        lines.append(f"AI summary: {view.summary}")

    if view.total_tasks == 0:
        lines.append("No tasks yet. Use /add or /import.")
    elif not view.tasks:
        lines.append("No tasks match the current filters.")
    else:
        lines.extend(format_task(t) for t in view.tasks)
    return "\n".join(lines)


def cmd_stats(state: AppState, arg: str, emit: CommandEmitter | None = None) -> str:
    key = _require_session(state)
    s = state.service.render(key).stats
    return (
        "Stats:\n"
        f"  Total: {s.total}\n"
        f"  Critical: {s.critical}\n"
        f"  Overdue: {s.overdue}\n"
        f"  Completed: {s.completed}\n"
        f"  Success: {s.success_rate}%"
    )


def cmd_optimize(state: AppState, arg: str, emit: CommandEmitter | None = None) -> str:
    key = _require_session(state)
    if emit:
        emit("AI processing...")

    outcome = asyncio.run(state.service.optimize(key))

    reply = f"Optimized {len(outcome.record.reordered_tasks)} tasks."
    if outcome.excluded_ids:
        reply += f" {len(outcome.excluded_ids)} tasks were over the batch limit and left out."
    return reply + "\n" + cmd_list(state, "sort=priority")


def cmd_import(state: AppState, arg: str, emit: CommandEmitter | None = None) -> str:
    """/import <path to a .txt file>"""
    key = _require_session(state)
    if not arg:
        return "Usage: /import <path to text file>"

    path = Path(arg).expanduser()
    try:
        text = path.read_text("utf-8", errors="replace")
    except OSError as e:
        return f"Cannot read {path}: {e.strerror}"

    if emit:
        emit("Analyzing document...")

    added = asyncio.run(state.service.import_text(key, text))
    if not added:
        return "AI could not identify any tasks."
    return f"Successfully imported {len(added)} tasks."


def cmd_status(state: AppState, arg: str, emit: CommandEmitter | None = None) -> str:
    models = ", ".join(list(getattr(state.settings, "llm_models", []) or []))
    return (
        "Status:\n"
        f"  Session: {state.session or '-'}\n"
        f"  Oracle: {state.oracle.__class__.__name__}\n"
        f"  Models (priority -> fallback): {models}"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("session", cmd_session, help_text="Pick a session: /session <dept> <sub-dept>.")
registry.register("add", cmd_add, help_text="Add a task: /add <title> [| desc] [| YYYY-MM-DD].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> <title> [| desc] [| date or -].")
registry.register("done", cmd_done, help_text="Toggle completed: /done <id>.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["delete"])
registry.register(
    "list",
    cmd_list,
    help_text="List tasks: /list [status=] [priority=] [risk=] [sort=] [search].",
    aliases=["ls"],
)
registry.register("stats", cmd_stats, help_text="Show session analytics.")
registry.register("optimize", cmd_optimize, help_text="Ask the AI to prioritize active tasks.")
registry.register("import", cmd_import, help_text="Extract tasks from a text file: /import <path>.")
registry.register("status", cmd_status, help_text="Show current session and oracle settings.")
