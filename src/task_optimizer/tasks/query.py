# src/task_optimizer/tasks/query.py

"""
Search / filter / sort over a reconciled task list, plus session analytics.

Pure functions: no storage access, "today" passed in by the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from .risk import UrgencyCategory, classify_risk
from .task_models import Priority, Task, TaskStatus, priority_rank

ALL = "all"
UNASSIGNED = "Unassigned"


class SortKey(StrEnum):
    NEWEST = "newest"
    DEADLINE = "deadline"
    PRIORITY = "priority"
    CONFIDENCE = "confidence"


@dataclass(frozen=True, slots=True)
class TaskQuery:
    """
    Filter / sort options.

    status:   "active" | "completed" | "all"
    priority: a Priority label | "Unassigned" | "all"
    risk:     an UrgencyCategory label | "all"
    """

    search: str = ""
    status: str = ALL
    priority: str = ALL
    risk: str = ALL
    sort: SortKey = SortKey.NEWEST


def _matches_search(task: Task, term: str) -> bool:
    fields = (
        task.title or "",
        task.description or "",
        task.priority.value if task.priority else "",
        str(task.id),
    )
    return any(term in f.lower() for f in fields)


def apply_query(tasks: Sequence[Task], query: TaskQuery, *, today: date) -> list[Task]:
    out = list(tasks)

    term = (query.search or "").strip().lower()
    if term:
        out = [t for t in out if _matches_search(t, term)]

    if query.status != ALL:
        status = TaskStatus(query.status)
        out = [t for t in out if t.status == status]

    if query.priority != ALL:
        if query.priority == UNASSIGNED:
            out = [t for t in out if t.priority is None]
        else:
            wanted = Priority(query.priority)
            out = [t for t in out if t.priority == wanted]

    if query.risk != ALL:
        category = UrgencyCategory(query.risk)
        out = [
            t
            for t in out
            if t.deadline is not None and classify_risk(t.deadline, today).category == category
        ]

    # list.sort is stable: equal keys keep their reconciled order
    sort = SortKey(query.sort)
    if sort == SortKey.NEWEST:
        out.sort(key=lambda t: t.id, reverse=True)
    elif sort == SortKey.DEADLINE:
        out.sort(key=lambda t: (t.deadline is None, t.deadline or date.min))
    elif sort == SortKey.PRIORITY:
        out.sort(key=lambda t: -priority_rank(t.priority))
    elif sort == SortKey.CONFIDENCE:
        out.sort(key=lambda t: -(t.confidence or 0))

    return out


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int
    critical: int
    overdue: int
    completed: int
    success_rate: int  # percent of tasks completed


def summarize_tasks(tasks: Sequence[Task], *, today: date) -> TaskStats:
    """Analytics panel numbers; critical and overdue only count unfinished tasks."""
    total = len(tasks)
    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
    active = [t for t in tasks if t.status != TaskStatus.COMPLETED]

    critical = sum(1 for t in active if t.priority == Priority.CRITICAL)
    overdue = sum(1 for t in active if t.deadline is not None and t.deadline < today)

    success_rate = 0 if total == 0 else round(completed / total * 100)
    return TaskStats(
        total=total,
        critical=critical,
        overdue=overdue,
        completed=completed,
        success_rate=success_rate,
    )
