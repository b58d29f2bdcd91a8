# tests/test_query.py

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest

from task_optimizer.tasks.query import (
    UNASSIGNED,
    SortKey,
    TaskQuery,
    apply_query,
    summarize_tasks,
)
from task_optimizer.tasks.task_models import Annotation, Priority, Task, TaskStatus

TODAY = date(2026, 3, 10)


def _ann(priority: Priority, confidence: int = 50) -> Annotation:
    return Annotation(priority=priority, confidence=confidence, reason="because")


def _due(days: int) -> date:
    return TODAY + timedelta(days=days)


DONE_AT = datetime(2026, 3, 9, tzinfo=UTC)

# reconciled order: 30, 10, 20, 40, 50
TASKS = [
    Task(id=30, title="Write report", description="quarterly numbers", deadline=_due(-2),
         annotation=_ann(Priority.CRITICAL, 90)),
    Task(id=10, title="Call vendor", deadline=_due(1), annotation=_ann(Priority.HIGH, 70)),
    Task(id=20, title="Plan offsite", deadline=_due(4), annotation=_ann(Priority.HIGH, 70)),
    Task(id=40, title="Refactor billing", status=TaskStatus.COMPLETED, completed_at=DONE_AT,
         deadline=_due(-5), annotation=_ann(Priority.CRITICAL, 95)),
    Task(id=50, title="Read book"),
]


def _ids(tasks: list[Task]) -> list[int]:
    return [t.id for t in tasks]


def _run(**kw) -> list[int]:
    return _ids(apply_query(TASKS, TaskQuery(**kw), today=TODAY))


def test_default_query_sorts_newest_first() -> None:
    assert _run() == [50, 40, 30, 20, 10]


def test_search_is_case_insensitive_over_title_description_priority_and_id() -> None:
    assert _run(search="REPORT") == [30]
    assert _run(search="quarterly") == [30]
    assert sorted(_run(search="critical")) == [30, 40]
    assert _run(search="50") == [50]
    assert _run(search="   ") == [50, 40, 30, 20, 10]


def test_status_filter() -> None:
    assert sorted(_run(status="completed")) == [40]
    assert sorted(_run(status="active")) == [10, 20, 30, 50]


def test_priority_filter_including_unassigned() -> None:
    assert sorted(_run(priority="High")) == [10, 20]
    assert _run(priority=UNASSIGNED) == [50]


def test_risk_filter_excludes_tasks_without_deadline() -> None:
    assert sorted(_run(risk="Overdue")) == [30, 40]
    assert _run(risk="High Urgency") == [10]
    assert _run(risk="Moderate Urgency") == [20]
    assert _run(risk="No deadline") == []


def test_filters_combine() -> None:
    assert _run(status="active", risk="Overdue") == [30]


def test_deadline_sort_puts_no_deadline_last() -> None:
    assert _run(sort=SortKey.DEADLINE) == [40, 30, 10, 20, 50]


def test_priority_sort_is_stable_for_ties() -> None:
    # Critical ties keep reconciled order (30 before 40), High ties too (10 before 20)
    assert _run(sort=SortKey.PRIORITY) == [30, 40, 10, 20, 50]


def test_confidence_sort_descending_with_unannotated_last() -> None:
    assert _run(sort=SortKey.CONFIDENCE) == [40, 30, 10, 20, 50]


def test_invalid_filter_values_raise() -> None:
    with pytest.raises(ValueError):
        _run(status="archived")
    with pytest.raises(ValueError):
        _run(priority="Urgent")


def test_apply_query_does_not_mutate_input() -> None:
    before = list(TASKS)
    _run(sort=SortKey.PRIORITY)
    assert TASKS == before


def test_summarize_tasks() -> None:
    stats = summarize_tasks(TASKS, today=TODAY)
    assert stats.total == 5
    assert stats.completed == 1
    assert stats.critical == 1  # completed Critical task does not count
    assert stats.overdue == 1
    assert stats.success_rate == 20


def test_summarize_empty() -> None:
    stats = summarize_tasks([], today=TODAY)
    assert (stats.total, stats.success_rate) == (0, 0)
