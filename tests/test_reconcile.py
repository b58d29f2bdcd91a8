# tests/test_reconcile.py

from __future__ import annotations

from task_optimizer.tasks.reconcile import reconcile
from task_optimizer.tasks.task_models import (
    OptimizationEntry,
    OptimizationRecord,
    Priority,
    Task,
)


def _entry(task_id: int, priority: Priority = Priority.HIGH) -> OptimizationEntry:
    return OptimizationEntry(id=task_id, priority=priority, confidence=80, reason=f"r{task_id}")


def _record(*entries: OptimizationEntry) -> OptimizationRecord:
    return OptimizationRecord(reordered_tasks=entries, summary="", fingerprint="f")


TASKS = [Task(id=1, title="one"), Task(id=2, title="two"), Task(id=3, title="three")]


def test_record_order_first_then_rest_in_store_order() -> None:
    merged = reconcile(TASKS, _record(_entry(3, Priority.CRITICAL), _entry(1)))

    assert [t.id for t in merged] == [3, 1, 2]
    assert merged[0].priority == Priority.CRITICAL
    assert merged[1].reason == "r1"
    assert merged[2].annotation is None


def test_without_record_tasks_pass_through() -> None:
    assert reconcile(TASKS, None) == TASKS
    assert reconcile([], _record(_entry(1))) == []


def test_entries_for_deleted_tasks_are_ignored() -> None:
    merged = reconcile(TASKS[:2], _record(_entry(3), _entry(2), _entry(1)))
    assert [t.id for t in merged] == [2, 1]


def test_output_is_a_permutation_of_input() -> None:
    merged = reconcile(TASKS, _record(_entry(2), _entry(2), _entry(7)))
    assert sorted(t.id for t in merged) == [1, 2, 3]
    assert len(merged) == len(TASKS)


def test_idempotent() -> None:
    record = _record(_entry(2), _entry(3))
    once = reconcile(TASKS, record)
    assert reconcile(once, record) == once


def test_fields_other_than_annotation_untouched() -> None:
    merged = reconcile(TASKS, _record(_entry(2)))
    assert merged[0].title == "two"
    assert merged[0].annotated(None) == TASKS[1]
