# src/task_optimizer/tasks/reconcile.py

from __future__ import annotations

from collections.abc import Sequence

from .task_models import OptimizationRecord, Task


def reconcile(tasks: Sequence[Task], record: OptimizationRecord | None = None) -> list[Task]:
    """
    Merge a cached overlay into the live task list.

    - tasks named by the record come first, in record order, annotated from it
    - every other task follows in store order, as stored (new since the
      last optimization, or excluded from it)
    - record entries for tasks that no longer exist are ignored

    Output has exactly the input's tasks, each once.
    """
    if record is None:
        return list(tasks)

    lookup: dict[int, Task] = {t.id: t for t in tasks}
    merged: list[Task] = []

    for entry in record.reordered_tasks:
        task = lookup.pop(entry.id, None)
        if task is None:
            continue
        merged.append(task.annotated(entry.annotation))

    # dicts keep insertion order, so the remainder is still in store order
    merged.extend(lookup.values())
    return merged
