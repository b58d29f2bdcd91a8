# src/task_optimizer/core/service.py

"""
Session service: the composition of store, cache, engine and extractor.

Re-optimization flow:
0. validate (no tasks / no active tasks) before touching anything
1. refuse if an optimization for the same session is already running (busy flag)
2. invalidate the cached overlay and clear stored annotations
3. snapshot tasks + fingerprint + store revision
4. call the priority engine (the only await)
5. cache the record only if the store revision did not move in the meantime

Rendering never writes: reconcile + query + stats over the current state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from ..errors import BusyError, ValidationError
from ..tasks.extraction import TaskExtractor
from ..tasks.optimization_cache import OptimizationStatus, status_for, task_fingerprint
from ..tasks.priority_engine import OptimizationOutcome, PriorityEngine
from ..tasks.query import TaskQuery, TaskStats, apply_query, summarize_tasks
from ..tasks.reconcile import reconcile
from ..tasks.risk import today_utc
from ..tasks.task_models import SessionKey, Task, TaskStatus
from .ports import OptimizationRepo, TaskRepo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SessionView:
    tasks: list[Task]
    summary: str | None
    status: OptimizationStatus
    stats: TaskStats
    total_tasks: int  # before filtering, to tell "empty session" from "nothing matches"


class TaskOptimizerService:
    def __init__(
        self,
        store: TaskRepo,
        cache: OptimizationRepo,
        engine: PriorityEngine,
        extractor: TaskExtractor,
    ) -> None:
        self.store = store
        self.cache = cache
        self.engine = engine
        self.extractor = extractor
        self._busy: set[str] = set()

    def is_busy(self, key: SessionKey) -> bool:
        return str(key) in self._busy

    async def optimize(self, key: SessionKey, *, today: date | None = None) -> OptimizationOutcome:
        # Check-and-set happens before the first await, so one event loop cannot
        # admit two optimizations for the same session.
        busy_key = str(key)
        if busy_key in self._busy:
            raise BusyError()
        self._busy.add(busy_key)

        try:
            current = self.store.list(key)
            if not current:
                raise ValidationError("Please add tasks before optimizing.")
            if not any(t.status == TaskStatus.ACTIVE for t in current):
                raise ValidationError("No active tasks available.")

            self.cache.invalidate(key)
            self.store.clear_annotations(key)

            tasks = self.store.list(key)
            fingerprint = task_fingerprint(tasks)
            revision = self.store.revision(key)

            outcome = await self.engine.optimize(tasks, today=today, fingerprint=fingerprint)

            if self.store.revision(key) != revision:
                logger.warning("Session %s changed during optimization; result not cached", key)
                return outcome

            self.cache.put(key, outcome.record)

            # A mutation committed after the check may have run its invalidate before our put.
            if self.store.revision(key) != revision:
                logger.warning("Session %s changed while caching; dropping cached result", key)
                self.cache.invalidate(key)

            return outcome
        finally:
            self._busy.discard(busy_key)

    def render(self, key: SessionKey, query: TaskQuery | None = None, *, today: date | None = None) -> SessionView:
        today = today or today_utc()
        tasks = self.store.list(key)
        record = self.cache.get(key)

        merged = reconcile(tasks, record)
        return SessionView(
            tasks=apply_query(merged, query or TaskQuery(), today=today),
            summary=record.summary if record and record.summary else None,
            status=status_for(record, tasks),
            stats=summarize_tasks(merged, today=today),
            total_tasks=len(merged),
        )

    async def import_text(self, key: SessionKey, text: str) -> list[Task]:
        drafts = await self.extractor.extract(text)
        added = [self.store.add(key, d) for d in drafts]
        logger.info("Imported %d tasks into session=%s", len(added), key)
        return added
