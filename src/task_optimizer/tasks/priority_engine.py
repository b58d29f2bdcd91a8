# src/task_optimizer/tasks/priority_engine.py

"""
Priority engine.

Turns a set of tasks into a priority overlay:
- keeps active tasks only, capped at the batch limit
- computes the urgency context per task (UTC calendar date)
- asks the oracle for {reorderedTasks, summary}
- strips markup, then overwrites every priority from the urgency rules
- drops ids the oracle invented and backfills ids it skipped

The oracle only contributes confidence, reason and ordering. Priority is a
pure function of the urgency category.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..core.ports import Oracle
from ..errors import ValidationError
from ..llm.parsing import extract_json_object, strip_markup
from .optimization_cache import task_fingerprint
from .risk import RiskAssessment, classify_risk, fallback_reason, priority_for, today_utc
from .task_models import (
    OptimizationEntry,
    OptimizationRecord,
    Task,
    TaskStatus,
    clamp_confidence,
)

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 90
DEFAULT_BATCH_LIMIT = 50
DEFAULT_TITLE_CHARS = 50

PRIORITY_PROMPT_TEMPLATE = """
You are an AI Task Optimization Engine.

Analyze the tasks.
Priority Rules:
Overdue = Critical
Due Today = High
1-2 Days Left = High
3-5 Days Left = Medium
>5 Days = Low
No deadline = Low

Return strictly valid JSON.
IMPORTANT: You must include EVERY task from the input list in the output JSON, even if priority is Low. Do not skip any tasks.

Tasks:
{tasks_json}

JSON Structure:
{{
  "reorderedTasks": [
    {{
      "id": "task_id",
      "priority": "Critical/High/Medium/Low",
      "confidence": 85,
      "reason": "Max 5 words."
    }}
  ],
  "summary": "Max 2 sentences executive summary."
}}
""".strip()


@dataclass(frozen=True, slots=True)
class TaskContext:
    """What the oracle sees about one task (never the description)."""

    task: Task
    risk: RiskAssessment
    title: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.task.id,
            "title": self.title,
            "daysRemaining": self.risk.days_remaining,
            "urgencyCategory": self.risk.category.value,
            "label": self.risk.label,
        }


@dataclass(frozen=True, slots=True)
class OptimizationOutcome:
    record: OptimizationRecord
    excluded_ids: tuple[int, ...] = field(default_factory=tuple)

    @property
    def truncated(self) -> bool:
        return bool(self.excluded_ids)

    def payload(self) -> dict[str, Any]:
        out = self.record.payload()
        if self.excluded_ids:
            out["excludedTaskIds"] = list(self.excluded_ids)
        return out


class PriorityEngine:
    def __init__(
        self,
        oracle: Oracle,
        *,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
        title_chars: int = DEFAULT_TITLE_CHARS,
    ) -> None:
        self._oracle = oracle
        self._batch_limit = max(1, int(batch_limit))
        self._title_chars = max(1, int(title_chars))

    @classmethod
    def from_settings(cls, oracle: Oracle, settings: Any) -> PriorityEngine:
        return cls(
            oracle,
            batch_limit=int(getattr(settings, "optimize_batch_limit", DEFAULT_BATCH_LIMIT)),
            title_chars=int(getattr(settings, "oracle_title_chars", DEFAULT_TITLE_CHARS)),
        )

    def build_context(self, tasks: Sequence[Task], today: date) -> list[TaskContext]:
        return [
            TaskContext(
                task=t,
                risk=classify_risk(t.deadline, today),
                title=(t.title or "")[: self._title_chars],
            )
            for t in tasks
        ]

    def build_prompt(self, contexts: Sequence[TaskContext]) -> str:
        tasks_json = json.dumps([c.to_payload() for c in contexts], ensure_ascii=False)
        return PRIORITY_PROMPT_TEMPLATE.format(tasks_json=tasks_json)

    async def optimize(
        self,
        tasks: Sequence[Task],
        *,
        today: date | None = None,
        fingerprint: str | None = None,
    ) -> OptimizationOutcome:
        """
        Compute a priority overlay for the active tasks in `tasks`.

        fingerprint defaults to task_fingerprint(tasks), i.e. the collection
        exactly as submitted (completed tasks included).
        Raises ValidationError, ConfigurationError, UpstreamError, ParseError;
        on any of them nothing is returned to cache.
        """
        if not tasks:
            raise ValidationError("Tasks array required.")

        active = [t for t in tasks if t.status == TaskStatus.ACTIVE]
        if not active:
            raise ValidationError("No active tasks available.")

        seen_ids: set[int] = set()
        for t in tasks:
            if t.id in seen_ids:
                raise ValidationError(f"Duplicate task id {t.id}.")
            seen_ids.add(t.id)

        batch = active[: self._batch_limit]
        excluded = tuple(t.id for t in active[self._batch_limit :])
        if excluded:
            logger.warning(
                "Optimization batch capped at %d tasks; %d active tasks left out of this pass",
                self._batch_limit,
                len(excluded),
            )

        today = today or today_utc()
        contexts = self.build_context(batch, today)

        raw = await self._oracle.complete(self.build_prompt(contexts))
        parsed = extract_json_object(raw, what="Priority oracle")

        raw_entries = parsed.get("reorderedTasks")
        entries = enforce_rules(raw_entries, contexts)
        summary = strip_markup(parsed.get("summary"))

        record = OptimizationRecord(
            reordered_tasks=tuple(entries),
            summary=summary,
            fingerprint=fingerprint if fingerprint is not None else task_fingerprint(tasks),
        )
        logger.info(
            "Optimization computed tasks=%d oracle_entries=%d excluded=%d",
            len(entries),
            len(raw_entries) if isinstance(raw_entries, list) else 0,
            len(excluded),
        )
        return OptimizationOutcome(record=record, excluded_ids=excluded)


def _id_key(value: Any) -> str:
    """Lookup key for a task id as the oracle echoes it: 7, "7", 7.0 and "7.0" all match task 7."""
    s = str(value if value is not None else "").strip()
    if isinstance(value, bool):
        return s
    try:
        n = float(s)
    except ValueError:
        return s
    return str(int(n)) if n.is_integer() else s


def enforce_rules(raw_entries: Any, contexts: Sequence[TaskContext]) -> list[OptimizationEntry]:
    """
    Post-process oracle entries into exactly one entry per submitted task.

    - order: oracle order first, then skipped tasks in submission order
    - unknown ids and repeated ids are dropped
    - priority always comes from the urgency category
    - confidence is clamped to 0..100; missing confidence / reason use the fallbacks
    """
    by_id = {_id_key(c.task.id): c for c in contexts}
    seen: set[str] = set()
    out: list[OptimizationEntry] = []

    if not isinstance(raw_entries, list):
        raw_entries = []

    for raw in raw_entries:
        if not isinstance(raw, dict):
            continue
        sid = _id_key(raw.get("id"))
        ctx = by_id.get(sid)
        if ctx is None:
            logger.debug("Dropping oracle entry for unknown task id=%r", sid)
            continue
        if sid in seen:
            continue
        seen.add(sid)

        category = ctx.risk.category
        confidence = clamp_confidence(raw.get("confidence"))
        reason = strip_markup(raw.get("reason"))
        out.append(
            OptimizationEntry(
                id=ctx.task.id,
                priority=priority_for(category),
                confidence=FALLBACK_CONFIDENCE if confidence is None else confidence,
                reason=reason or fallback_reason(category),
            )
        )

    missing: list[TaskContext] = []
    for ctx in contexts:
        sid = _id_key(ctx.task.id)
        if sid not in seen:
            seen.add(sid)
            missing.append(ctx)
    if missing:
        logger.info("Backfilling %d tasks the oracle skipped", len(missing))
    for ctx in missing:
        category = ctx.risk.category
        out.append(
            OptimizationEntry(
                id=ctx.task.id,
                priority=priority_for(category),
                confidence=FALLBACK_CONFIDENCE,
                reason=fallback_reason(category),
            )
        )

    return out
