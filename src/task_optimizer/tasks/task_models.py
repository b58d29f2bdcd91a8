# src/task_optimizer/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    ACTIVE = "active"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.ACTIVE
        try:
            return cls(raw)
        except ValueError:
            return cls.ACTIVE


class Priority(StrEnum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def parse(cls, raw: Any) -> Priority | None:
        s = str(raw or "").strip().lower()
        for p in cls:
            if p.value.lower() == s:
                return p
        return None


_PRIORITY_RANK = {
    Priority.CRITICAL: 4,
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


def priority_rank(priority: Priority | None) -> int:
    """Sort rank; an unannotated task ranks below Low."""
    return priority.rank if priority is not None else 0


def clamp_confidence(value: Any) -> int | None:
    """Coerce to an int in 0..100; None for anything non-numeric."""
    if isinstance(value, bool):
        return None
    try:
        n = int(round(float(value)))
    except (TypeError, ValueError):
        return None
    return max(0, min(100, n))


@dataclass(frozen=True, slots=True)
class SessionKey:
    """
    Department + sub-department, stored as "<department>-<sub_department>".

    The department may not contain "-": the first dash is the separator, so
    ("a-b", "c") and ("a", "b-c") would otherwise share one stored key.
    """

    department: str
    sub_department: str

    def __post_init__(self) -> None:
        if not self.department.strip() or not self.sub_department.strip():
            raise ValueError("department and sub_department are required")
        if "-" in self.department:
            raise ValueError("department may not contain '-'")

    def __str__(self) -> str:
        return f"{self.department}-{self.sub_department}"


@dataclass(frozen=True, slots=True)
class Annotation:
    """
    Priority overlay attached to a task.

    A task either carries a whole Annotation or none; there is no way to
    hold a priority without its confidence and reason.
    """

    priority: Priority
    confidence: int
    reason: str


@dataclass(frozen=True, slots=True)
class TaskDraft:
    """A task that has not been stored yet (no id, always starts active)."""

    title: str
    description: str = ""
    deadline: date | None = None


@dataclass(frozen=True, slots=True)
class Task:
    id: int
    title: str
    description: str = ""
    deadline: date | None = None
    status: TaskStatus = TaskStatus.ACTIVE
    completed_at: datetime | None = None
    annotation: Annotation | None = None

    def __post_init__(self) -> None:
        if (self.status == TaskStatus.COMPLETED) != (self.completed_at is not None):
            raise ValueError("completed_at must be set iff status is completed")

    # ---- annotation views ----

    @property
    def priority(self) -> Priority | None:
        return self.annotation.priority if self.annotation else None

    @property
    def confidence(self) -> int | None:
        return self.annotation.confidence if self.annotation else None

    @property
    def reason(self) -> str | None:
        return self.annotation.reason if self.annotation else None

    def annotated(self, annotation: Annotation | None) -> Task:
        return replace(self, annotation=annotation)

    # ---- wire format ----

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "status": self.status.value,
        }
        if self.completed_at is not None:
            out["completedAt"] = self.completed_at.isoformat()
        if self.annotation is not None:
            out["priority"] = self.annotation.priority.value
            out["confidence"] = self.annotation.confidence
            out["reason"] = self.annotation.reason
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """
        Build a Task from its wire dict.

        Lenient like the browser store it mirrors:
        - "" / null deadline -> no deadline, malformed dates too
        - unknown status -> active
        - annotation only when priority is a known label
        """
        status = TaskStatus.from_db(data.get("status"))
        completed_at = None
        if status == TaskStatus.COMPLETED:
            completed_at = _parse_timestamp(data.get("completedAt")) or datetime.now(UTC)

        annotation = None
        priority = Priority.parse(data.get("priority"))
        if priority is not None:
            annotation = Annotation(
                priority=priority,
                confidence=clamp_confidence(data.get("confidence")) or 0,
                reason=str(data.get("reason") or ""),
            )

        return cls(
            id=int(data["id"]),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            deadline=parse_deadline(data.get("deadline")),
            status=status,
            completed_at=completed_at,
            annotation=annotation,
        )


def parse_deadline(raw: Any) -> date | None:
    """YYYY-MM-DD (or a date) -> date; empty or malformed -> None (no deadline)."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw).strip()[:10])
    except ValueError:
        return None


def _parse_timestamp(raw: Any) -> datetime | None:
    if not raw:
        return None
    try:
        ts = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return None
    return ts if ts.tzinfo else ts.replace(tzinfo=UTC)


@dataclass(frozen=True, slots=True)
class OptimizationEntry:
    id: int
    priority: Priority
    confidence: int
    reason: str

    @property
    def annotation(self) -> Annotation:
        return Annotation(priority=self.priority, confidence=self.confidence, reason=self.reason)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "priority": self.priority.value,
            "confidence": self.confidence,
            "reason": self.reason,
        }


@dataclass(frozen=True, slots=True)
class OptimizationRecord:
    """
    Cached priority overlay for one session.

    reordered_tasks holds one entry per submitted task, no duplicate ids.
    fingerprint identifies the task collection the overlay was computed for.
    """

    reordered_tasks: tuple[OptimizationEntry, ...]
    summary: str
    fingerprint: str
    optimized_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def ids(self) -> list[int]:
        return [e.id for e in self.reordered_tasks]

    def payload(self) -> dict[str, Any]:
        """The {reorderedTasks, summary} body returned to callers and persisted."""
        return {
            "reorderedTasks": [e.to_dict() for e in self.reordered_tasks],
            "summary": self.summary,
        }
