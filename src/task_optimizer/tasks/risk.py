# src/task_optimizer/tasks/risk.py

"""
Deadline-based urgency classification.

Pure functions of (deadline, today). Callers pass "today" explicitly; the
default basis everywhere in the app is the UTC calendar date (today_utc()).

Thresholds (calendar days until the deadline):
- < 0      Overdue
- 0        Due Today
- 1..2     High Urgency
- 3..5     Moderate Urgency
- > 5      Stable Timeline
- no date  No deadline
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime
from enum import StrEnum

from .task_models import Priority, parse_deadline

__all__ = [
    "RiskAssessment",
    "UrgencyCategory",
    "classify_risk",
    "fallback_reason",
    "parse_deadline",
    "priority_for",
    "today_utc",
]


class UrgencyCategory(StrEnum):
    OVERDUE = "Overdue"
    DUE_TODAY = "Due Today"
    HIGH_URGENCY = "High Urgency"
    MODERATE_URGENCY = "Moderate Urgency"
    STABLE_TIMELINE = "Stable Timeline"
    NO_DEADLINE = "No deadline"

    @classmethod
    def parse(cls, raw: str) -> UrgencyCategory | None:
        s = (raw or "").strip().lower()
        for c in cls:
            if c.value.lower() == s:
                return c
        return None


_RULE_PRIORITY: dict[UrgencyCategory, Priority] = {
    UrgencyCategory.OVERDUE: Priority.CRITICAL,
    UrgencyCategory.DUE_TODAY: Priority.HIGH,
    UrgencyCategory.HIGH_URGENCY: Priority.HIGH,
    UrgencyCategory.MODERATE_URGENCY: Priority.MEDIUM,
    UrgencyCategory.STABLE_TIMELINE: Priority.LOW,
    UrgencyCategory.NO_DEADLINE: Priority.LOW,
}

_FALLBACK_REASON: dict[UrgencyCategory, str] = {
    UrgencyCategory.OVERDUE: "Task is overdue.",
    UrgencyCategory.DUE_TODAY: "Due today.",
    UrgencyCategory.HIGH_URGENCY: "Approaching deadline.",
    UrgencyCategory.MODERATE_URGENCY: "Upcoming deadline.",
    UrgencyCategory.STABLE_TIMELINE: "Timeline is stable.",
    UrgencyCategory.NO_DEADLINE: "No deadline set.",
}


@dataclass(frozen=True, slots=True)
class RiskAssessment:
    category: UrgencyCategory
    label: str
    days_remaining: int | None


def today_utc() -> date:
    return datetime.now(UTC).date()


def _plural_days(n: int) -> str:
    return "1 day" if n == 1 else f"{n} days"


def classify_risk(deadline: date | str | None, today: date) -> RiskAssessment:
    due = parse_deadline(deadline)
    if due is None:
        return RiskAssessment(UrgencyCategory.NO_DEADLINE, "No deadline", None)

    diff = (due - today).days

    if diff < 0:
        return RiskAssessment(UrgencyCategory.OVERDUE, f"Overdue by {_plural_days(-diff)}", diff)
    if diff == 0:
        return RiskAssessment(UrgencyCategory.DUE_TODAY, "Due Today", diff)

    label = f"{_plural_days(diff)} remaining"
    if diff <= 2:
        return RiskAssessment(UrgencyCategory.HIGH_URGENCY, label, diff)
    if diff <= 5:
        return RiskAssessment(UrgencyCategory.MODERATE_URGENCY, label, diff)
    return RiskAssessment(UrgencyCategory.STABLE_TIMELINE, label, diff)


def priority_for(category: UrgencyCategory) -> Priority:
    """The authoritative priority for an urgency category."""
    return _RULE_PRIORITY[category]


def fallback_reason(category: UrgencyCategory) -> str:
    return _FALLBACK_REASON[category]
