# tests/test_risk.py

from __future__ import annotations

from datetime import date, timedelta

import pytest

from task_optimizer.tasks.risk import (
    UrgencyCategory,
    classify_risk,
    fallback_reason,
    parse_deadline,
    priority_for,
)
from task_optimizer.tasks.task_models import Priority

TODAY = date(2026, 3, 10)


@pytest.mark.parametrize(
    ("days", "category"),
    [
        (-30, UrgencyCategory.OVERDUE),
        (-1, UrgencyCategory.OVERDUE),
        (0, UrgencyCategory.DUE_TODAY),
        (1, UrgencyCategory.HIGH_URGENCY),
        (2, UrgencyCategory.HIGH_URGENCY),
        (3, UrgencyCategory.MODERATE_URGENCY),
        (5, UrgencyCategory.MODERATE_URGENCY),
        (6, UrgencyCategory.STABLE_TIMELINE),
        (400, UrgencyCategory.STABLE_TIMELINE),
    ],
)
def test_threshold_table(days: int, category: UrgencyCategory) -> None:
    risk = classify_risk(TODAY + timedelta(days=days), TODAY)
    assert risk.category == category
    assert risk.days_remaining == days


def test_no_deadline_is_distinct_from_stable() -> None:
    for raw in (None, "", "not-a-date"):
        risk = classify_risk(raw, TODAY)
        assert risk.category == UrgencyCategory.NO_DEADLINE
        assert risk.days_remaining is None
        assert risk.label == "No deadline"


def test_labels() -> None:
    assert classify_risk(TODAY - timedelta(days=1), TODAY).label == "Overdue by 1 day"
    assert classify_risk(TODAY - timedelta(days=4), TODAY).label == "Overdue by 4 days"
    assert classify_risk(TODAY, TODAY).label == "Due Today"
    assert classify_risk(TODAY + timedelta(days=1), TODAY).label == "1 day remaining"
    assert classify_risk(TODAY + timedelta(days=9), TODAY).label == "9 days remaining"


def test_calendar_days_across_month_and_year_ends() -> None:
    assert classify_risk("2027-01-01", date(2026, 12, 31)).category == UrgencyCategory.HIGH_URGENCY
    assert classify_risk("2026-03-01", date(2026, 2, 28)).days_remaining == 1


def test_string_and_date_inputs_agree_and_calls_are_independent() -> None:
    deadline = TODAY + timedelta(days=3)
    first = classify_risk(deadline.isoformat(), TODAY)
    classify_risk(TODAY - timedelta(days=10), TODAY)
    again = classify_risk(deadline, TODAY)
    assert first == again


def test_parse_deadline() -> None:
    assert parse_deadline("2026-05-01") == date(2026, 5, 1)
    assert parse_deadline(date(2026, 5, 1)) == date(2026, 5, 1)
    assert parse_deadline("2026-02-30") is None
    assert parse_deadline(None) is None


def test_rule_priority_table() -> None:
    assert priority_for(UrgencyCategory.OVERDUE) == Priority.CRITICAL
    assert priority_for(UrgencyCategory.DUE_TODAY) == Priority.HIGH
    assert priority_for(UrgencyCategory.HIGH_URGENCY) == Priority.HIGH
    assert priority_for(UrgencyCategory.MODERATE_URGENCY) == Priority.MEDIUM
    assert priority_for(UrgencyCategory.STABLE_TIMELINE) == Priority.LOW
    assert priority_for(UrgencyCategory.NO_DEADLINE) == Priority.LOW
    assert fallback_reason(UrgencyCategory.OVERDUE) == "Task is overdue."
    assert fallback_reason(UrgencyCategory.NO_DEADLINE) == "No deadline set."
