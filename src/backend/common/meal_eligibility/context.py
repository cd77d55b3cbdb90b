from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, Optional

from .models import (
    AttendanceFact,
    EligibilityRule,
    EmployeeSnapshot,
    MealSessionSnapshot,
)
from .timewindow import local_date, local_time_of_day


@dataclass(frozen=True)
class EvaluationContext:
    """Everything one eligibility decision needs, fetched ahead of time."""

    evaluated_at: datetime
    employee: Optional[EmployeeSnapshot]
    meal_session: Optional[MealSessionSnapshot]
    rules: tuple[EligibilityRule, ...] = ()
    attendance: Optional[AttendanceFact] = None
    approved_meals_today: int = 0
    tz: tzinfo = field(default=timezone.utc)

    @property
    def time_of_day(self) -> str:
        return local_time_of_day(self.evaluated_at, self.tz)

    @property
    def evaluation_date(self) -> date:
        return local_date(self.evaluated_at, self.tz)


def _rule_sort_key(rule: EligibilityRule):
    created = rule.created_at
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (-rule.priority, created, rule.id)


def sort_rules_for_evaluation(rules: Iterable[EligibilityRule]) -> list[EligibilityRule]:
    """Priority descending; equal priorities fall back to creation order, oldest first."""
    return sorted(rules, key=_rule_sort_key)


def rules_need_attendance(rules: Iterable[EligibilityRule]) -> bool:
    return any(rule.is_applicable and rule.requires_attendance for rule in rules)


def rules_need_meal_count(rules: Iterable[EligibilityRule]) -> bool:
    return any(rule.is_applicable and rule.max_meals_per_day is not None for rule in rules)
