import os
import sys


# Ensure `src/backend` is on sys.path so imports like `import common...` work.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from common.meal_eligibility.context import EvaluationContext
from common.meal_eligibility.models import (
    Applicability,
    EligibilityRule,
    EmployeeSnapshot,
    EmploymentType,
    MealSessionRef,
    MealSessionSnapshot,
)


@pytest.fixture
def lunch_at():
    def _at(hhmm: str) -> datetime:
        hour, minute = (int(part) for part in hhmm.split(":"))
        return datetime(2025, 3, 14, hour, minute, tzinfo=timezone.utc)

    return _at


@pytest.fixture
def make_session():
    def _make(*, start_time: str = "12:00", end_time: str = "13:00", is_active: bool = True) -> MealSessionSnapshot:
        return MealSessionSnapshot(
            id="lunch",
            name="Lunch",
            start_time=start_time,
            end_time=end_time,
            is_active=is_active,
        )

    return _make


@pytest.fixture
def make_employee():
    def _make(
        *,
        employee_id: str = "emp-1",
        shift_id: str = "shift-a",
        department_id: str = "dept-ops",
        employment_type: EmploymentType = EmploymentType.PERMANENT,
        status: str = "ACTIVE",
    ) -> EmployeeSnapshot:
        return EmployeeSnapshot(
            id=employee_id,
            name="Asha Rao",
            employee_code="E-1001",
            status=status,
            shift_id=shift_id,
            department_id=department_id,
            employment_type=employment_type,
            shift_name="Day Shift",
            department_name="Operations",
        )

    return _make


@pytest.fixture
def make_rule():
    sequence = count()
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def _make(
        rule_id: str,
        *,
        priority: int = 1,
        shifts=(),
        departments=(),
        employment_types=(),
        specific_employees=(),
        requires_attendance: bool = False,
        requires_overtime: bool = False,
        time_window=None,
        max_meals_per_day=None,
        is_active: bool = True,
        is_deleted: bool = False,
        created_at: datetime | None = None,
    ) -> EligibilityRule:
        return EligibilityRule(
            id=rule_id,
            name=f"Rule {rule_id}",
            meal_session=MealSessionRef(id="lunch", name="Lunch"),
            applicability=Applicability(
                shifts=list(shifts),
                departments=list(departments),
                employment_types=list(employment_types),
                specific_employees=list(specific_employees),
            ),
            requires_attendance=requires_attendance,
            requires_overtime=requires_overtime,
            time_window=time_window,
            max_meals_per_day=max_meals_per_day,
            priority=priority,
            is_active=is_active,
            is_deleted=is_deleted,
            created_at=created_at or base + timedelta(minutes=next(sequence)),
        )

    return _make


@pytest.fixture
def make_ctx(make_employee, make_session, lunch_at):
    def _make(
        *,
        rules=(),
        at: str = "12:30",
        employee=...,
        meal_session=...,
        attendance=None,
        approved_meals_today: int = 0,
    ) -> EvaluationContext:
        return EvaluationContext(
            evaluated_at=lunch_at(at),
            employee=make_employee() if employee is ... else employee,
            meal_session=make_session() if meal_session is ... else meal_session,
            rules=tuple(rules),
            attendance=attendance,
            approved_meals_today=approved_meals_today,
        )

    return _make
