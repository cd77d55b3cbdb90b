from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Mapping, Protocol

from common.meal_eligibility.models import (
    AttendanceFact,
    EligibilityRule,
    EmployeeSnapshot,
    MealSessionSnapshot,
    RuleAuthor,
)


class EmployeeDirectory(Protocol):
    def get_employee(self, employee_id: str) -> EmployeeSnapshot | None:
        """Return the employee snapshot, or None when missing or soft-deleted."""
        ...


class MealSessionDirectory(Protocol):
    def get_meal_session(self, meal_session_id: str) -> MealSessionSnapshot | None:
        """Return the meal session snapshot, or None when missing or deleted."""
        ...


class AttendanceProvider(Protocol):
    def get_attendance(self, employee_id: str, on: date) -> AttendanceFact | None:
        """Return the day's attendance fact, or None when nothing was recorded."""
        ...


class MealLedger(Protocol):
    def count_approved_meals(self, employee_id: str, on: date) -> int:
        ...


class RuleStore(Protocol):
    def rules_for_session(self, meal_session_id: str) -> list[EligibilityRule]:
        """Active, non-deleted rules for the session, highest priority first."""
        ...


class RuleAdministration(RuleStore, Protocol):
    def create_rule(self, payload: Mapping[str, Any], *, created_by: RuleAuthor | None = None) -> EligibilityRule:
        ...

    def get_rule(self, rule_id: str) -> EligibilityRule:
        ...

    def update_rule(self, rule_id: str, changes: Mapping[str, Any]) -> EligibilityRule:
        ...

    def soft_delete_rule(self, rule_id: str) -> EligibilityRule:
        ...

    def list_rules(self, **filters: Any) -> Any:
        ...

    def stats(self) -> Any:
        ...


@dataclass(frozen=True)
class VerificationSources:
    employees: EmployeeDirectory
    meal_sessions: MealSessionDirectory
    attendance: AttendanceProvider
    ledger: MealLedger
    rules: RuleStore


def get_data_source(name: str, *, fixtures_dir: Path | None = None) -> VerificationSources:
    """Resolve verification sources by name (fixtures|memory)."""
    source = (name or "").strip().lower()
    if source in ("fixtures", ""):
        from .fixtures import load_fixture_sources

        if fixtures_dir is None:
            raise ValueError("A fixtures directory is required for the 'fixtures' data source.")
        return load_fixture_sources(fixtures_dir)
    if source == "memory":
        from .in_memory import empty_sources

        return empty_sources()
    raise ValueError(f"Unknown data source '{name}' (expected 'fixtures' or 'memory').")
