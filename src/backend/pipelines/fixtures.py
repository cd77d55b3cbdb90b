from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any

from common.meal_eligibility.models import (
    AttendanceFact,
    EmployeeSnapshot,
    MealSessionSnapshot,
)

from .data_source import VerificationSources
from .in_memory import (
    InMemoryAttendanceProvider,
    InMemoryEmployeeDirectory,
    InMemoryMealLedger,
    InMemoryMealSessionDirectory,
    InMemoryRuleStore,
    MealTransaction,
)


def _load_json_list(path: Path) -> list[dict[str, Any]]:
    if not path.exists():
        return []
    with path.open(encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, list):
        raise ValueError(f"{path.name} must contain a JSON list")
    return payload


def load_fixture_sources(fixtures_dir: Path) -> VerificationSources:
    """Build in-memory providers from a directory of JSON fixtures.

    Expected files (each optional, a JSON list): employees.json,
    meal_sessions.json, rules.json, attendance.json, meal_transactions.json.
    """
    fixtures_dir = Path(fixtures_dir)
    if not fixtures_dir.is_dir():
        raise ValueError(f"Fixtures directory not found: {fixtures_dir}")

    employees = [
        EmployeeSnapshot.model_validate(row) for row in _load_json_list(fixtures_dir / "employees.json")
    ]
    sessions = [
        MealSessionSnapshot.model_validate(row)
        for row in _load_json_list(fixtures_dir / "meal_sessions.json")
    ]

    attendance: dict[tuple[str, date], AttendanceFact] = {}
    for row in _load_json_list(fixtures_dir / "attendance.json"):
        key = (str(row["employee_id"]), date.fromisoformat(row["date"]))
        attendance[key] = AttendanceFact(
            present=bool(row.get("present", False)),
            overtime_hours=row.get("overtime_hours", 0) or 0,
        )

    transactions = [
        MealTransaction.model_validate(row)
        for row in _load_json_list(fixtures_dir / "meal_transactions.json")
    ]

    return VerificationSources(
        employees=InMemoryEmployeeDirectory(employees),
        meal_sessions=InMemoryMealSessionDirectory(sessions),
        attendance=InMemoryAttendanceProvider(attendance),
        ledger=InMemoryMealLedger(transactions),
        rules=InMemoryRuleStore.from_records(_load_json_list(fixtures_dir / "rules.json")),
    )
