from __future__ import annotations

import math
import threading
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import BaseModel, Field

from common.meal_eligibility.context import sort_rules_for_evaluation
from common.meal_eligibility.models import (
    AttendanceFact,
    EligibilityRule,
    EmployeeSnapshot,
    MealSessionSnapshot,
    RuleAuthor,
)

from .data_source import VerificationSources
from .errors import RuleNotFoundError


class MealTransactionStatus(str, Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class MealTransaction(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    employee_id: str
    meal_session_id: str
    date: date
    status: MealTransactionStatus = MealTransactionStatus.APPROVED
    timestamp: Optional[datetime] = None


class InMemoryEmployeeDirectory:
    def __init__(self, employees: Iterable[EmployeeSnapshot] = ()) -> None:
        self._employees = {e.id: e for e in employees}

    def add(self, employee: EmployeeSnapshot) -> None:
        self._employees[employee.id] = employee

    def get_employee(self, employee_id: str) -> EmployeeSnapshot | None:
        employee = self._employees.get(employee_id)
        if employee is None or employee.is_deleted:
            return None
        return employee


class InMemoryMealSessionDirectory:
    def __init__(self, sessions: Iterable[MealSessionSnapshot] = ()) -> None:
        self._sessions = {s.id: s for s in sessions}

    def add(self, session: MealSessionSnapshot) -> None:
        self._sessions[session.id] = session

    def get_meal_session(self, meal_session_id: str) -> MealSessionSnapshot | None:
        session = self._sessions.get(meal_session_id)
        if session is None or session.is_deleted:
            return None
        return session


class InMemoryAttendanceProvider:
    def __init__(self, facts: Mapping[tuple[str, date], AttendanceFact] | None = None) -> None:
        self._facts: dict[tuple[str, date], AttendanceFact] = dict(facts or {})

    def mark(self, employee_id: str, on: date, fact: AttendanceFact) -> None:
        self._facts[(employee_id, on)] = fact

    def get_attendance(self, employee_id: str, on: date) -> AttendanceFact | None:
        return self._facts.get((employee_id, on))


class InMemoryMealLedger:
    def __init__(self, transactions: Iterable[MealTransaction] = ()) -> None:
        self._lock = threading.Lock()
        self._transactions: list[MealTransaction] = list(transactions)

    def record_meal(self, transaction: MealTransaction) -> MealTransaction:
        with self._lock:
            self._transactions.append(transaction)
        return transaction

    def count_approved_meals(self, employee_id: str, on: date) -> int:
        with self._lock:
            return sum(
                1
                for txn in self._transactions
                if txn.employee_id == employee_id
                and txn.date == on
                and txn.status == MealTransactionStatus.APPROVED
            )

    def transactions(self) -> list[MealTransaction]:
        with self._lock:
            return list(self._transactions)


@dataclass(frozen=True)
class RulePage:
    items: list[EligibilityRule]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)


@dataclass(frozen=True)
class RuleStats:
    total: int
    active: int
    inactive: int


# Fields the administrative surface may not overwrite on update.
_IMMUTABLE_RULE_FIELDS = ("id", "created_at", "created_by", "is_deleted")


class InMemoryRuleStore:
    """Rule store plus the administrative operations around it.

    Rules are validated on the way in, so evaluation can assume well-formed
    shapes. ``created_at`` is kept strictly increasing in insertion order,
    which is the tie-break for equal priorities.
    """

    def __init__(self, rules: Iterable[EligibilityRule] = ()) -> None:
        self._lock = threading.RLock()
        self._rules: dict[str, EligibilityRule] = {}
        self._last_created: datetime | None = None
        for rule in rules:
            self._insert(rule)

    def _insert(self, rule: EligibilityRule) -> EligibilityRule:
        if rule.id in self._rules:
            raise ValueError(f"Duplicate rule id: {rule.id}")
        self._rules[rule.id] = rule
        created = _aware(rule.created_at)
        if self._last_created is None or created > self._last_created:
            self._last_created = created
        return rule

    def _next_created_at(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_created is not None and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        return now

    @classmethod
    def from_records(cls, rows: Iterable[Mapping[str, Any]]) -> "InMemoryRuleStore":
        """Seed a store from raw rule documents, in order.

        Rows without ``created_at`` are stamped as they are inserted, so file
        order decides ties between equal priorities.
        """
        store = cls()
        with store._lock:
            for row in rows:
                data = dict(row)
                if not data.get("created_at"):
                    data["created_at"] = store._next_created_at()
                store._insert(EligibilityRule.model_validate(data))
        return store

    def rules_for_session(self, meal_session_id: str) -> list[EligibilityRule]:
        with self._lock:
            scoped = [
                rule
                for rule in self._rules.values()
                if rule.meal_session.id == meal_session_id and rule.is_applicable
            ]
        return sort_rules_for_evaluation(scoped)

    def create_rule(
        self,
        payload: Mapping[str, Any] | EligibilityRule,
        *,
        created_by: RuleAuthor | None = None,
    ) -> EligibilityRule:
        data = payload.model_dump() if isinstance(payload, EligibilityRule) else dict(payload)
        with self._lock:
            data.setdefault("id", uuid.uuid4().hex)
            data["created_at"] = self._next_created_at()
            data["is_deleted"] = False
            if created_by is not None:
                data["created_by"] = created_by
            rule = EligibilityRule.model_validate(data)
            return self._insert(rule)

    def get_rule(self, rule_id: str) -> EligibilityRule:
        with self._lock:
            rule = self._rules.get(rule_id)
        if rule is None or rule.is_deleted:
            raise RuleNotFoundError(rule_id)
        return rule

    def update_rule(self, rule_id: str, changes: Mapping[str, Any]) -> EligibilityRule:
        with self._lock:
            current = self.get_rule(rule_id)
            data = current.model_dump()
            data.update({k: v for k, v in changes.items() if k not in _IMMUTABLE_RULE_FIELDS})
            data["updated_at"] = datetime.now(timezone.utc)
            updated = EligibilityRule.model_validate(data)
            self._rules[rule_id] = updated
            return updated

    def soft_delete_rule(self, rule_id: str) -> EligibilityRule:
        with self._lock:
            current = self.get_rule(rule_id)
            deleted = current.model_copy(
                update={"is_deleted": True, "updated_at": datetime.now(timezone.utc)}
            )
            self._rules[rule_id] = deleted
            return deleted

    def list_rules(
        self,
        *,
        meal_session_id: str | None = None,
        shift_id: str | None = None,
        department_id: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> RulePage:
        if page < 1:
            raise ValueError("page must be >= 1")
        if limit < 1:
            raise ValueError("limit must be >= 1")

        needle = (search or "").strip().lower()
        with self._lock:
            candidates = [r for r in self._rules.values() if not r.is_deleted]

        matches: List[EligibilityRule] = []
        for rule in candidates:
            if meal_session_id and rule.meal_session.id != meal_session_id:
                continue
            if shift_id and shift_id not in rule.applicability.shifts:
                continue
            if department_id and department_id not in rule.applicability.departments:
                continue
            if is_active is not None and rule.is_active != is_active:
                continue
            if needle and not _rule_matches_search(rule, needle):
                continue
            matches.append(rule)

        # Listing order: priority first, newest first within a priority.
        matches.sort(key=lambda r: (-r.priority, -_aware(r.created_at).timestamp()))
        start = (page - 1) * limit
        return RulePage(items=matches[start : start + limit], total=len(matches), page=page, limit=limit)

    def stats(self) -> RuleStats:
        with self._lock:
            live = [r for r in self._rules.values() if not r.is_deleted]
        active = sum(1 for r in live if r.is_active)
        return RuleStats(total=len(live), active=active, inactive=len(live) - active)


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _rule_matches_search(rule: EligibilityRule, needle: str) -> bool:
    haystacks = (rule.name, rule.description or "", rule.meal_session.name)
    return any(needle in text.lower() for text in haystacks)


def empty_sources() -> VerificationSources:
    return VerificationSources(
        employees=InMemoryEmployeeDirectory(),
        meal_sessions=InMemoryMealSessionDirectory(),
        attendance=InMemoryAttendanceProvider(),
        ledger=InMemoryMealLedger(),
        rules=InMemoryRuleStore(),
    )
