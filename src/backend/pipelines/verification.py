from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Callable, Iterator, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from common.log import get_logger
from common.meal_eligibility.context import (
    EvaluationContext,
    rules_need_attendance,
    rules_need_meal_count,
)
from common.meal_eligibility.engine import EligibilityEngine
from common.meal_eligibility.models import (
    EligibilityVerdict,
    EmployeeSnapshot,
    EmployeeStatus,
    EmploymentType,
    MatchedRuleSummary,
    MealSessionSnapshot,
)
from common.meal_eligibility.timewindow import local_date

from .data_source import VerificationSources
from .errors import ProviderUnavailableError, VerificationError
from .in_memory import MealTransaction, MealTransactionStatus

logger = get_logger(__name__)

T = TypeVar("T")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EmployeeSummary(_CamelModel):
    id: str
    name: str
    employee_id: str = ""
    department: Optional[str] = None
    shift: Optional[str] = None
    employment_type: Optional[EmploymentType] = None

    @classmethod
    def from_snapshot(cls, employee: EmployeeSnapshot) -> "EmployeeSummary":
        return cls(
            id=employee.id,
            name=employee.name,
            employee_id=employee.employee_code,
            department=employee.department_name,
            shift=employee.shift_name,
            employment_type=employee.employment_type,
        )


class MealSessionSummary(_CamelModel):
    id: str
    name: str
    start_time: str
    end_time: str

    @classmethod
    def from_snapshot(cls, session: MealSessionSnapshot) -> "MealSessionSummary":
        return cls(id=session.id, name=session.name, start_time=session.start_time, end_time=session.end_time)


class VerificationResponse(_CamelModel):
    eligible: bool
    reason: str
    employee: Optional[EmployeeSummary] = None
    meal_session: Optional[MealSessionSummary] = None
    matched_rule: Optional[MatchedRuleSummary] = None
    timestamp: datetime
    display_color: Literal["green", "red"]
    message: Literal["Meal Authorized", "Not Authorized"]

    verdict: EligibilityVerdict = Field(exclude=True)

    @classmethod
    def build(
        cls,
        verdict: EligibilityVerdict,
        *,
        employee: Optional[EmployeeSnapshot],
        meal_session: Optional[MealSessionSnapshot],
    ) -> "VerificationResponse":
        return cls(
            eligible=verdict.eligible,
            reason=verdict.reason,
            employee=EmployeeSummary.from_snapshot(employee) if employee else None,
            meal_session=MealSessionSummary.from_snapshot(meal_session) if meal_session else None,
            matched_rule=verdict.matched_rule,
            timestamp=verdict.timestamp,
            display_color="green" if verdict.eligible else "red",
            message="Meal Authorized" if verdict.eligible else "Not Authorized",
            verdict=verdict,
        )

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(by_alias=True, mode="json")
        # Unresolved entities are omitted; matchedRule stays as an explicit null.
        for key in ("employee", "mealSession"):
            if payload.get(key) is None:
                payload.pop(key, None)
        return payload


@dataclass(frozen=True)
class AuthorizationResult:
    response: VerificationResponse
    transaction: Optional[MealTransaction] = None


class KeyedLock:
    """One mutex per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Any, list] = {}

    @contextmanager
    def hold(self, key: Any) -> Iterator[None]:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class VerificationService:
    """Resolves identifiers, prefetches facts and runs the eligibility engine."""

    def __init__(
        self,
        sources: VerificationSources,
        *,
        engine: EligibilityEngine | None = None,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._sources = sources
        self._engine = engine or EligibilityEngine()
        self._tz = tz
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._meal_locks = KeyedLock()

    @property
    def sources(self) -> VerificationSources:
        return self._sources

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def _call(self, provider: str, fn: Callable[..., T], *args: Any) -> T:
        try:
            return fn(*args)
        except ProviderUnavailableError:
            raise
        except Exception as exc:
            logger.error("provider_failed", provider=provider, error=str(exc))
            raise ProviderUnavailableError(provider, str(exc)) from exc

    def verify(
        self,
        employee_id: str,
        meal_session_id: str,
        timestamp: datetime | None = None,
    ) -> VerificationResponse:
        evaluated_at = timestamp or self._clock()

        meal_session = self._call(
            "meal_sessions", self._sources.meal_sessions.get_meal_session, meal_session_id
        )
        employee = self._call("employees", self._sources.employees.get_employee, employee_id)
        ctx = EvaluationContext(
            evaluated_at=evaluated_at,
            employee=employee,
            meal_session=meal_session,
            tz=self._tz,
        )

        # Closed sessions and unknown employees never reach the fact providers.
        if self._engine.check_session(ctx) is None and self._engine.check_employee(ctx) is None:
            ctx = self._with_facts(ctx, employee_id, meal_session_id)

        verdict = self._engine.evaluate(ctx)
        logger.info(
            "eligibility_verdict",
            employee_id=employee_id,
            meal_session_id=meal_session_id,
            eligible=verdict.eligible,
            matched_rule_id=verdict.matched_rule_id,
            reason=verdict.reason,
        )
        return VerificationResponse.build(
            verdict,
            employee=employee if _resolved_employee(employee) else None,
            meal_session=meal_session if _resolved_session(meal_session) else None,
        )

    def _with_facts(self, ctx: EvaluationContext, employee_id: str, meal_session_id: str) -> EvaluationContext:
        rules = self._call("rules", self._sources.rules.rules_for_session, meal_session_id)
        on = ctx.evaluation_date

        attendance = None
        if rules_need_attendance(rules):
            attendance = self._call("attendance", self._sources.attendance.get_attendance, employee_id, on)

        approved_meals = 0
        if rules_need_meal_count(rules):
            approved_meals = self._call("ledger", self._sources.ledger.count_approved_meals, employee_id, on)

        return EvaluationContext(
            evaluated_at=ctx.evaluated_at,
            employee=ctx.employee,
            meal_session=ctx.meal_session,
            rules=tuple(rules),
            attendance=attendance,
            approved_meals_today=approved_meals,
            tz=ctx.tz,
        )

    def authorize_meal(
        self,
        employee_id: str,
        meal_session_id: str,
        timestamp: datetime | None = None,
    ) -> AuthorizationResult:
        """Verify and, when eligible, record an approved meal as one step.

        Requests for the same employee and day are serialized so the daily
        cap, which counts meals across sessions, cannot be passed twice by
        simultaneous requests.
        """
        record_meal = getattr(self._sources.ledger, "record_meal", None)
        if record_meal is None:
            raise VerificationError("Configured meal ledger cannot record meals")

        evaluated_at = timestamp or self._clock()
        on = self._local_date(evaluated_at)
        with self._meal_locks.hold((employee_id, on)):
            response = self.verify(employee_id, meal_session_id, evaluated_at)
            if not response.eligible:
                return AuthorizationResult(response=response)
            transaction = MealTransaction(
                employee_id=employee_id,
                meal_session_id=meal_session_id,
                date=on,
                status=MealTransactionStatus.APPROVED,
                timestamp=evaluated_at,
            )
            self._call("ledger", record_meal, transaction)
        logger.info(
            "meal_recorded",
            employee_id=employee_id,
            meal_session_id=meal_session_id,
            transaction_id=transaction.id,
        )
        return AuthorizationResult(response=response, transaction=transaction)

    def _local_date(self, ts: datetime) -> date:
        return local_date(ts, self._tz)


def _resolved_employee(employee: Optional[EmployeeSnapshot]) -> bool:
    return employee is not None and not employee.is_deleted and employee.status == EmployeeStatus.ACTIVE


def _resolved_session(session: Optional[MealSessionSnapshot]) -> bool:
    return session is not None and not session.is_deleted and session.is_active
