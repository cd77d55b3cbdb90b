from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Iterable, List, Optional

from .context import EvaluationContext, sort_rules_for_evaluation
from .dimension import Dimension
from .models import (
    AttendanceFact,
    EligibilityRule,
    EligibilityVerdict,
    EmployeeSnapshot,
    EmployeeStatus,
    MatchedRuleSummary,
    MealSessionSnapshot,
    RuleEvaluation,
)
from .registry import registry
from .timewindow import within_window

NO_RULES_REASON = "No matching eligibility rule found"
SESSION_UNAVAILABLE_REASON = "Meal session not found or inactive"
EMPLOYEE_UNAVAILABLE_REASON = "Employee not found or inactive"


def session_window_reason(session: MealSessionSnapshot) -> str:
    return f"Meal session time window: {session.start_time} - {session.end_time}"


class EligibilityEngine:
    """Pure first-match-wins evaluator.

    Holds only the (immutable) list of dimension checks, so a single instance
    can serve any number of concurrent evaluations.
    """

    def __init__(self, dimensions: Optional[Iterable[Dimension]] = None):
        self._dimensions = tuple(dimensions) if dimensions is not None else tuple(registry.create_all())

    @property
    def dimension_ids(self) -> list[str]:
        return [d.dimension_id for d in self._dimensions]

    def check_session(self, ctx: EvaluationContext) -> Optional[str]:
        session = ctx.meal_session
        if session is None or session.is_deleted or not session.is_active:
            return SESSION_UNAVAILABLE_REASON
        if not within_window(ctx.time_of_day, session.start_time, session.end_time):
            return session_window_reason(session)
        return None

    def check_employee(self, ctx: EvaluationContext) -> Optional[str]:
        employee = ctx.employee
        if employee is None or employee.is_deleted or employee.status != EmployeeStatus.ACTIVE:
            return EMPLOYEE_UNAVAILABLE_REASON
        return None

    def match_rule(self, rule: EligibilityRule, ctx: EvaluationContext) -> RuleEvaluation:
        # Every dimension runs so the explanation names all of them.
        reasons: List[str] = []
        for dimension in self._dimensions:
            reasons.extend(dimension.check(rule, ctx))
        return RuleEvaluation(
            rule_id=rule.id,
            rule_name=rule.name,
            priority=rule.priority,
            matched=not reasons,
            reasons=reasons,
        )

    def evaluate(self, ctx: EvaluationContext) -> EligibilityVerdict:
        rejection = self.check_session(ctx) or self.check_employee(ctx)
        if rejection is not None:
            return EligibilityVerdict(eligible=False, reason=rejection, timestamp=ctx.evaluated_at)

        evaluations: List[RuleEvaluation] = []
        collected: List[str] = []
        candidates = sort_rules_for_evaluation(r for r in ctx.rules if r.is_applicable)
        for rule in candidates:
            result = self.match_rule(rule, ctx)
            evaluations.append(result)
            if result.matched:
                return EligibilityVerdict(
                    eligible=True,
                    reason=f"Eligible via rule: {rule.name}",
                    matched_rule_id=rule.id,
                    matched_rule=MatchedRuleSummary(id=rule.id, name=rule.name, priority=rule.priority),
                    timestamp=ctx.evaluated_at,
                    evaluations=evaluations,
                )
            collected.extend(result.reasons)

        return EligibilityVerdict(
            eligible=False,
            reason=", ".join(collected) or NO_RULES_REASON,
            timestamp=ctx.evaluated_at,
            evaluations=evaluations,
        )


_default_engine: Optional[EligibilityEngine] = None


def default_engine() -> EligibilityEngine:
    global _default_engine
    if _default_engine is None:
        _default_engine = EligibilityEngine()
    return _default_engine


def evaluate_eligibility(
    *,
    employee: Optional[EmployeeSnapshot],
    meal_session: Optional[MealSessionSnapshot],
    rules: Iterable[EligibilityRule] = (),
    attendance: Optional[AttendanceFact] = None,
    approved_meals_today: int = 0,
    evaluated_at: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
) -> EligibilityVerdict:
    ctx = EvaluationContext(
        evaluated_at=evaluated_at or datetime.now(timezone.utc),
        employee=employee,
        meal_session=meal_session,
        rules=tuple(rules),
        attendance=attendance,
        approved_meals_today=approved_meals_today,
        tz=tz,
    )
    return default_engine().evaluate(ctx)
