from __future__ import annotations

from typing import List

from ..context import EvaluationContext
from ..dimension import Dimension
from ..models import EligibilityRule
from ..registry import register_dimension


@register_dimension
class AttendanceDimension(Dimension):
    dimension_id = "ATTENDANCE"
    title = "Employee is marked present (and logged overtime when required)"

    def check(self, rule: EligibilityRule, ctx: EvaluationContext) -> List[str]:
        if not rule.requires_attendance:
            return []

        reasons: List[str] = []
        fact = ctx.attendance
        if fact is None or not fact.present:
            reasons.append("Attendance not marked as PRESENT")
        if rule.requires_overtime and (fact is None or fact.overtime_hours <= 0):
            reasons.append("OT hours required")
        return reasons
