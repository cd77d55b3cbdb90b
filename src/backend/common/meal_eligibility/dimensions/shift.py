from __future__ import annotations

from typing import List

from ..context import EvaluationContext
from ..dimension import Dimension
from ..models import EligibilityRule
from ..registry import register_dimension


@register_dimension
class ShiftDimension(Dimension):
    dimension_id = "SHIFT"
    title = "Employee's shift is in the rule's shift list"

    def check(self, rule: EligibilityRule, ctx: EvaluationContext) -> List[str]:
        shifts = rule.applicability.shifts
        if not shifts:
            return []
        shift_id = ctx.employee.shift_id if ctx.employee else None
        if shift_id is not None and shift_id in shifts:
            return []
        return ["Shift not eligible"]
