from __future__ import annotations

from typing import List

from ..context import EvaluationContext
from ..dimension import Dimension
from ..models import EligibilityRule
from ..registry import register_dimension


@register_dimension
class SpecificEmployeesDimension(Dimension):
    dimension_id = "SPECIFIC-EMPLOYEES"
    title = "Employee is named on the rule's explicit list"

    def check(self, rule: EligibilityRule, ctx: EvaluationContext) -> List[str]:
        employees = rule.applicability.specific_employees
        if not employees:
            return []
        if ctx.employee is not None and ctx.employee.id in employees:
            return []
        return ["Not in specific employee list"]
