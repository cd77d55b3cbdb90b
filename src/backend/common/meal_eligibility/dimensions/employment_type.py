from __future__ import annotations

from typing import List

from ..context import EvaluationContext
from ..dimension import Dimension
from ..models import EligibilityRule
from ..registry import register_dimension


@register_dimension
class EmploymentTypeDimension(Dimension):
    dimension_id = "EMPLOYMENT-TYPE"
    title = "Employee's employment type is allowed by the rule"

    def check(self, rule: EligibilityRule, ctx: EvaluationContext) -> List[str]:
        allowed = rule.applicability.employment_types
        if not allowed:
            return []
        employment_type = ctx.employee.employment_type if ctx.employee else None
        if employment_type is not None and employment_type in allowed:
            return []
        return ["Employment type not eligible"]
