from __future__ import annotations

from typing import List

from ..context import EvaluationContext
from ..dimension import Dimension
from ..models import EligibilityRule
from ..registry import register_dimension


@register_dimension
class DepartmentDimension(Dimension):
    dimension_id = "DEPARTMENT"
    title = "Employee's department is in the rule's department list"

    def check(self, rule: EligibilityRule, ctx: EvaluationContext) -> List[str]:
        departments = rule.applicability.departments
        if not departments:
            return []
        department_id = ctx.employee.department_id if ctx.employee else None
        if department_id is not None and department_id in departments:
            return []
        return ["Department not eligible"]
