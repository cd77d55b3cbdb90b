from __future__ import annotations

from typing import List

from ..context import EvaluationContext
from ..dimension import Dimension
from ..models import EligibilityRule
from ..registry import register_dimension


@register_dimension
class DailyCapDimension(Dimension):
    dimension_id = "DAILY-CAP"
    title = "Employee has not reached the rule's meals-per-day cap"

    def check(self, rule: EligibilityRule, ctx: EvaluationContext) -> List[str]:
        cap = rule.max_meals_per_day
        if cap is None:
            return []
        # Point-in-time read; concurrent requests are serialized by the caller.
        if ctx.approved_meals_today < cap:
            return []
        return [f"Max meals per day limit reached ({cap})"]
