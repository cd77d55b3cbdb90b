from __future__ import annotations

from typing import List

from ..context import EvaluationContext
from ..dimension import Dimension
from ..models import EligibilityRule
from ..registry import register_dimension
from ..timewindow import within_window


@register_dimension
class TimeWindowDimension(Dimension):
    dimension_id = "TIME-WINDOW"
    title = "Evaluation time falls inside the rule's own time window"

    def check(self, rule: EligibilityRule, ctx: EvaluationContext) -> List[str]:
        window = rule.time_window
        if window is None:
            return []
        if within_window(ctx.time_of_day, window.start_time, window.end_time):
            return []
        return [f"Time window: {window.start_time} - {window.end_time}"]
