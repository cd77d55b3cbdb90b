from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from .context import EvaluationContext
from .models import EligibilityRule


class Dimension(ABC):
    """One independent condition an eligibility rule can impose.

    ``check`` returns the reasons the rule fails this dimension for the
    employee in ``ctx``; an empty list means the dimension is satisfied.
    """

    dimension_id: str
    title: str

    def __init__(self):
        if not getattr(self, "dimension_id", None):
            raise ValueError("Dimension must define dimension_id")

    @abstractmethod
    def check(self, rule: EligibilityRule, ctx: EvaluationContext) -> List[str]:  # pragma: no cover
        raise NotImplementedError
