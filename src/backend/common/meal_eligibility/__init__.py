"""Source-agnostic meal eligibility engine.

This package intentionally contains only decision logic:
- Inputs are employee/session snapshots, rules and pre-fetched facts.
- No database, directory, attendance or ledger calls live here.
"""

from .context import EvaluationContext, sort_rules_for_evaluation
from .engine import EligibilityEngine, evaluate_eligibility
from .models import (
    Applicability,
    AttendanceFact,
    EligibilityRule,
    EligibilityVerdict,
    EmployeeSnapshot,
    EmployeeStatus,
    EmploymentType,
    MatchedRuleSummary,
    MealSessionRef,
    MealSessionSnapshot,
    RuleConditions,
    RuleEvaluation,
    RuleOverrides,
    TimeWindow,
)

# Import built-in dimensions so they self-register with the global registry.
from . import dimensions as _builtin_dimensions  # noqa: F401
