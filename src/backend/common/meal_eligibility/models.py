from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .timewindow import normalize_hhmm


class EmploymentType(str, Enum):
    PERMANENT = "PERMANENT"
    CONTRACT = "CONTRACT"
    TEMPORARY = "TEMPORARY"
    VENDOR = "VENDOR"


class EmployeeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ON_LEAVE = "ON_LEAVE"
    SUSPENDED = "SUSPENDED"


class TimeWindow(BaseModel):
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time")
    @classmethod
    def _hhmm(cls, value: str) -> str:
        return normalize_hhmm(value)


class Applicability(BaseModel):
    # An empty list leaves that dimension unrestricted.
    shifts: List[str] = Field(default_factory=list)
    departments: List[str] = Field(default_factory=list)
    employment_types: List[EmploymentType] = Field(default_factory=list)
    specific_employees: List[str] = Field(default_factory=list)


class RuleConditions(BaseModel):
    # Stored with the rule for the administration screens; not evaluated.
    min_work_hours: Optional[float] = Field(default=None, ge=0)
    shift_start_time_before: Optional[str] = None
    shift_start_time_after: Optional[str] = None

    @field_validator("shift_start_time_before", "shift_start_time_after")
    @classmethod
    def _hhmm(cls, value: Optional[str]) -> Optional[str]:
        return normalize_hhmm(value) if value is not None else None


class RuleOverrides(BaseModel):
    # Stored with the rule for the administration screens; not evaluated.
    holidays: bool = False
    weekends: bool = False
    special_days: List[date] = Field(default_factory=list)


class MealSessionRef(BaseModel):
    id: str
    name: str = ""


class RuleAuthor(BaseModel):
    id: str
    name: str = ""
    email: str = ""


class EligibilityRule(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    meal_session: MealSessionRef
    applicability: Applicability = Field(default_factory=Applicability)

    requires_attendance: bool = True
    # Only checked when requires_attendance is also set.
    requires_overtime: bool = False
    time_window: Optional[TimeWindow] = None
    max_meals_per_day: Optional[int] = Field(default=None, ge=1)
    priority: int = 0
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    overrides: RuleOverrides = Field(default_factory=RuleOverrides)

    is_active: bool = True
    is_deleted: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None
    created_by: Optional[RuleAuthor] = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Rule name is required")
        return value

    @property
    def is_applicable(self) -> bool:
        return self.is_active and not self.is_deleted


class MealSessionSnapshot(BaseModel):
    id: str
    name: str
    start_time: str
    end_time: str
    is_active: bool = True
    is_deleted: bool = False

    @field_validator("start_time", "end_time")
    @classmethod
    def _hhmm(cls, value: str) -> str:
        return normalize_hhmm(value)


class EmployeeSnapshot(BaseModel):
    id: str
    name: str
    employee_code: str = ""
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    shift_id: Optional[str] = None
    department_id: Optional[str] = None
    employment_type: Optional[EmploymentType] = None
    is_deleted: bool = False

    # Display-only names for the verification response.
    shift_name: Optional[str] = None
    department_name: Optional[str] = None


class AttendanceFact(BaseModel):
    present: bool
    overtime_hours: float = Field(default=0.0, ge=0)


class MatchedRuleSummary(BaseModel):
    id: str
    name: str
    priority: int


class RuleEvaluation(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_id: str
    rule_name: str
    priority: int
    matched: bool
    reasons: List[str] = Field(default_factory=list)


class EligibilityVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    eligible: bool
    reason: str
    matched_rule_id: Optional[str] = None
    matched_rule: Optional[MatchedRuleSummary] = None
    timestamp: datetime
    evaluations: List[RuleEvaluation] = Field(default_factory=list)

    @model_validator(mode="after")
    def _matched_rule_consistent(self) -> "EligibilityVerdict":
        if self.eligible and self.matched_rule_id is None:
            raise ValueError("Eligible verdict must cite the matched rule")
        if self.matched_rule is not None and self.matched_rule.id != self.matched_rule_id:
            raise ValueError("matched_rule does not agree with matched_rule_id")
        return self
