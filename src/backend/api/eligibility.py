from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from common.meal_eligibility.models import EligibilityRule, EmploymentType
from pipelines.data_source import RuleAdministration
from pipelines.errors import RuleNotFoundError
from pipelines.verification import VerificationService


router = APIRouter(prefix="/eligibility", tags=["eligibility"])


class _AliasModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class VerifyRequest(_AliasModel):
    employee_id: Optional[str] = Field(default=None, alias="employeeId")
    meal_session_id: Optional[str] = Field(default=None, alias="mealSessionId")
    timestamp: Optional[datetime] = None


class MealSessionRefPayload(_AliasModel):
    id: str
    name: str = ""


class ApplicabilityPayload(_AliasModel):
    shifts: List[str] = Field(default_factory=list)
    departments: List[str] = Field(default_factory=list)
    employment_types: List[EmploymentType] = Field(default_factory=list, alias="employeeTypes")
    specific_employees: List[str] = Field(default_factory=list, alias="specificEmployees")


class TimeWindowPayload(_AliasModel):
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")


class ConditionsPayload(_AliasModel):
    min_work_hours: Optional[float] = Field(default=None, alias="minWorkHours")
    shift_start_time_before: Optional[str] = Field(default=None, alias="shiftStartTimeBefore")
    shift_start_time_after: Optional[str] = Field(default=None, alias="shiftStartTimeAfter")


class OverridesPayload(_AliasModel):
    holidays: Optional[bool] = None
    weekends: Optional[bool] = None
    special_days: Optional[List[str]] = Field(default=None, alias="specialDays")


class RulePayload(_AliasModel):
    """Rule document as the administration screens send it."""

    name: Optional[str] = Field(default=None, alias="ruleName")
    description: Optional[str] = None
    meal_session: Optional[MealSessionRefPayload] = Field(default=None, alias="mealSession")
    applicability: Optional[ApplicabilityPayload] = Field(default=None, alias="applicableFor")
    requires_attendance: Optional[bool] = Field(default=None, alias="requiresAttendance")
    requires_overtime: Optional[bool] = Field(default=None, alias="requiresOT")
    time_window: Optional[TimeWindowPayload] = Field(default=None, alias="timeWindow")
    max_meals_per_day: Optional[int] = Field(default=None, alias="maxMealsPerDay")
    priority: Optional[int] = None
    conditions: Optional[ConditionsPayload] = None
    overrides: Optional[OverridesPayload] = None
    is_active: Optional[bool] = Field(default=None, alias="isActive")


def get_verification_service(request: Request) -> VerificationService:
    return request.app.state.verification_service


def get_rule_admin(service: VerificationService = Depends(get_verification_service)) -> RuleAdministration:
    store = service.sources.rules
    if not hasattr(store, "create_rule"):
        raise HTTPException(
            status_code=501,
            detail={"code": "NOT_IMPLEMENTED", "message": "Rule store does not support administration"},
        )
    return store  # type: ignore[return-value]


def success_response(data: Any, *, meta: dict[str, Any] | None = None, status_code: int = 200) -> JSONResponse:
    body = {
        "success": True,
        "data": data,
        "meta": {**(meta or {}), "timestamp": datetime.now(timezone.utc).isoformat()},
    }
    return JSONResponse(content=body, status_code=status_code)


def _validation_error(message: str, details: Any = None) -> HTTPException:
    return HTTPException(status_code=400, detail={"code": "VALIDATION_ERROR", "message": message, "details": details})


def _invalid_rule(exc: ValidationError) -> HTTPException:
    errors = exc.errors(include_url=False, include_context=False, include_input=False)
    return _validation_error("Invalid eligibility rule", errors)


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail={"code": "NOT_FOUND", "message": "Rule not found"})


def rule_to_payload(rule: EligibilityRule) -> dict[str, Any]:
    data = rule.model_dump(mode="json")
    applicability = data["applicability"]
    window = data["time_window"]
    conditions = data["conditions"]
    overrides = data["overrides"]
    return {
        "id": data["id"],
        "ruleName": data["name"],
        "description": data["description"],
        "mealSession": data["meal_session"],
        "applicableFor": {
            "shifts": applicability["shifts"],
            "departments": applicability["departments"],
            "employeeTypes": applicability["employment_types"],
            "specificEmployees": applicability["specific_employees"],
        },
        "timeWindow": {"startTime": window["start_time"], "endTime": window["end_time"]} if window else None,
        "requiresAttendance": data["requires_attendance"],
        "requiresOT": data["requires_overtime"],
        "maxMealsPerDay": data["max_meals_per_day"],
        "priority": data["priority"],
        "conditions": {
            "minWorkHours": conditions["min_work_hours"],
            "shiftStartTimeBefore": conditions["shift_start_time_before"],
            "shiftStartTimeAfter": conditions["shift_start_time_after"],
        },
        "overrides": {
            "holidays": overrides["holidays"],
            "weekends": overrides["weekends"],
            "specialDays": overrides["special_days"],
        },
        "isActive": data["is_active"],
        "createdBy": data["created_by"],
        "createdAt": data["created_at"],
        "updatedAt": data["updated_at"],
    }


@router.post("/verify")
def verify_eligibility(
    body: VerifyRequest,
    service: VerificationService = Depends(get_verification_service),
):
    if not body.employee_id or not body.meal_session_id:
        raise _validation_error("Employee ID and Meal Session ID are required")
    response = service.verify(body.employee_id, body.meal_session_id, body.timestamp)
    return success_response(response.to_payload())


@router.get("/rules")
def list_rules(
    meal_session_id: Optional[str] = Query(None, alias="mealSessionId"),
    shift_id: Optional[str] = Query(None, alias="shiftId"),
    department_id: Optional[str] = Query(None, alias="departmentId"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    store: RuleAdministration = Depends(get_rule_admin),
):
    result = store.list_rules(
        meal_session_id=meal_session_id,
        shift_id=shift_id,
        department_id=department_id,
        is_active=is_active,
        search=search,
        page=page,
        limit=limit,
    )
    return success_response(
        [rule_to_payload(rule) for rule in result.items],
        meta={
            "pagination": {
                "page": result.page,
                "limit": result.limit,
                "total": result.total,
                "totalPages": result.total_pages,
            }
        },
    )


@router.get("/rules/stats")
def rule_stats(store: RuleAdministration = Depends(get_rule_admin)):
    stats = store.stats()
    return success_response({"total": stats.total, "active": stats.active, "inactive": stats.inactive})


@router.get("/rules/{rule_id}")
def get_rule(rule_id: str, store: RuleAdministration = Depends(get_rule_admin)):
    try:
        rule = store.get_rule(rule_id)
    except RuleNotFoundError:
        raise _not_found()
    return success_response(rule_to_payload(rule))


@router.post("/rules")
def create_rule(body: RulePayload, store: RuleAdministration = Depends(get_rule_admin)):
    if not body.name or body.meal_session is None:
        raise _validation_error("Rule name and meal session are required")
    try:
        rule = store.create_rule(body.model_dump(exclude_unset=True))
    except ValidationError as exc:
        raise _invalid_rule(exc)
    return success_response(rule_to_payload(rule), status_code=201)


@router.put("/rules/{rule_id}")
def update_rule(rule_id: str, body: RulePayload, store: RuleAdministration = Depends(get_rule_admin)):
    try:
        rule = store.update_rule(rule_id, body.model_dump(exclude_unset=True))
    except RuleNotFoundError:
        raise _not_found()
    except ValidationError as exc:
        raise _invalid_rule(exc)
    return success_response(rule_to_payload(rule))


@router.delete("/rules/{rule_id}")
def delete_rule(rule_id: str, store: RuleAdministration = Depends(get_rule_admin)):
    try:
        store.soft_delete_rule(rule_id)
    except RuleNotFoundError:
        raise _not_found()
    return success_response({"message": "Rule deleted successfully"})
