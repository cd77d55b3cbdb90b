import pytest

from common.meal_eligibility.dimension import Dimension
from common.meal_eligibility.dimensions import (
    AttendanceDimension,
    DailyCapDimension,
    DepartmentDimension,
    EmploymentTypeDimension,
    ShiftDimension,
    SpecificEmployeesDimension,
    TimeWindowDimension,
)
from common.meal_eligibility.engine import EligibilityEngine
from common.meal_eligibility.models import AttendanceFact, EmploymentType, TimeWindow
from common.meal_eligibility.registry import DimensionRegistry


@pytest.mark.parametrize("shift_id", ["shift-a", "shift-b", "shift-night"])
def test_empty_shift_list_matches_every_shift(make_rule, make_ctx, make_employee, shift_id):
    ctx = make_ctx(employee=make_employee(shift_id=shift_id))
    assert ShiftDimension().check(make_rule("r1"), ctx) == []


def test_shift_list_restricts(make_rule, make_ctx):
    rule = make_rule("r1", shifts=["shift-b"])
    assert ShiftDimension().check(rule, make_ctx()) == ["Shift not eligible"]


def test_department_list_restricts(make_rule, make_ctx):
    assert DepartmentDimension().check(make_rule("r1", departments=["dept-ops"]), make_ctx()) == []
    assert DepartmentDimension().check(make_rule("r2", departments=["dept-hr"]), make_ctx()) == [
        "Department not eligible"
    ]


def test_employment_type_list_restricts(make_rule, make_ctx, make_employee):
    rule = make_rule("r1", employment_types=[EmploymentType.VENDOR, EmploymentType.TEMPORARY])
    vendor = make_ctx(employee=make_employee(employment_type=EmploymentType.VENDOR))
    assert EmploymentTypeDimension().check(rule, vendor) == []
    assert EmploymentTypeDimension().check(rule, make_ctx()) == ["Employment type not eligible"]


def test_specific_employee_list_restricts(make_rule, make_ctx):
    assert SpecificEmployeesDimension().check(make_rule("r1", specific_employees=["emp-1"]), make_ctx()) == []
    assert SpecificEmployeesDimension().check(make_rule("r2", specific_employees=["emp-9"]), make_ctx()) == [
        "Not in specific employee list"
    ]


def test_attendance_not_required_always_passes(make_rule, make_ctx):
    assert AttendanceDimension().check(make_rule("r1"), make_ctx(attendance=None)) == []


def test_attendance_required_needs_a_present_fact(make_rule, make_ctx):
    rule = make_rule("r1", requires_attendance=True)
    dim = AttendanceDimension()
    assert dim.check(rule, make_ctx(attendance=None)) == ["Attendance not marked as PRESENT"]
    assert dim.check(rule, make_ctx(attendance=AttendanceFact(present=True))) == []


def test_overtime_requires_logged_hours(make_rule, make_ctx):
    rule = make_rule("ot", requires_attendance=True, requires_overtime=True)
    dim = AttendanceDimension()
    assert dim.check(rule, make_ctx(attendance=AttendanceFact(present=True, overtime_hours=0))) == [
        "OT hours required"
    ]
    assert dim.check(rule, make_ctx(attendance=AttendanceFact(present=True, overtime_hours=1.5))) == []
    assert dim.check(rule, make_ctx(attendance=None)) == [
        "Attendance not marked as PRESENT",
        "OT hours required",
    ]


def test_overtime_flag_ignored_without_attendance_requirement(make_rule, make_ctx):
    rule = make_rule("ot", requires_attendance=False, requires_overtime=True)
    assert AttendanceDimension().check(rule, make_ctx(attendance=None)) == []


@pytest.mark.parametrize(
    "at, inside",
    [("11:59", False), ("12:00", True), ("12:30", True), ("12:45", True), ("12:46", False)],
)
def test_rule_time_window_bounds_are_inclusive(make_rule, make_ctx, at, inside):
    rule = make_rule("r1", time_window=TimeWindow(start_time="12:00", end_time="12:45"))
    reasons = TimeWindowDimension().check(rule, make_ctx(at=at))
    assert (reasons == []) is inside


@pytest.mark.parametrize("prior, allowed", [(0, True), (1, True), (2, False), (3, False)])
def test_daily_cap_boundary(make_rule, make_ctx, prior, allowed):
    rule = make_rule("r1", max_meals_per_day=2)
    reasons = DailyCapDimension().check(rule, make_ctx(approved_meals_today=prior))
    if allowed:
        assert reasons == []
    else:
        assert reasons == ["Max meals per day limit reached (2)"]


def test_registry_rejects_duplicate_and_unnamed_dimensions():
    local = DimensionRegistry()
    local.register(ShiftDimension)
    with pytest.raises(ValueError, match="already registered"):
        local.register(ShiftDimension)

    class Unnamed(Dimension):
        def check(self, rule, ctx):
            return []

    with pytest.raises(ValueError, match="no dimension_id"):
        local.register(Unnamed)


def test_engine_accepts_custom_dimensions(make_rule, make_ctx):
    class AlwaysClosed(Dimension):
        dimension_id = "CLOSED"
        title = "Canteen closed"

        def check(self, rule, ctx):
            return ["Canteen closed"]

    verdict = EligibilityEngine(dimensions=[AlwaysClosed()]).evaluate(make_ctx(rules=[make_rule("r1")]))
    assert verdict.eligible is False
    assert verdict.reason == "Canteen closed"
