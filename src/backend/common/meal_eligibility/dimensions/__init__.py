# Import order is evaluation order: it decides how non-match reasons are listed.
from .shift import ShiftDimension
from .department import DepartmentDimension
from .employment_type import EmploymentTypeDimension
from .specific_employees import SpecificEmployeesDimension
from .attendance import AttendanceDimension
from .time_window import TimeWindowDimension
from .daily_cap import DailyCapDimension

__all__ = [
    "ShiftDimension",
    "DepartmentDimension",
    "EmploymentTypeDimension",
    "SpecificEmployeesDimension",
    "AttendanceDimension",
    "TimeWindowDimension",
    "DailyCapDimension",
]
