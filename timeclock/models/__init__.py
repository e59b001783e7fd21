from timeclock.models.user import User, normalize_locations
from timeclock.models.employee import Employee
from timeclock.models.timesheet import Timesheet, TimesheetSource, PUNCH_TYPES
from timeclock.models.daily_shift import DailyShift, ShiftSource, ShiftStatus
from timeclock.models.category import Category
from timeclock.models.device import Device, DeviceStatus

__all__ = [
    "User",
    "normalize_locations",
    "Employee",
    "Timesheet",
    "TimesheetSource",
    "PUNCH_TYPES",
    "DailyShift",
    "ShiftSource",
    "ShiftStatus",
    "Category",
    "Device",
    "DeviceStatus",
]
