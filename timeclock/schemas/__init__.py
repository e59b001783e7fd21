from timeclock.schemas.common import CamelModel, object_id, string_list
from timeclock.schemas.employee import EmployeeCreate, EmployeeUpdate, EmployeeResponse
from timeclock.schemas.category import CategoryCreate, CategoryUpdate, CategoryResponse
from timeclock.schemas.timesheet import (
    DeviceClockRequest,
    EmployeeClockRequest,
    TimesheetEditRequest,
    PinLoginRequest,
    CleanupRequest,
)
from timeclock.schemas.user import (
    UserCreate,
    UserAdminUpdate,
    UserSelfUpdate,
    LoginRequest,
    AdminCreateRequest,
    UserResponse,
)
from timeclock.schemas.device import DeviceRegisterRequest, DeviceManageRequest, DeviceResponse

__all__ = [
    "CamelModel",
    "object_id",
    "string_list",
    "EmployeeCreate",
    "EmployeeUpdate",
    "EmployeeResponse",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    "DeviceClockRequest",
    "EmployeeClockRequest",
    "TimesheetEditRequest",
    "PinLoginRequest",
    "CleanupRequest",
    "UserCreate",
    "UserAdminUpdate",
    "UserSelfUpdate",
    "LoginRequest",
    "AdminCreateRequest",
    "UserResponse",
    "DeviceRegisterRequest",
    "DeviceManageRequest",
    "DeviceResponse",
]
