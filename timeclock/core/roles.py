import enum
from typing import Optional


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"
    SUPER_ADMIN = "super_admin"


class Right(str, enum.Enum):
    ADD_STAFF = "add_staff"
    EDIT_STAFF = "edit_staff"
    DELETE_STAFF = "delete_staff"
    GET_TIMESHEET = "get_timesheet"


class CategoryType(str, enum.Enum):
    ROLE = "role"
    EMPLOYER = "employer"
    LOCATION = "location"


class GeofenceMode(str, enum.Enum):
    HARD = "hard"
    SOFT = "soft"


USER_ROLES = [r.value for r in UserRole]
RIGHTS = [r.value for r in Right]
CATEGORY_TYPES = [c.value for c in CategoryType]
GEOFENCE_MODES = [m.value for m in GeofenceMode]


def is_admin_or_super_admin(role: Optional[str]) -> bool:
    return role in (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)


def is_valid_category_type(value: Optional[str]) -> bool:
    return value in CATEGORY_TYPES


def has_right(role: Optional[str], rights, right: Right) -> bool:
    """Admins hold every right; plain users only the ones granted to them."""
    if is_admin_or_super_admin(role):
        return True
    return right.value in (rights or [])
