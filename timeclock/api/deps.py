import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from timeclock.core.audit import log_device_disabled, log_device_token_failure, log_staff_session_failure
from timeclock.core.database import get_db
from timeclock.core.roles import Right, has_right, is_admin_or_super_admin
from timeclock.core.security import (
    DashboardSession,
    EMPLOYEE_COOKIE,
    EmployeeSession,
    read_dashboard_session,
    read_device_session,
    read_employee_session,
)
from timeclock.core.setup_state import AdminSetupState
from timeclock.models import Device, DeviceStatus, Employee, User
from timeclock.services.image_storage import ImageStorage, image_storage

logger = logging.getLogger(__name__)


@dataclass
class DashboardContext:
    """The signed-in dashboard user, re-read from the database."""
    session: DashboardSession
    user: User
    locations: List[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return is_admin_or_super_admin(self.user.role)

    def can(self, right: Right) -> bool:
        return has_right(self.user.role, self.user.rights, right)

    def can_see(self, employee: Employee) -> bool:
        """Users bound to locations only see employees sharing one of them."""
        if self.is_admin or not self.locations:
            return True
        return any(loc in self.locations for loc in (employee.location or []))


def get_storage() -> ImageStorage:
    return image_storage


def get_setup_state(request: Request) -> AdminSetupState:
    return request.app.state.setup_state


def require_dashboard_session(request: Request) -> DashboardSession:
    session = read_dashboard_session(request)
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return session


def get_dashboard_context(
    session: DashboardSession = Depends(require_dashboard_session),
    db: Session = Depends(get_db),
) -> DashboardContext:
    user = db.query(User).filter(User.id == session.sub).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return DashboardContext(session=session, user=user, locations=user.locations)


def require_admin(ctx: DashboardContext = Depends(get_dashboard_context)) -> DashboardContext:
    if not ctx.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return ctx


def require_right(right: Right):
    """Dependency factory: plain users must hold ``right``; admins always pass."""

    def checker(ctx: DashboardContext = Depends(get_dashboard_context)) -> DashboardContext:
        if not ctx.can(right):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return ctx

    return checker


def require_employee_session(request: Request) -> EmployeeSession:
    session = read_employee_session(request)
    if session is None:
        if request.cookies.get(EMPLOYEE_COOKIE):
            log_staff_session_failure(reason="Invalid or expired employee session")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return session


def require_device(request: Request, db: Session = Depends(get_db)) -> Device:
    """Resolve the registered terminal behind the device cookie."""
    session = read_device_session(request)
    if session is None:
        log_device_token_failure(reason="Missing or invalid device token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    device = db.query(Device).filter(Device.device_id == session.sub).first()
    if device is None:
        log_device_token_failure(device_id=session.sub, reason="Device not found")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    if device.status != DeviceStatus.ACTIVE.value:
        if device.status == DeviceStatus.DISABLED.value:
            log_device_disabled(device.device_id, reason="Clock attempt from disabled device")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Device is disabled")
        log_device_token_failure(device_id=device.device_id, reason="Device has been revoked")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Device has been revoked")

    device.last_activity = datetime.utcnow()
    db.commit()
    return device
