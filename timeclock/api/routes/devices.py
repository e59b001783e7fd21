import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import ValidationError
from sqlalchemy.orm import Session, joinedload

from timeclock.api.deps import DashboardContext, require_admin, require_device
from timeclock.api.errors import ApiError, validation_issues
from timeclock.core.audit import log_device_disabled, log_device_registration_failure, log_device_revocation
from timeclock.core.database import get_db
from timeclock.core.roles import is_admin_or_super_admin
from timeclock.core.security import create_device_token, set_device_cookie, verify_password
from timeclock.models import PUNCH_TYPES, Device, DeviceStatus, Employee
from timeclock.schemas import DeviceClockRequest, DeviceManageRequest, DeviceRegisterRequest, DeviceResponse
from timeclock.services.clock import OutsideGeofence, punch_to_dict, record_punch
from timeclock.services.users import find_by_username

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/device", tags=["Devices"])

DEVICE_ACTIONS = ("disable", "enable", "revoke")


def _device_json(device: Device) -> dict:
    return DeviceResponse.model_validate(device).to_json()


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")
    if not isinstance(body, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")
    return body


@router.post("/register")
async def register_device(request: Request, response: Response, db: Session = Depends(get_db)):
    """
    Register the terminal making the request. An admin signs in on the
    terminal itself; the device token cookie then identifies it for clocking.
    """
    try:
        data = DeviceRegisterRequest.model_validate(await _json_body(request))
    except ValidationError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Validation failed", validation_issues(e.errors()))
    username = (data.username or "").strip().lower()
    if not username or not data.password:
        log_device_registration_failure("Missing credentials")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username and password are required")

    user = find_by_username(db, username)
    if user is None or not verify_password(data.password, user.hashed_password):
        log_device_registration_failure("Invalid credentials", {"username": username})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not is_admin_or_super_admin(user.role):
        log_device_registration_failure("Insufficient permissions", {"username": username, "role": user.role})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")

    location_name = (data.location_name or "").strip()
    if not location_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Location name is required")

    device = Device(
        device_id=str(uuid.uuid4()),
        location_name=location_name,
        location_address=(data.location_address or "").strip(),
        status=DeviceStatus.ACTIVE.value,
        registered_by_id=user.id,
    )
    db.add(device)
    db.commit()
    db.refresh(device)

    set_device_cookie(response, create_device_token(device.device_id, device.location_name))
    logger.info("Device %s registered at %s by %s", device.device_id, device.location_name, user.username)
    return {"success": True, "deviceId": device.device_id, "locationName": device.location_name}


@router.get("/manage")
async def list_devices(
    ctx: DashboardContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    devices = db.query(Device).options(
        joinedload(Device.registered_by), joinedload(Device.revoked_by)
    ).order_by(Device.registered_at.desc()).all()
    return {"devices": [_device_json(d) for d in devices]}


@router.patch("/manage")
async def manage_device(
    request: Request,
    ctx: DashboardContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Disable, re-enable or permanently revoke a device."""
    try:
        data = DeviceManageRequest.model_validate(await _json_body(request))
    except ValidationError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Validation failed", validation_issues(e.errors()))

    device_id = (data.device_id or "").strip()
    action = (data.action or "").strip().lower()
    if not device_id or action not in DEVICE_ACTIONS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="deviceId and a valid action (disable, enable, revoke) are required",
        )

    device = db.query(Device).filter(Device.device_id == device_id).first()
    if device is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Device not found")

    reason = (data.reason or "").strip()
    if action == "revoke":
        if not reason:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A reason is required to revoke a device")
        device.status = DeviceStatus.REVOKED.value
        device.revocation_reason = reason
        device.revoked_at = datetime.utcnow()
        device.revoked_by_id = ctx.user.id
        log_device_revocation(device.device_id, ctx.user.id, reason)
    elif action == "disable":
        if device.status == DeviceStatus.REVOKED.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Device has been revoked")
        device.status = DeviceStatus.DISABLED.value
        log_device_disabled(device.device_id, reason or f"Disabled by {ctx.user.username}")
    else:
        if device.status == DeviceStatus.REVOKED.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot enable a revoked device")
        device.status = DeviceStatus.ACTIVE.value

    db.commit()
    db.refresh(device)
    logger.info("Device %s: %s by %s", device.device_id, action, ctx.user.username)
    return {"success": True, "device": _device_json(device)}


@router.post("/clock/{punch_type}")
async def device_clock(
    punch_type: str,
    data: DeviceClockRequest,
    device: Device = Depends(require_device),
    db: Session = Depends(get_db),
):
    """Clock an employee in or out from a registered terminal."""
    if punch_type not in PUNCH_TYPES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid punch type")

    pin = data.pin.strip()
    employee = db.query(Employee).filter(Employee.pin == pin).first()
    if employee is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid PIN")

    try:
        punch = record_punch(
            db,
            employee,
            punch_type,
            image=data.image,
            lat=data.lat,
            lng=data.lng,
            device=device,
        )
    except OutsideGeofence as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    result = punch_to_dict(punch)
    result["name"] = employee.name
    result["deviceLocation"] = punch.device_location
    return result
