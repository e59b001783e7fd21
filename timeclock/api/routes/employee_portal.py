import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status
from sqlalchemy.orm import Session

from timeclock.api.deps import get_storage, require_employee_session
from timeclock.core.config import settings
from timeclock.core.database import get_db
from timeclock.core.security import (
    EmployeeSession,
    clear_employee_cookie,
    create_employee_token,
    set_employee_cookie,
)
from timeclock.models import DailyShift, Employee, Timesheet
from timeclock.schemas import EmployeeClockRequest, PinLoginRequest, string_list
from timeclock.services.clock import OutsideGeofence, punch_to_dict, record_punch
from timeclock.services.image_storage import ImageStorage, StorageError, read_image_upload
from timeclock.services.punches import classify_punches, sort_punches, today_string

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employee", tags=["Employee portal"])


def _current_employee(db: Session, session: EmployeeSession) -> Employee:
    employee = db.query(Employee).filter(Employee.id == session.sub).first()
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return employee


@router.post("/login")
async def employee_login(request: Request, response: Response, db: Session = Depends(get_db)):
    """PIN login for the clock-in screen."""
    try:
        data = PinLoginRequest.model_validate(await request.json())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid PIN format")

    pin = data.pin.strip()
    employee = db.query(Employee).filter(Employee.pin == pin).first()
    if employee is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid PIN")

    set_employee_cookie(response, create_employee_token(employee.id, pin))
    return {
        "employee": {
            "id": employee.id,
            "name": employee.name,
            "pin": employee.pin,
            "role": employee.display_role,
        }
    }


@router.post("/logout")
async def employee_logout(response: Response):
    clear_employee_cookie(response)
    return {"success": True}


@router.get("/me")
async def employee_me(
    session: EmployeeSession = Depends(require_employee_session),
    db: Session = Depends(get_db),
):
    """Current employee and today's punches."""
    employee = _current_employee(db, session)
    shift = db.query(DailyShift).filter(
        DailyShift.pin == employee.pin, DailyShift.date == today_string()
    ).first()
    punches = {
        "clockIn": shift.event_time("clock_in") if shift else "",
        "breakIn": shift.event_time("break_in") if shift else "",
        "breakOut": shift.event_time("break_out") if shift else "",
        "clockOut": shift.event_time("clock_out") if shift else "",
    }
    return {
        "employee": {
            "id": employee.id,
            "name": employee.name,
            "pin": employee.pin,
            "role": employee.display_role,
            "employer": string_list(employee.employer),
            "location": string_list(employee.location),
            "img": employee.img or "",
        },
        "punches": punches,
    }


@router.get("/timesheet")
async def employee_timesheet(
    session: EmployeeSession = Depends(require_employee_session),
    db: Session = Depends(get_db),
):
    employee = _current_employee(db, session)
    today = today_string()
    rows = db.query(Timesheet).filter(Timesheet.pin == employee.pin, Timesheet.date == today).all()
    return {"date": today, "punches": classify_punches(sort_punches(rows))}


@router.post("/clock")
async def employee_clock(
    data: EmployeeClockRequest,
    session: EmployeeSession = Depends(require_employee_session),
    db: Session = Depends(get_db),
):
    """Clock in/out/break from the employee's own session."""
    employee = _current_employee(db, session)
    try:
        punch = record_punch(
            db,
            employee,
            data.type,
            image=data.image_url,
            lat=data.lat,
            lng=data.lng,
            day=data.date,
            time=data.time,
        )
    except OutsideGeofence as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return punch_to_dict(punch)


@router.post("/upload/image")
async def employee_upload_image(
    file: Optional[UploadFile] = File(None),
    session: EmployeeSession = Depends(require_employee_session),
    storage: ImageStorage = Depends(get_storage),
):
    content = await read_image_upload(file)
    try:
        result = storage.upload(content, settings.TIMESHEET_IMAGE_FOLDER)
    except StorageError as e:
        logger.error("Employee image upload failed: %s", e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to upload image")
    return {"url": result["url"]}
