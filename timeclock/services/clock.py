import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from timeclock.core.roles import CategoryType
from timeclock.models import Category, Device, Employee, Timesheet
from timeclock.schemas.common import string_list
from timeclock.services.geofence import GeofenceResult, evaluate_geofence
from timeclock.services.punches import default_time_string, rebuild_daily_shift, today_string

logger = logging.getLogger(__name__)


class OutsideGeofence(Exception):
    def __init__(self, result: GeofenceResult):
        super().__init__(f"Outside the allowed area for {result.location}")
        self.result = result


def employee_fences(db: Session, employee: Employee):
    names = string_list(employee.location)
    if not names:
        return []
    return db.query(Category).filter(
        Category.type == CategoryType.LOCATION.value, Category.name.in_(names)
    ).all()


def _clean(value) -> str:
    return str(value).strip() if value is not None else ""


def record_punch(
    db: Session,
    employee: Employee,
    punch_type: str,
    image: Optional[str] = None,
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    day: Optional[str] = None,
    time: Optional[str] = None,
    device: Optional[Device] = None,
) -> Timesheet:
    """
    Store one punch for ``employee`` and refresh that day's DailyShift.

    Raises OutsideGeofence when the position falls outside every hard fence
    of the employee's locations. Commits.
    """
    image, lat, lng = _clean(image), _clean(lat), _clean(lng)
    now = datetime.now()
    day = _clean(day) or today_string(now)
    time = _clean(time) or default_time_string(now)

    fence = evaluate_geofence(lat, lng, employee_fences(db, employee))
    if not fence.allowed:
        logger.info(
            "Rejected %s punch for pin %s: %.0fm from %s", punch_type, employee.pin, fence.distance, fence.location
        )
        raise OutsideGeofence(fence)

    punch = Timesheet(
        pin=employee.pin,
        type=punch_type,
        date=day,
        time=time,
        image=image,
        lat=lat,
        lng=lng,
        where=f"{lat},{lng}" if lat and lng else "",
        flag=not image or not lat or not lng or fence.flag,
        device_id=device.device_id if device else "",
        device_location=device.location_name if device else "",
    )
    db.add(punch)
    db.flush()
    rebuild_daily_shift(db, employee.pin, day)
    db.commit()
    db.refresh(punch)
    return punch


def punch_to_dict(punch: Timesheet) -> dict:
    return {
        "success": True,
        "type": punch.type,
        "date": punch.date,
        "time": punch.time,
        "lat": punch.lat,
        "lng": punch.lng,
        "where": punch.where,
        "flag": punch.flag,
    }
