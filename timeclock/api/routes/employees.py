import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import String, cast, or_
from sqlalchemy.orm import Session

from timeclock.api.deps import DashboardContext, get_dashboard_context, require_admin, require_right
from timeclock.core.database import get_db
from timeclock.core.roles import Right
from timeclock.models import DailyShift, Employee, Timesheet, TimesheetSource
from timeclock.schemas import EmployeeCreate, EmployeeResponse, EmployeeUpdate, TimesheetEditRequest, object_id
from timeclock.services.pin_service import PinGenerationError, generate_unique_pin, used_pins
from timeclock.services.punches import normalize_type, parse_date, rebuild_daily_shift, shift_row, sort_punches

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["Employees"])

SEARCH_COLUMNS = ("name", "pin", "email", "phone", "role", "employer", "site", "location")


def _employee_json(employee: Employee) -> dict:
    return EmployeeResponse.model_validate(employee).to_json()


def _get_visible_employee(db: Session, ctx: DashboardContext, employee_id: str) -> Employee:
    object_id(employee_id, "employee")
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None or not ctx.can_see(employee):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return employee


def _shift_sort_key(sort_by: str):
    sort_by = sort_by.strip().lower()
    if sort_by in ("totalminutes", "total_minutes"):
        return lambda row: row["totalMinutes"]
    if sort_by in ("breakminutes", "break_minutes"):
        return lambda row: row["breakMinutes"]
    return lambda row: parse_date(row["date"]) or date.min


def _pin_in_use(db: Session, pin: str, exclude_id: str = None) -> bool:
    query = db.query(Employee.id).filter(Employee.pin == pin)
    if exclude_id:
        query = query.filter(Employee.id != exclude_id)
    return query.first() is not None


@router.get("")
async def list_employees(
    search: str = "",
    limit: int = Query(10, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    """List employees by name with optional case-insensitive search."""
    query = db.query(Employee)
    search = search.strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(*[
            cast(getattr(Employee, column), String).ilike(pattern) for column in SEARCH_COLUMNS
        ]))
    employees = [e for e in query.order_by(Employee.name, Employee.id).all() if ctx.can_see(e)]
    return {
        "employees": [_employee_json(e) for e in employees[offset:offset + limit]],
        "total": len(employees),
        "limit": limit,
        "offset": offset,
    }


@router.post("")
async def create_employee(
    data: EmployeeCreate,
    ctx: DashboardContext = Depends(require_right(Right.ADD_STAFF)),
    db: Session = Depends(get_db),
):
    if _pin_in_use(db, data.pin):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="PIN already in use")

    employee = Employee(**data.model_dump())
    db.add(employee)
    db.commit()
    db.refresh(employee)
    logger.info("Employee %s created by %s", employee.id, ctx.user.username)
    return {"employee": _employee_json(employee)}


@router.get("/generate-pin")
async def generate_pin(
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    """Random 4-digit PIN no employee is using yet."""
    try:
        return {"pin": generate_unique_pin(used_pins(db))}
    except PinGenerationError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.get("/{employee_id}")
async def get_employee(
    employee_id: str,
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    return {"employee": _employee_json(_get_visible_employee(db, ctx, employee_id))}


@router.patch("/{employee_id}")
async def update_employee(
    employee_id: str,
    data: EmployeeUpdate,
    ctx: DashboardContext = Depends(require_right(Right.EDIT_STAFF)),
    db: Session = Depends(get_db),
):
    employee = _get_visible_employee(db, ctx, employee_id)
    updates = data.model_dump(exclude_none=True)
    if "pin" in updates and _pin_in_use(db, updates["pin"], exclude_id=employee.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="PIN already in use")

    for key, value in updates.items():
        setattr(employee, key, value)
    db.commit()
    db.refresh(employee)
    return {"employee": _employee_json(employee)}


@router.delete("/{employee_id}")
async def delete_employee(
    employee_id: str,
    ctx: DashboardContext = Depends(require_right(Right.DELETE_STAFF)),
    db: Session = Depends(get_db),
):
    employee = _get_visible_employee(db, ctx, employee_id)
    db.delete(employee)
    db.commit()
    logger.info("Employee %s deleted by %s", employee_id, ctx.user.username)
    return {"success": True}


@router.get("/{employee_id}/timesheet")
async def get_employee_timesheet(
    employee_id: str,
    search: str = "",
    sort_by: str = Query("date", alias="sortBy"),
    order: str = "desc",
    limit: int = 50,
    offset: int = 0,
    ctx: DashboardContext = Depends(require_right(Right.GET_TIMESHEET)),
    db: Session = Depends(get_db),
):
    """Day-by-day shifts of one employee."""
    employee = _get_visible_employee(db, ctx, employee_id)
    limit = min(max(limit, 1), 500)
    offset = max(offset, 0)

    rows = [shift_row(s) for s in db.query(DailyShift).filter(DailyShift.pin == employee.pin).all()]
    search = search.strip().lower()
    if search:
        rows = [r for r in rows if search in r["date"].lower()]

    rows.sort(key=_shift_sort_key(sort_by), reverse=order.strip().lower() != "asc")

    total = len(rows)
    return {
        "data": rows[offset:offset + limit],
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + limit < total,
        },
    }


@router.patch("/{employee_id}/timesheet")
async def edit_employee_timesheet(
    employee_id: str,
    data: TimesheetEditRequest,
    ctx: DashboardContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Correct one day of punches. For each submitted type the latest punch of
    that type is updated when its time differs, or a new punch is inserted
    when there is none.
    """
    employee = _get_visible_employee(db, ctx, employee_id)
    rows = sort_punches(
        db.query(Timesheet).filter(Timesheet.pin == employee.pin, Timesheet.date == data.date).all()
    )
    latest = {}
    for row in rows:
        latest[normalize_type(row.type)] = row

    changed = 0
    for punch_type, time in data.punches().items():
        existing = latest.get(punch_type.lower())
        if existing is None:
            if not time:
                continue
            db.add(Timesheet(
                pin=employee.pin,
                type=punch_type,
                date=data.date,
                time=time,
                source=TimesheetSource.INSERT.value,
            ))
            changed += 1
        elif not (existing.time or "").strip():
            if time:
                existing.time = time
                existing.source = TimesheetSource.INSERT.value
                changed += 1
        elif existing.time != time:
            existing.time = time
            existing.source = TimesheetSource.UPDATE.value
            changed += 1

    db.flush()
    shift = rebuild_daily_shift(db, employee.pin, data.date)
    db.commit()
    logger.info("Timesheet %s/%s edited by %s (%d change(s))", employee.pin, data.date, ctx.user.username, changed)
    return {"success": True, "updated": changed, "row": shift_row(shift) if shift else None}
