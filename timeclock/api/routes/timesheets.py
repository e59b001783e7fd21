from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from timeclock.api.deps import DashboardContext, get_dashboard_context, require_right
from timeclock.core.database import get_db
from timeclock.core.roles import Right
from timeclock.models import Employee
from timeclock.schemas import object_id
from timeclock.services import reports
from timeclock.services.punches import minutes_to_hours

router = APIRouter(tags=["Timesheets"])


def _clamp(value: Optional[int], default: int, upper: int) -> int:
    if value is None:
        return default
    return min(max(value, 1), upper)


@router.get("/timesheets")
async def list_timesheets(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    employee_id: Optional[str] = Query(None, alias="employeeId"),
    employer: Optional[str] = None,
    location: Optional[str] = None,
    sort_by: str = Query("date", alias="sortBy"),
    order: str = "asc",
    limit: Optional[int] = None,
    offset: int = 0,
    ctx: DashboardContext = Depends(require_right(Right.GET_TIMESHEET)),
    db: Session = Depends(get_db),
):
    """Punches aggregated per employee and day, with totals."""
    try:
        start, end = reports.resolve_range(start_date, end_date)
    except reports.ReportError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    employee_id = (employee_id or "").strip()
    if employee_id:
        object_id(employee_id, "employee")
        employee = db.query(Employee).filter(Employee.id == employee_id).first()
        if employee is None or not ctx.can_see(employee):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
        employees = [employee]
    else:
        employees = reports.filter_employees(
            (e for e in db.query(Employee).all() if ctx.can_see(e)),
            employer=(employer or "").strip() or None,
            location=(location or "").strip() or None,
        )

    rows = reports.sort_timesheet_rows(
        reports.timesheet_rows(db, employees, start, end),
        sort_by.strip(),
        descending=order.strip().lower() == "desc",
    )
    limit = _clamp(limit, 50, 500)
    offset = max(offset, 0)
    total_working = sum(r["totalMinutes"] for r in rows)
    total_break = sum(r["breakMinutes"] for r in rows)
    return {
        "timesheets": rows[offset:offset + limit],
        "total": len(rows),
        "limit": limit,
        "offset": offset,
        "startDate": start.isoformat(),
        "endDate": end.isoformat(),
        "totalWorkingMinutes": total_working,
        "totalBreakMinutes": total_break,
        "totalWorkingHours": minutes_to_hours(total_working),
        "totalBreakHours": minutes_to_hours(total_break),
    }


@router.get("/flags")
async def list_flags(
    filter: Optional[str] = None,
    sort_by: str = Query("date", alias="sortBy"),
    order: str = "desc",
    limit: Optional[int] = None,
    offset: int = 0,
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    """Flagged punches of the last 30 days: missing photo and/or location."""
    issue = (filter or "").strip()
    rows = reports.sort_flag_rows(
        reports.flagged_punches(db, ctx.can_see, issue if issue in reports.FLAG_FILTERS else None),
        sort_by.strip(),
        descending=order.strip().lower() != "asc",
    )
    limit = _clamp(limit, 50, 200)
    offset = max(offset, 0)
    return {
        "items": rows[offset:offset + limit],
        "total": len(rows),
        "limit": limit,
        "offset": offset,
    }
