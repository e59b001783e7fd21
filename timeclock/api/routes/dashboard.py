from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from timeclock.api.deps import DashboardContext, get_dashboard_context
from timeclock.core.database import get_db
from timeclock.models import Employee
from timeclock.services import reports

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


def _visible_employees(db: Session, ctx: DashboardContext):
    return [e for e in db.query(Employee).all() if ctx.can_see(e)]


@router.get("/hours-summary")
async def hours_summary(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    """Most hours (top 20) and least hours (under 38h) over the range, this week by default."""
    default_start, default_end = reports.current_week()
    start = reports.parse_query_date(start_date) if start_date else default_start
    end = reports.parse_query_date(end_date) if end_date else default_end
    if start is None or end is None or start > end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid startDate or endDate (use yyyy-MM-dd)",
        )
    if (end - start).days + 1 > reports.MAX_RANGE_DAYS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Date range too large")

    summary = reports.hours_summary(db, _visible_employees(db, ctx), start, end)
    return {**summary, "startDate": start.isoformat(), "endDate": end.isoformat()}


@router.get("/inactive-employees")
async def inactive_employees(
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    return {
        "inactiveEmployees": reports.inactive_employees(db, _visible_employees(db, ctx)),
        "thresholdDays": reports.INACTIVE_DAYS,
    }


@router.get("/stats")
async def dashboard_stats(
    timeline_date: Optional[str] = Query(None, alias="timelineDate"),
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    timeline_day = reports.parse_query_date(timeline_date) or date.today()
    return reports.dashboard_stats(db, _visible_employees(db, ctx), timeline_day)
