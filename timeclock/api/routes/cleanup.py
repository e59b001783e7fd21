import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from timeclock.api.deps import DashboardContext, get_storage, require_admin
from timeclock.core.config import settings
from timeclock.core.database import get_db
from timeclock.core.roles import is_admin_or_super_admin
from timeclock.core.security import read_dashboard_session
from timeclock.schemas import CleanupRequest
from timeclock.services.cleanup_service import (
    cleanup_images_before,
    cleanup_images_older_than,
    cleanup_timesheets,
    parse_before_date,
)
from timeclock.services.image_storage import ImageStorage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Cleanup"])

INVALID_BEFORE_DATE = "Invalid beforeDate. Use YYYY-MM-DD format."


async def _before_date(request: Request) -> str:
    try:
        payload = CleanupRequest.model_validate(await request.json())
        parse_before_date(payload.before_date)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_BEFORE_DATE)
    return payload.before_date


@router.post("/admin/cleanup/timesheets")
async def cleanup_old_timesheets(
    request: Request,
    ctx: DashboardContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete timesheet rows dated before ``beforeDate``."""
    before_date = await _before_date(request)
    deleted = cleanup_timesheets(db, before_date)
    logger.info("%s deleted %d timesheet row(s) before %s", ctx.user.username, deleted, before_date)
    return {"deleted": deleted}


@router.post("/admin/cleanup/cloudinary")
async def cleanup_old_images(
    request: Request,
    ctx: DashboardContext = Depends(require_admin),
    storage: ImageStorage = Depends(get_storage),
):
    """Delete stored punch photos uploaded before ``beforeDate`` (00:00 UTC)."""
    before = parse_before_date(await _before_date(request))
    result = cleanup_images_before(storage, before, settings.TIMESHEET_IMAGE_FOLDER)
    logger.info("%s deleted %d image(s) before %s", ctx.user.username, result["deleted"], before.date())
    return {"deleted": result["deleted"], "errors": result["errors"]}


def _cron_authorized(request: Request, secret: Optional[str]) -> bool:
    expected = settings.CRON_SECRET
    if expected:
        header = request.headers.get("authorization", "")
        parts = header.split(None, 1)
        bearer = parts[1].strip() if len(parts) == 2 and parts[0].lower() == "bearer" else ""
        for candidate in (bearer, secret or ""):
            if candidate and secrets.compare_digest(candidate.encode(), expected.encode()):
                return True
    session = read_dashboard_session(request)
    return session is not None and is_admin_or_super_admin(session.role)


@router.api_route("/cron/cleanup-cloudinary", methods=["GET", "POST"])
def cron_cleanup_images(
    request: Request,
    secret: Optional[str] = None,
    storage: ImageStorage = Depends(get_storage),
):
    """Scheduled sweep of punch photos older than the retention period."""
    if not _cron_authorized(request, secret):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    days = settings.IMAGE_RETENTION_DAYS
    result = cleanup_images_older_than(storage, days, settings.TIMESHEET_IMAGE_FOLDER)
    return {
        "ok": True,
        "deleted": result["deleted"],
        "errors": result["errors"],
        "message": f"Deleted {result['deleted']} image(s) older than {days} days",
    }
