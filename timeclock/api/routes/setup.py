"""First-run setup: create the initial admin account."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timeclock.api.deps import get_setup_state
from timeclock.core.database import get_db
from timeclock.core.roles import UserRole
from timeclock.core.setup_state import AdminSetupState
from timeclock.schemas import AdminCreateRequest
from timeclock.services.users import create_user, username_taken

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/setup", tags=["Setup"])


@router.get("/status")
async def setup_status(
    setup_state: AdminSetupState = Depends(get_setup_state),
    db: Session = Depends(get_db),
):
    return {"needsSetup": setup_state.needs_setup(db)}


@router.post("/create-admin")
async def create_admin(
    data: AdminCreateRequest,
    setup_state: AdminSetupState = Depends(get_setup_state),
    db: Session = Depends(get_db),
):
    if not setup_state.needs_setup(db):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Setup has already been completed")
    if username_taken(db, data.username):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already exists")

    try:
        create_user(db, username=data.username, password=data.password, role=UserRole.ADMIN.value)
        db.commit()
    except IntegrityError:
        # Lost a race with another setup request
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already exists")

    setup_state.mark_admin_created()
    logger.info("Initial admin %s created", data.username)
    return {"success": True}
