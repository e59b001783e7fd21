import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from timeclock.api.deps import DashboardContext, get_dashboard_context, require_admin
from timeclock.api.errors import ApiError, validation_issues
from timeclock.core.database import get_db
from timeclock.core.roles import UserRole
from timeclock.models import User
from timeclock.schemas import UserAdminUpdate, UserCreate, UserResponse, UserSelfUpdate, object_id
from timeclock.services.users import create_user, update_user, username_taken

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _user_json(user: User) -> dict:
    return UserResponse.model_validate(user).to_json()


def _get_user(db: Session, user_id: str) -> User:
    object_id(user_id, "user")
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("")
async def list_users(
    ctx: DashboardContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Dashboard users, super admins excluded."""
    users = db.query(User).filter(
        User.role != UserRole.SUPER_ADMIN.value
    ).order_by(User.created_at.desc()).all()
    return {"users": [_user_json(u) for u in users]}


@router.post("")
async def create_dashboard_user(
    data: UserCreate,
    ctx: DashboardContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if username_taken(db, data.username):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already exists")

    user = create_user(
        db,
        username=data.username,
        password=data.password,
        name=data.name,
        role=data.role,
        location=data.location,
        rights=data.rights,
    )
    db.commit()
    db.refresh(user)
    logger.info("User %s created by %s", user.username, ctx.user.username)
    return {"user": _user_json(user)}


@router.get("/{user_id}")
async def get_dashboard_user(
    user_id: str,
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    object_id(user_id, "user")
    if not ctx.is_admin and ctx.user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return {"user": _user_json(_get_user(db, user_id))}


@router.patch("/{user_id}")
async def update_dashboard_user(
    user_id: str,
    request: Request,
    ctx: DashboardContext = Depends(get_dashboard_context),
    db: Session = Depends(get_db),
):
    """
    Admins may change every field. Plain users may only change their own
    username and password.
    """
    object_id(user_id, "user")
    if not ctx.is_admin and ctx.user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    schema = UserAdminUpdate if ctx.is_admin else UserSelfUpdate
    try:
        data = schema.model_validate(await request.json())
    except ValidationError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, "Validation failed", validation_issues(e.errors()))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")

    user = _get_user(db, user_id)
    changes = data.model_dump(exclude_none=True)
    if "username" in changes and username_taken(db, changes["username"], exclude_id=user.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username already exists")

    update_user(db, user, **changes)
    db.commit()
    db.refresh(user)
    return {"user": _user_json(user)}


@router.delete("/{user_id}")
async def delete_dashboard_user(
    user_id: str,
    ctx: DashboardContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    user = _get_user(db, user_id)
    if user.id == ctx.user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete your own account")
    db.delete(user)
    db.commit()
    logger.info("User %s deleted by %s", user_id, ctx.user.username)
    return {"success": True}
