from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from timeclock.core.config import settings
from timeclock.core.database import get_db
from timeclock.models import User

router = APIRouter(prefix="/debug", tags=["Debug"])


@router.get("/users")
async def debug_users(db: Session = Depends(get_db)):
    """Usernames and roles, development only."""
    if not settings.is_development:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not available")
    users = db.query(User).order_by(User.created_at).all()
    return {
        "count": len(users),
        "users": [{"id": u.id, "username": u.username, "role": u.role} for u in users],
    }
