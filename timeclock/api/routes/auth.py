import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from timeclock.core.database import get_db
from timeclock.core.security import (
    clear_auth_cookie,
    create_auth_token,
    read_dashboard_session,
    set_auth_cookie,
    verify_password,
)
from timeclock.models import User
from timeclock.schemas import LoginRequest, UserResponse
from timeclock.services.users import find_by_username

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login")
async def login(request: Request, response: Response, db: Session = Depends(get_db)):
    """Dashboard login: sets the ``auth_token`` cookie."""
    try:
        data = LoginRequest.model_validate(await request.json())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid username or password")

    user = find_by_username(db, data.username)
    if not user or not verify_password(data.password, user.hashed_password):
        logger.info("Failed dashboard login for %s", data.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    locations = user.locations
    token = create_auth_token(user.id, user.username, user.role, locations[0] if locations else "")
    set_auth_cookie(response, token)
    return {"user": UserResponse.model_validate(user).to_json()}


@router.post("/logout")
async def logout(response: Response):
    clear_auth_cookie(response)
    return {"success": True}


@router.get("/me")
async def me(request: Request, db: Session = Depends(get_db)):
    session = read_dashboard_session(request)
    user = db.query(User).filter(User.id == session.sub).first() if session else None
    if user is None:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"user": None})
    return {"user": UserResponse.model_validate(user).to_json()}
