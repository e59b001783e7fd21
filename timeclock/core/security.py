"""
Password hashing and the signed session tokens carried in cookies.

Three independent token kinds exist, each with its own cookie and ``type``
claim so one can never be replayed as another:

* dashboard (``auth_token``): admin/user sessions, 7 days
* employee (``employee_session``): PIN sessions, 5 minutes
* device (``device_token``): registered clock terminals, no expiry
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import bcrypt
import jwt
from fastapi import Request, Response

from timeclock.core.config import settings
from timeclock.core.roles import USER_ROLES, UserRole

logger = logging.getLogger(__name__)

AUTH_COOKIE = "auth_token"
EMPLOYEE_COOKIE = "employee_session"
DEVICE_COOKIE = "device_token"

DASHBOARD_TOKEN = "dashboard"
EMPLOYEE_TOKEN = "employee"
DEVICE_TOKEN = "device"

BCRYPT_ROUNDS = 10


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72]


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not plain_password or not hashed_password:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        return False


@dataclass(frozen=True)
class DashboardSession:
    sub: str
    username: str
    role: str
    location: str = ""

    kind = DASHBOARD_TOKEN


@dataclass(frozen=True)
class EmployeeSession:
    sub: str
    pin: str

    kind = EMPLOYEE_TOKEN


@dataclass(frozen=True)
class DeviceSession:
    sub: str
    location: str

    kind = DEVICE_TOKEN


Principal = Union[DashboardSession, EmployeeSession]


def _encode(claims: dict, max_age: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = dict(claims, iat=now)
    if max_age is not None:
        payload["exp"] = now + timedelta(seconds=max_age)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _decode(token: Optional[str], token_type: str) -> Optional[dict]:
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None
    if payload.get("type") != token_type:
        return None
    sub = payload.get("sub")
    if not sub or not isinstance(sub, str):
        return None
    return payload


# Dashboard sessions

def create_auth_token(sub: str, username: str, role: str, location: str = "") -> str:
    return _encode(
        {"sub": sub, "username": username, "role": role, "location": location or "", "type": DASHBOARD_TOKEN},
        settings.AUTH_TOKEN_MAX_AGE,
    )


def verify_auth_token(token: Optional[str]) -> Optional[DashboardSession]:
    payload = _decode(token, DASHBOARD_TOKEN)
    if payload is None:
        return None
    role = payload.get("role")
    if role not in USER_ROLES:
        role = UserRole.USER.value
    return DashboardSession(
        sub=payload["sub"],
        username=str(payload.get("username") or ""),
        role=role,
        location=str(payload.get("location") or ""),
    )


# Employee sessions

def create_employee_token(sub: str, pin: str) -> str:
    return _encode({"sub": sub, "pin": pin, "type": EMPLOYEE_TOKEN}, settings.EMPLOYEE_SESSION_MAX_AGE)


def verify_employee_token(token: Optional[str]) -> Optional[EmployeeSession]:
    payload = _decode(token, EMPLOYEE_TOKEN)
    if payload is None:
        return None
    return EmployeeSession(sub=payload["sub"], pin=str(payload.get("pin") or ""))


# Device tokens

def create_device_token(device_id: str, location: str) -> str:
    return _encode({"sub": device_id, "location": location, "type": DEVICE_TOKEN})


def verify_device_token(token: Optional[str]) -> Optional[DeviceSession]:
    payload = _decode(token, DEVICE_TOKEN)
    if payload is None:
        return None
    return DeviceSession(sub=payload["sub"], location=str(payload.get("location") or ""))


# Request readers. These never raise: a missing, invalid or expired token is None.

def read_dashboard_session(request: Request) -> Optional[DashboardSession]:
    return verify_auth_token(request.cookies.get(AUTH_COOKIE))


def read_employee_session(request: Request) -> Optional[EmployeeSession]:
    return verify_employee_token(request.cookies.get(EMPLOYEE_COOKIE))


def read_device_session(request: Request) -> Optional[DeviceSession]:
    return verify_device_token(request.cookies.get(DEVICE_COOKIE))


def resolve_principal(request: Request) -> Optional[Principal]:
    """Return whichever principal the request carries, dashboard first."""
    return read_dashboard_session(request) or read_employee_session(request)


# Cookies

def _set_cookie(response: Response, name: str, token: str, max_age: Optional[int], samesite: str = "lax"):
    response.set_cookie(
        key=name,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=settings.is_production,
        samesite=samesite,
        path="/",
    )


def set_auth_cookie(response: Response, token: str):
    _set_cookie(response, AUTH_COOKIE, token, settings.AUTH_TOKEN_MAX_AGE)


def clear_auth_cookie(response: Response):
    response.delete_cookie(AUTH_COOKIE, path="/")


def set_employee_cookie(response: Response, token: str):
    _set_cookie(response, EMPLOYEE_COOKIE, token, settings.EMPLOYEE_SESSION_MAX_AGE)


def clear_employee_cookie(response: Response):
    response.delete_cookie(EMPLOYEE_COOKIE, path="/")


def set_device_cookie(response: Response, token: str):
    _set_cookie(response, DEVICE_COOKIE, token, None, samesite="strict")

