import time

import jwt

from timeclock.core.config import settings
from timeclock.core.security import (
    create_auth_token,
    create_device_token,
    create_employee_token,
    get_password_hash,
    verify_auth_token,
    verify_device_token,
    verify_employee_token,
    verify_password,
)


def test_password_hash_is_one_way():
    hashed = get_password_hash("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert hashed.startswith("$2")
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("s3cret-pasS", hashed)
    assert not verify_password("", hashed)
    assert not verify_password("s3cret-pass", "not-a-hash")


def test_stored_user_password_is_hashed(db, admin):
    assert admin.hashed_password != "adminpass123"
    assert verify_password("adminpass123", admin.hashed_password)


def test_dashboard_token_round_trip():
    session = verify_auth_token(create_auth_token("507f1f77bcf86cd799439011", "admin", "admin", "Depot"))
    assert session.sub == "507f1f77bcf86cd799439011"
    assert session.role == "admin"
    assert session.location == "Depot"


def test_unknown_role_degrades_to_user():
    session = verify_auth_token(create_auth_token("abc", "x", "owner"))
    assert session.role == "user"


def test_token_kinds_are_not_interchangeable():
    dashboard = create_auth_token("abc", "admin", "admin")
    employee = create_employee_token("abc", "1234")
    device = create_device_token("device-1", "Depot")

    assert verify_employee_token(dashboard) is None
    assert verify_device_token(dashboard) is None
    assert verify_auth_token(employee) is None
    assert verify_auth_token(device) is None
    assert verify_employee_token(employee).pin == "1234"
    assert verify_device_token(device).location == "Depot"


def test_bad_tokens_read_as_none():
    assert verify_auth_token(None) is None
    assert verify_auth_token("garbage") is None
    forged = jwt.encode({"sub": "abc", "role": "admin", "type": "dashboard"}, "x" * 32, algorithm="HS256")
    assert verify_auth_token(forged) is None

    expired = jwt.encode(
        {"sub": "abc", "pin": "1234", "type": "employee", "exp": int(time.time()) - 10},
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )
    assert verify_employee_token(expired) is None
