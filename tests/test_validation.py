import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from timeclock.core import database
from timeclock.core.config import Settings
from timeclock.models import Category, DailyShift, Timesheet, User
from timeclock.schemas import (
    CategoryCreate,
    EmployeeCreate,
    EmployeeUpdate,
    PinLoginRequest,
    TimesheetEditRequest,
    UserCreate,
    object_id,
)


def test_employee_create_trims_and_defaults():
    data = EmployeeCreate(name="  Jane Doe  ", pin=" 4321 ")
    assert data.name == "Jane Doe"
    assert data.pin == "4321"
    assert data.role == []
    assert data.employer == []
    assert data.location == []
    assert data.email == ""
    assert data.img == ""


@pytest.mark.parametrize("pin", ["123", "1" * 21, "   "])
def test_employee_create_rejects_bad_pin(pin):
    with pytest.raises(ValidationError):
        EmployeeCreate(name="Jane", pin=pin)


def test_employee_update_normalises_lists():
    data = EmployeeUpdate(role=" Cook ", location=["Main Street", "  ", "Depot "])
    assert data.role == ["Cook"]
    assert data.location == ["Main Street", "Depot"]
    assert data.employer is None


@pytest.mark.parametrize("value", ["abc", "", "507f1f77bcf86cd79943901", "507f1f77bcf86cd79943901g"])
def test_object_id_rejects_malformed_ids(value):
    with pytest.raises(HTTPException) as exc:
        object_id(value, "employee")
    assert exc.value.status_code == 400
    assert exc.value.detail == "Invalid employee ID"


def test_object_id_accepts_hex_ids():
    assert object_id("507f1f77bcf86cd799439011", "employee") == "507f1f77bcf86cd799439011"


def test_new_object_id_counter_uses_all_three_bytes(monkeypatch):
    monkeypatch.setattr(database, "_COUNTER", iter([0xFFFFFF, 0x1000000]))
    assert database.new_object_id()[-6:] == "ffffff"
    assert database.new_object_id()[-6:] == "000000"


def test_jwt_secret_is_required(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)

    monkeypatch.setenv("JWT_SECRET", "too-short")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)

    monkeypatch.setenv("JWT_SECRET", "x" * 32)
    assert Settings(_env_file=None).JWT_SECRET == "x" * 32


def test_malformed_id_rejected_by_api(admin_client):
    response = admin_client.get("/api/employees/not-an-id")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid employee ID"}


def test_validation_errors_are_reported_per_field(admin_client):
    response = admin_client.post("/api/employees", json={"name": ""})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert "name" in body["issues"]
    assert "pin" in body["issues"]


@pytest.mark.parametrize("pin,valid", [
    ("1234", True),
    ("1234567890", True),
    ("123", False),
    ("12345678901", False),
    ("12a4", False),
])
def test_pin_login_format(pin, valid):
    if valid:
        assert PinLoginRequest(pin=pin).pin == pin
    else:
        with pytest.raises(ValidationError):
            PinLoginRequest(pin=pin)


def test_category_radius_bounds():
    CategoryCreate(name="Depot", type="location", lat=1, lng=1, radius=10)
    with pytest.raises(ValidationError):
        CategoryCreate(name="Depot", type="location", lat=1, lng=1, radius=5)
    with pytest.raises(ValidationError):
        CategoryCreate(name="Depot", type="site")


def test_user_create_lowercases_username():
    data = UserCreate(name="Op", username="  OPERATOR ", password="secret1", rights=["add_staff"])
    assert data.username == "operator"
    assert data.role == "user"
    with pytest.raises(ValidationError):
        UserCreate(name="Op", username="op", password="secret1", rights=["fly"])


def test_timesheet_edit_only_reports_sent_fields():
    data = TimesheetEditRequest.model_validate({"date": "01-01-2024", "in": " 08:00 ", "endBreak": "12:30"})
    assert data.punches() == {"in": "08:00", "endBreak": "12:30"}


def test_models_reject_bad_enum_values():
    with pytest.raises(ValueError):
        Category(name="Depot", type="site")
    with pytest.raises(ValueError):
        User(username="x", hashed_password="x", role="owner")
    with pytest.raises(ValueError):
        User(username="x", hashed_password="x", rights=["fly"])
    with pytest.raises(ValueError):
        Timesheet(pin="1234", type="in", date="01-01-2024", source="import")
    with pytest.raises(ValueError):
        DailyShift(pin="1234", date="01-01-2024", status="paused")
