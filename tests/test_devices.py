import logging

import pytest
from fastapi.testclient import TestClient

from main import app
from timeclock.models import Device, Timesheet

from conftest import ADMIN_PASSWORD, USER_PASSWORD, make_user


@pytest.fixture
def device_client(admin):
    client = TestClient(app)
    response = client.post("/api/device/register", json={
        "username": "admin",
        "password": ADMIN_PASSWORD,
        "locationName": "Main Street",
        "locationAddress": "1 Main Street",
    })
    assert response.status_code == 200, response.text
    client.device_id = response.json()["deviceId"]
    return client


def set_status(admin_client, device_id, action, reason=None):
    body = {"deviceId": device_id, "action": action}
    if reason:
        body["reason"] = reason
    return admin_client.patch("/api/device/manage", json=body)


def test_register_device(device_client, db, admin):
    assert "device_token" in device_client.cookies
    device = db.query(Device).one()
    assert device.device_id == device_client.device_id
    assert device.location_name == "Main Street"
    assert device.status == "active"
    assert device.registered_by_id == admin.id


def test_register_accepts_email_field(client, admin):
    response = client.post("/api/device/register", json={
        "email": "admin", "password": ADMIN_PASSWORD, "locationName": "Depot",
    })
    assert response.status_code == 200


def test_register_failures(client, db, admin, caplog):
    make_user(db, "operator")
    caplog.set_level(logging.WARNING, logger="timeclock.auth")

    response = client.post("/api/device/register", json={
        "username": "admin", "password": "wrong", "locationName": "Depot",
    })
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}
    assert "device_registration_failure" in caplog.text

    response = client.post("/api/device/register", json={
        "username": "operator", "password": USER_PASSWORD, "locationName": "Depot",
    })
    assert response.status_code == 403
    assert response.json() == {"error": "Insufficient permissions"}

    response = client.post("/api/device/register", json={
        "username": "admin", "password": ADMIN_PASSWORD, "locationName": "  ",
    })
    assert response.status_code == 400
    assert response.json() == {"error": "Location name is required"}
    assert db.query(Device).count() == 0


def test_device_clock(device_client, employee, db):
    response = device_client.post("/api/device/clock/in", json={
        "pin": "1234", "image": "http://testserver/uploads/timesheet/a.jpg", "lat": "1.5", "lng": "2.5",
    })
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Jane Doe"
    assert body["flag"] is False
    assert body["deviceLocation"] == "Main Street"

    punch = db.query(Timesheet).one()
    assert punch.device_id == device_client.device_id
    assert punch.device_location == "Main Street"


def test_device_clock_errors(device_client, employee):
    assert device_client.post("/api/device/clock/in", json={"pin": "0000"}).status_code == 401
    assert device_client.post("/api/device/clock/lunch", json={"pin": "1234"}).status_code == 400
    assert device_client.post("/api/device/clock/in", json={"pin": ""}).status_code == 400


def test_clock_without_device_token(admin_client, employee):
    assert admin_client.post("/api/device/clock/in", json={"pin": "1234"}).status_code == 401


def test_disabled_and_revoked_devices(device_client, admin_client, employee):
    device_id = device_client.device_id

    assert set_status(admin_client, device_id, "disable").status_code == 200
    response = device_client.post("/api/device/clock/in", json={"pin": "1234"})
    assert response.status_code == 403
    assert response.json() == {"error": "Device is disabled"}

    assert set_status(admin_client, device_id, "enable").json()["device"]["status"] == "active"
    assert device_client.post("/api/device/clock/in", json={"pin": "1234"}).status_code == 200

    assert set_status(admin_client, device_id, "revoke").status_code == 400
    response = set_status(admin_client, device_id, "revoke", reason="Stolen")
    assert response.status_code == 200
    device = response.json()["device"]
    assert device["status"] == "revoked"
    assert device["revocationReason"] == "Stolen"
    assert device["revokedBy"]["username"] == "admin"

    response = device_client.post("/api/device/clock/out", json={"pin": "1234"})
    assert response.status_code == 403
    assert response.json() == {"error": "Device has been revoked"}
    assert set_status(admin_client, device_id, "enable").status_code == 400


def test_manage_validation(admin_client, device_client):
    assert set_status(admin_client, device_client.device_id, "explode").status_code == 400
    assert set_status(admin_client, "unknown-device", "disable").status_code == 404


def test_list_devices(admin_client, device_client, user_client_factory):
    body = admin_client.get("/api/device/manage").json()
    assert len(body["devices"]) == 1
    device = body["devices"][0]
    assert device["deviceId"] == device_client.device_id
    assert device["registeredBy"]["username"] == "admin"
    assert device["revokedBy"] is None

    assert user_client_factory().get("/api/device/manage").status_code == 403
