import os
import time
from datetime import datetime, timezone

import pytest

from timeclock.models import Timesheet
from timeclock.services.cleanup_service import (
    CleanupService,
    InvalidBeforeDate,
    cleanup_timesheets,
    parse_before_date,
)


def add_rows(db, *dates):
    for day in dates:
        db.add(Timesheet(pin="1234", type="in", date=day, time="08:00"))
    db.commit()


def store_image(storage, age_days):
    path = storage.upload_dir / "timesheet" / f"{age_days}.jpg"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"jpeg")
    stamp = time.time() - age_days * 86400
    os.utime(path, (stamp, stamp))
    return path


def test_parse_before_date():
    assert parse_before_date("2024-03-01") == datetime(2024, 3, 1, tzinfo=timezone.utc)
    for bad in ("01-03-2024", "2024-13-01", "", None):
        with pytest.raises(InvalidBeforeDate):
            parse_before_date(bad)


def test_cleanup_compares_dates_chronologically(db):
    add_rows(db, "01-01-2024", "01-06-2024", "15-02-2024", "2023-12-31", "someday")

    assert cleanup_timesheets(db, "2024-03-01") == 3
    remaining = sorted(t.date for t in db.query(Timesheet).all())
    assert remaining == ["01-06-2024", "someday"]


def test_cleanup_endpoint(admin_client, db):
    add_rows(db, "01-01-2024", "01-06-2024")

    response = admin_client.post("/api/admin/cleanup/timesheets", json={"beforeDate": "2024-03-01"})
    assert response.status_code == 200
    assert response.json() == {"deleted": 1}
    assert [t.date for t in db.query(Timesheet).all()] == ["01-06-2024"]


def test_cleanup_endpoint_rejects_bad_date(admin_client):
    response = admin_client.post("/api/admin/cleanup/timesheets", json={"beforeDate": "01/03/2024"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid beforeDate. Use YYYY-MM-DD format."}


def test_cleanup_needs_admin(user_client_factory, client):
    assert client.post("/api/admin/cleanup/timesheets", json={"beforeDate": "2024-03-01"}).status_code == 401
    operator = user_client_factory()
    assert operator.post("/api/admin/cleanup/timesheets", json={"beforeDate": "2024-03-01"}).status_code == 403


def test_image_cleanup_endpoint(admin_client, storage):
    old = store_image(storage, 100)
    recent = store_image(storage, 0)

    response = admin_client.post("/api/admin/cleanup/cloudinary", json={"beforeDate": "2020-01-01"})
    assert response.json() == {"deleted": 0, "errors": 0}

    today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    response = admin_client.post("/api/admin/cleanup/cloudinary", json={"beforeDate": today})
    assert response.status_code == 200
    assert response.json()["deleted"] == 1
    assert not old.exists()
    assert recent.exists()


def test_cron_requires_secret(client, storage):
    assert client.get("/api/cron/cleanup-cloudinary").status_code == 401
    assert client.get("/api/cron/cleanup-cloudinary", params={"secret": "wrong"}).status_code == 401
    response = client.post("/api/cron/cleanup-cloudinary", headers={"Authorization": "Bearer wrong"})
    assert response.status_code == 401


def test_cron_deletes_images_past_retention(client, storage):
    old = store_image(storage, 41)
    recent = store_image(storage, 10)

    response = client.get("/api/cron/cleanup-cloudinary", headers={"Authorization": "Bearer test-cron-secret"})
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["deleted"] == 1
    assert body["errors"] == 0
    assert "40 days" in body["message"]
    assert not old.exists()
    assert recent.exists()

    response = client.post("/api/cron/cleanup-cloudinary", params={"secret": "test-cron-secret"})
    assert response.json()["deleted"] == 0


def test_cron_bearer_scheme_is_lenient(client, storage):
    for header in ("Bearer  test-cron-secret", "bearer test-cron-secret", "BEARER   test-cron-secret"):
        response = client.get("/api/cron/cleanup-cloudinary", headers={"Authorization": header})
        assert response.status_code == 200, header


def test_cron_accepts_admin_session(admin_client, storage):
    assert admin_client.get("/api/cron/cleanup-cloudinary").status_code == 200


def test_scheduled_cleanup(storage):
    store_image(storage, 50)
    service = CleanupService(storage, interval_hours=24, retention_days=40)
    result = service.perform_cleanup()
    assert result["deleted"] == 1
    assert service.last_result is result
