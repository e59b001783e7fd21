from datetime import datetime

from timeclock.models import Category, DailyShift, Timesheet
from timeclock.services.punches import (
    classify_punches,
    default_time_string,
    minutes_to_hours,
    rebuild_daily_shift,
    sort_punches,
    to_iso_date,
    today_string,
)


def add_punch(db, punch_type, time, day=None, pin="1234", **extra):
    punch = Timesheet(pin=pin, type=punch_type, date=day or today_string(), time=time, **extra)
    db.add(punch)
    db.commit()
    return punch


def test_classify_is_case_and_space_insensitive():
    rows = [
        Timesheet(pin="1", type="out", date="01-01-2024", time="17:00"),
        Timesheet(pin="1", type=" In ", date="01-01-2024", time="08:00"),
        Timesheet(pin="1", type="BREAK", date="01-01-2024", time="12:00"),
        Timesheet(pin="1", type="endbreak", date="01-01-2024", time="12:30"),
    ]
    assert classify_punches(sort_punches(rows)) == {
        "clockIn": "08:00",
        "breakIn": "12:00",
        "breakOut": "12:30",
        "clockOut": "17:00",
    }


def test_last_punch_of_a_type_wins():
    rows = [
        Timesheet(pin="1", type="in", date="01-01-2024", time="08:00"),
        Timesheet(pin="1", type="in", date="01-01-2024", time="09:15"),
    ]
    assert classify_punches(sort_punches(rows))["clockIn"] == "09:15"


def test_default_time_string_is_unpadded():
    assert default_time_string(datetime(2026, 1, 5, 8, 3, 9)) == "Monday, January 5, 2026 8:03:09 AM"
    assert default_time_string(datetime(2026, 1, 5, 0, 0, 0)) == "Monday, January 5, 2026 12:00:00 AM"


def test_date_helpers():
    assert to_iso_date("01-06-2024") == "2024-06-01"
    assert to_iso_date("2024-06-01") == "2024-06-01"
    assert to_iso_date("June 1") is None
    assert minutes_to_hours(0) == "0h"
    assert minutes_to_hours(90) == "1h 30m"
    assert minutes_to_hours(480) == "8h"


def test_rebuild_daily_shift(db):
    for punch_type, time in (("in", "08:00"), ("break", "12:00"), ("endBreak", "12:30"), ("out", "17:00")):
        add_punch(db, punch_type, time, day="01-01-2024")

    shift = rebuild_daily_shift(db, "1234", "01-01-2024")
    db.commit()
    assert shift.total_break_minutes == 30
    assert shift.total_working_hours == 8.5
    assert shift.status == "completed"
    assert shift.source == "clock"
    assert shift.event_time("break_out") == "12:30"


def test_rebuild_removes_empty_shift(db):
    db.add(DailyShift(pin="1234", date="01-01-2024"))
    db.commit()
    assert rebuild_daily_shift(db, "1234", "01-01-2024") is None
    db.commit()
    assert db.query(DailyShift).count() == 0


def test_employee_timesheet_summarises_today(employee_client, db):
    add_punch(db, "In", "08:00")
    add_punch(db, "BREAK", "12:00")
    add_punch(db, "endbreak", "12:30")
    add_punch(db, "out", "17:00")
    add_punch(db, "in", "09:00", pin="9999")

    response = employee_client.get("/api/employee/timesheet")
    assert response.status_code == 200
    body = response.json()
    assert body["date"] == today_string()
    assert body["punches"] == {
        "clockIn": "08:00",
        "breakIn": "12:00",
        "breakOut": "12:30",
        "clockOut": "17:00",
    }


def test_employee_endpoints_need_session(client):
    assert client.get("/api/employee/me").status_code == 401
    assert client.get("/api/employee/timesheet").status_code == 401


def test_employee_login(client, employee):
    response = client.post("/api/employee/login", json={"pin": "1234"})
    assert response.status_code == 200
    assert response.json()["employee"] == {
        "id": employee.id,
        "name": "Jane Doe",
        "pin": "1234",
        "role": "Main Street",
    }
    assert "employee_session" in response.cookies

    assert client.post("/api/employee/login", json={"pin": "12"}).json() == {"error": "Invalid PIN format"}
    response = client.post("/api/employee/login", json={"pin": "0000"})
    assert response.status_code == 401


def test_dashboard_cookie_is_not_an_employee_session(admin_client):
    assert admin_client.get("/api/employee/me").status_code == 401


def test_employee_clock_records_punch(employee_client, db):
    response = employee_client.post("/api/employee/clock", json={"type": "in", "lat": "1.5", "lng": "2.5"})
    assert response.status_code == 200
    body = response.json()
    assert body["where"] == "1.5,2.5"
    # No photo
    assert body["flag"] is True
    assert body["date"] == today_string()

    me = employee_client.get("/api/employee/me").json()
    assert me["punches"]["clockIn"] == body["time"]
    assert db.query(DailyShift).filter(DailyShift.pin == "1234").count() == 1


def test_employee_clock_outside_hard_fence(employee_client, db):
    db.add(Category(name="Main Street", type="location", lat=-33.8568, lng=151.2153, radius=100, geofence_mode="hard"))
    db.commit()

    response = employee_client.post(
        "/api/employee/clock",
        json={"type": "in", "imageUrl": "http://testserver/uploads/a.jpg", "lat": "-33.90", "lng": "151.2153"},
    )
    assert response.status_code == 403
    assert db.query(Timesheet).count() == 0

    response = employee_client.post(
        "/api/employee/clock",
        json={"type": "in", "imageUrl": "http://testserver/uploads/a.jpg", "lat": "-33.8568", "lng": "151.2153"},
    )
    assert response.status_code == 200
    assert response.json()["flag"] is False


def test_employee_clock_outside_soft_fence_is_flagged(employee_client, db):
    db.add(Category(name="Main Street", type="location", lat=-33.8568, lng=151.2153, radius=100, geofence_mode="soft"))
    db.commit()

    response = employee_client.post(
        "/api/employee/clock",
        json={"type": "in", "imageUrl": "http://testserver/uploads/a.jpg", "lat": "-33.90", "lng": "151.2153"},
    )
    assert response.status_code == 200
    assert response.json()["flag"] is True


def test_admin_edits_a_day(admin_client, employee, db):
    add_punch(db, "in", "08:00", day="02-01-2024")
    add_punch(db, "out", "16:00", day="02-01-2024")
    rebuild_daily_shift(db, "1234", "02-01-2024")
    db.commit()

    response = admin_client.patch(
        f"/api/employees/{employee.id}/timesheet",
        json={"date": "02-01-2024", "in": "08:00", "out": "17:00", "break": "12:00", "endBreak": "12:30"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["updated"] == 3
    assert body["row"]["clockOut"] == "17:00"
    assert body["row"]["totalMinutes"] == 510
    assert body["row"]["clockOutSource"] == "insert"

    sources = {t.type: t.source for t in db.query(Timesheet).filter(Timesheet.date == "02-01-2024")}
    assert sources == {"in": "", "out": "update", "break": "insert", "endBreak": "insert"}


def test_employee_timesheet_history(admin_client, employee, db):
    for day, out in (("01-01-2024", "16:00"), ("02-01-2024", "17:00")):
        add_punch(db, "in", "08:00", day=day)
        add_punch(db, "out", out, day=day)
        rebuild_daily_shift(db, "1234", day)
    db.commit()

    response = admin_client.get(f"/api/employees/{employee.id}/timesheet", params={"order": "asc"})
    assert response.status_code == 200
    body = response.json()
    assert [r["date"] for r in body["data"]] == ["01-01-2024", "02-01-2024"]
    assert body["data"][1]["totalHours"] == "9h"
    assert body["pagination"] == {"total": 2, "limit": 50, "offset": 0, "hasMore": False}

    response = admin_client.get(f"/api/employees/{employee.id}/timesheet", params={"search": "02-01"})
    assert len(response.json()["data"]) == 1


def test_timesheet_edit_is_admin_only(user_client_factory, employee):
    client = user_client_factory(rights=["get_timesheet", "edit_staff"])
    response = client.patch(f"/api/employees/{employee.id}/timesheet", json={"date": "02-01-2024", "in": "08:00"})
    assert response.status_code == 403
