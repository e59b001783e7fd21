"""Read-side aggregations over raw punches for the dashboard."""
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from timeclock.models import Employee, Timesheet
from timeclock.schemas.common import string_list
from timeclock.services.punches import (
    DATE_FORMAT,
    classify_punches,
    minutes_to_hours,
    normalize_type,
    parse_date,
    parse_punch_datetime,
    parse_time_to_minutes,
    sort_punches,
)

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 366
FLAG_WINDOW_DAYS = 30
INACTIVE_DAYS = 100
TOP_HOURS_LIMIT = 20
LOW_HOURS_THRESHOLD = 38
TIMELINE_HOURS = range(6, 21)
DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

TIMESHEET_SORT_COLUMNS = [
    "date", "name", "comment", "employer", "role", "location",
    "clockIn", "breakIn", "breakOut", "clockOut", "breakHours", "totalHours",
]
FLAG_SORT_COLUMNS = ["date", "name", "pin", "typeLabel", "hasImage", "hasLocation", "issueType"]
FLAG_FILTERS = ["no_image", "no_location", "no_image_no_location"]

TYPE_LABELS = {
    "in": "Clock In",
    "out": "Clock Out",
    "break": "Break In",
    "endbreak": "End Break",
}


class ReportError(ValueError):
    pass


def parse_query_date(value: Optional[str]) -> Optional[date]:
    """``yyyy-MM-dd`` (optionally followed by a time part) -> date."""
    value = (value or "").strip()
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def current_week(today: Optional[date] = None) -> Tuple[date, date]:
    today = today or date.today()
    monday = today - timedelta(days=today.weekday())
    return monday, monday + timedelta(days=6)


def resolve_range(start_param: Optional[str], end_param: Optional[str]) -> Tuple[date, date]:
    """Requested range, or the current Monday to Sunday week when either end is missing."""
    if start_param and end_param:
        start, end = parse_query_date(start_param), parse_query_date(end_param)
        if start is None or end is None:
            raise ReportError("Invalid startDate or endDate")
        if start > end:
            raise ReportError("startDate must be before or equal to endDate")
    else:
        start, end = current_week()
    if (end - start).days + 1 > MAX_RANGE_DAYS:
        raise ReportError(f"Date range too large (max {MAX_RANGE_DAYS} days)")
    return start, end


def date_strings(start: date, end: date) -> List[str]:
    days = (end - start).days
    return [(start + timedelta(days=i)).strftime(DATE_FORMAT) for i in range(days + 1)]


def _date_sort_key(value: str) -> date:
    return parse_date(value) or date.min


def _group_by_pin_and_date(rows: Iterable[Timesheet]) -> Dict[Tuple[str, str], List[Timesheet]]:
    grouped = defaultdict(list)
    for row in rows:
        if row.pin and row.date:
            grouped[(row.pin, row.date)].append(row)
    return grouped


def day_minutes(summary: Dict[str, str]) -> Tuple[int, int]:
    """(break minutes, worked minutes) from a day summary of clock times."""
    clock_in = parse_time_to_minutes(summary["clockIn"])
    clock_out = parse_time_to_minutes(summary["clockOut"])
    break_in = parse_time_to_minutes(summary["breakIn"])
    break_out = parse_time_to_minutes(summary["breakOut"])
    break_minutes = max(0, break_out - break_in)
    worked = max(0, clock_out - clock_in - break_minutes) if clock_in > 0 and clock_out > 0 else 0
    return break_minutes, worked


def employee_meta(employee: Employee) -> dict:
    employer = string_list(employee.employer) or string_list(employee.hire)
    location = string_list(employee.location) or string_list(employee.site)
    return {
        "id": employee.id,
        "name": employee.name or "",
        "employer": ", ".join(employer),
        "role": ", ".join(string_list(employee.role)),
        "location": ", ".join(location),
        "comment": employee.comment or "",
    }


def filter_employees(
    employees: Iterable[Employee], employer: Optional[str] = None, location: Optional[str] = None
) -> List[Employee]:
    result = []
    for employee in employees:
        if employer and employer not in string_list(employee.employer) and employee.hire != employer:
            continue
        if location and location not in string_list(employee.location) and employee.site != location:
            continue
        result.append(employee)
    return result


def timesheet_rows(db: Session, employees: List[Employee], start: date, end: date) -> List[dict]:
    """One row per (pin, day) that has punches, with break and worked minutes."""
    meta = {e.pin: employee_meta(e) for e in employees}
    if not meta:
        return []
    raw = db.query(Timesheet).filter(
        Timesheet.pin.in_(list(meta)), Timesheet.date.in_(date_strings(start, end))
    ).all()

    rows = []
    for (pin, day), punches in _group_by_pin_and_date(raw).items():
        summary = classify_punches(sort_punches(punches))
        break_minutes, worked = day_minutes(summary)
        info = meta.get(pin, {})
        rows.append({
            "date": day,
            "employeeId": info.get("id", ""),
            "name": info.get("name", ""),
            "pin": pin,
            "comment": info.get("comment", ""),
            "employer": info.get("employer", ""),
            "role": info.get("role", ""),
            "location": info.get("location", ""),
            **summary,
            "breakMinutes": break_minutes,
            "breakHours": minutes_to_hours(break_minutes),
            "totalMinutes": worked,
            "totalHours": minutes_to_hours(worked),
        })
    return rows


def sort_timesheet_rows(rows: List[dict], sort_by: str, descending: bool) -> List[dict]:
    if sort_by not in TIMESHEET_SORT_COLUMNS:
        sort_by = "date"

    def key(row):
        if sort_by == "date":
            primary = _date_sort_key(row["date"]).toordinal()
        elif sort_by == "totalHours":
            primary = row["totalMinutes"]
        elif sort_by == "breakHours":
            primary = row["breakMinutes"]
        else:
            primary = str(row.get(sort_by) or "").casefold()
        return primary, _date_sort_key(row["date"]).toordinal()

    return sorted(rows, key=key, reverse=descending)


def _issue_type(has_image: bool, has_location: bool) -> Optional[str]:
    if not has_image and not has_location:
        return "no_image_no_location"
    if not has_image:
        return "no_image"
    if not has_location:
        return "no_location"
    return None


def flagged_punches(
    db: Session,
    visible: Callable[[Employee], bool],
    issue_filter: Optional[str] = None,
    today: Optional[date] = None,
) -> List[dict]:
    """Flagged punches of the last 30 days (today included) that still miss an image or a location."""
    today = today or date.today()
    days = date_strings(today - timedelta(days=FLAG_WINDOW_DAYS - 1), today)
    raw = db.query(Timesheet).filter(Timesheet.date.in_(days), Timesheet.flag.is_(True)).all()

    pins = {r.pin for r in raw if r.pin}
    employees = {e.pin: e for e in db.query(Employee).filter(Employee.pin.in_(pins)).all()} if pins else {}

    items = []
    for row in raw:
        employee = employees.get(row.pin)
        if employee is not None and not visible(employee):
            continue
        has_image = bool((row.image or "").strip())
        has_location = bool((row.where or "").strip())
        issue = _issue_type(has_image, has_location)
        if issue is None:
            continue
        if issue_filter == "no_image" and has_image:
            continue
        if issue_filter == "no_location" and has_location:
            continue
        if issue_filter == "no_image_no_location" and issue != "no_image_no_location":
            continue
        items.append({
            "id": row.id,
            "employeeId": employee.id if employee else "",
            "date": row.date,
            "time": row.time or "",
            "pin": row.pin,
            "name": employee.name if employee else "",
            "type": row.type,
            "typeLabel": TYPE_LABELS.get(normalize_type(row.type), row.type),
            "hasImage": has_image,
            "hasLocation": has_location,
            "issueType": issue,
        })
    return items


def sort_flag_rows(rows: List[dict], sort_by: str, descending: bool) -> List[dict]:
    if sort_by not in FLAG_SORT_COLUMNS:
        sort_by = "date"

    def key(row):
        if sort_by == "date":
            primary = _date_sort_key(row["date"]).toordinal()
        elif sort_by in ("hasImage", "hasLocation"):
            primary = int(row[sort_by])
        else:
            primary = str(row.get(sort_by) or "").casefold()
        return primary, _date_sort_key(row["date"]).toordinal(), parse_time_to_minutes(row["time"])

    return sorted(rows, key=key, reverse=descending)


def hours_summary(db: Session, employees: List[Employee], start: date, end: date) -> dict:
    """Clock-in to clock-out hours per employee over the range."""
    names = {e.pin: e.name or e.pin for e in employees}
    if not names:
        return {"mostHours": [], "leastHours": []}
    raw = db.query(Timesheet).filter(
        Timesheet.pin.in_(list(names)), Timesheet.date.in_(date_strings(start, end))
    ).all()

    minutes_by_pin: Dict[str, int] = defaultdict(int)
    for (pin, _), punches in _group_by_pin_and_date(raw).items():
        summary = classify_punches(sort_punches(punches))
        clock_in = parse_time_to_minutes(summary["clockIn"])
        clock_out = parse_time_to_minutes(summary["clockOut"])
        minutes_by_pin[pin] += max(0, clock_out - clock_in) if clock_in > 0 and clock_out > 0 else 0

    with_hours = [
        {"name": names.get(pin, pin), "pin": pin, "hours": round(minutes / 60, 1)}
        for pin, minutes in minutes_by_pin.items()
    ]
    most = sorted(with_hours, key=lambda x: x["hours"], reverse=True)[:TOP_HOURS_LIMIT]
    least = sorted((x for x in with_hours if x["hours"] < LOW_HOURS_THRESHOLD), key=lambda x: x["hours"])
    return {"mostHours": most, "leastHours": least}


def inactive_employees(db: Session, employees: List[Employee], today: Optional[date] = None) -> List[dict]:
    """Employees whose latest punch is at least 100 days old, or who never punched."""
    today = today or date.today()
    last_punch: Dict[str, date] = {}
    for pin, day in db.query(Timesheet.pin, Timesheet.date).distinct().all():
        parsed = parse_date(day)
        if parsed and (pin not in last_punch or parsed > last_punch[pin]):
            last_punch[pin] = parsed

    inactive = []
    for employee in employees:
        last = last_punch.get(employee.pin)
        days = (today - last).days if last else INACTIVE_DAYS + 1
        if days >= INACTIVE_DAYS:
            inactive.append({
                "id": employee.id,
                "name": employee.name or "",
                "pin": employee.pin,
                "lastPunchDate": last.strftime(DATE_FORMAT) if last else None,
                "daysInactive": days,
            })
    inactive.sort(key=lambda x: x["daysInactive"], reverse=True)
    return inactive


def _punch_hour(time_value: str, day: str) -> Optional[int]:
    parsed = parse_punch_datetime(time_value, day)
    return parsed.hour if parsed else None


def dashboard_stats(db: Session, employees: List[Employee], timeline_day: date, today: Optional[date] = None) -> dict:
    today = today or date.today()
    pins = [e.pin for e in employees if e.pin]

    # Punches per hour of the timeline day
    timeline_key = timeline_day.strftime(DATE_FORMAT)
    by_hour = {f"{h:02d}:00": {"clockIn": 0, "breakIn": 0, "breakOut": 0, "clockOut": 0} for h in TIMELINE_HOURS}
    day_rows = db.query(Timesheet).filter(Timesheet.date == timeline_key, Timesheet.pin.in_(pins)).all() if pins else []
    keys = {"in": "clockIn", "break": "breakIn", "endbreak": "breakOut", "out": "clockOut"}
    for row in day_rows:
        hour = _punch_hour(row.time, row.date)
        key = keys.get(normalize_type(row.type))
        if hour is None or key is None or hour not in TIMELINE_HOURS:
            continue
        by_hour[f"{hour:02d}:00"][key] += 1
    daily_timeline = [{"hour": hour, **counts} for hour, counts in sorted(by_hour.items())]

    # Employees per location
    location_counts: Dict[str, int] = defaultdict(int)
    for employee in employees:
        locations = string_list(employee.location) or string_list(employee.site)
        for name in locations or ["Unassigned"]:
            location_counts[name] += 1
    location_distribution = sorted(
        ({"name": name, "value": count} for name, count in location_counts.items()),
        key=lambda x: x["value"],
        reverse=True,
    )

    # Distinct employees clocking in per weekday over the last 4 weeks
    recent = date_strings(today - timedelta(days=28), today)
    in_rows = db.query(Timesheet.pin, Timesheet.date, Timesheet.type).filter(
        Timesheet.date.in_(recent), Timesheet.pin.in_(pins)
    ).all() if pins else []
    seen = defaultdict(set)
    for pin, day, punch_type in in_rows:
        parsed = parse_date(day)
        if parsed and normalize_type(punch_type) == "in":
            seen[DAY_NAMES[parsed.weekday()]].add(pin)
    attendance_by_day = [{"day": name, "count": len(seen[name])} for name in DAY_NAMES]

    return {
        "dailyTimeline": daily_timeline,
        "locationDistribution": location_distribution,
        "attendanceByDay": attendance_by_day,
        "timelineDate": timeline_day.isoformat(),
    }
