"""
Punch helpers: date/time formats, per-day classification of raw punches and
the DailyShift aggregate rebuilt from them.

Punch dates are stored as ``dd-MM-yyyy``. Times are free text: kiosks send
``"Monday, January 5, 2026 8:00:00 AM"``, dashboard edits send ``HH:mm``.
"""
import logging
import re
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from timeclock.models import DailyShift, ShiftSource, ShiftStatus, Timesheet, TimesheetSource

logger = logging.getLogger(__name__)

DATE_FORMAT = "%d-%m-%Y"
LONG_TIME_FORMAT = "%A, %B %d, %Y %I:%M:%S %p"

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_DMY_RE = re.compile(r"^(\d{2})-(\d{2})-(\d{4})$")
_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Normalised punch type -> key in the per-day punch summary
PUNCH_KEYS = {
    "in": "clockIn",
    "break": "breakIn",
    "endbreak": "breakOut",
    "out": "clockOut",
}

# Normalised punch type -> DailyShift event column
SHIFT_COLUMNS = {
    "in": "clock_in",
    "break": "break_in",
    "endbreak": "break_out",
    "out": "clock_out",
}


def today_string(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime(DATE_FORMAT)


def default_time_string(now: Optional[datetime] = None) -> str:
    """``Monday, January 5, 2026 8:00:00 AM``: no zero padding on day and hour."""
    now = now or datetime.now()
    hour = now.hour % 12 or 12
    return f"{now:%A}, {now:%B} {now.day}, {now.year} {hour}:{now:%M:%S} {now:%p}"


def normalize_type(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def to_iso_date(value: Optional[str]) -> Optional[str]:
    """Rewrite ``dd-MM-yyyy`` as ``yyyy-MM-dd``; ISO dates pass through."""
    value = (value or "").strip()
    match = _DMY_RE.match(value)
    if match:
        day, month, year = match.groups()
        return f"{year}-{month}-{day}"
    if _ISO_RE.match(value):
        return value
    return None


def parse_date(value: Optional[str]) -> Optional[date]:
    iso = to_iso_date(value)
    if iso is None:
        return None
    try:
        return date.fromisoformat(iso)
    except ValueError:
        return None


def parse_punch_datetime(time_value: Optional[str], day: Optional[str] = None) -> Optional[datetime]:
    """Parse a stored punch time; bare ``HH:mm`` is anchored on ``day``."""
    value = (time_value or "").strip()
    if not value:
        return None

    match = _CLOCK_RE.match(value)
    if match:
        anchor = parse_date(day) or date.today()
        hours, minutes = int(match.group(1)), int(match.group(2))
        seconds = int(match.group(3) or 0)
        if hours > 23 or minutes > 59 or seconds > 59:
            return None
        return datetime(anchor.year, anchor.month, anchor.day, hours, minutes, seconds)

    try:
        return datetime.strptime(value, LONG_TIME_FORMAT)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed.replace(tzinfo=None) if parsed.tzinfo else parsed


def parse_time_to_minutes(time_value: Optional[str]) -> int:
    """Minutes since midnight, 0 when the value cannot be read."""
    parsed = parse_punch_datetime(time_value)
    if parsed is None:
        return 0
    return parsed.hour * 60 + parsed.minute


def minutes_to_hours(minutes) -> str:
    if minutes is None:
        return "—"
    if minutes <= 0:
        return "0h"
    hours = int(minutes // 60)
    remainder = round(minutes % 60)
    if remainder == 0:
        return f"{hours}h"
    return f"{hours}h {remainder}m"


def sort_punches(rows: Iterable[Timesheet]) -> List[Timesheet]:
    """Chronological order; ties keep insertion order through the id."""
    return sorted(rows, key=lambda r: (parse_time_to_minutes(r.time), r.time or "", r.id or ""))


def classify_punches(rows: Iterable[Timesheet]) -> Dict[str, str]:
    """
    Summarise one day of punches. Rows must already be in chronological
    order; the last row of each type wins.
    """
    summary = {"clockIn": "", "breakIn": "", "breakOut": "", "clockOut": ""}
    for row in rows:
        key = PUNCH_KEYS.get(normalize_type(row.type))
        if key:
            summary[key] = row.time or ""
    return summary


def calculate_break_minutes(break_in: Optional[datetime], break_out: Optional[datetime]) -> int:
    if break_in is None or break_out is None:
        return 0
    minutes = int((break_out - break_in).total_seconds() // 60)
    return minutes if minutes > 0 else 0


def calculate_working_hours(
    clock_in: Optional[datetime], clock_out: Optional[datetime], break_minutes: int
) -> Optional[float]:
    if clock_in is None or clock_out is None:
        return None
    total = int((clock_out - clock_in).total_seconds() // 60)
    if total < 0:
        return None
    return round((total - break_minutes) / 60, 2)


def _event(row: Timesheet) -> dict:
    return {
        "time": row.time or "",
        "image": row.image or "",
        "lat": row.lat or "",
        "lng": row.lng or "",
        "flag": bool(row.flag),
    }


def rebuild_daily_shift(db: Session, pin: str, day: str) -> Optional[DailyShift]:
    """
    Recompute the DailyShift of ``pin`` on ``day`` from its raw punches.
    Removes the shift when no punch is left. Does not commit.
    """
    rows = sort_punches(
        db.query(Timesheet).filter(Timesheet.pin == pin, Timesheet.date == day).all()
    )
    shift = db.query(DailyShift).filter(DailyShift.pin == pin, DailyShift.date == day).first()

    if not rows:
        if shift is not None:
            db.delete(shift)
        return None

    if shift is None:
        shift = DailyShift(pin=pin, date=day)
        db.add(shift)

    events = {column: None for column in SHIFT_COLUMNS.values()}
    for row in rows:
        column = SHIFT_COLUMNS.get(normalize_type(row.type))
        if column:
            events[column] = _event(row)
    for column, value in events.items():
        setattr(shift, column, value)

    def when(column):
        return parse_punch_datetime((events[column] or {}).get("time"), day)

    break_minutes = calculate_break_minutes(when("break_in"), when("break_out"))
    shift.total_break_minutes = break_minutes
    shift.total_working_hours = calculate_working_hours(when("clock_in"), when("clock_out"), break_minutes)

    edited = {TimesheetSource.INSERT.value, TimesheetSource.UPDATE.value}
    shift.source = ShiftSource.MANUAL.value if any(r.source in edited for r in rows) else ShiftSource.CLOCK.value
    if shift.status not in (ShiftStatus.APPROVED.value, ShiftStatus.REJECTED.value):
        shift.status = ShiftStatus.COMPLETED.value if events["clock_out"] else ShiftStatus.ACTIVE.value
    return shift


def _where(event: Optional[dict]) -> Optional[str]:
    if event and event.get("lat") and event.get("lng"):
        return f"{event['lat']},{event['lng']}"
    return None


def shift_row(shift: DailyShift) -> dict:
    """Dashboard row for one day of an employee's timesheet."""
    break_minutes = shift.total_break_minutes or 0
    total_minutes = round(shift.total_working_hours * 60) if shift.total_working_hours else None
    edited = "insert" if shift.source == ShiftSource.MANUAL.value else None
    row = {
        "date": shift.date,
        "clockIn": shift.event_time("clock_in"),
        "breakIn": shift.event_time("break_in"),
        "breakOut": shift.event_time("break_out"),
        "clockOut": shift.event_time("clock_out"),
        "breakMinutes": break_minutes,
        "breakHours": minutes_to_hours(break_minutes),
        "totalMinutes": total_minutes or 0,
        "totalHours": minutes_to_hours(total_minutes),
    }
    for column, prefix in (
        ("clock_in", "clockIn"),
        ("break_in", "breakIn"),
        ("break_out", "breakOut"),
        ("clock_out", "clockOut"),
    ):
        event = getattr(shift, column) or None
        row[f"{prefix}Image"] = (event or {}).get("image") or None
        row[f"{prefix}Where"] = _where(event)
        row[f"{prefix}Source"] = edited
    return row
