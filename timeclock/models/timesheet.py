from sqlalchemy import Column, String, Boolean, Index
from sqlalchemy.orm import validates
import enum
from timeclock.core.database import Base, new_object_id


class PunchType(str, enum.Enum):
    IN = "in"
    OUT = "out"
    BREAK = "break"
    END_BREAK = "endBreak"


class TimesheetSource(str, enum.Enum):
    """Set by admin edits; device and employee punches leave it empty."""
    INSERT = "insert"
    UPDATE = "update"


PUNCH_TYPES = [t.value for t in PunchType]
TIMESHEET_SOURCES = ["", TimesheetSource.INSERT.value, TimesheetSource.UPDATE.value]


class Timesheet(Base):
    """One raw punch event."""
    __tablename__ = "timesheets"
    __table_args__ = (
        Index("ix_timesheets_pin_date", "pin", "date"),
    )

    id = Column(String(24), primary_key=True, default=new_object_id)
    pin = Column(String(20), nullable=False)
    type = Column(String(20), nullable=False)
    date = Column(String(10), nullable=False)  # dd-MM-yyyy
    time = Column(String(100), default="")
    image = Column(String(500), default="")
    lat = Column(String(50), default="")
    lng = Column(String(50), default="")
    where = Column(String(100), default="")
    flag = Column(Boolean, default=False)
    working = Column(String(50), default="")
    source = Column(String(10), default="")
    device_id = Column(String(64), default="")
    device_location = Column(String(200), default="")

    @validates("pin", "type", "date")
    def validate_required(self, key, value):
        value = (value or "").strip()
        if not value:
            raise ValueError(f"{key} is required")
        return value

    @validates("source")
    def validate_source(self, key, value):
        value = value or ""
        if value not in TIMESHEET_SOURCES:
            raise ValueError(f"Invalid source: {value}")
        return value
