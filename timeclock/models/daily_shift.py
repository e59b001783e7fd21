from sqlalchemy import Column, String, Integer, Float, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import validates
from datetime import datetime
import enum
from timeclock.core.database import Base, new_object_id


class ShiftSource(str, enum.Enum):
    CLOCK = "clock"
    MANUAL = "manual"
    LEAVE = "leave"


class ShiftStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    APPROVED = "approved"
    REJECTED = "rejected"


SHIFT_SOURCES = [s.value for s in ShiftSource]
SHIFT_STATUSES = [s.value for s in ShiftStatus]


class DailyShift(Base):
    """One row per employee pin and day, rebuilt from the raw punches."""
    __tablename__ = "daily_shifts"
    __table_args__ = (
        UniqueConstraint("pin", "date", name="uq_daily_shifts_pin_date"),
    )

    id = Column(String(24), primary_key=True, default=new_object_id)
    pin = Column(String(20), nullable=False, index=True)
    date = Column(String(10), nullable=False)  # dd-MM-yyyy
    # Event columns hold {"time", "image", "lat", "lng", "flag"} or NULL
    clock_in = Column(JSON, nullable=True)
    break_in = Column(JSON, nullable=True)
    break_out = Column(JSON, nullable=True)
    clock_out = Column(JSON, nullable=True)
    total_break_minutes = Column(Integer, default=0)
    total_working_hours = Column(Float, nullable=True)
    source = Column(String(10), default=ShiftSource.CLOCK.value, nullable=False)
    status = Column(String(10), default=ShiftStatus.ACTIVE.value, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @validates("source")
    def validate_source(self, key, value):
        if value not in SHIFT_SOURCES:
            raise ValueError(f"Invalid source: {value}")
        return value

    @validates("status")
    def validate_status(self, key, value):
        if value not in SHIFT_STATUSES:
            raise ValueError(f"Invalid status: {value}")
        return value

    def event_time(self, event: str) -> str:
        data = getattr(self, event) or {}
        return data.get("time") or ""
