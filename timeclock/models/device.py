from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship, validates
from datetime import datetime
import enum
from timeclock.core.database import Base, new_object_id


class DeviceStatus(str, enum.Enum):
    ACTIVE = "active"
    DISABLED = "disabled"
    REVOKED = "revoked"


DEVICE_STATUSES = [s.value for s in DeviceStatus]


class Device(Base):
    """A registered clock-in terminal."""
    __tablename__ = "devices"

    id = Column(String(24), primary_key=True, default=new_object_id)
    device_id = Column(String(64), unique=True, nullable=False, index=True)
    location_name = Column(String(200), nullable=False, index=True)
    location_address = Column(String(500), default="")
    status = Column(String(10), default=DeviceStatus.ACTIVE.value, nullable=False, index=True)
    registered_by_id = Column(String(24), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    registered_at = Column(DateTime, default=datetime.utcnow)
    last_activity = Column(DateTime, default=datetime.utcnow, index=True)
    revocation_reason = Column(String(500), nullable=True)
    revoked_at = Column(DateTime, nullable=True)
    revoked_by_id = Column(String(24), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    registered_by = relationship("User", foreign_keys=[registered_by_id])
    revoked_by = relationship("User", foreign_keys=[revoked_by_id])

    @validates("status")
    def validate_status(self, key, value):
        if value not in DEVICE_STATUSES:
            raise ValueError(f"Invalid device status: {value}")
        return value

    @validates("location_name")
    def validate_location_name(self, key, value):
        value = (value or "").strip()
        if not value:
            raise ValueError("Location name is required")
        return value

    @property
    def is_active(self) -> bool:
        return self.status == DeviceStatus.ACTIVE.value
