from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import validates
from datetime import datetime
from timeclock.core.database import Base, new_object_id


class Employee(Base):
    __tablename__ = "employees"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String(200), nullable=False)
    # Punches reference employees by pin, not by id
    pin = Column(String(20), nullable=False, index=True)
    role = Column(JSON, default=list, nullable=False)
    employer = Column(JSON, default=list, nullable=False)
    location = Column(JSON, default=list, nullable=False)
    hire = Column(String(200), default="")
    site = Column(String(200), default="", index=True)
    email = Column(String(255), default="")
    phone = Column(String(50), default="")
    dob = Column(String(50), default="")
    comment = Column(String(1000), default="")
    img = Column(String(500), default="")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @validates("name", "pin")
    def validate_required(self, key, value):
        value = (value or "").strip()
        if not value:
            raise ValueError(f"{key} is required")
        return value

    @validates("role", "employer", "location")
    def validate_list(self, key, value):
        return as_list(value)

    @property
    def display_role(self) -> str:
        """First location, else first employer, else first role."""
        for values in (self.location, self.employer, self.role):
            items = as_list(values)
            if items:
                return items[0]
        return ""


def as_list(value) -> list:
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    if value is not None and str(value).strip():
        return [str(value).strip()]
    return []
