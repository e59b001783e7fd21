from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.orm import validates
from datetime import datetime
from timeclock.core.database import Base, new_object_id
from timeclock.core.roles import UserRole, USER_ROLES, RIGHTS


class User(Base):
    __tablename__ = "users"

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String(200), default="", nullable=False)
    username = Column(String(100), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), default=UserRole.USER.value, nullable=False)
    location = Column(JSON, default=list, nullable=False)
    rights = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @validates("username")
    def validate_username(self, key, value):
        value = (value or "").strip().lower()
        if not value:
            raise ValueError("username is required")
        return value

    @validates("role")
    def validate_role(self, key, value):
        if value not in USER_ROLES:
            raise ValueError(f"Invalid role: {value}")
        return value

    @validates("rights")
    def validate_rights(self, key, value):
        value = list(value or [])
        invalid = [r for r in value if r not in RIGHTS]
        if invalid:
            raise ValueError(f"Invalid rights: {', '.join(map(str, invalid))}")
        return value

    @property
    def locations(self) -> list:
        return normalize_locations(self.location)


def normalize_locations(value) -> list:
    """Legacy rows stored a single location string; always hand back a list."""
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    if value:
        return [str(value).strip()]
    return []
