from sqlalchemy import Column, String, Float, DateTime, UniqueConstraint
from sqlalchemy.orm import validates
from datetime import datetime
from timeclock.core.database import Base, new_object_id
from timeclock.core.roles import CATEGORY_TYPES, GEOFENCE_MODES, CategoryType

MIN_RADIUS = 10
MAX_RADIUS = 5000


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("type", "name", name="uq_categories_type_name"),
    )

    id = Column(String(24), primary_key=True, default=new_object_id)
    name = Column(String(200), nullable=False)
    type = Column(String(20), nullable=False, index=True)
    # Geofence, only meaningful for location categories
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    radius = Column(Float, nullable=True)
    geofence_mode = Column(String(10), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @validates("name")
    def validate_name(self, key, value):
        value = (value or "").strip()
        if not value:
            raise ValueError("name is required")
        return value

    @validates("type")
    def validate_type(self, key, value):
        if value not in CATEGORY_TYPES:
            raise ValueError(f"Invalid category type: {value}")
        return value

    @validates("lat")
    def validate_lat(self, key, value):
        if value is not None and not -90 <= value <= 90:
            raise ValueError("lat must be between -90 and 90")
        return value

    @validates("lng")
    def validate_lng(self, key, value):
        if value is not None and not -180 <= value <= 180:
            raise ValueError("lng must be between -180 and 180")
        return value

    @validates("radius")
    def validate_radius(self, key, value):
        if value is not None and not MIN_RADIUS <= value <= MAX_RADIUS:
            raise ValueError(f"radius must be between {MIN_RADIUS} and {MAX_RADIUS}")
        return value

    @validates("geofence_mode")
    def validate_geofence_mode(self, key, value):
        if value is not None and value not in GEOFENCE_MODES:
            raise ValueError(f"Invalid geofence mode: {value}")
        return value

    @property
    def has_geofence(self) -> bool:
        return (
            self.type == CategoryType.LOCATION.value
            and self.lat is not None
            and self.lng is not None
            and self.radius is not None
        )
