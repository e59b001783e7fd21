from typing import Annotated, Literal, Optional
from datetime import datetime

from pydantic import Field, StringConstraints

from timeclock.schemas.common import CamelModel

CategoryName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
Latitude = Annotated[float, Field(ge=-90, le=90)]
Longitude = Annotated[float, Field(ge=-180, le=180)]
Radius = Annotated[float, Field(ge=10, le=5000)]


class CategoryCreate(CamelModel):
    name: CategoryName
    type: Literal["role", "employer", "location"]
    lat: Optional[Latitude] = None
    lng: Optional[Longitude] = None
    radius: Optional[Radius] = None
    geofence_mode: Optional[Literal["hard", "soft"]] = None
    # Google/Apple maps link, used to fill lat/lng when they are not given
    map_link: Optional[str] = None


class CategoryUpdate(CamelModel):
    name: Optional[CategoryName] = None
    lat: Optional[Latitude] = None
    lng: Optional[Longitude] = None
    radius: Optional[Radius] = None
    geofence_mode: Optional[Literal["hard", "soft"]] = None
    map_link: Optional[str] = None


class CategoryResponse(CamelModel):
    id: str
    name: str
    type: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    radius: Optional[float] = None
    geofence_mode: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
