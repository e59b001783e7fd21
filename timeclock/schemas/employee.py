from typing import Annotated, List, Optional, Union
from datetime import datetime

from pydantic import Field, StringConstraints, field_validator

from timeclock.schemas.common import CamelModel, TrimmedStr, string_list

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
Pin = Annotated[str, StringConstraints(strip_whitespace=True, min_length=4, max_length=20)]


class EmployeeCreate(CamelModel):
    name: Name
    pin: Pin
    role: List[TrimmedStr] = Field(default_factory=list)
    employer: List[TrimmedStr] = Field(default_factory=list)
    location: List[TrimmedStr] = Field(default_factory=list)
    email: TrimmedStr = ""
    phone: TrimmedStr = ""
    dob: TrimmedStr = ""
    comment: TrimmedStr = ""
    img: str = ""


class EmployeeUpdate(CamelModel):
    name: Optional[Name] = None
    pin: Optional[Pin] = None
    role: Optional[Union[str, List[str]]] = None
    employer: Optional[Union[str, List[str]]] = None
    location: Optional[Union[str, List[str]]] = None
    email: Optional[TrimmedStr] = None
    phone: Optional[TrimmedStr] = None
    dob: Optional[TrimmedStr] = None
    comment: Optional[TrimmedStr] = None
    img: Optional[TrimmedStr] = None

    @field_validator("role", "employer", "location")
    @classmethod
    def normalise_list(cls, value):
        if value is None:
            return None
        return string_list(value)


class EmployeeResponse(CamelModel):
    id: str
    name: str = ""
    pin: str = ""
    role: List[str] = Field(default_factory=list)
    employer: List[str] = Field(default_factory=list)
    location: List[str] = Field(default_factory=list)
    hire: str = ""
    site: str = ""
    email: str = ""
    phone: str = ""
    dob: str = ""
    comment: str = ""
    img: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("role", "employer", "location", mode="before")
    @classmethod
    def legacy_list(cls, value):
        return string_list(value)

    @field_validator("name", "pin", "hire", "site", "email", "phone", "dob", "comment", "img", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value or ""
