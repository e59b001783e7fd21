from typing import Annotated, List, Literal, Optional
from datetime import datetime

from pydantic import Field, StringConstraints, field_validator

from timeclock.schemas.common import CamelModel, TrimmedStr, string_list

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
Username = Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=1, max_length=100)]
Password = Annotated[str, StringConstraints(min_length=6, max_length=128)]
RightLiteral = Literal["add_staff", "edit_staff", "delete_staff", "get_timesheet"]


class UserCreate(CamelModel):
    name: Name
    username: Username
    password: Password
    role: Literal["admin", "user"] = "user"
    location: List[TrimmedStr] = Field(default_factory=list)
    rights: List[RightLiteral] = Field(default_factory=list)


class UserAdminUpdate(CamelModel):
    name: Optional[Name] = None
    username: Optional[Username] = None
    password: Optional[Password] = None
    role: Optional[Literal["admin", "user"]] = None
    location: Optional[List[TrimmedStr]] = None
    rights: Optional[List[RightLiteral]] = None


class UserSelfUpdate(CamelModel):
    username: Username
    password: Optional[Annotated[str, StringConstraints(min_length=6)]] = None


class LoginRequest(CamelModel):
    username: Username
    password: Annotated[str, StringConstraints(min_length=1)]


class AdminCreateRequest(CamelModel):
    username: Username
    password: Password


class UserResponse(CamelModel):
    id: str
    name: str = ""
    username: str
    role: str
    location: List[str] = Field(default_factory=list)
    rights: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("location", mode="before")
    @classmethod
    def legacy_location(cls, value):
        return string_list(value)

    @field_validator("name", mode="before")
    @classmethod
    def none_as_empty(cls, value):
        return value or ""
