from typing import Optional
from datetime import datetime

from pydantic import AliasChoices, Field

from timeclock.schemas.common import CamelModel


class DeviceRegisterRequest(CamelModel):
    """Admin credentials are asked again on the terminal being registered."""
    # Older kiosk builds post the username as "email"
    username: Optional[str] = Field(None, validation_alias=AliasChoices("username", "email"))
    password: Optional[str] = None
    location_name: Optional[str] = None
    location_address: Optional[str] = None


class DeviceManageRequest(CamelModel):
    device_id: Optional[str] = None
    action: Optional[str] = None
    reason: Optional[str] = None


class UserRef(CamelModel):
    id: str
    name: str = ""
    username: str = ""


class DeviceResponse(CamelModel):
    id: str
    device_id: str
    location_name: str
    location_address: str = ""
    status: str
    registered_by: Optional[UserRef] = None
    registered_at: Optional[datetime] = None
    last_activity: Optional[datetime] = None
    revocation_reason: Optional[str] = None
    revoked_at: Optional[datetime] = None
    revoked_by: Optional[UserRef] = None
