from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from timeclock.schemas.common import CamelModel

PunchTypeLiteral = Literal["in", "out", "break", "endBreak"]


class DeviceClockRequest(CamelModel):
    """Body posted by a registered kiosk; the employee is identified by PIN."""
    pin: Annotated[str, StringConstraints(min_length=1)]
    image: Optional[str] = None
    lat: Optional[str] = None
    lng: Optional[str] = None


class EmployeeClockRequest(CamelModel):
    type: PunchTypeLiteral
    image_url: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    lat: Optional[str] = None
    lng: Optional[str] = None


class TimesheetEditRequest(BaseModel):
    """One day of punches edited from the dashboard."""
    model_config = ConfigDict(populate_by_name=True)

    date: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    clock_in: Optional[str] = Field(None, alias="in")
    clock_out: Optional[str] = Field(None, alias="out")
    break_in: Optional[str] = Field(None, alias="break")
    break_out: Optional[str] = Field(None, alias="endBreak")

    def punches(self) -> dict:
        """Punch type -> submitted time, for the fields that were sent."""
        values = {
            "in": self.clock_in,
            "break": self.break_in,
            "endBreak": self.break_out,
            "out": self.clock_out,
        }
        return {k: v.strip() for k, v in values.items() if v is not None}


class PinLoginRequest(BaseModel):
    pin: Annotated[str, StringConstraints(pattern=r"^\d{4,}$", max_length=10)]


class CleanupRequest(CamelModel):
    before_date: str
