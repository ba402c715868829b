from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Annotated, Optional
from shiftdesk.models.availability import AvailabilityPeriod


class AvailabilityUpdate(BaseModel):
    periods: list[AvailabilityPeriod] = []


class AvailabilityDayResponse(BaseModel):
    date: date
    periods: list[str]


class BulkAvailabilityRequest(BaseModel):
    year: int = Field(ge=1900, le=9999)
    month: int = Field(ge=1, le=12)
    weekdays: list[Annotated[int, Field(ge=0, le=6)]] = Field(min_length=1, description="0 = Sunday ... 6 = Saturday")
    periods: list[AvailabilityPeriod] = []

    def weekday_set(self) -> set[int]:
        return set(self.weekdays)


class BulkAvailabilityResponse(BaseModel):
    dates: list[date]
    entries: int


class AvailabilityEntry(BaseModel):
    id: int
    user_id: str
    user_name: Optional[str] = None
    date: date
    period: str
    created_at: Optional[datetime] = None


class AvailabilityListResponse(BaseModel):
    entries: list[AvailabilityEntry]
    total: int
