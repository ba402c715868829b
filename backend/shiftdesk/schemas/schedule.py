from pydantic import BaseModel, Field, model_validator
from datetime import date
from typing import Optional


class DoctorOption(BaseModel):
    id: str
    name: str
    email: Optional[str] = None


class ShiftResponse(BaseModel):
    id: int
    date: date
    period: str
    doctor_user_id: str
    doctor_name: Optional[str] = None


class PeriodCount(BaseModel):
    period: str
    count: int
    capacity: int
    status: str  # "empty" | "partial" | "full"


class DaySummary(BaseModel):
    date: date
    shifts: list[ShiftResponse]
    counts: list[PeriodCount]


class MonthScheduleResponse(BaseModel):
    hospital_id: str
    hospital_name: str
    year: int
    month: int
    weeks: list[list[Optional[int]]]
    days: list[DaySummary]


class DaySlot(BaseModel):
    period: str
    label: str
    short: str
    capacity: int
    doctors: list[DoctorOption]


class DayScheduleResponse(BaseModel):
    date: date
    hospital_name: str
    slots: list[DaySlot]
    doctors: list[DoctorOption]
    # user_id -> periods the doctor announced for this day
    availability: dict[str, list[str]]


class DayScheduleUpdate(BaseModel):
    morning: list[str] = []
    afternoon: list[str] = []
    night: list[str] = []
    full_day: list[str] = []

    def assignments(self) -> dict[str, list[str]]:
        # blank selections are unfilled form rows
        return {
            period: [doctor_id for doctor_id in getattr(self, period) if doctor_id]
            for period in ("morning", "afternoon", "night", "full_day")
        }


class DayCopyRequest(BaseModel):
    target_date: date


class ReplaceResult(BaseModel):
    day: Optional[date] = None
    deleted: int
    inserted: int


class MonthCopyRequest(BaseModel):
    source_year: int = Field(ge=1900, le=9999)
    source_month: int = Field(ge=1, le=12)
    target_year: int = Field(ge=1900, le=9999)
    target_month: int = Field(ge=1, le=12)

    @model_validator(mode="after")
    def different_months(self):
        if (self.source_year, self.source_month) == (self.target_year, self.target_month):
            raise ValueError("target month is the same as the source month")
        return self


class MonthCopyResponse(BaseModel):
    target_year: int
    target_month: int
    deleted: int
    copied: int
    skipped: int
