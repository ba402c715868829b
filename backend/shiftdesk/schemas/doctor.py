from pydantic import BaseModel
from typing import Optional
from shiftdesk.schemas.schedule import ShiftResponse
from shiftdesk.schemas.availability import AvailabilityDayResponse
from shiftdesk.schemas.shift_swap import SwapResponse


class DoctorCalendarResponse(BaseModel):
    year: int
    month: int
    weeks: list[list[Optional[int]]]
    shifts: list[ShiftResponse]
    availability: list[AvailabilityDayResponse]
    open_offers: list[SwapResponse]
