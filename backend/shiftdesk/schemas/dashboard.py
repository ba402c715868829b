from pydantic import BaseModel
from shiftdesk.schemas.availability import AvailabilityEntry
from shiftdesk.schemas.shift_swap import SwapResponse


class DashboardCounts(BaseModel):
    members: int
    shifts_this_month: int
    pending_swaps: int


class DashboardResponse(BaseModel):
    hospital_id: str
    hospital_name: str
    display_name: str
    counts: DashboardCounts
    recent_availability: list[AvailabilityEntry]
    pending_swaps: list[SwapResponse]
