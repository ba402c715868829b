from shiftdesk.models.user import User
from shiftdesk.models.hospital import Hospital, HospitalMembership
from shiftdesk.models.shift import Shift
from shiftdesk.models.availability import Availability
from shiftdesk.models.shift_swap import ShiftSwapRequest

__all__ = ["User", "Hospital", "HospitalMembership", "Shift", "Availability", "ShiftSwapRequest"]
