from pydantic import BaseModel
from datetime import date, datetime
from typing import Optional


class SwapCreate(BaseModel):
    from_shift_id: int
    target_user_id: Optional[str] = None  # None = open to anyone
    reason: Optional[str] = None


class SwapApproveRequest(BaseModel):
    target_user_id: Optional[str] = None


class SwapRetargetRequest(BaseModel):
    target_user_id: Optional[str] = None


class SwapShiftInfo(BaseModel):
    id: int
    date: date
    period: str
    doctor_user_id: str
    doctor_name: Optional[str] = None


class SwapResponse(BaseModel):
    id: int
    hospital_id: str
    requester_user_id: str
    requester_name: Optional[str] = None
    from_shift_id: Optional[int] = None
    shift: Optional[SwapShiftInfo] = None
    target_user_id: Optional[str] = None
    target_name: Optional[str] = None
    reason: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None
    handled_at: Optional[datetime] = None
    handled_by_user_id: Optional[str] = None


class SwapListResponse(BaseModel):
    requests: list[SwapResponse]
    total: int
