from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Literal, Optional

Role = Literal["admin", "doctor", "coordinator"]


class MemberCreate(BaseModel):
    email: str
    role: Role = "doctor"
    full_name: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class MemberRoleUpdate(BaseModel):
    role: Role


class MemberResponse(BaseModel):
    id: int
    user_id: str
    email: str
    full_name: Optional[str] = None
    role: str
    created_at: Optional[datetime] = None


class RosterListResponse(BaseModel):
    hospital_id: str
    hospital_name: str
    members: list[MemberResponse]
    total: int
