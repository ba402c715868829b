from pydantic import BaseModel, Field, field_validator
from typing import Optional


class SignupRequest(BaseModel):
    email: str
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=1)
    hospital_id: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("invalid email address")
        return v

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class TokenRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    email: str
    display_name: str
    hospital_id: Optional[str] = None
    role: Optional[str] = None


class MeResponse(BaseModel):
    user_id: str
    email: str
    full_name: Optional[str] = None
    hospital_id: Optional[str] = None
    hospital_name: Optional[str] = None
    role: Optional[str] = None


class PasswordUpdateRequest(BaseModel):
    new_password: str = Field(min_length=6)
    confirm_password: str
