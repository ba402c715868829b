"""
Auth module: password hashing, JWT creation/validation and the FastAPI
dependencies that resolve a request to a user and its hospital membership.

Every scheduling route depends on ``get_principal``: the caller's user row
plus the hospital membership that scopes all of their reads and writes.
"""

import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass
from typing import Optional
from jose import jwt, JWTError
from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from shiftdesk.config import get_settings
from shiftdesk.database import get_db
from shiftdesk.models.user import User
from shiftdesk.models.hospital import HospitalMembership, MANAGER_ROLES

ALGORITHM = "HS256"
PASSWORD_ITERATIONS = 260_000


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PASSWORD_ITERATIONS)
    return f"pbkdf2_sha256${PASSWORD_ITERATIONS}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        scheme, iterations, salt, expected = password_hash.split("$")
    except ValueError:
        return False
    if scheme != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


@dataclass
class UserPrincipal:
    """Resolved identity attached to each request."""
    user_id: str
    email: str
    display_name: str
    hospital_id: str
    hospital_name: str
    role: str                     # "admin" | "doctor" | "coordinator"
    membership_id: int

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES


def create_token(user: User) -> str:
    """Create a signed JWT for the given User model instance."""
    settings = get_settings()
    payload = {
        "sub": user.id,
        "email": user.email,
        "exp": int(time.time()) + settings.token_expire_seconds,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[str]:
    """Decode and validate a JWT. Returns the user id, or None if invalid/expired."""
    try:
        settings = get_settings()
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[ALGORITHM])
        return payload.get("sub")
    except JWTError:
        return None


def _extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:]
    # EventSource cannot send headers
    return request.query_params.get("access_token")


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db, scope="function")) -> User:
    token = _extract_token(request)
    user_id = decode_token(token) if token else None
    if not user_id:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User no longer exists")
    return user


async def get_membership(db: AsyncSession, user_id: str) -> Optional[HospitalMembership]:
    result = await db.execute(
        select(HospitalMembership)
        .where(HospitalMembership.user_id == user_id)
        .order_by(HospitalMembership.created_at, HospitalMembership.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_principal(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
) -> UserPrincipal:
    membership = await get_membership(db, user.id)
    if not membership:
        raise HTTPException(
            status_code=403,
            detail="No hospital linked to this user",
        )
    return UserPrincipal(
        user_id=user.id,
        email=user.email,
        display_name=user.display_name,
        hospital_id=membership.hospital_id,
        hospital_name=membership.hospital.name if membership.hospital else "Hospital",
        role=membership.role,
        membership_id=membership.id,
    )


async def require_manager(principal: UserPrincipal = Depends(get_principal)) -> UserPrincipal:
    if not principal.is_manager:
        raise HTTPException(status_code=403, detail="Only administrators and coordinators may do this")
    return principal


async def require_admin(principal: UserPrincipal = Depends(get_principal)) -> UserPrincipal:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Only administrators may do this")
    return principal
