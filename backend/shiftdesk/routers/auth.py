from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from shiftdesk.database import get_db
from shiftdesk.auth import create_token, get_current_user, get_membership
from shiftdesk.models.user import User
from shiftdesk.schemas.auth import (
    MeResponse,
    PasswordUpdateRequest,
    SignupRequest,
    TokenRequest,
    TokenResponse,
)
from shiftdesk.services.account_service import account_service

router = APIRouter()


async def _token_response(user: User, db: AsyncSession) -> TokenResponse:
    membership = await get_membership(db, user.id)
    return TokenResponse(
        access_token=create_token(user),
        user_id=user.id,
        email=user.email,
        display_name=user.display_name,
        hospital_id=membership.hospital_id if membership else None,
        role=membership.role if membership else None,
    )


@router.post("/signup", response_model=TokenResponse, status_code=201)
async def signup(data: SignupRequest, db: AsyncSession = Depends(get_db, scope="function")):
    user = await account_service.register_doctor(
        email=data.email,
        password=data.password,
        full_name=data.full_name,
        hospital_id=data.hospital_id,
        db=db,
    )
    return await _token_response(user, db)


@router.post("/token", response_model=TokenResponse)
async def get_token(data: TokenRequest, db: AsyncSession = Depends(get_db, scope="function")):
    """Exchange email and password for a bearer token."""
    user = await account_service.authenticate(data.email, data.password, db)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return await _token_response(user, db)


@router.get("/me", response_model=MeResponse)
async def me(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db, scope="function")):
    membership = await get_membership(db, user.id)
    return MeResponse(
        user_id=user.id,
        email=user.email,
        full_name=user.full_name,
        hospital_id=membership.hospital_id if membership else None,
        hospital_name=membership.hospital.name if membership and membership.hospital else None,
        role=membership.role if membership else None,
    )


@router.post("/password")
async def update_password(
    data: PasswordUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db, scope="function"),
):
    if data.new_password != data.confirm_password:
        raise HTTPException(status_code=422, detail="Passwords do not match")
    await account_service.update_password(user, data.new_password, db)
    return {"updated": True}
