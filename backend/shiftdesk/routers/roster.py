from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from shiftdesk.database import get_db
from shiftdesk.auth import UserPrincipal, get_principal, require_admin
from shiftdesk.schemas.roster import MemberCreate, MemberResponse, MemberRoleUpdate, RosterListResponse
from shiftdesk.services.roster_service import member_to_response, roster_service

router = APIRouter()


@router.get("", response_model=RosterListResponse)
async def list_roster(
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    members = await roster_service.list_members(principal.hospital_id, db)
    return RosterListResponse(
        hospital_id=principal.hospital_id,
        hospital_name=principal.hospital_name,
        members=[member_to_response(m) for m in members],
        total=len(members),
    )


@router.post("", response_model=MemberResponse, status_code=201)
async def add_member(
    data: MemberCreate,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_admin),
):
    membership = await roster_service.add_member(principal, data.email, data.role, data.full_name, db)
    return member_to_response(membership)


@router.patch("/{member_id}", response_model=MemberResponse)
async def change_role(
    member_id: int,
    data: MemberRoleUpdate,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_admin),
):
    membership = await roster_service.change_role(principal, member_id, data.role, db)
    return member_to_response(membership)


@router.delete("/{member_id}")
async def remove_member(
    member_id: int,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_admin),
):
    await roster_service.remove_member(principal, member_id, db)
    return {"deleted": True, "member_id": member_id}
