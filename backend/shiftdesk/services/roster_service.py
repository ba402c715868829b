import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from shiftdesk.auth import UserPrincipal
from shiftdesk.exceptions import ConflictError, NotFoundError
from shiftdesk.models.user import User
from shiftdesk.models.hospital import HospitalMembership
from shiftdesk.schemas.roster import MemberResponse
from shiftdesk.schemas.schedule import DoctorOption
from shiftdesk.services.realtime_service import notify

logger = logging.getLogger(__name__)


def member_to_response(m: HospitalMembership) -> MemberResponse:
    return MemberResponse(
        id=m.id,
        user_id=m.user_id,
        email=m.user.email if m.user else "",
        full_name=m.user.full_name if m.user else None,
        role=m.role,
        created_at=m.created_at,
    )


def _sort_name(name: str) -> str:
    return name.casefold()


class RosterService:
    async def list_members(self, hospital_id: str, db: AsyncSession) -> list[HospitalMembership]:
        result = await db.execute(
            select(HospitalMembership)
            .join(User, User.id == HospitalMembership.user_id)
            .where(HospitalMembership.hospital_id == hospital_id)
            .order_by(HospitalMembership.role, func.lower(func.coalesce(User.full_name, User.email)))
        )
        return list(result.scalars().all())

    async def doctor_options(self, hospital_id: str, db: AsyncSession) -> list[DoctorOption]:
        """Everyone on the roster, sorted by display name."""
        members = await self.list_members(hospital_id, db)
        options = [
            DoctorOption(id=m.user_id, name=m.user.display_name, email=m.user.email)
            for m in members
            if m.user
        ]
        return sorted(options, key=lambda o: _sort_name(o.name))

    async def member_ids(self, hospital_id: str, db: AsyncSession) -> set[str]:
        result = await db.execute(
            select(HospitalMembership.user_id).where(HospitalMembership.hospital_id == hospital_id)
        )
        return set(result.scalars().all())

    async def is_member(self, hospital_id: str, user_id: str, db: AsyncSession) -> bool:
        found = await db.scalar(
            select(HospitalMembership.id).where(
                HospitalMembership.hospital_id == hospital_id,
                HospitalMembership.user_id == user_id,
            )
        )
        return found is not None

    async def add_member(
        self,
        principal: UserPrincipal,
        email: str,
        role: str,
        full_name: Optional[str],
        db: AsyncSession,
    ) -> HospitalMembership:
        user = await db.scalar(select(User).where(User.email == email))
        if not user:
            raise NotFoundError("No registered user with this email. Ask them to sign up first.")

        if full_name and full_name.strip():
            user.full_name = full_name.strip()

        if await self.is_member(principal.hospital_id, user.id, db):
            raise ConflictError("This user is already on the hospital roster")

        membership = HospitalMembership(hospital_id=principal.hospital_id, user_id=user.id, role=role)
        db.add(membership)
        try:
            await db.flush()
        except IntegrityError as e:
            raise ConflictError("This user is already on the hospital roster") from e

        logger.info("Added %s to hospital %s as %s", user.email, principal.hospital_id, role)
        notify(db, "hospital_users", "INSERT", principal.hospital_id, membership.id)
        return await self.get_member(principal.hospital_id, membership.id, db)

    async def get_member(self, hospital_id: str, member_id: int, db: AsyncSession) -> HospitalMembership:
        result = await db.execute(
            select(HospitalMembership)
            .where(HospitalMembership.id == member_id, HospitalMembership.hospital_id == hospital_id)
            .execution_options(populate_existing=True)
        )
        membership = result.scalar_one_or_none()
        if not membership:
            raise NotFoundError(f"Roster entry {member_id} not found")
        return membership

    async def _ensure_admin_remains(self, membership: HospitalMembership, db: AsyncSession) -> None:
        if membership.role != "admin":
            return
        admins = await db.scalar(
            select(func.count(HospitalMembership.id)).where(
                HospitalMembership.hospital_id == membership.hospital_id,
                HospitalMembership.role == "admin",
            )
        )
        if admins <= 1:
            raise ConflictError("A hospital must keep at least one administrator")

    async def change_role(
        self, principal: UserPrincipal, member_id: int, role: str, db: AsyncSession
    ) -> HospitalMembership:
        membership = await self.get_member(principal.hospital_id, member_id, db)
        if role != "admin":
            await self._ensure_admin_remains(membership, db)
        membership.role = role
        await db.flush()
        logger.info("Roster entry %s in hospital %s is now %s", member_id, principal.hospital_id, role)
        notify(db, "hospital_users", "UPDATE", principal.hospital_id, member_id)
        return membership

    async def remove_member(self, principal: UserPrincipal, member_id: int, db: AsyncSession) -> None:
        membership = await self.get_member(principal.hospital_id, member_id, db)
        await self._ensure_admin_remains(membership, db)
        await db.delete(membership)
        await db.flush()
        logger.info("Removed roster entry %s from hospital %s", member_id, principal.hospital_id)
        notify(db, "hospital_users", "DELETE", principal.hospital_id, member_id)


roster_service = RosterService()
