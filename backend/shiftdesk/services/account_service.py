import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from shiftdesk.auth import hash_password, verify_password
from shiftdesk.exceptions import ConflictError, NotFoundError
from shiftdesk.models.user import User
from shiftdesk.models.hospital import Hospital, HospitalMembership
from shiftdesk.services.realtime_service import notify

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "This email is already registered"


class AccountService:
    async def register_doctor(
        self, email: str, password: str, full_name: str, hospital_id: str, db: AsyncSession
    ) -> User:
        """Self-registration always creates a doctor; admins are promoted from the roster screen."""
        hospital = await db.get(Hospital, hospital_id)
        if not hospital:
            raise NotFoundError(f"Hospital {hospital_id} not found")

        existing = await db.scalar(select(User.id).where(User.email == email))
        if existing:
            raise ConflictError(EMAIL_TAKEN)

        user = User(email=email, full_name=full_name, password_hash=hash_password(password))
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            raise ConflictError(EMAIL_TAKEN) from e

        membership = HospitalMembership(hospital_id=hospital.id, user_id=user.id, role="doctor")
        db.add(membership)
        await db.flush()

        logger.info("Registered %s as doctor in hospital %s", email, hospital.id)
        notify(db, "hospital_users", "INSERT", hospital.id, membership.id)
        return user

    async def authenticate(self, email: str, password: str, db: AsyncSession):
        user = await db.scalar(select(User).where(User.email == email.strip().lower()))
        if not user or not verify_password(password, user.password_hash):
            logger.warning("Failed sign-in for %s", email)
            return None
        return user

    async def update_password(self, user: User, new_password: str, db: AsyncSession) -> None:
        user.password_hash = hash_password(new_password)
        await db.flush()
        logger.info("Password updated for %s", user.email)


account_service = AccountService()
