"""
Shift-swap workflow.

A request starts ``pending`` and ends in exactly one of ``approved``,
``rejected`` or ``cancelled``. Every action below is only legal from
``pending``; the terminal states accept nothing, not even a change of target.

Approval is the only transition that touches the schedule: it moves the
source shift to the target doctor and drops the target's availability for
that date, all inside the request's transaction.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from sqlalchemy.exc import IntegrityError
from shiftdesk.auth import UserPrincipal
from shiftdesk.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from shiftdesk.models.shift import Shift
from shiftdesk.models.shift_swap import ShiftSwapRequest, SwapStatus
from shiftdesk.schemas.shift_swap import SwapResponse, SwapShiftInfo
from shiftdesk.services.availability_service import availability_service
from shiftdesk.services.realtime_service import notify
from shiftdesk.services.roster_service import roster_service
from shiftdesk.services.schedule_service import DUPLICATE_ASSIGNMENT

logger = logging.getLogger(__name__)

STATUS_FILTERS = ("all",) + tuple(s.value for s in SwapStatus)


def swap_to_response(r: ShiftSwapRequest) -> SwapResponse:
    shift = None
    if r.shift is not None:
        shift = SwapShiftInfo(
            id=r.shift.id,
            date=r.shift.date,
            period=r.shift.period,
            doctor_user_id=r.shift.doctor_user_id,
            doctor_name=r.shift.doctor.display_name if r.shift.doctor else None,
        )
    return SwapResponse(
        id=r.id,
        hospital_id=r.hospital_id,
        requester_user_id=r.requester_user_id,
        requester_name=r.requester.display_name if r.requester else None,
        from_shift_id=r.from_shift_id,
        shift=shift,
        target_user_id=r.target_user_id,
        target_name=r.target.display_name if r.target else None,
        reason=r.reason,
        status=r.status,
        created_at=r.created_at,
        handled_at=r.handled_at,
        handled_by_user_id=r.handled_by_user_id,
    )


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SwapService:
    async def get(self, hospital_id: str, request_id: int, db: AsyncSession) -> ShiftSwapRequest:
        result = await db.execute(
            select(ShiftSwapRequest)
            .where(ShiftSwapRequest.id == request_id, ShiftSwapRequest.hospital_id == hospital_id)
            .execution_options(populate_existing=True)
        )
        swap = result.scalar_one_or_none()
        if not swap:
            raise NotFoundError(f"Swap request {request_id} not found")
        return swap

    async def get_visible(self, principal: UserPrincipal, request_id: int, db: AsyncSession) -> ShiftSwapRequest:
        """Managers see every request; doctors see their own, those aimed at them, and open ones."""
        swap = await self.get(principal.hospital_id, request_id, db)
        if principal.is_manager:
            return swap
        if principal.user_id in (swap.requester_user_id, swap.target_user_id) or swap.target_user_id is None:
            return swap
        raise PermissionDeniedError("You cannot view this swap request")

    async def _reload(self, swap: ShiftSwapRequest, db: AsyncSession) -> ShiftSwapRequest:
        """Pick up server defaults and relationships changed by the last flush."""
        await db.refresh(swap)
        if swap.shift is not None:
            await db.refresh(swap.shift, attribute_names=["doctor"])
        return swap

    def _ensure_pending(self, swap: ShiftSwapRequest, action: str) -> None:
        if not swap.is_pending:
            raise InvalidTransitionError(swap.id, swap.status, action)

    async def _check_target(self, principal: UserPrincipal, target_user_id: str, requester_user_id: str, db: AsyncSession) -> None:
        if target_user_id == requester_user_id:
            raise ValidationFailedError("The requester cannot take over their own shift")
        if not await roster_service.is_member(principal.hospital_id, target_user_id, db):
            raise ValidationFailedError("Target doctor is not on the hospital roster")

    async def create(
        self,
        principal: UserPrincipal,
        from_shift_id: int,
        target_user_id: Optional[str],
        reason: Optional[str],
        db: AsyncSession,
    ) -> ShiftSwapRequest:
        shift = await db.scalar(
            select(Shift).where(Shift.id == from_shift_id, Shift.hospital_id == principal.hospital_id)
        )
        if not shift:
            raise NotFoundError(f"Shift {from_shift_id} not found")
        if shift.doctor_user_id != principal.user_id:
            raise PermissionDeniedError("You can only offer your own shifts")

        if target_user_id:
            await self._check_target(principal, target_user_id, principal.user_id, db)

        already = await db.scalar(
            select(ShiftSwapRequest.id).where(
                ShiftSwapRequest.from_shift_id == from_shift_id,
                ShiftSwapRequest.status == SwapStatus.PENDING.value,
            )
        )
        if already:
            raise ConflictError("There is already a pending swap request for this shift")

        swap = ShiftSwapRequest(
            hospital_id=principal.hospital_id,
            requester_user_id=principal.user_id,
            from_shift_id=from_shift_id,
            target_user_id=target_user_id or None,
            reason=(reason or "").strip() or None,
            status=SwapStatus.PENDING.value,
        )
        db.add(swap)
        await db.flush()

        logger.info(
            "Swap request %s created by %s for shift %s (target: %s)",
            swap.id, principal.user_id, from_shift_id, target_user_id or "anyone",
        )
        notify(db, "shift_swap_requests", "INSERT", principal.hospital_id, swap.id)
        return await self._reload(swap, db)

    async def accept(self, principal: UserPrincipal, request_id: int, db: AsyncSession) -> ShiftSwapRequest:
        """
        Self-service accept: the caller registers as the doctor taking the
        shift. Status and schedule stay as they are until a manager approves.
        """
        swap = await self.get(principal.hospital_id, request_id, db)
        self._ensure_pending(swap, "accept")
        if swap.requester_user_id == principal.user_id:
            raise PermissionDeniedError("You cannot accept your own swap request")
        if swap.target_user_id not in (None, principal.user_id):
            raise PermissionDeniedError("This swap request is reserved for another doctor")

        swap.target_user_id = principal.user_id
        await db.flush()
        logger.info("Doctor %s volunteered for swap request %s", principal.user_id, swap.id)
        notify(db, "shift_swap_requests", "UPDATE", principal.hospital_id, swap.id)
        return await self._reload(swap, db)

    async def decline(self, principal: UserPrincipal, request_id: int, db: AsyncSession) -> ShiftSwapRequest:
        swap = await self.get(principal.hospital_id, request_id, db)
        self._ensure_pending(swap, "decline")
        if swap.target_user_id != principal.user_id:
            raise PermissionDeniedError("Only the doctor this request is addressed to can decline it")
        return await self._close(principal, swap, SwapStatus.REJECTED, db)

    async def cancel(self, principal: UserPrincipal, request_id: int, db: AsyncSession) -> ShiftSwapRequest:
        swap = await self.get(principal.hospital_id, request_id, db)
        self._ensure_pending(swap, "cancel")
        if swap.requester_user_id != principal.user_id:
            raise PermissionDeniedError("Only the requester can cancel a swap request")
        return await self._close(principal, swap, SwapStatus.CANCELLED, db)

    async def reject(self, principal: UserPrincipal, request_id: int, db: AsyncSession) -> ShiftSwapRequest:
        swap = await self.get(principal.hospital_id, request_id, db)
        self._ensure_pending(swap, "reject")
        return await self._close(principal, swap, SwapStatus.REJECTED, db)

    async def retarget(
        self, principal: UserPrincipal, request_id: int, target_user_id: Optional[str], db: AsyncSession
    ) -> ShiftSwapRequest:
        swap = await self.get(principal.hospital_id, request_id, db)
        self._ensure_pending(swap, "change target")
        if target_user_id:
            await self._check_target(principal, target_user_id, swap.requester_user_id, db)
        swap.target_user_id = target_user_id or None
        await db.flush()
        logger.info("Swap request %s retargeted to %s", swap.id, target_user_id or "anyone")
        notify(db, "shift_swap_requests", "UPDATE", principal.hospital_id, swap.id)
        return await self._reload(swap, db)

    async def approve(
        self, principal: UserPrincipal, request_id: int, target_user_id: Optional[str], db: AsyncSession
    ) -> ShiftSwapRequest:
        swap = await self.get(principal.hospital_id, request_id, db)
        self._ensure_pending(swap, "approve")

        final_target = target_user_id or swap.target_user_id
        if not final_target:
            raise ValidationFailedError("Choose the doctor who takes over the shift")
        await self._check_target(principal, final_target, swap.requester_user_id, db)

        shift = await db.get(Shift, swap.from_shift_id) if swap.from_shift_id else None
        if shift is None or shift.hospital_id != principal.hospital_id:
            raise ConflictError("The shift of this request no longer exists")

        swap.status = SwapStatus.APPROVED.value
        swap.target_user_id = final_target
        swap.handled_at = _now()
        swap.handled_by_user_id = principal.user_id
        shift.doctor_user_id = final_target
        try:
            await db.flush()
        except IntegrityError as e:
            # the failed flush expired every loaded row; log from locals only
            logger.warning("Approval of swap request %s blocked: %s already on duty", request_id, final_target)
            raise ConflictError(DUPLICATE_ASSIGNMENT, {"target_user_id": final_target}) from e

        await availability_service.clear_for_shift_takeover(principal.hospital_id, final_target, shift.date, db)

        logger.info(
            "Swap request %s approved by %s: shift %s now assigned to %s",
            swap.id, principal.user_id, shift.id, final_target,
        )
        notify(db, "shift_swap_requests", "UPDATE", principal.hospital_id, swap.id, status=swap.status)
        notify(db, "shifts", "UPDATE", principal.hospital_id, shift.id, date=shift.date.isoformat())
        return await self._reload(swap, db)

    async def _close(
        self, principal: UserPrincipal, swap: ShiftSwapRequest, status: SwapStatus, db: AsyncSession
    ) -> ShiftSwapRequest:
        swap.status = status.value
        swap.handled_at = _now()
        swap.handled_by_user_id = principal.user_id
        await db.flush()
        logger.info("Swap request %s %s by %s", swap.id, status.value, principal.user_id)
        notify(db, "shift_swap_requests", "UPDATE", principal.hospital_id, swap.id, status=swap.status)
        return await self._reload(swap, db)

    async def list_for_hospital(
        self, hospital_id: str, status: str, limit: int, db: AsyncSession
    ) -> tuple[list[ShiftSwapRequest], int]:
        query = select(ShiftSwapRequest).where(ShiftSwapRequest.hospital_id == hospital_id)
        count_query = select(func.count(ShiftSwapRequest.id)).where(ShiftSwapRequest.hospital_id == hospital_id)
        if status != "all":
            query = query.where(ShiftSwapRequest.status == status)
            count_query = count_query.where(ShiftSwapRequest.status == status)

        total = await db.scalar(count_query) or 0
        result = await db.execute(
            query.order_by(ShiftSwapRequest.created_at.desc(), ShiftSwapRequest.id.desc()).limit(limit)
        )
        return list(result.scalars().all()), total

    async def sent_by(self, principal: UserPrincipal, db: AsyncSession) -> list[ShiftSwapRequest]:
        result = await db.execute(
            select(ShiftSwapRequest)
            .where(
                ShiftSwapRequest.hospital_id == principal.hospital_id,
                ShiftSwapRequest.requester_user_id == principal.user_id,
            )
            .order_by(ShiftSwapRequest.created_at.desc(), ShiftSwapRequest.id.desc())
        )
        return list(result.scalars().all())

    async def offers_for(self, principal: UserPrincipal, db: AsyncSession) -> list[ShiftSwapRequest]:
        """Pending requests from colleagues that are open or addressed to the caller."""
        result = await db.execute(
            select(ShiftSwapRequest)
            .where(
                ShiftSwapRequest.hospital_id == principal.hospital_id,
                ShiftSwapRequest.status == SwapStatus.PENDING.value,
                ShiftSwapRequest.requester_user_id != principal.user_id,
                or_(
                    ShiftSwapRequest.target_user_id.is_(None),
                    ShiftSwapRequest.target_user_id == principal.user_id,
                ),
            )
            .order_by(ShiftSwapRequest.created_at.desc(), ShiftSwapRequest.id.desc())
        )
        return list(result.scalars().all())

    async def recent_pending(self, hospital_id: str, days: int, limit: int, db: AsyncSession) -> list[ShiftSwapRequest]:
        since = _now() - timedelta(days=days)
        result = await db.execute(
            select(ShiftSwapRequest)
            .where(
                ShiftSwapRequest.hospital_id == hospital_id,
                ShiftSwapRequest.status == SwapStatus.PENDING.value,
                ShiftSwapRequest.created_at >= since,
            )
            .order_by(ShiftSwapRequest.created_at.desc(), ShiftSwapRequest.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_pending(self, hospital_id: str, db: AsyncSession) -> int:
        return await db.scalar(
            select(func.count(ShiftSwapRequest.id)).where(
                ShiftSwapRequest.hospital_id == hospital_id,
                ShiftSwapRequest.status == SwapStatus.PENDING.value,
            )
        ) or 0


swap_service = SwapService()
