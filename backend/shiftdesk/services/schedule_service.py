"""
Shift calendar editor.

Days and months are replaced wholesale: every save deletes the rows for the
(hospital, date range) and inserts the new selection. Both statements run in
the request's transaction, so a failed insert leaves the old schedule intact.
"""

import logging
from datetime import date
from typing import Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from shiftdesk.auth import UserPrincipal
from shiftdesk.exceptions import ConflictError, ValidationFailedError
from shiftdesk.models.availability import Availability
from shiftdesk.models.shift import Shift, Period, PERIOD_CAPACITY, PERIOD_LABELS
from shiftdesk.schemas.schedule import (
    DayScheduleResponse,
    DaySlot,
    DaySummary,
    DoctorOption,
    MonthCopyResponse,
    MonthScheduleResponse,
    PeriodCount,
    ReplaceResult,
    ShiftResponse,
)
from shiftdesk.services.calendar_service import (
    build_month_matrix,
    month_bounds,
    period_counts,
    remap_to_month,
)
from shiftdesk.services.realtime_service import notify
from shiftdesk.services.roster_service import roster_service

logger = logging.getLogger(__name__)

DUPLICATE_ASSIGNMENT = "Doctor already on duty in this period"


def shift_to_response(s: Shift) -> ShiftResponse:
    return ShiftResponse(
        id=s.id,
        date=s.date,
        period=s.period,
        doctor_user_id=s.doctor_user_id,
        doctor_name=s.doctor.display_name if s.doctor else None,
    )


class ScheduleService:
    async def shifts_between(
        self, hospital_id: str, start: date, end: date, db: AsyncSession, doctor_user_id: str = None
    ) -> list[Shift]:
        query = (
            select(Shift)
            .where(Shift.hospital_id == hospital_id, Shift.date >= start, Shift.date <= end)
            .order_by(Shift.date, Shift.period, Shift.id)
        )
        if doctor_user_id:
            query = query.where(Shift.doctor_user_id == doctor_user_id)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def month_view(self, principal: UserPrincipal, year: int, month: int, db: AsyncSession) -> MonthScheduleResponse:
        start, end = month_bounds(year, month)
        shifts = await self.shifts_between(principal.hospital_id, start, end, db)

        by_day: dict[date, list[Shift]] = {}
        for s in shifts:
            by_day.setdefault(s.date, []).append(s)

        days = []
        for day in range(1, end.day + 1):
            current = date(year, month, day)
            rows = by_day.get(current, [])
            days.append(
                DaySummary(
                    date=current,
                    shifts=[shift_to_response(s) for s in rows],
                    counts=[PeriodCount(**c) for c in period_counts(s.period for s in rows)],
                )
            )

        return MonthScheduleResponse(
            hospital_id=principal.hospital_id,
            hospital_name=principal.hospital_name,
            year=year,
            month=month,
            weeks=build_month_matrix(year, month),
            days=days,
        )

    async def day_view(self, principal: UserPrincipal, day: date, db: AsyncSession) -> DayScheduleResponse:
        shifts = await self.shifts_between(principal.hospital_id, day, day, db)
        doctors = await roster_service.doctor_options(principal.hospital_id, db)

        slots = []
        for period in Period:
            label, short = PERIOD_LABELS[period]
            slots.append(
                DaySlot(
                    period=period.value,
                    label=label,
                    short=short,
                    capacity=PERIOD_CAPACITY[period],
                    doctors=[
                        DoctorOption(
                            id=s.doctor_user_id,
                            name=s.doctor.display_name if s.doctor else s.doctor_user_id,
                            email=s.doctor.email if s.doctor else None,
                        )
                        for s in shifts
                        if s.period == period.value
                    ],
                )
            )

        result = await db.execute(
            select(Availability).where(
                Availability.hospital_id == principal.hospital_id,
                Availability.date == day,
            )
        )
        availability: dict[str, list[str]] = {}
        for a in result.scalars().all():
            availability.setdefault(a.user_id, []).append(a.period)

        return DayScheduleResponse(
            date=day,
            hospital_name=principal.hospital_name,
            slots=slots,
            doctors=doctors,
            availability=availability,
        )

    async def validate_assignments(self, hospital_id: str, assignments: dict[str, list[str]], db: AsyncSession) -> None:
        members = await roster_service.member_ids(hospital_id, db)
        for period in Period:
            doctor_ids = assignments.get(period.value, [])
            capacity = PERIOD_CAPACITY[period]
            if len(doctor_ids) > capacity:
                raise ValidationFailedError(
                    f"{PERIOD_LABELS[period][0]} holds at most {capacity} doctors",
                    {"period": period.value, "capacity": capacity},
                )
            if len(set(doctor_ids)) != len(doctor_ids):
                raise ValidationFailedError(
                    f"{DUPLICATE_ASSIGNMENT}: a doctor is selected twice for {PERIOD_LABELS[period][0]}",
                    {"period": period.value},
                )
            unknown = [d for d in doctor_ids if d not in members]
            if unknown:
                raise ValidationFailedError(
                    "Only doctors on the hospital roster can be assigned",
                    {"period": period.value, "unknown": unknown},
                )

    async def _delete_range(self, hospital_id: str, start: date, end: date, db: AsyncSession) -> int:
        result = await db.execute(
            delete(Shift)
            .where(Shift.hospital_id == hospital_id, Shift.date >= start, Shift.date <= end)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    async def _insert(self, hospital_id: str, rows: Iterable[tuple[date, str, str]], db: AsyncSession) -> int:
        shifts = [
            Shift(hospital_id=hospital_id, date=day, period=period, doctor_user_id=doctor_id)
            for day, period, doctor_id in rows
        ]
        if not shifts:
            return 0
        db.add_all(shifts)
        try:
            await db.flush()
        except IntegrityError as e:
            raise ConflictError(DUPLICATE_ASSIGNMENT) from e
        return len(shifts)

    async def replace_day(
        self, principal: UserPrincipal, day: date, assignments: dict[str, list[str]], db: AsyncSession
    ) -> ReplaceResult:
        await self.validate_assignments(principal.hospital_id, assignments, db)

        deleted = await self._delete_range(principal.hospital_id, day, day, db)
        inserted = await self._insert(
            principal.hospital_id,
            (
                (day, period, doctor_id)
                for period, doctor_ids in assignments.items()
                for doctor_id in doctor_ids
            ),
            db,
        )
        logger.info(
            "Replaced schedule for %s in hospital %s: %d removed, %d assigned",
            day, principal.hospital_id, deleted, inserted,
        )
        notify(db, "shifts", "UPDATE", principal.hospital_id, date=day.isoformat())
        return ReplaceResult(day=day, deleted=deleted, inserted=inserted)

    async def clear_day(self, principal: UserPrincipal, day: date, db: AsyncSession) -> ReplaceResult:
        deleted = await self._delete_range(principal.hospital_id, day, day, db)
        logger.info("Cleared schedule for %s in hospital %s (%d shifts)", day, principal.hospital_id, deleted)
        notify(db, "shifts", "DELETE", principal.hospital_id, date=day.isoformat())
        return ReplaceResult(day=day, deleted=deleted, inserted=0)

    async def copy_day(self, principal: UserPrincipal, source: date, target: date, db: AsyncSession) -> ReplaceResult:
        if source == target:
            raise ValidationFailedError("Target date is the same as the source date")

        shifts = await self.shifts_between(principal.hospital_id, source, source, db)
        assignments: dict[str, list[str]] = {p.value: [] for p in Period}
        for s in shifts:
            assignments.setdefault(s.period, []).append(s.doctor_user_id)

        return await self.replace_day(principal, target, assignments, db)

    async def copy_month(
        self,
        principal: UserPrincipal,
        source_year: int,
        source_month: int,
        target_year: int,
        target_month: int,
        db: AsyncSession,
    ) -> MonthCopyResponse:
        if (source_year, source_month) == (target_year, target_month):
            raise ValidationFailedError("Target month is the same as the source month")

        source_start, source_end = month_bounds(source_year, source_month)
        source_rows = await self.shifts_between(principal.hospital_id, source_start, source_end, db)

        members = await roster_service.member_ids(principal.hospital_id, db)
        rows = []
        skipped = 0
        for s in source_rows:
            target_day = remap_to_month(s.date, target_year, target_month)
            # days missing from the target month and doctors no longer on the roster
            if target_day is None or s.doctor_user_id not in members:
                skipped += 1
                continue
            rows.append((target_day, s.period, s.doctor_user_id))

        target_start, target_end = month_bounds(target_year, target_month)
        deleted = await self._delete_range(principal.hospital_id, target_start, target_end, db)
        copied = await self._insert(principal.hospital_id, rows, db)

        logger.info(
            "Copied %04d-%02d to %04d-%02d in hospital %s: %d copied, %d skipped, %d replaced",
            source_year, source_month, target_year, target_month,
            principal.hospital_id, copied, skipped, deleted,
        )
        notify(
            db, "shifts", "UPDATE", principal.hospital_id,
            month=f"{target_year:04d}-{target_month:02d}",
        )
        return MonthCopyResponse(
            target_year=target_year,
            target_month=target_month,
            deleted=deleted,
            copied=copied,
            skipped=skipped,
        )

    async def count_in_month(self, hospital_id: str, year: int, month: int, db: AsyncSession) -> int:
        start, end = month_bounds(year, month)
        return await db.scalar(
            select(func.count(Shift.id)).where(
                Shift.hospital_id == hospital_id, Shift.date >= start, Shift.date <= end
            )
        ) or 0


schedule_service = ScheduleService()
