import logging
from datetime import date, datetime, timedelta, timezone
from typing import Iterable
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from shiftdesk.auth import UserPrincipal
from shiftdesk.models.availability import Availability
from shiftdesk.schemas.availability import AvailabilityDayResponse, AvailabilityEntry
from shiftdesk.services.calendar_service import dates_on_weekdays, month_bounds
from shiftdesk.services.realtime_service import notify

logger = logging.getLogger(__name__)

PERIOD_ORDER = ("morning", "afternoon", "night")


def entry_to_response(a: Availability) -> AvailabilityEntry:
    return AvailabilityEntry(
        id=a.id,
        user_id=a.user_id,
        user_name=a.user.display_name if a.user else None,
        date=a.date,
        period=a.period,
        created_at=a.created_at,
    )


def _ordered(periods: Iterable[str]) -> list[str]:
    unique = set(periods)
    return [p for p in PERIOD_ORDER if p in unique]


class AvailabilityService:
    async def periods_for(self, principal: UserPrincipal, day: date, db: AsyncSession) -> AvailabilityDayResponse:
        result = await db.execute(
            select(Availability.period).where(
                Availability.hospital_id == principal.hospital_id,
                Availability.user_id == principal.user_id,
                Availability.date == day,
            )
        )
        return AvailabilityDayResponse(date=day, periods=_ordered(result.scalars().all()))

    async def _replace(self, principal: UserPrincipal, days: list[date], periods: list[str], db: AsyncSession) -> int:
        if not days:
            return 0
        await db.execute(
            delete(Availability)
            .where(
                Availability.hospital_id == principal.hospital_id,
                Availability.user_id == principal.user_id,
                Availability.date.in_(days),
            )
            .execution_options(synchronize_session="fetch")
        )
        rows = [
            Availability(hospital_id=principal.hospital_id, user_id=principal.user_id, date=day, period=period)
            for day in days
            for period in periods
        ]
        db.add_all(rows)
        await db.flush()
        return len(rows)

    async def replace_day(
        self, principal: UserPrincipal, day: date, periods: list[str], db: AsyncSession
    ) -> AvailabilityDayResponse:
        periods = _ordered(periods)
        await self._replace(principal, [day], periods, db)
        logger.info("Availability of %s on %s set to %s", principal.user_id, day, periods or "none")
        notify(db, "availability", "UPDATE", principal.hospital_id, user_id=principal.user_id, date=day.isoformat())
        return AvailabilityDayResponse(date=day, periods=periods)

    async def apply_bulk(
        self,
        principal: UserPrincipal,
        year: int,
        month: int,
        weekdays: set[int],
        periods: list[str],
        db: AsyncSession,
    ) -> tuple[list[date], int]:
        """Set the same periods on every chosen weekday of a month."""
        days = dates_on_weekdays(year, month, weekdays)
        periods = _ordered(periods)
        entries = await self._replace(principal, days, periods, db)
        logger.info(
            "Bulk availability for %s in %04d-%02d: %d days, %d entries",
            principal.user_id, year, month, len(days), entries,
        )
        notify(db, "availability", "UPDATE", principal.hospital_id, user_id=principal.user_id, month=f"{year:04d}-{month:02d}")
        return days, entries

    async def history(self, principal: UserPrincipal, limit: int, db: AsyncSession) -> list[Availability]:
        result = await db.execute(
            select(Availability)
            .where(Availability.hospital_id == principal.hospital_id, Availability.user_id == principal.user_id)
            .order_by(Availability.date.desc(), Availability.period)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def for_day(self, hospital_id: str, day: date, db: AsyncSession) -> list[Availability]:
        result = await db.execute(
            select(Availability)
            .where(Availability.hospital_id == hospital_id, Availability.date == day)
            .order_by(Availability.user_id, Availability.period)
        )
        return list(result.scalars().all())

    async def month_for_user(self, principal: UserPrincipal, year: int, month: int, db: AsyncSession) -> list[AvailabilityDayResponse]:
        start, end = month_bounds(year, month)
        result = await db.execute(
            select(Availability)
            .where(
                Availability.hospital_id == principal.hospital_id,
                Availability.user_id == principal.user_id,
                Availability.date >= start,
                Availability.date <= end,
            )
            .order_by(Availability.date)
        )
        by_day: dict[date, list[str]] = {}
        for a in result.scalars().all():
            by_day.setdefault(a.date, []).append(a.period)
        return [AvailabilityDayResponse(date=d, periods=_ordered(p)) for d, p in sorted(by_day.items())]

    async def recent(self, hospital_id: str, days: int, limit: int, db: AsyncSession) -> list[Availability]:
        since = datetime.now(timezone.utc) - timedelta(days=days)
        result = await db.execute(
            select(Availability)
            .where(Availability.hospital_id == hospital_id, Availability.created_at >= since)
            .order_by(Availability.created_at.desc(), Availability.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def clear_for_shift_takeover(self, hospital_id: str, user_id: str, day: date, db: AsyncSession) -> int:
        """A doctor who takes over a shift is no longer announced as available that day."""
        result = await db.execute(
            delete(Availability)
            .where(
                Availability.hospital_id == hospital_id,
                Availability.user_id == user_id,
                Availability.date == day,
            )
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount:
            notify(db, "availability", "DELETE", hospital_id, user_id=user_id, date=day.isoformat())
        return result.rowcount or 0


availability_service = AvailabilityService()
