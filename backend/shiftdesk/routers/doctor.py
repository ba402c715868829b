from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from shiftdesk.database import get_db
from shiftdesk.auth import UserPrincipal, get_principal
from shiftdesk.schemas.doctor import DoctorCalendarResponse
from shiftdesk.schemas.shift_swap import SwapListResponse
from shiftdesk.services.availability_service import availability_service
from shiftdesk.services.calendar_service import build_month_matrix, month_bounds, today_utc
from shiftdesk.services.schedule_service import schedule_service, shift_to_response
from shiftdesk.services.swap_service import swap_service, swap_to_response

router = APIRouter()


@router.get("/calendar", response_model=DoctorCalendarResponse)
async def my_calendar(
    year: Optional[int] = Query(None, ge=1900, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    """The caller's own shifts and availability for a month, plus swap offers waiting for them."""
    today = today_utc()
    year = year or today.year
    month = month or today.month
    start, end = month_bounds(year, month)

    shifts = await schedule_service.shifts_between(
        principal.hospital_id, start, end, db, doctor_user_id=principal.user_id
    )
    availability = await availability_service.month_for_user(principal, year, month, db)
    offers = await swap_service.offers_for(principal, db)

    return DoctorCalendarResponse(
        year=year,
        month=month,
        weeks=build_month_matrix(year, month),
        shifts=[shift_to_response(s) for s in shifts],
        availability=availability,
        open_offers=[swap_to_response(r) for r in offers],
    )


@router.get("/swaps/sent", response_model=SwapListResponse)
async def my_sent_swaps(
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    requests = await swap_service.sent_by(principal, db)
    return SwapListResponse(requests=[swap_to_response(r) for r in requests], total=len(requests))


@router.get("/swaps/received", response_model=SwapListResponse)
async def my_received_swaps(
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    requests = await swap_service.offers_for(principal, db)
    return SwapListResponse(requests=[swap_to_response(r) for r in requests], total=len(requests))
