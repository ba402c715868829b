from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from shiftdesk.database import get_db
from shiftdesk.auth import UserPrincipal, get_principal, require_manager
from shiftdesk.schemas.availability import (
    AvailabilityDayResponse,
    AvailabilityListResponse,
    AvailabilityUpdate,
    BulkAvailabilityRequest,
    BulkAvailabilityResponse,
)
from shiftdesk.services.availability_service import availability_service, entry_to_response

router = APIRouter()


@router.get("", response_model=AvailabilityDayResponse)
async def get_my_availability(
    day: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    return await availability_service.periods_for(principal, day, db)


@router.get("/history", response_model=AvailabilityListResponse)
async def availability_history(
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    entries = await availability_service.history(principal, limit, db)
    return AvailabilityListResponse(entries=[entry_to_response(a) for a in entries], total=len(entries))


@router.get("/day/{day}", response_model=AvailabilityListResponse)
async def availability_for_day(
    day: date,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_manager),
):
    entries = await availability_service.for_day(principal.hospital_id, day, db)
    return AvailabilityListResponse(entries=[entry_to_response(a) for a in entries], total=len(entries))


@router.post("/bulk", response_model=BulkAvailabilityResponse)
async def apply_bulk(
    data: BulkAvailabilityRequest,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    days, entries = await availability_service.apply_bulk(
        principal,
        year=data.year,
        month=data.month,
        weekdays=data.weekday_set(),
        periods=[p.value for p in data.periods],
        db=db,
    )
    return BulkAvailabilityResponse(dates=days, entries=entries)


@router.put("/{day}", response_model=AvailabilityDayResponse)
async def set_my_availability(
    day: date,
    data: AvailabilityUpdate,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    return await availability_service.replace_day(principal, day, [p.value for p in data.periods], db)
