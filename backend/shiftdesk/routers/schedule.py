from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from shiftdesk.database import get_db
from shiftdesk.auth import UserPrincipal, get_principal, require_manager
from shiftdesk.schemas.schedule import (
    DayCopyRequest,
    DayScheduleResponse,
    DayScheduleUpdate,
    MonthCopyRequest,
    MonthCopyResponse,
    MonthScheduleResponse,
    ReplaceResult,
)
from shiftdesk.services.schedule_service import schedule_service

router = APIRouter()


@router.get("/month", response_model=MonthScheduleResponse)
async def get_month(
    year: int = Query(..., ge=1900, le=9999),
    month: int = Query(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    return await schedule_service.month_view(principal, year, month, db)


@router.post("/month/copy", response_model=MonthCopyResponse)
async def copy_month(
    data: MonthCopyRequest,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_manager),
):
    return await schedule_service.copy_month(
        principal,
        source_year=data.source_year,
        source_month=data.source_month,
        target_year=data.target_year,
        target_month=data.target_month,
        db=db,
    )


@router.get("/day/{day}", response_model=DayScheduleResponse)
async def get_day(
    day: date,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    return await schedule_service.day_view(principal, day, db)


@router.put("/day/{day}", response_model=ReplaceResult)
async def save_day(
    day: date,
    data: DayScheduleUpdate,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_manager),
):
    return await schedule_service.replace_day(principal, day, data.assignments(), db)


@router.delete("/day/{day}", response_model=ReplaceResult)
async def clear_day(
    day: date,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_manager),
):
    return await schedule_service.clear_day(principal, day, db)


@router.post("/day/{day}/copy", response_model=ReplaceResult)
async def copy_day(
    day: date,
    data: DayCopyRequest,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_manager),
):
    return await schedule_service.copy_day(principal, day, data.target_date, db)
