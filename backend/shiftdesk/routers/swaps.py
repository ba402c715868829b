from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from shiftdesk.database import get_db
from shiftdesk.auth import UserPrincipal, get_principal, require_manager
from shiftdesk.schemas.shift_swap import (
    SwapApproveRequest,
    SwapCreate,
    SwapListResponse,
    SwapResponse,
    SwapRetargetRequest,
)
from shiftdesk.services.swap_service import STATUS_FILTERS, swap_service, swap_to_response

router = APIRouter()


@router.post("", response_model=SwapResponse, status_code=201)
async def create_swap(
    data: SwapCreate,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    swap = await swap_service.create(principal, data.from_shift_id, data.target_user_id, data.reason, db)
    return swap_to_response(swap)


@router.get("", response_model=SwapListResponse)
async def list_swaps(
    status: str = Query("pending"),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_manager),
):
    """Moderation list for managers, newest first."""
    if status not in STATUS_FILTERS:
        raise HTTPException(status_code=422, detail=f"status must be one of: {', '.join(STATUS_FILTERS)}")
    requests, total = await swap_service.list_for_hospital(principal.hospital_id, status, limit, db)
    return SwapListResponse(requests=[swap_to_response(r) for r in requests], total=total)


@router.get("/{request_id}", response_model=SwapResponse)
async def get_swap(
    request_id: int,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    return swap_to_response(await swap_service.get_visible(principal, request_id, db))


@router.post("/{request_id}/accept", response_model=SwapResponse)
async def accept_swap(
    request_id: int,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    return swap_to_response(await swap_service.accept(principal, request_id, db))


@router.post("/{request_id}/decline", response_model=SwapResponse)
async def decline_swap(
    request_id: int,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    return swap_to_response(await swap_service.decline(principal, request_id, db))


@router.post("/{request_id}/cancel", response_model=SwapResponse)
async def cancel_swap(
    request_id: int,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(get_principal),
):
    return swap_to_response(await swap_service.cancel(principal, request_id, db))


@router.post("/{request_id}/approve", response_model=SwapResponse)
async def approve_swap(
    request_id: int,
    data: Optional[SwapApproveRequest] = None,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_manager),
):
    swap = await swap_service.approve(
        principal, request_id, data.target_user_id if data else None, db
    )
    return swap_to_response(swap)


@router.post("/{request_id}/reject", response_model=SwapResponse)
async def reject_swap(
    request_id: int,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_manager),
):
    return swap_to_response(await swap_service.reject(principal, request_id, db))


@router.patch("/{request_id}/target", response_model=SwapResponse)
async def retarget_swap(
    request_id: int,
    data: SwapRetargetRequest,
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_manager),
):
    swap = await swap_service.retarget(principal, request_id, data.target_user_id, db)
    return swap_to_response(swap)
