from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from shiftdesk.config import get_settings
from shiftdesk.database import get_db
from shiftdesk.auth import UserPrincipal, require_manager
from shiftdesk.schemas.dashboard import DashboardCounts, DashboardResponse
from shiftdesk.services.availability_service import availability_service, entry_to_response
from shiftdesk.services.calendar_service import today_utc
from shiftdesk.services.roster_service import roster_service
from shiftdesk.services.schedule_service import schedule_service
from shiftdesk.services.swap_service import swap_service, swap_to_response

router = APIRouter()

NOTIFICATION_LIMIT = 20


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    db: AsyncSession = Depends(get_db, scope="function"),
    principal: UserPrincipal = Depends(require_manager),
):
    settings = get_settings()
    today = today_utc()

    members = await roster_service.member_ids(principal.hospital_id, db)
    shifts = await schedule_service.count_in_month(principal.hospital_id, today.year, today.month, db)
    pending = await swap_service.count_pending(principal.hospital_id, db)

    recent_availability = await availability_service.recent(
        principal.hospital_id, settings.dashboard_window_days, NOTIFICATION_LIMIT, db
    )
    pending_swaps = await swap_service.recent_pending(
        principal.hospital_id, settings.dashboard_window_days, NOTIFICATION_LIMIT, db
    )

    return DashboardResponse(
        hospital_id=principal.hospital_id,
        hospital_name=principal.hospital_name,
        display_name=principal.display_name,
        counts=DashboardCounts(members=len(members), shifts_this_month=shifts, pending_swaps=pending),
        recent_availability=[entry_to_response(a) for a in recent_availability],
        pending_swaps=[swap_to_response(r) for r in pending_swaps],
    )
