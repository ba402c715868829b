import asyncio
import json
import logging
from fastapi import APIRouter, Request
from starlette.responses import StreamingResponse
from shiftdesk.database import async_session
from shiftdesk.auth import get_current_user, get_principal
from shiftdesk.services.realtime_service import realtime_broker

logger = logging.getLogger(__name__)

router = APIRouter()

KEEPALIVE_SECONDS = 15


@router.get("/stream")
async def stream_changes(request: Request):
    """
    Server-Sent Events feed of row changes in the caller's hospital.

    Browsers pass the token as ``?access_token=`` since EventSource cannot
    set headers. The session used to authenticate is closed before streaming
    starts so a long-lived connection does not pin a database connection.
    """
    async with async_session() as db:
        user = await get_current_user(request, db)
        principal = await get_principal(user, db)

    hospital_id = principal.hospital_id
    queue = realtime_broker.subscribe(hospital_id)
    logger.info("Realtime subscriber joined hospital %s (%d open)", hospital_id, realtime_broker.subscriber_count(hospital_id))

    async def event_generator():
        try:
            yield f"data: {json.dumps({'type': 'ready', 'hospital_id': hospital_id})}\n\n"
            while True:
                if await request.is_disconnected():
                    break
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield f"data: {json.dumps(event.to_dict(), default=str)}\n\n"
        finally:
            realtime_broker.unsubscribe(hospital_id, queue)
            logger.info("Realtime subscriber left hospital %s", hospital_id)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
