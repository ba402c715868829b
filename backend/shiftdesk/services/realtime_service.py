"""
In-process change feed.

Services queue events on the request's session while they mutate rows; the
request's ``get_db`` dependency publishes them once the transaction commits.
Subscribers register per hospital and receive only that hospital's events,
which the realtime router streams to browsers as Server-Sent Events.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from shiftdesk.config import get_settings

logger = logging.getLogger(__name__)

PENDING_KEY = "realtime_events"


@dataclass
class ChangeEvent:
    table: str
    action: str  # "INSERT" | "UPDATE" | "DELETE"
    hospital_id: str
    id: Optional[int] = None
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "table": self.table,
            "action": self.action,
            "hospital_id": self.hospital_id,
            "id": self.id,
            "data": self.data,
        }


class RealtimeBroker:
    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: dict[str, set[asyncio.Queue]] = {}

    def subscribe(self, hospital_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.setdefault(hospital_id, set()).add(queue)
        return queue

    def unsubscribe(self, hospital_id: str, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(hospital_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[hospital_id]

    def subscriber_count(self, hospital_id: str) -> int:
        return len(self._subscribers.get(hospital_id, ()))

    def publish(self, event: ChangeEvent) -> None:
        for queue in list(self._subscribers.get(event.hospital_id, ())):
            if queue.full():
                # slow consumer: drop its oldest event
                queue.get_nowait()
            queue.put_nowait(event)

    def queue_event(self, session: AsyncSession, event: ChangeEvent) -> None:
        session.info.setdefault(PENDING_KEY, []).append(event)

    def publish_pending(self, session: AsyncSession) -> None:
        events = session.info.pop(PENDING_KEY, [])
        for event in events:
            self.publish(event)
        if events:
            logger.debug("Published %d change events", len(events))

    def discard_pending(self, session: AsyncSession) -> None:
        session.info.pop(PENDING_KEY, None)


realtime_broker = RealtimeBroker(queue_size=get_settings().realtime_queue_size)


def notify(session: AsyncSession, table: str, action: str, hospital_id: str, id: int = None, **data) -> None:
    realtime_broker.queue_event(session, ChangeEvent(table, action, hospital_id, id, data))
