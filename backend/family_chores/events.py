"""In-process change notification bus.

Engines publish a :class:`ChangeEvent` after their transaction commits.
Subscribers (the websocket endpoint, tests) receive events for one
family through a bounded ``asyncio.Queue``.  Delivery is best effort: a
full queue drops the event and logs a warning, and consumers are
expected to re-fetch whenever they may have missed something.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field, asdict
from datetime import datetime

from family_chores.models import utcnow

logger = logging.getLogger(__name__)

EVENT_QUEUE_SIZE = int(os.getenv("EVENT_QUEUE_SIZE", "100"))


@dataclass(frozen=True)
class ChangeEvent:
    family_id: int
    entity: str  # "chore", "chore_template", "ledger", "member", "wishlist_item", "wishlist_settings"
    entity_id: int
    action: str
    at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["at"] = self.at.isoformat()
        return data


class ChangeBus:
    def __init__(self, queue_size: int = EVENT_QUEUE_SIZE) -> None:
        self.queue_size = queue_size
        self._subscribers: dict[int, set[asyncio.Queue]] = {}

    def subscribe(self, family_id: int) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.setdefault(family_id, set()).add(queue)
        return queue

    def unsubscribe(self, family_id: int, queue: asyncio.Queue) -> None:
        queues = self._subscribers.get(family_id)
        if not queues:
            return
        queues.discard(queue)
        if not queues:
            del self._subscribers[family_id]

    def subscriber_count(self, family_id: int) -> int:
        return len(self._subscribers.get(family_id, ()))

    def publish(self, event: ChangeEvent) -> None:
        for queue in list(self._subscribers.get(event.family_id, ())):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(
                    "Dropped %s %s event for family %s: subscriber queue full",
                    event.entity,
                    event.action,
                    event.family_id,
                )


bus = ChangeBus()


def emit(family_id: int, entity: str, entity_id: int, action: str) -> None:
    bus.publish(ChangeEvent(family_id, entity, entity_id, action))
