"""Fire-and-forget publishing of order activity"""

import asyncio
import logging
from enum import Enum
from typing import Iterable, Optional, Set

from ...domain.entities.order import Order
from ...domain.enums import HistoryActor
from ...domain.services.activity_sink import IActivitySink
from ...domain.value_objects.money import Money

logger = logging.getLogger(__name__)

_SKIPPED_FIELDS = {"order_id", "user_id", "actor", "occurred_at"}


def _plain(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Money):
        return str(value)
    return value if value is None or isinstance(value, (str, int, float, bool)) else str(value)


def event_metadata(event) -> dict:
    """Flatten a domain event into JSON-friendly audit metadata"""
    metadata = {
        name: _plain(value)
        for name, value in vars(event).items()
        if name not in _SKIPPED_FIELDS
    }
    metadata["occurred_at"] = event.occurred_at.isoformat()
    return metadata


class ActivityRecorder:
    """Publishes domain events to the activity sink without blocking callers.

    Each event gets at most ``max_attempts`` tries; after that it is logged
    and dropped. A failing sink never affects the order operation.
    """

    def __init__(self, sink: Optional[IActivitySink], enabled: bool = True, max_attempts: int = 2):
        self.sink = sink
        self.enabled = enabled and sink is not None
        self.max_attempts = max_attempts
        self._pending: Set[asyncio.Task] = set()

    def publish(self, order: Order, events: Iterable) -> None:
        if not self.enabled:
            return
        for event in events:
            actor = getattr(event, "actor", HistoryActor.SYSTEM)
            task = asyncio.get_running_loop().create_task(
                self._deliver(event.kind, order, actor, event_metadata(event))
            )
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for in-flight publications (shutdown and tests)"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _deliver(self, kind: str, order: Order, actor: HistoryActor, metadata: dict) -> None:
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self.sink.record(kind, order, actor, metadata)
                return
            except Exception as e:
                logger.warning(f"Activity '{kind}' for order {order.id} failed (attempt {attempt}): {e}")
        logger.error(f"Dropping activity '{kind}' for order {order.id} after {self.max_attempts} attempts")
