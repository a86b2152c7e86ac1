"""Audit / activity sink port"""

from abc import ABC, abstractmethod
from typing import Optional

from ..entities.order import Order
from ..enums import HistoryActor


class IActivitySink(ABC):

    @abstractmethod
    async def record(self, event_kind: str, order: Order, actor: Optional[HistoryActor],
                     metadata: dict) -> None:
        pass
