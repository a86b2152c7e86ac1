"""Order repository interface"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List

from ..entities.order import Order
from ..value_objects.entity_ids import OrderId, UserId
from ..value_objects.money import Money


class IOrderRepository(ABC):

    @abstractmethod
    async def get_by_id(self, order_id: OrderId) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_by_user_id(self, user_id: UserId) -> List[Order]:
        pass

    @abstractmethod
    async def get_all(self, skip: int = 0, limit: int = 100) -> List[Order]:
        pass

    @abstractmethod
    async def get_by_gateway_session_id(self, session_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def find_latest_authorized_card_order(self, amount: Money) -> Optional[Order]:
        """Legacy amount-based lookup for charges without an order reference"""
        pass

    @abstractmethod
    async def add(self, order: Order) -> Order:
        pass

    @abstractmethod
    async def update(self, order: Order) -> Order:
        """Conditional write: only succeeds if the stored version still matches order.version"""
        pass

    @abstractmethod
    async def mark_inventory_adjusted(self, order_id: OrderId, adjusted_at: datetime) -> bool:
        """Set the inventory marker once; False when it was already set"""
        pass

    @abstractmethod
    async def list_orders_pending_inventory(self, older_than: datetime) -> List[Order]:
        pass
