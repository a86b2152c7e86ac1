"""Unit of Work interface for transaction management"""

from abc import ABC, abstractmethod

from .order_repository import IOrderRepository
from .cart_repository import ICartRepository
from .inventory_repository import IInventoryRepository


class IUnitOfWork(ABC):
    """Unit of Work interface for managing transactions across repositories"""

    orders: IOrderRepository
    carts: ICartRepository
    inventory: IInventoryRepository

    @abstractmethod
    async def __aenter__(self):
        """Enter async context"""
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context"""
        pass

    @abstractmethod
    async def commit(self):
        """Commit transaction"""
        pass

    @abstractmethod
    async def rollback(self):
        """Rollback transaction"""
        pass
