"""Unit of Work implementation with async context support"""

from sqlalchemy.orm import Session

from ...domain.repositories.unit_of_work import IUnitOfWork
from .order_repository_impl import OrderRepositoryImpl
from .cart_repository_impl import CartRepositoryImpl
from .inventory_repository_impl import InventoryRepositoryImpl


class UnitOfWorkImpl(IUnitOfWork):

    def __init__(self, session: Session):
        self.session = session
        self.orders = OrderRepositoryImpl(session)
        self.carts = CartRepositoryImpl(session)
        self.inventory = InventoryRepositoryImpl(session)
        self._committed = False

    async def __aenter__(self):
        self._committed = False
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            await self.rollback()
        elif not self._committed:
            await self.commit()

    async def commit(self) -> None:
        """Commit transaction"""
        try:
            self.session.commit()
            self._committed = True
        except Exception:
            self.rollback_sync()
            raise

    async def rollback(self) -> None:
        """Rollback transaction"""
        self.rollback_sync()

    def rollback_sync(self) -> None:
        """Synchronous rollback helper"""
        self.session.rollback()
