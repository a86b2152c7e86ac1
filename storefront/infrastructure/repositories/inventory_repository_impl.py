"""Inventory repository implementation using SQLAlchemy ORM"""

import logging
from typing import List
from sqlalchemy.orm import Session

from ...domain.repositories.inventory_repository import IInventoryRepository, StockAdjustment
from ..orm.product_model import ProductModel

logger = logging.getLogger(__name__)


class InventoryRepositoryImpl(IInventoryRepository):

    def __init__(self, session: Session):
        self.session = session

    async def adjust_stock(self, adjustments: List[StockAdjustment]) -> None:
        """Apply relative stock/sold deltas; unknown products are skipped"""
        for adjustment in adjustments:
            updated = (
                self.session.query(ProductModel)
                .filter(ProductModel.id == adjustment.product_id.value)
                .update(
                    {
                        ProductModel.quantity: ProductModel.quantity + adjustment.delta_quantity,
                        ProductModel.sold: ProductModel.sold + adjustment.delta_sold,
                    },
                    synchronize_session=False,
                )
            )
            if not updated:
                logger.warning(f"Stock adjustment skipped, product {adjustment.product_id} not found")
        self.session.flush()
