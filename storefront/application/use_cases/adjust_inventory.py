"""Adjust product stock for a placed order"""

import logging

from ...domain.clock import utcnow
from ...domain.entities.order import Order
from ...domain.repositories.inventory_repository import StockAdjustment
from ...domain.repositories.unit_of_work import IUnitOfWork

logger = logging.getLogger(__name__)


class InventoryAdjuster:
    """Decrements stock and increments sold counters once per order.

    Runs after the order commit in its own transaction. The marker write and
    the stock updates commit together, so a repeated call is a no-op. Errors
    are logged and swallowed: the order itself is already durable, and
    ``IOrderRepository.list_orders_pending_inventory`` finds what was missed.
    """

    def __init__(self, unit_of_work: IUnitOfWork):
        self.unit_of_work = unit_of_work

    async def adjust_for_order(self, order: Order) -> bool:
        if order.inventory_adjusted_at is not None:
            return False

        adjustments = [
            StockAdjustment(
                product_id=line.product_id,
                delta_quantity=-line.quantity,
                delta_sold=line.quantity,
            )
            for line in order.items
        ]
        adjusted_at = utcnow()

        try:
            async with self.unit_of_work:
                marked = await self.unit_of_work.orders.mark_inventory_adjusted(order.id, adjusted_at)
                if not marked:
                    logger.info(f"Inventory for order {order.id} already adjusted, skipping")
                    return False
                await self.unit_of_work.inventory.adjust_stock(adjustments)
        except Exception:
            logger.exception(f"Inventory adjustment failed for order {order.id}")
            return False

        order.inventory_adjusted_at = adjusted_at
        logger.info(f"Inventory adjusted for order {order.id} ({len(adjustments)} products)")
        return True
