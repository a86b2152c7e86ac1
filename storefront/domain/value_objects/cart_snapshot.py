"""Read-only view of a shopping cart at checkout time"""

from dataclasses import dataclass
from typing import List, Optional

from .entity_ids import CartId, UserId
from .money import Money
from .order_line import OrderLine


@dataclass(frozen=True)
class CartSnapshot:
    id: CartId
    user_id: Optional[UserId]
    items: List[OrderLine]
    total_price: Money
    total_price_after_discount: Optional[Money] = None

    @property
    def payable_total(self) -> Money:
        """Discounted total when a coupon applies, plain total otherwise"""
        if self.total_price_after_discount is not None and self.total_price_after_discount.amount:
            return self.total_price_after_discount
        return self.total_price

    def belongs_to(self, user_id: UserId) -> bool:
        return self.user_id is None or self.user_id == user_id
