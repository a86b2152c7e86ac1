"""Order line and status history value objects"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .entity_ids import ProductId
from .money import Money
from ..clock import utcnow
from ..enums import HistoryActor


@dataclass(frozen=True)
class OrderLine:
    """One purchased product, priced at the moment of purchase."""
    product_id: ProductId
    quantity: int
    unit_price: Money
    color: Optional[str] = None
    title: Optional[str] = None

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError("Quantity must be at least 1")

    @property
    def line_total(self) -> Money:
        return Money(self.unit_price.amount * self.quantity, self.unit_price.currency)


@dataclass(frozen=True)
class StatusHistoryEntry:
    status: str
    note: str
    actor: HistoryActor
    timestamp: datetime = field(default_factory=utcnow)
