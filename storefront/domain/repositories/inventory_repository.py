"""Inventory repository interface"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from ..value_objects.entity_ids import ProductId


@dataclass(frozen=True)
class StockAdjustment:
    product_id: ProductId
    delta_quantity: int
    delta_sold: int


class IInventoryRepository(ABC):

    @abstractmethod
    async def adjust_stock(self, adjustments: List[StockAdjustment]) -> None:
        pass
