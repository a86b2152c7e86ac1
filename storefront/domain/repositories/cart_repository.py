"""Cart repository interface (read side of the cart collaborator)"""

from abc import ABC, abstractmethod
from typing import Optional

from ..value_objects.cart_snapshot import CartSnapshot
from ..value_objects.entity_ids import CartId


class ICartRepository(ABC):

    @abstractmethod
    async def find_cart(self, cart_id: CartId) -> Optional[CartSnapshot]:
        pass

    @abstractmethod
    async def delete_cart(self, cart_id: CartId) -> bool:
        """Delete the cart; False when it was already gone"""
        pass
