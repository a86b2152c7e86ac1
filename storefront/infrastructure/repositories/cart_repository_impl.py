"""Cart repository implementation using SQLAlchemy ORM"""

from decimal import Decimal
from typing import Optional
from sqlalchemy.orm import Session

from ...domain.repositories.cart_repository import ICartRepository
from ...domain.value_objects.cart_snapshot import CartSnapshot
from ...domain.value_objects.entity_ids import CartId, ProductId, UserId
from ...domain.value_objects.money import Money
from ...domain.value_objects.order_line import OrderLine
from ..orm.cart_model import CartItemModel, CartModel


class CartRepositoryImpl(ICartRepository):
    """Read side of the cart collaborator"""

    def __init__(self, session: Session):
        self.session = session

    async def find_cart(self, cart_id: CartId) -> Optional[CartSnapshot]:
        """Snapshot a cart with its line prices as they are right now"""
        model = self.session.query(CartModel).filter(CartModel.id == cart_id.value).first()
        if not model:
            return None

        items = [
            OrderLine(
                product_id=ProductId(item.product_id),
                quantity=item.quantity,
                unit_price=Money(item.price),
                color=item.color,
                title=item.product.title if item.product else None,
            )
            for item in model.items
        ]
        discounted = model.total_price_after_discount
        return CartSnapshot(
            id=CartId(model.id),
            user_id=UserId(model.user_id) if model.user_id else None,
            items=items,
            total_price=Money(model.total_cart_price or Decimal("0")),
            total_price_after_discount=Money(discounted) if discounted is not None else None,
        )

    async def delete_cart(self, cart_id: CartId) -> bool:
        """Delete cart; returns False when a concurrent checkout already consumed it"""
        self.session.query(CartItemModel).filter(
            CartItemModel.cart_id == cart_id.value
        ).delete(synchronize_session=False)
        deleted = self.session.query(CartModel).filter(
            CartModel.id == cart_id.value
        ).delete(synchronize_session=False)
        return deleted == 1
