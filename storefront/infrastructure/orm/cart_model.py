"""Cart ORM Models (owned by the cart service, read here at checkout)"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from uuid import uuid4

from ...db.models import Base


class CartModel(Base):
    __tablename__ = 'carts'

    id = Column(Uuid, primary_key=True, default=uuid4, index=True)
    user_id = Column(Uuid, nullable=True, index=True)
    total_cart_price = Column(Numeric(12, 2), nullable=False, default=0)
    total_price_after_discount = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    items = relationship('CartItemModel', back_populates='cart', order_by='CartItemModel.id',
                         cascade='all, delete-orphan')


class CartItemModel(Base):
    __tablename__ = 'cart_items'

    id = Column(Integer, primary_key=True, autoincrement=True)
    cart_id = Column(Uuid, ForeignKey('carts.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(Uuid, ForeignKey('products.id'), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    color = Column(String, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)

    cart = relationship('CartModel', back_populates='items')
    product = relationship('ProductModel')
