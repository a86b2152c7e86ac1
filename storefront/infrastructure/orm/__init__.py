"""Infrastructure ORM Models"""

from .order_model import OrderModel, OrderItemModel, OrderStatusHistoryModel, AuditLogModel
from .cart_model import CartModel, CartItemModel
from .product_model import ProductModel

__all__ = [
    'OrderModel',
    'OrderItemModel',
    'OrderStatusHistoryModel',
    'AuditLogModel',
    'CartModel',
    'CartItemModel',
    'ProductModel',
]
