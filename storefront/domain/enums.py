"""
Domain Enums - Business domain enumerations
"""

from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class PaymentMethodType(str, Enum):
    CASH = "cash"
    CARD = "card"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"
    COMPLETED = "completed"


class DeliveryStatus(str, Enum):
    PENDING = "pending"                    # Order created, waiting confirmation
    CONFIRMED = "confirmed"                # Seller confirmed
    SHIPPED = "shipped"                    # Handed to delivery agency
    IN_TRANSIT = "in_transit"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"                # Customer received (and paid, for COD)
    COMPLETED = "completed"                # Payment settled with seller
    FAILED = "failed"
    RETURNED = "returned"
    CANCELLED = "cancelled"


class HistoryActor(str, Enum):
    CUSTOMER = "customer"
    SELLER = "seller"
    DELIVERY_AGENCY = "delivery_agency"
    SYSTEM = "system"
