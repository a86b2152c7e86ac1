"""Order ORM Models"""

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, JSON, Numeric, String, Text, Uuid,
    Enum as SQLEnum
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from uuid import uuid4

from ...db.models import Base
from ...domain.enums import DeliveryStatus, HistoryActor, PaymentMethodType, PaymentStatus


def _enum(enum_cls):
    # Persist the enum values ("in_transit"), not the member names
    return SQLEnum(enum_cls, values_callable=lambda members: [m.value for m in members],
                   native_enum=False, length=32)


class OrderModel(Base):
    __tablename__ = 'orders'

    id = Column(Uuid, primary_key=True, default=uuid4, index=True)
    user_id = Column(Uuid, nullable=False, index=True)

    # Shipping
    shipping_address = Column(JSON, nullable=False)
    tracking_number = Column(String, nullable=True, index=True)
    delivery_agency = Column(String, nullable=True)

    # Money (snapshotted at creation)
    currency = Column(String, default='DZD', nullable=False)
    total_order_price = Column(Numeric(12, 2), nullable=False)
    shipping_price = Column(Numeric(12, 2), nullable=False, default=0)
    tax_price = Column(Numeric(12, 2), nullable=False, default=0)
    cod_amount = Column(Numeric(12, 2), nullable=False, default=0)

    # Status axes
    payment_method_type = Column(_enum(PaymentMethodType), nullable=False)
    payment_status = Column(_enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False, index=True)
    delivery_status = Column(_enum(DeliveryStatus), default=DeliveryStatus.PENDING, nullable=False, index=True)

    # Convenience flags, kept in sync with the status axes on every write
    is_paid = Column(Boolean, default=False, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    is_delivered = Column(Boolean, default=False, nullable=False)
    delivered_at = Column(DateTime, nullable=True)

    # Payment gateway (idempotency key for webhook-driven creation)
    gateway_session_id = Column(String, unique=True, nullable=True)

    inventory_adjusted_at = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    items = relationship('OrderItemModel', back_populates='order', order_by='OrderItemModel.position',
                         cascade='all, delete-orphan')
    status_history = relationship('OrderStatusHistoryModel', back_populates='order',
                                  order_by='OrderStatusHistoryModel.sequence')


class OrderItemModel(Base):
    __tablename__ = 'order_items'

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Uuid, ForeignKey('orders.id'), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    product_id = Column(Uuid, nullable=False)
    title = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)
    color = Column(String, nullable=True)
    unit_price = Column(Numeric(12, 2), nullable=False)

    order = relationship('OrderModel', back_populates='items')


class OrderStatusHistoryModel(Base):
    """Append-only audit trail; rows are only ever inserted"""
    __tablename__ = 'order_status_history'

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Uuid, ForeignKey('orders.id'), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    status = Column(String, nullable=False)
    note = Column(Text, nullable=True)
    updated_by = Column(_enum(HistoryActor), nullable=False)
    timestamp = Column(DateTime, nullable=False)

    order = relationship('OrderModel', back_populates='status_history')


class AuditLogModel(Base):
    __tablename__ = 'audit_logs'

    id = Column(Uuid, primary_key=True, default=uuid4, index=True)
    user_id = Column(Uuid, nullable=True)
    action = Column(String, nullable=False)
    actor = Column(String, nullable=True)
    resource_type = Column(String, nullable=True)
    resource_id = Column(String, nullable=True)
    amount = Column(Numeric(12, 2), nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
