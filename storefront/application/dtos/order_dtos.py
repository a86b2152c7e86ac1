"""Order DTOs for API requests and responses"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from ...domain.enums import DeliveryStatus, HistoryActor, PaymentMethodType, PaymentStatus
from ...domain.value_objects.shipping_address import ShippingAddress


class ShippingAddressDTO(BaseModel):
    details: str = Field(..., min_length=1)
    phone: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = Field(default=None, alias="postalCode")
    wilaya: Optional[str] = None
    dayra: Optional[str] = None
    full_name: Optional[str] = Field(default=None, alias="fullName")

    class Config:
        populate_by_name = True

    def to_value_object(self) -> ShippingAddress:
        return ShippingAddress(**self.model_dump(by_alias=False))


class CreateOrderRequest(BaseModel):
    """Request DTO for placing an order from a cart"""
    shipping_address: ShippingAddressDTO = Field(..., alias="shippingAddress")
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None

    class Config:
        populate_by_name = True


class CancelOrderRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class OrderLineDTO(BaseModel):
    product_id: UUID
    title: Optional[str] = None
    quantity: int
    color: Optional[str] = None
    price: Decimal


class StatusHistoryDTO(BaseModel):
    status: str
    timestamp: datetime
    note: str
    updated_by: HistoryActor


class OrderResponseDTO(BaseModel):
    """Response DTO for order data"""
    id: UUID
    user_id: UUID
    items: List[OrderLineDTO]
    shipping_address: Dict[str, Any]
    payment_method_type: PaymentMethodType
    currency: str
    total_order_price: Decimal
    shipping_price: Decimal
    tax_price: Decimal
    cod_amount: Decimal
    payment_status: PaymentStatus
    delivery_status: DeliveryStatus
    is_paid: bool
    paid_at: Optional[datetime] = None
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    tracking_number: Optional[str] = None
    delivery_agency: Optional[str] = None
    gateway_session_id: Optional[str] = None
    status_history: List[StatusHistoryDTO] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, order):
        """Convert domain entity to DTO"""
        return cls(
            id=order.id.value,
            user_id=order.user_id.value,
            items=[
                OrderLineDTO(
                    product_id=line.product_id.value,
                    title=line.title,
                    quantity=line.quantity,
                    color=line.color,
                    price=line.unit_price.amount,
                )
                for line in order.items
            ],
            shipping_address=order.shipping_address.to_dict(),
            payment_method_type=order.payment_method,
            currency=order.total_order_price.currency,
            total_order_price=order.total_order_price.amount,
            shipping_price=order.shipping_price.amount,
            tax_price=order.tax_price.amount,
            cod_amount=order.cod_amount.amount,
            payment_status=order.payment_status,
            delivery_status=order.delivery_status,
            is_paid=order.is_paid,
            paid_at=order.paid_at,
            is_delivered=order.is_delivered,
            delivered_at=order.delivered_at,
            tracking_number=order.tracking_number,
            delivery_agency=order.delivery_agency,
            gateway_session_id=order.gateway_session_id,
            status_history=[
                StatusHistoryDTO(
                    status=entry.status,
                    timestamp=entry.timestamp,
                    note=entry.note,
                    updated_by=entry.actor,
                )
                for entry in order.status_history
            ],
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class CheckoutResponseDTO(BaseModel):
    session_id: str
    url: str
    order: OrderResponseDTO


class TrackingResponseDTO(BaseModel):
    order: OrderResponseDTO
    tracking: Optional[Dict[str, Any]] = None


class DeliveryWebhookData(BaseModel):
    order_id: str
    status: str
    note: Optional[str] = None
    tracking_number: Optional[str] = None


class DeliveryWebhookPayload(BaseModel):
    """Status callback posted by the delivery agency"""
    event: str
    data: DeliveryWebhookData
