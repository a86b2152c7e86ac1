"""Order domain events"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..clock import utcnow
from ..enums import DeliveryStatus, HistoryActor, PaymentMethodType, PaymentStatus
from ..value_objects.entity_ids import OrderId, UserId
from ..value_objects.money import Money


@dataclass(frozen=True)
class OrderPlaced:
    order_id: OrderId
    user_id: UserId
    payment_method: PaymentMethodType
    total: Money
    actor: HistoryActor
    occurred_at: datetime = field(default_factory=utcnow)

    kind = "order_created"


@dataclass(frozen=True)
class DeliveryStatusChanged:
    order_id: OrderId
    previous: DeliveryStatus
    current: DeliveryStatus
    actor: HistoryActor
    note: str = ""
    occurred_at: datetime = field(default_factory=utcnow)

    kind = "delivery_status_changed"


@dataclass(frozen=True)
class PaymentStatusChanged:
    order_id: OrderId
    previous: PaymentStatus
    current: PaymentStatus
    actor: HistoryActor
    note: str = ""
    occurred_at: datetime = field(default_factory=utcnow)

    kind = "payment_status_changed"


@dataclass(frozen=True)
class ShipmentCreated:
    order_id: OrderId
    tracking_number: str
    agency: Optional[str]
    occurred_at: datetime = field(default_factory=utcnow)

    kind = "shipment_created"
