"""Order aggregate with lifecycle business logic"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..clock import utcnow
from ..enums import DeliveryStatus, HistoryActor, PaymentMethodType, PaymentStatus
from ..events.order_events import (
    DeliveryStatusChanged, OrderPlaced, PaymentStatusChanged, ShipmentCreated
)
from ..exceptions import InvalidTransition, ValidationError
from ..transitions import (
    CANCELLABLE_DELIVERY_STATUSES, DELIVERED_STATUSES, can_move_delivery,
    can_move_payment, is_paid_status, is_regression
)
from ..value_objects.cart_snapshot import CartSnapshot
from ..value_objects.entity_ids import OrderId, UserId
from ..value_objects.money import Money
from ..value_objects.order_line import OrderLine, StatusHistoryEntry
from ..value_objects.shipping_address import ShippingAddress


@dataclass
class Order:
    id: OrderId
    user_id: UserId
    items: List[OrderLine]
    shipping_address: ShippingAddress
    payment_method: PaymentMethodType
    total_order_price: Money
    shipping_price: Money
    tax_price: Money
    cod_amount: Money
    payment_status: PaymentStatus = PaymentStatus.PENDING
    delivery_status: DeliveryStatus = DeliveryStatus.PENDING

    paid_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None

    # Shipment / gateway references
    tracking_number: Optional[str] = None
    delivery_agency: Optional[str] = None
    gateway_session_id: Optional[str] = None

    status_history: List[StatusHistoryEntry] = field(default_factory=list)
    inventory_adjusted_at: Optional[datetime] = None

    # Optimistic concurrency token, bumped by the repository on every write
    version: int = 0

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    # Domain events
    _events: List = field(default_factory=list, init=False, repr=False)
    _persisted_history: int = field(default=0, init=False, repr=False)

    @classmethod
    def place(
        cls,
        *,
        user_id: UserId,
        cart: CartSnapshot,
        shipping_address: ShippingAddress,
        payment_method: PaymentMethodType,
        shipping_price: Money,
        tax_price: Money,
        actor: HistoryActor,
        order_id: Optional[OrderId] = None,
        gateway_session_id: Optional[str] = None,
    ) -> "Order":
        """Business logic: turn a cart snapshot into a new order"""
        if not cart.items:
            raise ValidationError("Cannot place an order from an empty cart")

        total = cart.payable_total + shipping_price + tax_price

        if payment_method == PaymentMethodType.CASH:
            payment_status = PaymentStatus.PENDING
            cod_amount = total
            note = "Order created, waiting for seller confirmation"
        else:
            payment_status = PaymentStatus.AUTHORIZED
            cod_amount = Money.zero(total.currency)
            note = "Order created. Payment authorized, waiting for seller confirmation."

        order = cls(
            id=order_id or OrderId.generate(),
            user_id=user_id,
            items=list(cart.items),
            shipping_address=shipping_address,
            payment_method=payment_method,
            total_order_price=total,
            shipping_price=shipping_price,
            tax_price=tax_price,
            cod_amount=cod_amount,
            payment_status=payment_status,
            delivery_status=DeliveryStatus.PENDING,
            gateway_session_id=gateway_session_id,
        )
        order._append_history(DeliveryStatus.PENDING.value, note, actor)
        order._events.append(OrderPlaced(
            order_id=order.id,
            user_id=user_id,
            payment_method=payment_method,
            total=total,
            actor=actor,
        ))
        return order

    # Derived flags

    @property
    def is_paid(self) -> bool:
        return is_paid_status(self.payment_method, self.payment_status)

    @property
    def is_delivered(self) -> bool:
        return self.delivery_status in DELIVERED_STATUSES

    @property
    def is_card(self) -> bool:
        return self.payment_method == PaymentMethodType.CARD

    # Seller / customer operations

    def confirm(self, actor: HistoryActor = HistoryActor.SELLER) -> None:
        """Business logic: seller accepts a pending order"""
        if self.delivery_status != DeliveryStatus.PENDING:
            raise InvalidTransition(
                f"Order already confirmed or in different state "
                f"(delivery status: {self.delivery_status.value})"
            )
        self._move_delivery(DeliveryStatus.CONFIRMED, "Order confirmed by seller", actor)

    def confirm_card_payment(self, actor: HistoryActor = HistoryActor.SELLER) -> None:
        """Business logic: seller confirms an authorized card payment"""
        if not self.is_card:
            raise InvalidTransition("Only card payment orders can have their payment confirmed")
        if self.payment_status != PaymentStatus.AUTHORIZED:
            raise InvalidTransition(f"Cannot confirm. Payment status is: {self.payment_status.value}")
        if self.delivery_status not in (DeliveryStatus.PENDING, DeliveryStatus.CONFIRMED):
            raise InvalidTransition(
                f"Cannot confirm payment, delivery status is: {self.delivery_status.value}"
            )

        self._move_payment(PaymentStatus.CONFIRMED, "Payment confirmed by seller", actor)
        self._move_delivery(DeliveryStatus.CONFIRMED, "Payment confirmed. Order ready to ship.", actor)

    def ensure_shippable(self) -> None:
        if self.delivery_status != DeliveryStatus.CONFIRMED:
            raise InvalidTransition(
                f"Order must be confirmed before shipping "
                f"(delivery status: {self.delivery_status.value})"
            )
        if self.tracking_number:
            raise InvalidTransition(f"Order already has shipment {self.tracking_number}")

    def mark_shipped(self, tracking_number: str, agency: Optional[str] = None) -> None:
        """Business logic: record the parcel created by the delivery agency"""
        self.ensure_shippable()
        if not tracking_number:
            raise ValidationError("Tracking number is required")

        self.tracking_number = tracking_number
        self.delivery_agency = agency
        self._move_delivery(
            DeliveryStatus.SHIPPED,
            f"Package handed to delivery agency. Tracking: {tracking_number}",
            HistoryActor.SYSTEM,
        )
        self._events.append(ShipmentCreated(
            order_id=self.id,
            tracking_number=tracking_number,
            agency=agency,
        ))

    def cancel(self, reason: Optional[str], actor: HistoryActor) -> None:
        """Business logic: cancel before a shipment exists"""
        if self.delivery_status not in CANCELLABLE_DELIVERY_STATUSES:
            raise InvalidTransition(
                f"Cannot cancel order. Current status: {self.delivery_status.value}. "
                f"Orders can only be cancelled before shipping."
            )

        # Compensating action: release the card authorization
        if self.is_card and self.payment_status == PaymentStatus.AUTHORIZED:
            self._move_payment(
                PaymentStatus.REFUNDED,
                "Payment authorization released due to cancellation",
                actor,
            )

        self._move_delivery(
            DeliveryStatus.CANCELLED,
            reason or f"Order cancelled by {actor.value}",
            actor,
        )

    def mark_delivered(self, actor: HistoryActor = HistoryActor.SELLER) -> None:
        """Business logic: manual delivery confirmation for a shipped order"""
        if self.delivery_status not in (
            DeliveryStatus.SHIPPED, DeliveryStatus.IN_TRANSIT, DeliveryStatus.OUT_FOR_DELIVERY
        ):
            raise InvalidTransition(
                f"Only shipped orders can be marked delivered "
                f"(delivery status: {self.delivery_status.value})"
            )
        self.apply_delivery_update(DeliveryStatus.DELIVERED, "Order marked as delivered", actor)

    # Externally triggered (webhook) operations; re-applying is a no-op

    def apply_delivery_update(self, target: DeliveryStatus, note: str,
                              actor: HistoryActor = HistoryActor.DELIVERY_AGENCY) -> bool:
        """Business logic: apply a delivery status reported by the carrier"""
        if target == self.delivery_status:
            return False
        if is_regression(self.delivery_status, target):
            raise InvalidTransition(
                f"Delivery status cannot go back from {self.delivery_status.value} to {target.value}"
            )

        if target == DeliveryStatus.CANCELLED:
            # Same compensation as a seller or customer cancellation
            self.cancel(note, actor)
            return True

        self._move_delivery(target, note, actor)

        if target == DeliveryStatus.DELIVERED and self.payment_method == PaymentMethodType.CASH:
            # COD: the carrier collected the cash at handoff
            self._move_payment(PaymentStatus.COMPLETED, "Cash collected on delivery", actor)
        elif target == DeliveryStatus.COMPLETED and can_move_payment(self.payment_status, PaymentStatus.COMPLETED):
            self._move_payment(PaymentStatus.COMPLETED, "Payment settled with seller", actor)
        return True

    def capture_payment(self, charge_reference: str, actor: HistoryActor = HistoryActor.SYSTEM) -> bool:
        """Business logic: the gateway captured the authorized amount"""
        if not self.is_card:
            raise InvalidTransition("Cash orders are not captured by the payment gateway")
        if self.payment_status in (PaymentStatus.CONFIRMED, PaymentStatus.COMPLETED):
            return False
        if self.payment_status != PaymentStatus.AUTHORIZED:
            raise InvalidTransition(f"Cannot capture payment in status: {self.payment_status.value}")
        return self._move_payment(
            PaymentStatus.CONFIRMED,
            f"Payment captured by gateway. Charge ID: {charge_reference}",
            actor,
        )

    def refund_payment(self, charge_reference: str, partial: bool = False,
                       actor: HistoryActor = HistoryActor.SYSTEM) -> bool:
        """Business logic: the gateway refunded all or part of the payment"""
        target = PaymentStatus.PARTIALLY_REFUNDED if partial else PaymentStatus.REFUNDED
        if self.payment_status == target:
            return False
        if partial and self.payment_status == PaymentStatus.REFUNDED:
            return False
        return self._move_payment(
            target,
            f"Payment {'partially ' if partial else ''}refunded. Charge ID: {charge_reference}",
            actor,
        )

    def expire_checkout(self, actor: HistoryActor = HistoryActor.SYSTEM) -> bool:
        """Business logic: hosted checkout expired before payment"""
        if not (self.is_card
                and self.payment_status == PaymentStatus.AUTHORIZED
                and self.delivery_status == DeliveryStatus.PENDING):
            return False
        self.cancel("Checkout session expired before payment", actor)
        return True

    def attach_gateway_session(self, session_id: str) -> None:
        if self.gateway_session_id and self.gateway_session_id != session_id:
            raise InvalidTransition(
                f"Order already linked to gateway session {self.gateway_session_id}"
            )
        self.gateway_session_id = session_id

    # Persistence helpers

    def new_history_entries(self) -> List[StatusHistoryEntry]:
        return self.status_history[self._persisted_history:]

    def mark_history_persisted(self) -> None:
        self._persisted_history = len(self.status_history)

    def get_events(self) -> List:
        """Get and clear domain events"""
        events = self._events.copy()
        self._events.clear()
        return events

    # Internals

    def _move_delivery(self, target: DeliveryStatus, note: str, actor: HistoryActor) -> bool:
        previous = self.delivery_status
        if previous == target:
            return False
        if not can_move_delivery(previous, target):
            raise InvalidTransition(
                f"Cannot move delivery status from {previous.value} to {target.value}"
            )

        self.delivery_status = target
        if target in DELIVERED_STATUSES and self.delivered_at is None:
            self.delivered_at = utcnow()
        self._append_history(target.value, note, actor)
        self._events.append(DeliveryStatusChanged(
            order_id=self.id, previous=previous, current=target, actor=actor, note=note
        ))
        return True

    def _move_payment(self, target: PaymentStatus, note: str, actor: HistoryActor) -> bool:
        previous = self.payment_status
        if previous == target:
            return False
        if not can_move_payment(previous, target):
            raise InvalidTransition(
                f"Cannot move payment status from {previous.value} to {target.value}"
            )

        self.payment_status = target
        if self.is_paid and self.paid_at is None:
            self.paid_at = utcnow()
        self._append_history(f"payment_{target.value}", note, actor)
        self._events.append(PaymentStatusChanged(
            order_id=self.id, previous=previous, current=target, actor=actor, note=note
        ))
        return True

    def _append_history(self, status: str, note: str, actor: HistoryActor) -> None:
        self.status_history.append(StatusHistoryEntry(status=status, note=note, actor=actor))
        self.updated_at = utcnow()
