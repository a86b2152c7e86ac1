"""Order lifecycle use cases.

The orchestrator is the only writer of orders. Every mutation goes through
``_transition``: load, apply the entity rule, then a version-checked update
inside one unit of work. Remote calls to the payment gateway and the
delivery carrier happen while no transaction is open.
"""

import logging
from typing import Callable, List, Optional, Tuple

from ...core.config import settings
from ...domain.entities.order import Order
from ...domain.enums import DeliveryStatus, HistoryActor, PaymentMethodType, PaymentStatus
from ...domain.exceptions import CartNotFound, ConcurrentModification, InvalidTransition, OrderNotFound
from ...domain.repositories.unit_of_work import IUnitOfWork
from ...domain.services.delivery_carrier import IDeliveryCarrier, ParcelItem, ShipmentRequest
from ...domain.services.payment_gateway import CheckoutSession, IPaymentGateway
from ...domain.value_objects.cart_snapshot import CartSnapshot
from ...domain.value_objects.entity_ids import CartId, OrderId, UserId
from ...domain.value_objects.money import Money
from ...domain.value_objects.shipping_address import ShippingAddress
from .adjust_inventory import InventoryAdjuster
from .record_activity import ActivityRecorder

logger = logging.getLogger(__name__)


class OrderLifecycleOrchestrator:

    def __init__(
        self,
        unit_of_work: IUnitOfWork,
        payment_gateway: IPaymentGateway,
        delivery_carrier: IDeliveryCarrier,
        inventory_adjuster: InventoryAdjuster,
        activity_recorder: ActivityRecorder,
        shipping_price: Optional[Money] = None,
        tax_price: Optional[Money] = None,
        frontend_url: Optional[str] = None,
    ):
        self.unit_of_work = unit_of_work
        self.payment_gateway = payment_gateway
        self.delivery_carrier = delivery_carrier
        self.inventory_adjuster = inventory_adjuster
        self.activity_recorder = activity_recorder
        self.shipping_price = shipping_price or Money(settings.SHIPPING_PRICE)
        self.tax_price = tax_price or Money(settings.TAX_PRICE)
        self.frontend_url = (frontend_url or settings.FRONTEND_URL).rstrip("/")

    # Creation

    async def create_cash_order(
        self,
        cart_id: CartId,
        shipping_address: ShippingAddress,
        user_id: UserId,
        actor: HistoryActor = HistoryActor.CUSTOMER,
    ) -> Order:
        """Place a cash-on-delivery order and consume the cart"""
        async with self.unit_of_work:
            cart = await self._load_cart(cart_id, user_id)
            order = Order.place(
                user_id=user_id,
                cart=cart,
                shipping_address=shipping_address,
                payment_method=PaymentMethodType.CASH,
                shipping_price=self.shipping_price,
                tax_price=self.tax_price,
                actor=actor,
            )
            await self.unit_of_work.orders.add(order)
            if not await self.unit_of_work.carts.delete_cart(cart_id):
                raise CartNotFound(cart_id)

        logger.info(f"Cash order {order.id} created from cart {cart_id} ({order.total_order_price})")
        await self._after_create(order)
        return order

    async def create_card_checkout(
        self,
        cart_id: CartId,
        shipping_address: ShippingAddress,
        user_id: UserId,
        customer_email: Optional[str] = None,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> Tuple[Order, CheckoutSession]:
        """Open a hosted card checkout, then persist the authorized order"""
        async with self.unit_of_work:
            cart = await self._load_cart(cart_id, user_id)

        order = Order.place(
            user_id=user_id,
            cart=cart,
            shipping_address=shipping_address,
            payment_method=PaymentMethodType.CARD,
            shipping_price=self.shipping_price,
            tax_price=self.tax_price,
            actor=HistoryActor.CUSTOMER,
        )

        # Raises UpstreamUnavailable; nothing has been written yet
        session = await self.payment_gateway.create_checkout_session(
            order,
            success_url=success_url or f"{self.frontend_url}/order-confirmation/{order.id}",
            cancel_url=cancel_url or f"{self.frontend_url}/checkout",
            customer_email=customer_email,
            cart_id=cart_id,
        )
        order.attach_gateway_session(session.session_id)

        try:
            async with self.unit_of_work:
                await self.unit_of_work.orders.add(order)
                if not await self.unit_of_work.carts.delete_cart(cart_id):
                    raise CartNotFound(cart_id)
        except Exception:
            await self._release_checkout(session.session_id, order.id)
            raise

        logger.info(f"Card order {order.id} created with checkout session {session.session_id}")
        await self._after_create(order)
        return order, session

    async def materialize_card_order(
        self,
        session_id: str,
        cart_id: CartId,
        user_id: UserId,
        shipping_address: ShippingAddress,
        order_id: Optional[OrderId] = None,
    ) -> Tuple[Order, bool]:
        """Create the card order for a completed checkout that has none yet.

        ``order_id`` is the reference the session was opened with, so charge
        webhooks carrying it find the rebuilt order. Returns the order and
        whether it was created by this call. A concurrent duplicate loses on
        the unique session id and gets the stored order back.
        """
        try:
            async with self.unit_of_work:
                existing = await self.unit_of_work.orders.get_by_gateway_session_id(session_id)
                if existing:
                    return existing, False

                cart = await self._load_cart(cart_id, user_id)
                order = Order.place(
                    user_id=user_id,
                    cart=cart,
                    shipping_address=shipping_address,
                    payment_method=PaymentMethodType.CARD,
                    shipping_price=self.shipping_price,
                    tax_price=self.tax_price,
                    actor=HistoryActor.SYSTEM,
                    order_id=order_id,
                    gateway_session_id=session_id,
                )
                await self.unit_of_work.orders.add(order)
                if not await self.unit_of_work.carts.delete_cart(cart_id):
                    raise CartNotFound(cart_id)
        except ConcurrentModification:
            async with self.unit_of_work:
                existing = await self.unit_of_work.orders.get_by_gateway_session_id(session_id)
            if existing is None:
                raise
            logger.info(f"Checkout {session_id} already materialized as order {existing.id}")
            return existing, False

        logger.info(f"Card order {order.id} materialized from checkout {session_id}")
        await self._after_create(order)
        return order, True

    # Seller / customer operations

    async def confirm_order(self, order_id: OrderId, actor: HistoryActor = HistoryActor.SELLER) -> Order:
        order, _ = await self._transition(order_id, lambda order: order.confirm(actor))
        return order

    async def confirm_card_payment(self, order_id: OrderId,
                                   actor: HistoryActor = HistoryActor.SELLER) -> Order:
        order, _ = await self._transition(order_id, lambda order: order.confirm_card_payment(actor))
        return order

    async def ship_order(self, order_id: OrderId) -> Order:
        """Create the carrier parcel for a confirmed order and mark it shipped"""
        async with self.unit_of_work:
            order = await self._get_order(order_id)
            order.ensure_shippable()

        shipment = await self.delivery_carrier.create_shipment(self._shipment_request(order))

        # Conditional on the version read above: any change in between wins
        try:
            async with self.unit_of_work:
                order.mark_shipped(shipment.tracking_number, self.delivery_carrier.agency_name)
                await self.unit_of_work.orders.update(order)
        except InvalidTransition:
            logger.error(
                f"Parcel {shipment.tracking_number} was created but order {order_id} changed "
                f"meanwhile; the parcel needs manual review"
            )
            raise

        logger.info(f"Order {order_id} shipped with tracking number {shipment.tracking_number}")
        self._publish(order)
        return order

    async def cancel_order(
        self,
        order_id: OrderId,
        reason: Optional[str] = None,
        actor: HistoryActor = HistoryActor.CUSTOMER,
        user_id: Optional[UserId] = None,
    ) -> Order:
        """Cancel before shipment; customers may only cancel their own orders"""

        def cancel(order: Order) -> None:
            if user_id is not None and order.user_id != user_id:
                raise OrderNotFound(order_id)
            if order.is_card and order.payment_status == PaymentStatus.CONFIRMED:
                logger.warning(
                    f"Order {order_id} cancelled after card capture; refund must be issued "
                    f"manually and will be reconciled by the gateway webhook"
                )
            order.cancel(reason, actor)

        order, _ = await self._transition(order_id, cancel)
        return order

    async def mark_delivered(self, order_id: OrderId, actor: HistoryActor = HistoryActor.SELLER) -> Order:
        order, _ = await self._transition(order_id, lambda order: order.mark_delivered(actor))
        return order

    async def get_tracking(self, order_id: OrderId, user_id: Optional[UserId] = None) -> dict:
        """Order summary plus live carrier tracking, if any"""
        order = await self.get_order(order_id, user_id)

        tracking = None
        if order.tracking_number:
            try:
                tracking = await self.delivery_carrier.get_tracking_info(order.tracking_number)
            except Exception as e:
                logger.warning(f"Tracking lookup failed for order {order_id}: {e}")
        return {"order": order, "tracking": tracking}

    # Internal primitives used by the webhook adapters

    async def apply_delivery_status(
        self,
        order_id: OrderId,
        status: DeliveryStatus,
        note: Optional[str] = None,
        actor: HistoryActor = HistoryActor.DELIVERY_AGENCY,
    ) -> Tuple[Order, bool]:
        note = note or f"Delivery status updated to {status.value}"
        return await self._transition(
            order_id, lambda order: order.apply_delivery_update(status, note, actor)
        )

    async def capture_payment(self, order_id: OrderId, charge_reference: str) -> Tuple[Order, bool]:
        return await self._transition(order_id, lambda order: order.capture_payment(charge_reference))

    async def refund_payment(self, order_id: OrderId, charge_reference: str,
                             partial: bool = False) -> Tuple[Order, bool]:
        return await self._transition(
            order_id, lambda order: order.refund_payment(charge_reference, partial)
        )

    async def expire_checkout(self, order_id: OrderId) -> Tuple[Order, bool]:
        return await self._transition(order_id, lambda order: order.expire_checkout())

    # Queries

    async def get_order(self, order_id: OrderId, user_id: Optional[UserId] = None) -> Order:
        async with self.unit_of_work:
            order = await self._get_order(order_id)
        if user_id is not None and order.user_id != user_id:
            raise OrderNotFound(order_id)
        return order

    async def get_order_by_session(self, session_id: str, user_id: Optional[UserId] = None) -> Order:
        async with self.unit_of_work:
            order = await self.unit_of_work.orders.get_by_gateway_session_id(session_id)
        if order is None or (user_id is not None and order.user_id != user_id):
            raise OrderNotFound(session_id)
        return order

    async def find_order(self, order_id: OrderId) -> Optional[Order]:
        async with self.unit_of_work:
            return await self.unit_of_work.orders.get_by_id(order_id)

    async def find_authorized_order_by_amount(self, amount: Money) -> Optional[Order]:
        async with self.unit_of_work:
            return await self.unit_of_work.orders.find_latest_authorized_card_order(amount)

    async def list_orders(self, user_id: Optional[UserId] = None, skip: int = 0,
                          limit: int = 100) -> List[Order]:
        async with self.unit_of_work:
            if user_id is not None:
                return await self.unit_of_work.orders.get_by_user_id(user_id)
            return await self.unit_of_work.orders.get_all(skip=skip, limit=limit)

    # Helpers

    async def _transition(self, order_id: OrderId,
                          change: Callable[[Order], Optional[bool]]) -> Tuple[Order, bool]:
        async with self.unit_of_work:
            order = await self._get_order(order_id)
            # Entity methods return False for an idempotent repeat, None or True otherwise
            changed = change(order) is not False
            if changed:
                await self.unit_of_work.orders.update(order)

        if changed:
            self._publish(order)
        return order, changed

    async def _get_order(self, order_id: OrderId) -> Order:
        order = await self.unit_of_work.orders.get_by_id(order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order

    async def _load_cart(self, cart_id: CartId, user_id: UserId) -> CartSnapshot:
        cart = await self.unit_of_work.carts.find_cart(cart_id)
        if not cart or not cart.belongs_to(user_id):
            raise CartNotFound(cart_id)
        return cart

    async def _release_checkout(self, session_id: str, order_id: OrderId) -> None:
        """Expire a session whose order could not be stored so it cannot be paid"""
        try:
            await self.payment_gateway.expire_checkout_session(session_id)
        except Exception as e:
            logger.error(
                f"Could not expire checkout {session_id} for unsaved order {order_id}: {e}; "
                f"a completed payment will be rebuilt from the session metadata"
            )
        else:
            logger.warning(f"Checkout {session_id} expired, order {order_id} was not saved")

    async def _after_create(self, order: Order) -> None:
        self._publish(order)
        await self.inventory_adjuster.adjust_for_order(order)

    def _publish(self, order: Order) -> None:
        self.activity_recorder.publish(order, order.get_events())

    def _shipment_request(self, order: Order) -> ShipmentRequest:
        address = order.shipping_address
        return ShipmentRequest(
            order_id=str(order.id),
            customer_name=address.full_name or "Customer",
            customer_phone=address.phone,
            customer_address=address.details,
            wilaya=address.wilaya,
            items=[
                ParcelItem(name=line.title or "Product", quantity=line.quantity, price=line.unit_price)
                for line in order.items
            ],
            price=order.total_order_price,
        )
