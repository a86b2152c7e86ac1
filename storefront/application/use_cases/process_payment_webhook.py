"""Process payment webhook use case"""

import logging
from typing import Optional

from ...core.config import settings
from ...domain.entities.order import Order
from ...domain.exceptions import NotFound, ValidationError
from ...domain.services.payment_gateway import SHIPPING_METADATA_PREFIX, GatewayEvent, IPaymentGateway
from ...domain.value_objects.entity_ids import CartId, OrderId, UserId
from ...domain.value_objects.money import Money
from ...domain.value_objects.shipping_address import ShippingAddress
from .order_lifecycle import OrderLifecycleOrchestrator

logger = logging.getLogger(__name__)


class ProcessPaymentWebhookUseCase:

    def __init__(self, orchestrator: OrderLifecycleOrchestrator, payment_gateway: IPaymentGateway,
                 match_by_amount: Optional[bool] = None):
        self.orchestrator = orchestrator
        self.payment_gateway = payment_gateway
        self.match_by_amount = (
            settings.PAYMENT_MATCH_BY_AMOUNT_FALLBACK if match_by_amount is None else match_by_amount
        )
        self._handlers = {
            "checkout.session.completed": self._handle_checkout_completed,
            "checkout.session.expired": self._handle_checkout_expired,
            "charge.succeeded": self._handle_charge_captured,
            "charge.captured": self._handle_charge_captured,
            "charge.refunded": self._handle_charge_refunded,
        }

    async def execute(self, payload: bytes, signature: Optional[str]) -> dict:
        """Verify and process a gateway webhook.

        ``InvalidSignature`` propagates so the caller can answer 400. Once the
        event is authentic it is always acknowledged; processing failures are
        logged with the event id for later reconciliation.
        """
        event = self.payment_gateway.construct_event(payload, signature)
        logger.info(f"Received payment webhook {event.id} ({event.kind})")

        try:
            await self.dispatch(event)
        except Exception:
            logger.exception(f"Failed to process payment webhook {event.id} ({event.kind})")
        return {"received": True}

    async def dispatch(self, event: GatewayEvent) -> Optional[Order]:
        handler = self._handlers.get(event.kind)
        if handler is None:
            logger.info(f"Ignoring payment webhook event: {event.kind}")
            return None
        return await handler(event.payload)

    async def _handle_checkout_completed(self, session: dict) -> Optional[Order]:
        session_id = session.get("id")
        metadata = session.get("metadata") or {}

        reference = session.get("client_reference_id") or metadata.get("order_id")
        order = await self._find_by_session(session_id)
        if order is None:
            order = await self._find_by_reference(reference)
        if order is not None:
            logger.info(f"Checkout {session_id} already has order {order.id}")
            return order

        cart_id = metadata.get("cart_id")
        user_id = metadata.get("user_id")
        if not session_id or not cart_id or not user_id:
            logger.warning(f"Checkout {session_id} has no order and no cart to build one from")
            return None

        order, created = await self.orchestrator.materialize_card_order(
            session_id=session_id,
            cart_id=CartId.from_str(cart_id),
            user_id=UserId.from_str(user_id),
            shipping_address=self._shipping_from_metadata(metadata),
            order_id=self._parse_order_id(reference),
        )
        if created:
            logger.info(f"Order {order.id} created from checkout {session_id}")
        return order

    async def _handle_checkout_expired(self, session: dict) -> Optional[Order]:
        order = await self._find_by_session(session.get("id"))
        if order is None:
            return None
        order, changed = await self.orchestrator.expire_checkout(order.id)
        if changed:
            logger.info(f"Order {order.id} cancelled, checkout session expired")
        return order

    async def _handle_charge_captured(self, charge: dict) -> Optional[Order]:
        order = await self._find_charge_order(charge)
        if order is None:
            return None
        order, changed = await self.orchestrator.capture_payment(order.id, charge.get("id", ""))
        if changed:
            logger.info(f"Payment captured for order {order.id}")
        return order

    async def _handle_charge_refunded(self, charge: dict) -> Optional[Order]:
        order = await self._find_charge_order(charge)
        if order is None:
            return None
        partial = charge.get("amount_refunded", 0) < charge.get("amount", 0)
        order, changed = await self.orchestrator.refund_payment(
            order.id, charge.get("id", ""), partial=partial
        )
        if changed:
            logger.info(f"Payment {'partially ' if partial else ''}refunded for order {order.id}")
        return order

    async def _find_charge_order(self, charge: dict) -> Optional[Order]:
        reference = (charge.get("metadata") or {}).get("order_id")
        if reference:
            order = await self._find_by_reference(reference)
            if order is None:
                logger.warning(f"Charge {charge.get('id')} references unknown order {reference}")
            return order

        if not self.match_by_amount:
            logger.warning(f"Charge {charge.get('id')} carries no order reference, ignoring")
            return None

        amount = Money.from_cents(charge.get("amount", 0))
        order = await self.orchestrator.find_authorized_order_by_amount(amount)
        if order is not None:
            logger.warning(
                f"Charge {charge.get('id')} matched to order {order.id} by amount {amount}; "
                f"this match is a guess"
            )
        return order

    async def _find_by_session(self, session_id: Optional[str]) -> Optional[Order]:
        if not session_id:
            return None
        try:
            return await self.orchestrator.get_order_by_session(session_id)
        except NotFound:
            return None

    async def _find_by_reference(self, reference: Optional[str]) -> Optional[Order]:
        order_id = self._parse_order_id(reference)
        if order_id is None:
            return None
        return await self.orchestrator.find_order(order_id)

    @staticmethod
    def _parse_order_id(reference: Optional[str]) -> Optional[OrderId]:
        if not reference:
            return None
        try:
            return OrderId.from_str(reference)
        except ValueError:
            logger.warning(f"Malformed order reference in payment webhook: {reference}")
            return None

    @staticmethod
    def _shipping_from_metadata(metadata: dict) -> ShippingAddress:
        fields = {
            key[len(SHIPPING_METADATA_PREFIX):]: value
            for key, value in metadata.items()
            if key.startswith(SHIPPING_METADATA_PREFIX)
        }
        if not fields.get("details"):
            raise ValidationError("Checkout metadata carries no shipping details")
        return ShippingAddress.from_dict(fields)
