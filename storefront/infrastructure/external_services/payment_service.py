"""Payment service for processing card payments via Stripe"""

import asyncio
import json
import logging
import stripe
from typing import Optional

from ...core.config import settings
from ...domain.entities.order import Order
from ...domain.exceptions import InvalidSignature, UpstreamUnavailable
from ...domain.services.payment_gateway import (
    SHIPPING_METADATA_PREFIX, CheckoutSession, GatewayEvent, IPaymentGateway
)
from ...domain.value_objects.entity_ids import CartId

logger = logging.getLogger(__name__)


class StripePaymentService(IPaymentGateway):

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None,
                 currency: Optional[str] = None, timeout: Optional[float] = None):
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET
        self.currency = currency or settings.PAYMENT_CURRENCY
        self.timeout = timeout or settings.PAYMENT_GATEWAY_TIMEOUT_SECONDS

    async def create_checkout_session(self, order: Order, success_url: str, cancel_url: str,
                                      customer_email: Optional[str] = None,
                                      cart_id: Optional[CartId] = None) -> CheckoutSession:
        """Create a hosted Stripe checkout session for the whole order"""
        order_ref = str(order.id)
        params = {
            "api_key": self.api_key,
            "payment_method_types": ["card"],
            "line_items": [{
                "price_data": {
                    "currency": self.currency,
                    "product_data": {"name": f"Order {order_ref}"},
                    "unit_amount": order.total_order_price.to_cents(),
                },
                "quantity": 1,
            }],
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            # Correlation references: the session and the resulting charge both carry the order id
            "client_reference_id": order_ref,
            "metadata": self.session_metadata(order, cart_id),
            "payment_intent_data": {"metadata": {"order_id": order_ref}},
        }
        if customer_email:
            params["customer_email"] = customer_email

        logger.info(f"Creating Stripe checkout session for order {order_ref} ({order.total_order_price})")
        session = await self._call(
            stripe.checkout.Session.create, f"checkout for order {order_ref}", **params
        )

        logger.info(f"Stripe checkout session {session.id} created for order {order_ref}")
        return CheckoutSession(session_id=session.id, redirect_url=session.url)

    async def expire_checkout_session(self, session_id: str) -> None:
        await self._call(
            stripe.checkout.Session.expire, f"expiring checkout {session_id}",
            session_id, api_key=self.api_key,
        )
        logger.info(f"Stripe checkout session {session_id} expired")

    @staticmethod
    def session_metadata(order: Order, cart_id: Optional[CartId] = None) -> dict:
        """Order reference plus what a completed-checkout webhook needs to rebuild the order"""
        metadata = {"order_id": str(order.id), "user_id": str(order.user_id)}
        if cart_id is not None:
            metadata["cart_id"] = str(cart_id)
        for key, value in order.shipping_address.to_dict().items():
            # Stripe metadata values are strings; empty fields are left out
            if value:
                metadata[f"{SHIPPING_METADATA_PREFIX}{key}"] = str(value)
        return metadata

    async def _call(self, method, description: str, *args, **params):
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(method, *args, **params),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Stripe {description} timed out after {self.timeout}s")
            raise UpstreamUnavailable("Payment gateway timed out") from e
        except stripe.StripeError as e:
            logger.error(f"Stripe error in {description}: {e}")
            raise UpstreamUnavailable(f"Payment gateway error: {e}") from e

    def construct_event(self, payload: bytes, signature: Optional[str]) -> GatewayEvent:
        """Verify webhook signature from Stripe and parse the event"""
        if not self.webhook_secret:
            raise InvalidSignature("No webhook secret configured")
        if not signature:
            raise InvalidSignature("No signature header provided")

        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Stripe webhook signature verification failed: {e}")
            raise InvalidSignature(f"Webhook Error: {e}") from e
        except ValueError as e:
            raise InvalidSignature(f"Invalid webhook payload: {e}") from e

        body = json.loads(payload)
        return GatewayEvent(
            id=body.get("id", ""),
            kind=body.get("type", ""),
            payload=body.get("data", {}).get("object", {}) or {},
        )
