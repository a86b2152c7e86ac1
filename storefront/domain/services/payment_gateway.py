"""Payment gateway port"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from ..entities.order import Order
from ..value_objects.entity_ids import CartId

# Checkout metadata keys carrying the shipping address fields
SHIPPING_METADATA_PREFIX = "shipping_"


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    redirect_url: str


@dataclass(frozen=True)
class GatewayEvent:
    """A webhook event whose signature has already been verified"""
    id: str
    kind: str
    payload: dict = field(default_factory=dict)


class IPaymentGateway(ABC):

    @abstractmethod
    async def create_checkout_session(self, order: Order, success_url: str, cancel_url: str,
                                      customer_email: Optional[str] = None,
                                      cart_id: Optional[CartId] = None) -> CheckoutSession:
        """Open a hosted checkout. The session carries enough to rebuild the order from ``cart_id``."""
        pass

    @abstractmethod
    async def expire_checkout_session(self, session_id: str) -> None:
        """Close an open checkout so it can no longer be paid"""
        pass

    @abstractmethod
    def construct_event(self, payload: bytes, signature: Optional[str]) -> GatewayEvent:
        """Verify the signature and parse the event, raising InvalidSignature"""
        pass
