"""Order domain exceptions.

Raised by the domain and application layers when a business rule is
violated. The API layer maps them onto HTTP responses in ``api/errors.py``.
"""


class OrderingError(Exception):
    """Base class for every error raised by the ordering core."""


class NotFound(OrderingError):
    """The referenced order or cart does not exist. Not retried."""


class OrderNotFound(NotFound):
    def __init__(self, order_id):
        super().__init__(f"There is no such order with id: {order_id}")
        self.order_id = order_id


class CartNotFound(NotFound):
    def __init__(self, cart_id):
        super().__init__(f"There is no such cart with id {cart_id}")
        self.cart_id = cart_id


class InvalidTransition(OrderingError):
    """The order's current status does not allow the requested change."""


class ConcurrentModification(InvalidTransition):
    """The order changed between read and conditional write."""


class InvalidSignature(OrderingError):
    """Webhook authenticity could not be verified."""


class UpstreamUnavailable(OrderingError):
    """Payment gateway or delivery carrier failed; nothing was committed."""


class ShipmentCreationFailed(UpstreamUnavailable):
    """The carrier refused or failed to create the parcel."""


class ValidationError(OrderingError):
    """Malformed input, e.g. a shipping address without details."""
