"""Legal status transitions for the two order axes"""

from typing import Dict, FrozenSet

from .enums import DeliveryStatus, PaymentMethodType, PaymentStatus


D = DeliveryStatus
P = PaymentStatus

# Main delivery chain; carrier updates may skip forward along it but never back.
DELIVERY_CHAIN = (
    D.PENDING,
    D.CONFIRMED,
    D.SHIPPED,
    D.IN_TRANSIT,
    D.OUT_FOR_DELIVERY,
    D.DELIVERED,
    D.COMPLETED,
)

_SIDE_EXITS = frozenset({D.FAILED, D.RETURNED})

DELIVERY_TRANSITIONS: Dict[DeliveryStatus, FrozenSet[DeliveryStatus]] = {
    D.PENDING: frozenset({D.CONFIRMED, D.CANCELLED}) | _SIDE_EXITS,
    D.CONFIRMED: frozenset({D.SHIPPED, D.CANCELLED}) | _SIDE_EXITS,
    D.SHIPPED: frozenset({D.IN_TRANSIT, D.OUT_FOR_DELIVERY, D.DELIVERED, D.COMPLETED}) | _SIDE_EXITS,
    D.IN_TRANSIT: frozenset({D.OUT_FOR_DELIVERY, D.DELIVERED, D.COMPLETED}) | _SIDE_EXITS,
    D.OUT_FOR_DELIVERY: frozenset({D.DELIVERED, D.COMPLETED}) | _SIDE_EXITS,
    D.DELIVERED: frozenset({D.COMPLETED}) | _SIDE_EXITS,
    D.COMPLETED: frozenset(),
    D.FAILED: frozenset(),
    D.RETURNED: frozenset(),
    D.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    P.PENDING: frozenset({P.COMPLETED, P.FAILED}),
    P.AUTHORIZED: frozenset({P.CONFIRMED, P.COMPLETED, P.REFUNDED, P.PARTIALLY_REFUNDED, P.FAILED}),
    P.CONFIRMED: frozenset({P.COMPLETED, P.REFUNDED, P.PARTIALLY_REFUNDED}),
    P.COMPLETED: frozenset({P.REFUNDED, P.PARTIALLY_REFUNDED}),
    P.PARTIALLY_REFUNDED: frozenset({P.REFUNDED}),
    P.REFUNDED: frozenset(),
    P.FAILED: frozenset(),
}

CANCELLABLE_DELIVERY_STATUSES = frozenset({D.PENDING, D.CONFIRMED})
DELIVERED_STATUSES = frozenset({D.DELIVERED, D.COMPLETED})
TERMINAL_DELIVERY_STATUSES = frozenset(s for s, targets in DELIVERY_TRANSITIONS.items() if not targets)

PAID_STATUSES = {
    PaymentMethodType.CARD: frozenset({P.CONFIRMED, P.COMPLETED}),
    PaymentMethodType.CASH: frozenset({P.COMPLETED}),
}


def can_move_delivery(current: DeliveryStatus, target: DeliveryStatus) -> bool:
    return target in DELIVERY_TRANSITIONS[current]


def can_move_payment(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in PAYMENT_TRANSITIONS[current]


def is_paid_status(method: PaymentMethodType, status: PaymentStatus) -> bool:
    return status in PAID_STATUSES[method]


def is_regression(current: DeliveryStatus, target: DeliveryStatus) -> bool:
    """True when target sits earlier than current on the main delivery chain."""
    if current not in DELIVERY_CHAIN or target not in DELIVERY_CHAIN:
        return False
    return DELIVERY_CHAIN.index(target) < DELIVERY_CHAIN.index(current)
