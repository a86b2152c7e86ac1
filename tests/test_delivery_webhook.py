"""Carrier callbacks through the delivery webhook use case"""

import pytest

from storefront.application.use_cases.process_delivery_webhook import ProcessDeliveryWebhookUseCase
from storefront.domain.enums import DeliveryStatus, HistoryActor, PaymentStatus


@pytest.fixture
def webhook(orchestrator):
    return ProcessDeliveryWebhookUseCase(orchestrator)


@pytest.fixture
async def shipped_order(orchestrator, cart_id, user_id, address):
    order = await orchestrator.create_cash_order(cart_id, address, user_id)
    await orchestrator.confirm_order(order.id)
    return await orchestrator.ship_order(order.id)


def callback(order_id, status, note=None, event="parcel.status.updated"):
    return {"event": event, "data": {"order_id": str(order_id), "status": status, "note": note}}


async def test_status_update_is_applied(webhook, orchestrator, shipped_order):
    result = await webhook.execute(callback(shipped_order.id, "in_transit", "Left Algiers hub"))

    assert result == {"received": True}
    order = await orchestrator.get_order(shipped_order.id)
    assert order.delivery_status == DeliveryStatus.IN_TRANSIT
    assert order.status_history[-1].note == "Left Algiers hub"
    assert order.status_history[-1].actor == HistoryActor.DELIVERY_AGENCY


async def test_cash_delivery_completes_payment(webhook, orchestrator, shipped_order):
    await webhook.execute(callback(shipped_order.id, "delivered"))

    order = await orchestrator.get_order(shipped_order.id)
    assert order.is_delivered and order.is_paid
    assert order.payment_status == PaymentStatus.COMPLETED


async def test_unknown_status_changes_nothing(webhook, orchestrator, shipped_order):
    result = await webhook.execute(callback(shipped_order.id, "teleported"))

    assert result == {"received": True}
    order = await orchestrator.get_order(shipped_order.id)
    assert order.delivery_status == DeliveryStatus.SHIPPED
    assert order.version == shipped_order.version


async def test_regression_changes_nothing(webhook, orchestrator, shipped_order):
    await webhook.execute(callback(shipped_order.id, "out_for_delivery"))
    await webhook.execute(callback(shipped_order.id, "in_transit"))

    order = await orchestrator.get_order(shipped_order.id)
    assert order.delivery_status == DeliveryStatus.OUT_FOR_DELIVERY


async def test_duplicate_callback_is_noop(webhook, orchestrator, shipped_order):
    await webhook.execute(callback(shipped_order.id, "in_transit"))
    once = await orchestrator.get_order(shipped_order.id)

    await webhook.execute(callback(shipped_order.id, "in_transit"))

    twice = await orchestrator.get_order(shipped_order.id)
    assert len(twice.status_history) == len(once.status_history)
    assert twice.version == once.version


async def test_failed_delivery_is_terminal(webhook, orchestrator, shipped_order):
    await webhook.execute(callback(shipped_order.id, "failed_delivery"))
    await webhook.execute(callback(shipped_order.id, "delivered"))

    order = await orchestrator.get_order(shipped_order.id)
    assert order.delivery_status == DeliveryStatus.FAILED


async def test_other_events_and_bad_payloads_are_acknowledged(webhook, shipped_order):
    assert await webhook.execute(callback(shipped_order.id, "delivered", event="parcel.created")) == {
        "received": True
    }
    assert await webhook.execute({"event": "parcel.status.updated"}) == {"received": True}
    assert await webhook.execute(callback("not-a-uuid", "delivered")) == {"received": True}


async def test_card_completion_marks_paid(webhook, orchestrator, cart_id, user_id, address):
    order, _ = await orchestrator.create_card_checkout(cart_id, address, user_id)
    await orchestrator.confirm_order(order.id)
    await orchestrator.ship_order(order.id)

    await webhook.execute(callback(order.id, "completed", "Funds remitted to seller"))

    completed = await orchestrator.get_order(order.id)
    assert completed.delivery_status == DeliveryStatus.COMPLETED
    assert completed.payment_status == PaymentStatus.COMPLETED
    assert completed.is_delivered and completed.is_paid
    assert completed.paid_at is not None


async def test_carrier_cancellation_releases_card_authorization(webhook, orchestrator, cart_id,
                                                                user_id, address):
    order, _ = await orchestrator.create_card_checkout(cart_id, address, user_id)

    await webhook.execute(callback(order.id, "cancelled", "Pickup refused by sender"))

    cancelled = await orchestrator.get_order(order.id)
    assert cancelled.delivery_status == DeliveryStatus.CANCELLED
    assert cancelled.payment_status == PaymentStatus.REFUNDED
    assert [entry.status for entry in cancelled.status_history] == [
        "pending", "payment_refunded", "cancelled"
    ]
    assert cancelled.status_history[-1].note == "Pickup refused by sender"
    assert cancelled.status_history[-1].actor == HistoryActor.DELIVERY_AGENCY
