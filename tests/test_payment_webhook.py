"""Gateway webhook dispatch with real Stripe signature verification"""

from types import SimpleNamespace

import pytest
import stripe

from storefront.application.use_cases.adjust_inventory import InventoryAdjuster
from storefront.application.use_cases.order_lifecycle import OrderLifecycleOrchestrator
from storefront.application.use_cases.process_payment_webhook import ProcessPaymentWebhookUseCase
from storefront.domain.enums import DeliveryStatus, PaymentStatus
from storefront.domain.exceptions import InvalidSignature
from storefront.infrastructure.external_services.payment_service import StripePaymentService
from storefront.infrastructure.orm import OrderModel

from conftest import WEBHOOK_SECRET, product_counters, stripe_event, stripe_signature


@pytest.fixture
def stripe_service():
    return StripePaymentService(api_key="sk_test_123", webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def webhook(orchestrator, stripe_service):
    return ProcessPaymentWebhookUseCase(orchestrator, stripe_service, match_by_amount=False)


async def deliver(webhook, kind, data):
    payload = stripe_event(kind, data)
    return await webhook.execute(payload, stripe_signature(payload))


def charge(order_id=None, amount=330000, amount_refunded=0, charge_id="ch_123"):
    data = {"id": charge_id, "object": "charge", "amount": amount, "amount_refunded": amount_refunded}
    data["metadata"] = {"order_id": str(order_id)} if order_id else {}
    return data


class TestSignature:

    async def test_bad_signature_is_rejected(self, webhook, orchestrator, cart_id, user_id, address):
        order, _ = await orchestrator.create_card_checkout(cart_id, address, user_id)
        payload = stripe_event("charge.succeeded", charge(order.id))

        with pytest.raises(InvalidSignature):
            await webhook.execute(payload, stripe_signature(payload, secret="whsec_wrong"))
        with pytest.raises(InvalidSignature):
            await webhook.execute(payload, None)

        reloaded = await orchestrator.get_order(order.id)
        assert reloaded.payment_status == PaymentStatus.AUTHORIZED

    async def test_processing_failure_is_still_acknowledged(self, webhook):
        result = await deliver(webhook, "checkout.session.completed", {
            "id": "cs_broken",
            "metadata": {"cart_id": "not-a-uuid", "user_id": "also-bad", "shipping_details": "x"},
        })

        assert result == {"received": True}

    async def test_unknown_kind_is_ignored(self, webhook):
        assert await deliver(webhook, "customer.created", {"id": "cus_1"}) == {"received": True}


class TestCharges:

    async def test_capture_confirms_payment_once(self, webhook, orchestrator, cart_id, user_id, address):
        order, _ = await orchestrator.create_card_checkout(cart_id, address, user_id)

        await deliver(webhook, "charge.succeeded", charge(order.id))
        await deliver(webhook, "charge.captured", charge(order.id))

        reloaded = await orchestrator.get_order(order.id)
        assert reloaded.payment_status == PaymentStatus.CONFIRMED
        assert reloaded.is_paid and reloaded.paid_at is not None
        statuses = [entry.status for entry in reloaded.status_history]
        assert statuses.count("payment_confirmed") == 1

    async def test_partial_refund(self, webhook, orchestrator, cart_id, user_id, address):
        order, _ = await orchestrator.create_card_checkout(cart_id, address, user_id)
        await deliver(webhook, "charge.succeeded", charge(order.id))

        await deliver(webhook, "charge.refunded", charge(order.id, amount_refunded=100000))

        reloaded = await orchestrator.get_order(order.id)
        assert reloaded.payment_status == PaymentStatus.PARTIALLY_REFUNDED

    async def test_full_refund(self, webhook, orchestrator, cart_id, user_id, address):
        order, _ = await orchestrator.create_card_checkout(cart_id, address, user_id)

        await deliver(webhook, "charge.refunded", charge(order.id, amount_refunded=330000))

        reloaded = await orchestrator.get_order(order.id)
        assert reloaded.payment_status == PaymentStatus.REFUNDED

    async def test_charge_without_reference_is_ignored_by_default(self, webhook, orchestrator,
                                                                  cart_id, user_id, address):
        order, _ = await orchestrator.create_card_checkout(cart_id, address, user_id)

        await deliver(webhook, "charge.succeeded", charge())

        reloaded = await orchestrator.get_order(order.id)
        assert reloaded.payment_status == PaymentStatus.AUTHORIZED

    async def test_amount_fallback_when_enabled(self, orchestrator, stripe_service, cart_id,
                                                user_id, address):
        webhook = ProcessPaymentWebhookUseCase(orchestrator, stripe_service, match_by_amount=True)
        order, _ = await orchestrator.create_card_checkout(cart_id, address, user_id)

        await deliver(webhook, "charge.succeeded", charge(amount=330000))

        reloaded = await orchestrator.get_order(order.id)
        assert reloaded.payment_status == PaymentStatus.CONFIRMED


class TestCheckoutSessions:

    def completed_session(self, cart_id, user_id, session_id="cs_live_1"):
        return {
            "id": session_id,
            "object": "checkout.session",
            "client_reference_id": None,
            "metadata": {
                "cart_id": str(cart_id),
                "user_id": str(user_id),
                "shipping_details": "3 Rue Larbi Ben M'hidi",
                "shipping_phone": "0661000000",
                "shipping_wilaya": "Oran",
            },
        }

    async def test_completed_session_materializes_order_once(self, webhook, orchestrator, cart_id,
                                                             user_id, db_session, products):
        session = self.completed_session(cart_id, user_id)

        await deliver(webhook, "checkout.session.completed", session)
        await deliver(webhook, "checkout.session.completed", session)

        assert db_session.query(OrderModel).count() == 1
        order = await orchestrator.get_order_by_session("cs_live_1")
        assert order.payment_status == PaymentStatus.AUTHORIZED
        assert order.shipping_address.wilaya == "Oran"
        assert order.user_id == user_id
        assert product_counters(db_session, products[0].id) == (8, 2)

    async def test_completed_session_for_existing_order_is_noop(self, webhook, orchestrator, cart_id,
                                                                user_id, address, db_session):
        order, session = await orchestrator.create_card_checkout(cart_id, address, user_id)

        await deliver(webhook, "checkout.session.completed", {
            "id": session.session_id,
            "client_reference_id": str(order.id),
            "metadata": {"order_id": str(order.id)},
        })

        assert db_session.query(OrderModel).count() == 1
        reloaded = await orchestrator.get_order(order.id)
        assert reloaded.version == order.version

    async def test_expired_session_cancels_order(self, webhook, orchestrator, cart_id, user_id, address):
        order, session = await orchestrator.create_card_checkout(cart_id, address, user_id)

        await deliver(webhook, "checkout.session.expired", {"id": session.session_id})

        reloaded = await orchestrator.get_order(order.id)
        assert reloaded.delivery_status == DeliveryStatus.CANCELLED
        assert reloaded.payment_status == PaymentStatus.REFUNDED

    async def test_unsaved_checkout_is_rebuilt_from_session_metadata(
        self, webhook, orchestrator, stripe_service, unit_of_work, delivery_carrier, activity_recorder,
        cart_id, user_id, address, db_session, products, monkeypatch,
    ):
        created = []

        def fake_create(**params):
            created.append(params)
            return SimpleNamespace(id="cs_live_lost", url="https://checkout.stripe.com/c/pay/cs_live_lost")

        def failing_expire(session_id, **params):
            raise stripe.StripeError("api unreachable")

        async def failing_add(order):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(stripe.checkout.Session, "create", fake_create)
        monkeypatch.setattr(stripe.checkout.Session, "expire", failing_expire)
        checkout = OrderLifecycleOrchestrator(
            unit_of_work=unit_of_work,
            payment_gateway=stripe_service,
            delivery_carrier=delivery_carrier,
            inventory_adjuster=InventoryAdjuster(unit_of_work),
            activity_recorder=activity_recorder,
        )
        add = unit_of_work.orders.add
        monkeypatch.setattr(unit_of_work.orders, "add", failing_add)

        with pytest.raises(RuntimeError):
            await checkout.create_card_checkout(cart_id, address, user_id)

        monkeypatch.setattr(unit_of_work.orders, "add", add)
        assert db_session.query(OrderModel).count() == 0

        # The customer pays anyway; the session carries everything needed
        params = created[0]
        await deliver(webhook, "checkout.session.completed", {
            "id": "cs_live_lost",
            "object": "checkout.session",
            "client_reference_id": params["client_reference_id"],
            "metadata": params["metadata"],
        })

        order = await orchestrator.get_order_by_session("cs_live_lost", user_id)
        assert str(order.id) == params["client_reference_id"]
        assert order.shipping_address == address
        assert order.payment_status == PaymentStatus.AUTHORIZED
        assert product_counters(db_session, products[0].id) == (8, 2)

        await deliver(webhook, "charge.succeeded", charge(params["payment_intent_data"]["metadata"]["order_id"]))

        reloaded = await orchestrator.get_order(order.id)
        assert reloaded.payment_status == PaymentStatus.CONFIRMED
