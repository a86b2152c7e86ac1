"""
Shared fixtures for the order service test suite.
"""

import os

# Configure before the storefront package reads its settings
os.environ["TESTING"] = "True"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_123"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["ACTIVITY_SINK_ENABLED"] = "False"
os.environ["SHIPPING_PRICE"] = "500"
os.environ["TAX_PRICE"] = "0"

import hashlib
import hmac
import json
import time
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4

import pytest

from storefront.application.use_cases.adjust_inventory import InventoryAdjuster
from storefront.application.use_cases.order_lifecycle import OrderLifecycleOrchestrator
from storefront.application.use_cases.record_activity import ActivityRecorder
from storefront.db.database import SessionLocal, engine
from storefront.db.models import Base
from storefront.domain.exceptions import ShipmentCreationFailed, UpstreamUnavailable
from storefront.domain.services.activity_sink import IActivitySink
from storefront.domain.services.delivery_carrier import IDeliveryCarrier, Shipment
from storefront.domain.services.payment_gateway import CheckoutSession, GatewayEvent, IPaymentGateway
from storefront.domain.value_objects.entity_ids import CartId, UserId
from storefront.domain.value_objects.shipping_address import ShippingAddress
from storefront.infrastructure.orm import CartItemModel, CartModel, ProductModel
from storefront.infrastructure.repositories.unit_of_work_impl import UnitOfWorkImpl

WEBHOOK_SECRET = "whsec_test_secret"


# Fakes for the outbound ports

class FakePaymentGateway(IPaymentGateway):

    def __init__(self):
        self.sessions = []
        self.expired = []
        self.fail_with: Optional[Exception] = None

    async def create_checkout_session(self, order, success_url, cancel_url, customer_email=None,
                                      cart_id=None):
        if self.fail_with:
            raise self.fail_with
        session = CheckoutSession(
            session_id=f"cs_test_{len(self.sessions) + 1}",
            redirect_url=f"https://checkout.example.com/pay/{order.id}",
        )
        self.sessions.append({
            "order_id": order.id,
            "cart_id": cart_id,
            "amount": order.total_order_price,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "customer_email": customer_email,
        })
        return session

    async def expire_checkout_session(self, session_id):
        self.expired.append(session_id)

    def construct_event(self, payload, signature):
        body = json.loads(payload)
        return GatewayEvent(id=body["id"], kind=body["type"], payload=body["data"]["object"])


class FakeDeliveryCarrier(IDeliveryCarrier):

    agency_name = "Test Express"

    def __init__(self):
        self.requests = []
        self.fail_with: Optional[Exception] = None
        self.tracking_error: Optional[Exception] = None

    async def create_shipment(self, request):
        self.requests.append(request)
        if self.fail_with:
            raise self.fail_with
        return Shipment(tracking_number=f"YAL-{len(self.requests):04d}", raw={"success": True})

    async def get_tracking_info(self, tracking_number):
        if self.tracking_error:
            raise self.tracking_error
        return {"tracking_number": tracking_number, "status": "in_transit"}


class RecordingSink(IActivitySink):

    def __init__(self, failures: int = 0):
        self.records = []
        self.failures = failures
        self.calls = 0

    async def record(self, event_kind, order, actor, metadata):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("sink unavailable")
        self.records.append((event_kind, order.id, actor, metadata))


# Database

@pytest.fixture
def db_session():
    """Fresh in-memory schema per test"""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def unit_of_work(db_session):
    return UnitOfWorkImpl(db_session)


@pytest.fixture
def products(db_session):
    items = [
        ProductModel(id=uuid4(), title="Linen Shirt", quantity=10, sold=0),
        ProductModel(id=uuid4(), title="Leather Belt", quantity=5, sold=2),
    ]
    db_session.add_all(items)
    db_session.commit()
    return items


@pytest.fixture
def user_id():
    return UserId.generate()


@pytest.fixture
def make_cart(db_session, products):
    """Seed a cart: 2 shirts at 1000 and 1 belt at 800, optional discount"""

    def _make(owner: Optional[UserId], discounted: Optional[Decimal] = None) -> CartId:
        shirt, belt = products
        cart = CartModel(
            id=uuid4(),
            user_id=owner.value if owner else None,
            total_cart_price=Decimal("2800"),
            total_price_after_discount=discounted,
        )
        cart.items = [
            CartItemModel(product_id=shirt.id, quantity=2, color="blue", price=Decimal("1000")),
            CartItemModel(product_id=belt.id, quantity=1, price=Decimal("800")),
        ]
        db_session.add(cart)
        db_session.commit()
        return CartId(cart.id)

    return _make


@pytest.fixture
def cart_id(make_cart, user_id):
    return make_cart(user_id)


@pytest.fixture
def address():
    return ShippingAddress(
        details="12 Rue Didouche Mourad",
        phone="0555123456",
        city="Alger",
        wilaya="Alger",
        full_name="Amina B.",
    )


# Orchestrator wiring

@pytest.fixture
def payment_gateway():
    return FakePaymentGateway()


@pytest.fixture
def delivery_carrier():
    return FakeDeliveryCarrier()


@pytest.fixture
def activity_sink():
    return RecordingSink()


@pytest.fixture
def activity_recorder(activity_sink):
    return ActivityRecorder(activity_sink)


@pytest.fixture
def orchestrator(unit_of_work, payment_gateway, delivery_carrier, activity_recorder):
    return OrderLifecycleOrchestrator(
        unit_of_work=unit_of_work,
        payment_gateway=payment_gateway,
        delivery_carrier=delivery_carrier,
        inventory_adjuster=InventoryAdjuster(unit_of_work),
        activity_recorder=activity_recorder,
        frontend_url="https://shop.example.com",
    )


def product_counters(db_session, product_id):
    db_session.expire_all()
    product = db_session.query(ProductModel).filter(ProductModel.id == product_id).one()
    return product.quantity, product.sold


def stripe_signature(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header the way Stripe signs webhooks"""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def stripe_event(kind: str, data: dict, event_id: Optional[str] = None) -> bytes:
    return json.dumps({
        "id": event_id or f"evt_{uuid4().hex[:16]}",
        "object": "event",
        "type": kind,
        "data": {"object": data},
    }).encode()
