"""Delivery agency HTTP adapter against httpx.MockTransport"""

import json

import httpx
import pytest

from storefront.domain.enums import DeliveryStatus
from storefront.domain.exceptions import ShipmentCreationFailed, UpstreamUnavailable
from storefront.domain.services.delivery_carrier import ParcelItem, ShipmentRequest
from storefront.domain.value_objects.money import Money
from storefront.infrastructure.external_services.delivery_service import (
    CARRIER_STATUS_MAP, DeliveryCarrierService, translate_carrier_status
)


def request():
    return ShipmentRequest(
        order_id="7d1c0d8e-0000-4000-8000-000000000001",
        customer_name="Amina B.",
        customer_phone="0555123456",
        customer_address="12 Rue Didouche Mourad",
        wilaya="Alger",
        items=[ParcelItem(name="Linen Shirt", quantity=2, price=Money(1000))],
        price=Money(2500),
    )


def service(handler):
    return DeliveryCarrierService(
        api_url="https://agency.test/api/v1",
        webhook_url="https://shop.test/api/v1/orders/delivery/webhook",
        agency_name="Yalidine Express",
        transport=httpx.MockTransport(handler),
    )


async def test_create_shipment_posts_parcel():
    seen = {}

    def handler(req: httpx.Request) -> httpx.Response:
        seen["url"] = str(req.url)
        seen["body"] = json.loads(req.content)
        return httpx.Response(200, json={"success": True, "data": {"tracking_number": "YAL-42"}})

    shipment = await service(handler).create_shipment(request())

    assert shipment.tracking_number == "YAL-42"
    assert seen["url"] == "https://agency.test/api/v1/parcels"
    body = seen["body"]
    assert body["order_id"] == "7d1c0d8e-0000-4000-8000-000000000001"
    assert body["price"] == 2500
    assert body["product_list"] == [{"name": "Linen Shirt", "quantity": 2, "price": 1000}]
    assert body["webhook_url"] == "https://shop.test/api/v1/orders/delivery/webhook"


async def test_rejected_parcel():
    def handler(req):
        return httpx.Response(200, json={"success": False, "message": "wilaya not served"})

    with pytest.raises(ShipmentCreationFailed, match="wilaya not served"):
        await service(handler).create_shipment(request())


async def test_http_error_status():
    def handler(req):
        return httpx.Response(500, text="boom")

    with pytest.raises(ShipmentCreationFailed):
        await service(handler).create_shipment(request())


async def test_transport_failure():
    def handler(req):
        raise httpx.ConnectError("connection refused", request=req)

    with pytest.raises(UpstreamUnavailable) as exc_info:
        await service(handler).create_shipment(request())
    assert not isinstance(exc_info.value, ShipmentCreationFailed)


async def test_tracking_info():
    def handler(req):
        assert req.url.path == "/api/v1/parcels/YAL-42"
        return httpx.Response(200, json={"tracking_number": "YAL-42", "status": "in_transit"})

    info = await service(handler).get_tracking_info("YAL-42")

    assert info["status"] == "in_transit"


async def test_tracking_not_found():
    def handler(req):
        return httpx.Response(404, json={"message": "unknown parcel"})

    with pytest.raises(UpstreamUnavailable):
        await service(handler).get_tracking_info("YAL-404")


@pytest.mark.parametrize("carrier_status, expected", [
    ("pending_pickup", DeliveryStatus.CONFIRMED),
    ("collected", DeliveryStatus.SHIPPED),
    ("failed_delivery", DeliveryStatus.FAILED),
    (" Delivered ", DeliveryStatus.DELIVERED),
    ("teleported", None),
    (None, None),
])
def test_translate_carrier_status(carrier_status, expected):
    assert translate_carrier_status(carrier_status) == expected


def test_status_map_covers_every_carrier_status():
    assert len(CARRIER_STATUS_MAP) == 9
