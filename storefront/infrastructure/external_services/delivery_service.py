"""Delivery agency service for creating and tracking parcels"""

import logging
import httpx
from typing import Optional

from ...core.config import settings
from ...domain.enums import DeliveryStatus
from ...domain.exceptions import ShipmentCreationFailed, UpstreamUnavailable
from ...domain.services.delivery_carrier import IDeliveryCarrier, Shipment, ShipmentRequest

logger = logging.getLogger(__name__)


# Delivery agency vocabulary -> internal delivery status
CARRIER_STATUS_MAP = {
    "pending_pickup": DeliveryStatus.CONFIRMED,
    "collected": DeliveryStatus.SHIPPED,
    "in_transit": DeliveryStatus.IN_TRANSIT,
    "out_for_delivery": DeliveryStatus.OUT_FOR_DELIVERY,
    "delivered": DeliveryStatus.DELIVERED,
    "completed": DeliveryStatus.COMPLETED,
    "failed_delivery": DeliveryStatus.FAILED,
    "returned": DeliveryStatus.RETURNED,
    "cancelled": DeliveryStatus.CANCELLED,
}


def translate_carrier_status(carrier_status: Optional[str]) -> Optional[DeliveryStatus]:
    """Map a carrier status string; None means unknown (no change)"""
    if not carrier_status:
        return None
    return CARRIER_STATUS_MAP.get(carrier_status.strip().lower())


class DeliveryCarrierService(IDeliveryCarrier):
    """HTTP client for the delivery agency API"""

    def __init__(self, api_url: Optional[str] = None, webhook_url: Optional[str] = None,
                 agency_name: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_url = (api_url or settings.DELIVERY_API_URL).rstrip("/")
        self.webhook_url = webhook_url or settings.DELIVERY_WEBHOOK_URL
        self.agency_name = agency_name or settings.DELIVERY_AGENCY_NAME
        self.timeout = timeout or settings.DELIVERY_API_TIMEOUT_SECONDS
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.api_url, timeout=self.timeout, transport=self.transport)

    async def create_shipment(self, request: ShipmentRequest) -> Shipment:
        """Create a parcel with the delivery agency"""
        payload = {
            "order_id": request.order_id,
            "customer_name": request.customer_name,
            "customer_phone": request.customer_phone,
            "customer_address": request.customer_address,
            "wilaya": request.wilaya,
            "product_list": [
                {"name": item.name, "quantity": item.quantity, "price": float(item.price.amount)}
                for item in request.items
            ],
            "price": float(request.price.amount),
            "webhook_url": self.webhook_url,
        }

        try:
            async with self._client() as client:
                response = await client.post("/parcels", json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout creating shipment for order {request.order_id}")
            raise UpstreamUnavailable("Timeout when connecting to delivery agency") from e
        except httpx.RequestError as e:
            logger.error(f"Request error creating shipment for order {request.order_id}: {e}")
            raise UpstreamUnavailable(f"Error when connecting to delivery agency: {e}") from e

        if response.status_code >= 400:
            raise ShipmentCreationFailed(
                f"Failed to create shipment: {response.status_code} - {response.text}"
            )
        try:
            body = response.json()
        except ValueError as e:
            raise ShipmentCreationFailed("Failed to create shipment: invalid agency response") from e

        tracking_number = (body.get("data") or {}).get("tracking_number")
        if not body.get("success") or not tracking_number:
            raise ShipmentCreationFailed(
                f"Failed to create shipment: {body.get('message', 'agency rejected the parcel')}"
            )

        logger.info(f"Shipment {tracking_number} created for order {request.order_id}")
        return Shipment(tracking_number=tracking_number, raw=body)

    async def get_tracking_info(self, tracking_number: str) -> dict:
        """Get live parcel status from the delivery agency"""
        try:
            async with self._client() as client:
                response = await client.get(f"/parcels/{tracking_number}")
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable("Timeout when fetching tracking info") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Error getting tracking info: {e}") from e
        return response.json()
