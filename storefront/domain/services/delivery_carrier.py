"""Delivery carrier port"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from ..value_objects.money import Money


@dataclass(frozen=True)
class ParcelItem:
    name: str
    quantity: int
    price: Money


@dataclass(frozen=True)
class ShipmentRequest:
    order_id: str
    customer_name: str
    customer_phone: Optional[str]
    customer_address: str
    wilaya: Optional[str]
    items: List[ParcelItem]
    price: Money


@dataclass(frozen=True)
class Shipment:
    tracking_number: str
    raw: dict = field(default_factory=dict)


class IDeliveryCarrier(ABC):

    agency_name: str = ""

    @abstractmethod
    async def create_shipment(self, request: ShipmentRequest) -> Shipment:
        pass

    @abstractmethod
    async def get_tracking_info(self, tracking_number: str) -> dict:
        pass
