"""Shipping address value object"""

from dataclasses import dataclass, asdict
from typing import Optional

from ..exceptions import ValidationError


@dataclass(frozen=True)
class ShippingAddress:
    details: str
    phone: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    wilaya: Optional[str] = None
    dayra: Optional[str] = None
    full_name: Optional[str] = None

    def __post_init__(self):
        if not self.details or not self.details.strip():
            raise ValidationError("Shipping address details are required")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ShippingAddress":
        if not data:
            raise ValidationError("Shipping address is required")
        fields = cls.__dataclass_fields__
        return cls(**{key: value for key, value in data.items() if key in fields})
