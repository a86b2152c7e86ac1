"""Entity ID value objects"""

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True)
class _UuidId:
    value: UUID

    def __post_init__(self):
        if not isinstance(self.value, UUID):
            raise ValueError(f"{type(self).__name__} must be a valid UUID")

    @classmethod
    def generate(cls):
        """Generate a new random UUID"""
        return cls(uuid4())

    @classmethod
    def from_str(cls, uuid_str: str):
        """Create id from string representation"""
        return cls(UUID(str(uuid_str)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class UserId(_UuidId):
    pass


@dataclass(frozen=True)
class OrderId(_UuidId):
    pass


@dataclass(frozen=True)
class CartId(_UuidId):
    pass


@dataclass(frozen=True)
class ProductId(_UuidId):
    pass
