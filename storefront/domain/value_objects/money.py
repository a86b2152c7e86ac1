"""Money value object with currency"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency: str = "DZD"

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, "amount", Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency required")

    def __add__(self, other: "Money") -> "Money":
        if self.currency != other.currency:
            raise ValueError(f"Cannot add {other.currency} to {self.currency}")
        return Money(self.amount + other.amount, self.currency)

    def to_cents(self) -> int:
        return int(self.amount * 100)

    @classmethod
    def zero(cls, currency: str = "DZD") -> "Money":
        return cls(Decimal("0"), currency)

    @classmethod
    def from_cents(cls, cents: int, currency: str = "DZD") -> "Money":
        return cls(amount=Decimal(cents) / 100, currency=currency)

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"
