"""
Money Value Object

Amount + ISO currency code. Arithmetic and comparisons are only defined
between amounts of the same currency.

Author: TM3
Date: 2025-12-02
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from app.core.errors import DomainException

DEFAULT_CURRENCY = "TRY"
CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class Money:
    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self):
        amount = to_decimal(self.amount)
        if amount < 0:
            raise DomainException("Money amount cannot be negative")
        if not self.currency or not self.currency.strip():
            raise DomainException("Currency is required")

        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "currency", self.currency.strip().upper())

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(Decimal("0"), currency)

    def _ensure_same_currency(self, other: "Money"):
        if not isinstance(other, Money):
            raise TypeError(f"Cannot combine Money with {type(other).__name__}")
        if self.currency != other.currency:
            raise DomainException(
                f"Cannot operate on different currencies: {self.currency} and {other.currency}"
            )

    def __add__(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._ensure_same_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor: Number) -> "Money":
        return Money(self.amount * to_decimal(factor), self.currency)

    __rmul__ = __mul__

    def __lt__(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount < other.amount

    def __le__(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount <= other.amount

    def __gt__(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount > other.amount

    def __ge__(self, other: "Money") -> bool:
        self._ensure_same_currency(other)
        return self.amount >= other.amount

    @property
    def is_zero(self) -> bool:
        return self.amount == 0

    def subtract_floor_zero(self, other: "Money") -> "Money":
        """Subtract, clamping at zero instead of raising."""
        self._ensure_same_currency(other)
        if other.amount >= self.amount:
            return Money.zero(self.currency)
        return Money(self.amount - other.amount, self.currency)

    def rounded(self) -> "Money":
        return Money(self.amount.quantize(CENT, rounding=ROUND_HALF_UP), self.currency)

    def to_dict(self) -> dict:
        return {"amount": float(self.amount), "currency": self.currency}

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"


def min_money(a: Money, b: Money) -> Money:
    return a if a <= b else b
