# FILE: app/utils/money.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import total_ordering

from app.core.config import settings
from app.core.errors import ValidationError


def _scale() -> int:
    return int(settings.BILLING_MINOR_UNITS)


@total_ordering
@dataclass(frozen=True)
class Money:
    """
    Fixed-point amount stored as integer minor units (cents for KES).

    Arithmetic stays in integers. Conversion to Decimal/str only happens
    at the API boundary.
    """
    minor: int = 0

    def __post_init__(self):
        if isinstance(self.minor, bool) or not isinstance(self.minor, int):
            raise TypeError(f"Money minor units must be int, got {type(self.minor).__name__}")

    # ---------- construction ----------
    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    @classmethod
    def parse(cls, value, *, field: str = "amount") -> "Money":
        """
        Build from Decimal / str / int major units ("1500.50" -> 150050).
        Extra fractional digits are rejected, never rounded.
        """
        if isinstance(value, Money):
            return value
        if value is None or isinstance(value, (bool, float)):
            raise ValidationError(f"{field} must be a decimal amount")
        try:
            d = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} is not a valid amount: {value!r}")
        if not d.is_finite():
            raise ValidationError(f"{field} is not a valid amount: {value!r}")

        scaled = d.scaleb(_scale())
        if scaled != scaled.to_integral_value():
            raise ValidationError(
                f"{field} has more than {_scale()} decimal places: {value}")
        return cls(int(scaled))

    # ---------- arithmetic ----------
    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.minor + other.minor)

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.minor - other.minor)

    def __mul__(self, qty: int) -> "Money":
        if isinstance(qty, bool) or not isinstance(qty, int):
            return NotImplemented
        return Money(self.minor * qty)

    __rmul__ = __mul__

    def __neg__(self) -> "Money":
        return Money(-self.minor)

    def __lt__(self, other: "Money") -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.minor < other.minor

    def __bool__(self) -> bool:
        return self.minor != 0

    @property
    def is_negative(self) -> bool:
        return self.minor < 0

    # ---------- presentation ----------
    def to_decimal(self) -> Decimal:
        return Decimal(self.minor).scaleb(-_scale())

    def __str__(self) -> str:
        q = Decimal(1).scaleb(-_scale())
        return str(self.to_decimal().quantize(q))

    def display(self) -> str:
        return f"{settings.BILLING_CURRENCY} {self.to_decimal():,.{_scale()}f}"


def money_sum(values) -> Money:
    total = Money.zero()
    for v in values:
        total = total + v
    return total
