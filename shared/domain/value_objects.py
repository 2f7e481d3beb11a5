"""
Common Value Objects

Value objects used across the booking engine:
- Money: Monetary amount with currency, kept at cent precision
- Period: Half-open time span [start, end) covering one billing cycle
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

from shared.domain.base import ValueObject

CENT = Decimal('0.01')

SUPPORTED_CURRENCIES = ('INR', 'USD', 'EUR')


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a monetary amount with currency.
    Immutable and supports arithmetic operations.
    """
    amount: Decimal
    currency: str = 'INR'

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str = 'INR') -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        """Multiply money by a factor"""
        if not isinstance(factor, (int, Decimal)):
            raise TypeError("Can only multiply Money by int or Decimal")
        return Money(self.amount * factor, self.currency)

    def quantize(self) -> 'Money':
        """Round half-up to whole cents"""
        return Money(self.amount.quantize(CENT, rounding=ROUND_HALF_UP), self.currency)

    def split(self, parts: int) -> list['Money']:
        """
        Split into ``parts`` cent-precise shares

        Every share but the last is truncated to the cent; the last share
        absorbs the remainder so the shares always sum to the whole.
        """
        if parts < 1:
            raise ValueError("Cannot split into fewer than one part")
        whole = self.quantize()
        share = (whole.amount / parts).quantize(CENT, rounding=ROUND_DOWN)
        last = whole.amount - share * (parts - 1)
        return [Money(share, self.currency)] * (parts - 1) + [Money(last, self.currency)]

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class Period(ValueObject):
    """
    Period value object

    Represents a span from start (inclusive) to end (exclusive).
    Adjacent periods chain without gap or overlap.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start ({self.start}) must be before end ({self.end})")

    def overlaps_with(self, other: 'Period') -> bool:
        """
        Check if this period overlaps with another

        Note: end is exclusive, so adjacent periods don't overlap.

        Examples:
            - Period(25, 28) overlaps with Period(27, 30) -> True
            - Period(25, 28) overlaps with Period(28, 31) -> False (adjacent)
        """
        if not isinstance(other, Period):
            raise TypeError("Can only check overlap with another Period")

        # Overlap formula: start1 < end2 AND end1 > start2
        return self.start < other.end and self.end > other.start

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def __str__(self):
        return f"{self.start:%d.%m.%Y} - {self.end:%d.%m.%Y}"

    def __repr__(self):
        return f"Period({self.start.isoformat()}, {self.end.isoformat()})"
