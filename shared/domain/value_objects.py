"""
Common Value Objects

- Money: monetary amount with currency, used for every price in the engine
- DateRange: half-open [start_date, end_date) stay interval
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from shared.domain.base import ValueObject

SUPPORTED_CURRENCIES = ('USD', 'EUR', 'GBP', 'BRL', 'KZT', 'RUB')

CENT = Decimal('0.01')


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Amounts are stored as Decimal and quantized to cents.
    """
    amount: Decimal
    currency: str = 'USD'

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', Decimal(str(self.amount)))
        object.__setattr__(self, 'amount', self.amount.quantize(CENT, rounding=ROUND_HALF_UP))

        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str = 'USD') -> 'Money':
        return cls(Decimal('0'), currency)

    def __add__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, factor: int | Decimal) -> 'Money':
        """Multiply money by a quantity or a night count"""
        if isinstance(factor, bool) or not isinstance(factor, (int, Decimal)):
            raise TypeError("Can only multiply Money by int or Decimal")
        return Money(self.amount * Decimal(factor), self.currency)

    __rmul__ = __mul__

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    start_date is inclusive, end_date is exclusive, so back-to-back
    stays sharing a turnover day never overlap.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date >= self.end_date:
            raise ValueError(f"Start date ({self.start_date}) must be before end date ({self.end_date})")

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this range intersects another

        [a1, a2) and [b1, b2) intersect iff a1 < b2 and b1 < a2.

        Examples:
            - [01.02, 05.02) overlaps [04.02, 08.02) -> True
            - [01.02, 05.02) overlaps [05.02, 08.02) -> False (adjacent)
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")

        return self.start_date < other.end_date and other.start_date < self.end_date

    def contains(self, check_date: date) -> bool:
        return self.start_date <= check_date < self.end_date

    @property
    def nights(self) -> int:
        """
        Billable nights: ceil(span / 1 day), never less than one.

        Plain dates always divide evenly; datetimes with a time part
        round a partial day up.
        """
        span: timedelta = self.end_date - self.start_date
        return max(1, math.ceil(span.total_seconds() / timedelta(days=1).total_seconds()))

    def __len__(self) -> int:
        return self.nights

    def __str__(self):
        return f"{_as_date(self.start_date).isoformat()} - {_as_date(self.end_date).isoformat()}"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"


def _as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value
