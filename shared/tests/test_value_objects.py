from datetime import date, datetime
from decimal import Decimal

import pytest

from shared.domain.value_objects import DateRange, Money


def test_money_is_quantized_to_cents():
    assert Money(Decimal("10.005")).amount == Decimal("10.01")
    assert Money(12).amount == Decimal("12.00")


def test_money_rejects_negative_amounts_and_unknown_currencies():
    with pytest.raises(ValueError, match="negative"):
        Money(Decimal("-1"))
    with pytest.raises(ValueError, match="Unsupported currency"):
        Money(Decimal("1"), "XYZ")


def test_money_arithmetic_keeps_currency():
    total = Money(Decimal("100"), "EUR") * 4 + Money(Decimal("25"), "EUR")
    assert total == Money(Decimal("425.00"), "EUR")
    assert 2 * Money(Decimal("1.50")) == Money(Decimal("3.00"))


def test_money_refuses_mixed_currencies_and_bool_factors():
    with pytest.raises(ValueError, match="different currencies"):
        Money(Decimal("1"), "USD") + Money(Decimal("1"), "EUR")
    with pytest.raises(TypeError):
        Money(Decimal("1")) * True


def test_date_range_requires_start_before_end():
    with pytest.raises(ValueError):
        DateRange(date(2025, 2, 5), date(2025, 2, 5))


@pytest.mark.parametrize(
    "other, expected",
    [
        (DateRange(date(2025, 2, 4), date(2025, 2, 8)), True),
        (DateRange(date(2025, 2, 5), date(2025, 2, 8)), False),
        (DateRange(date(2025, 1, 28), date(2025, 2, 1)), False),
        (DateRange(date(2025, 2, 2), date(2025, 2, 3)), True),
    ],
)
def test_date_range_overlap_is_half_open(other, expected):
    stay = DateRange(date(2025, 2, 1), date(2025, 2, 5))
    assert stay.overlaps_with(other) is expected
    assert other.overlaps_with(stay) is expected


def test_nights_round_partial_days_up():
    assert DateRange(date(2025, 2, 1), date(2025, 2, 5)).nights == 4
    assert DateRange(datetime(2025, 2, 1, 14), datetime(2025, 2, 2, 11)).nights == 1
    assert DateRange(datetime(2025, 2, 1, 10), datetime(2025, 2, 2, 11)).nights == 2


def test_contains_excludes_end_date():
    stay = DateRange(date(2025, 2, 1), date(2025, 2, 5))
    assert stay.contains(date(2025, 2, 1))
    assert not stay.contains(date(2025, 2, 5))
    assert str(stay) == "2025-02-01 - 2025-02-05"
