from datetime import date, time
from decimal import Decimal

import pytest

from apps.reservations.domain.pricing import (
    price_addon,
    quote_slot,
    quote_stay,
    resolve_unit_price,
)
from apps.reservations.domain.resources import ServiceKind, ServiceSnapshot, SlotSnapshot
from shared.domain.value_objects import DateRange, Money


def make_service(base_price="100.00"):
    return ServiceSnapshot(
        id=1,
        establishment_id=1,
        kind=ServiceKind.UNIT_BASED,
        base_price=Money(Decimal(base_price)),
        duration_minutes=1440,
        active=True,
    )


def make_slot(price=None):
    return SlotSnapshot(
        id=1,
        service_id=1,
        date=date(2025, 2, 1),
        start_time=time(14),
        end_time=time(23),
        capacity=5,
        remaining=5,
        price=Money(Decimal(price)) if price else None,
    )


def test_slot_price_override_wins():
    assert resolve_unit_price(make_service(), make_slot("80.00")) == Money(Decimal("80.00"))
    assert resolve_unit_price(make_service(), make_slot()) == Money(Decimal("100.00"))


def test_four_night_stay_with_breakfast_costs_425():
    breakfast = price_addon(7, 1, Decimal("25.00"), "USD")
    quote = quote_stay(Money(Decimal("100.00")), DateRange(date(2025, 2, 1), date(2025, 2, 5)), [breakfast])

    assert quote.billable_units == 4
    assert quote.base_total == Money(Decimal("400.00"))
    assert quote.addons_total == Money(Decimal("25.00"))
    assert quote.total == Money(Decimal("425.00"))


def test_slot_quote_multiplies_by_quantity():
    addons = [price_addon(3, 2, Decimal("10.00"), "USD")]
    quote = quote_slot(Money(Decimal("30.00")), 3, addons)

    assert quote.total == Money(Decimal("110.00"))


def test_quote_without_addons_has_zero_addon_total():
    quote = quote_slot(Money(Decimal("30.00"), "EUR"), 1)
    assert quote.addons_total == Money.zero("EUR")


def test_quantities_below_one_are_rejected():
    with pytest.raises(ValueError):
        quote_slot(Money(Decimal("30.00")), 0)
    with pytest.raises(ValueError):
        price_addon(3, 0, Decimal("10.00"), "USD")
