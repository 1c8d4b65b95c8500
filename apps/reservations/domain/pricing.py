"""
Pricing Calculator

Pure functions: no catalog lookups, no clock, no database. Add-ons come
in with their price already resolved, and that price is the one that
gets snapshotted into the reservation.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List

from shared.domain.value_objects import DateRange, Money

from .resources import ServiceSnapshot, SlotSnapshot


@dataclass(frozen=True)
class PricedAddon:
    """An add-on selection with its price-at-booking"""
    extra_item_id: int
    quantity: int
    unit_price: Money

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError("Add-on quantity must be at least 1")

    @property
    def subtotal(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class PriceQuote:
    unit_price: Money
    billable_units: int
    addons: List[PricedAddon] = field(default_factory=list)

    @property
    def base_total(self) -> Money:
        return self.unit_price * self.billable_units

    @property
    def addons_total(self) -> Money:
        return sum((a.subtotal for a in self.addons), Money.zero(self.unit_price.currency))

    @property
    def total(self) -> Money:
        return self.base_total + self.addons_total


def resolve_unit_price(service: ServiceSnapshot, slot: SlotSnapshot) -> Money:
    """The slot's price override wins over the service base price"""
    if slot.price is not None:
        return slot.price
    return service.base_price


def quote_slot(unit_price: Money, quantity: int, addons: Iterable[PricedAddon] = ()) -> PriceQuote:
    """unit_price × quantity + Σ(addon.price × addon.quantity)"""
    if quantity < 1:
        raise ValueError("Quantity must be at least 1")
    return PriceQuote(unit_price=unit_price, billable_units=quantity, addons=list(addons))


def quote_stay(unit_price: Money, dates: DateRange, addons: Iterable[PricedAddon] = ()) -> PriceQuote:
    """unit_price × nights + Σ(addon.price × addon.quantity)"""
    return PriceQuote(unit_price=unit_price, billable_units=dates.nights, addons=list(addons))


def price_addon(extra_item_id: int, quantity: int, price: Decimal, currency: str) -> PricedAddon:
    return PricedAddon(
        extra_item_id=extra_item_id,
        quantity=quantity,
        unit_price=Money(price, currency),
    )
