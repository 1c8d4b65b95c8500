"""
Resource Snapshots

Immutable views of the catalog records an allocation decision reads.
They are taken once per request so a service cannot change shape half
way through a decision.
"""

from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from enum import Enum

from shared.domain.value_objects import Money


class ServiceKind(Enum):
    """
    What a service allocates

    SLOT_BASED: appointment-style capacity pools (quantity per slot)
    UNIT_BASED: hotel rooms with exclusive date-range occupancy
    """
    SLOT_BASED = 'SLOT_BASED'
    UNIT_BASED = 'UNIT_BASED'


class UnitStatus(Enum):
    AVAILABLE = 'AVAILABLE'
    OCCUPIED = 'OCCUPIED'
    MAINTENANCE = 'MAINTENANCE'
    BLOCKED = 'BLOCKED'
    CLEANING = 'CLEANING'

    @property
    def is_manual_override(self) -> bool:
        """Statuses set by staff rather than by the allocation engine"""
        return self in (UnitStatus.MAINTENANCE, UnitStatus.BLOCKED, UnitStatus.CLEANING)


@dataclass(frozen=True)
class ServiceSnapshot:
    id: int
    establishment_id: int
    kind: ServiceKind
    base_price: Money
    duration_minutes: int
    active: bool
    requires_confirmation: bool = False

    @property
    def is_unit_based(self) -> bool:
        return self.kind is ServiceKind.UNIT_BASED

    @property
    def currency(self) -> str:
        return self.base_price.currency


@dataclass(frozen=True)
class SlotSnapshot:
    id: int
    service_id: int
    date: date
    start_time: time
    end_time: time
    capacity: int
    remaining: int
    price: Money | None = None

    def belongs_to(self, service_id: int) -> bool:
        return self.service_id == service_id

    def has_capacity_for(self, quantity: int) -> bool:
        return self.remaining >= quantity


@dataclass(frozen=True)
class UnitSnapshot:
    id: int
    service_id: int
    number: str
    status: UnitStatus
    floor: int | None = None

    @property
    def sort_key(self) -> tuple:
        """Deterministic pick order: floor (unknown floors last), number, id"""
        return (self.floor is None, self.floor or 0, self.number, self.id)


@dataclass(frozen=True)
class ExtraItemSnapshot:
    id: int
    service_id: int
    name: str
    price: Decimal
    max_quantity: int
    active: bool
