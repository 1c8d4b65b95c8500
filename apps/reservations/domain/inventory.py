"""
Unit Inventory Aggregate

The overlap resolver for unit-based services. Every unit allocation goes
through this aggregate, which is the consistency boundary that keeps two
reservations off the same unit for intersecting date ranges.

Strategy:
1. Domain validation: is_unit_free() / available_units() check overlaps
2. Pessimistic locking: the repository loads the units with
   SELECT ... FOR UPDATE inside the allocation transaction
3. The coordinator re-runs the check on the locked copy before writing
"""

from dataclasses import dataclass, field
from typing import Iterable, List
from uuid import UUID

from shared.domain.base import Aggregate
from shared.domain.exceptions import ConflictError, NotFoundError
from shared.domain.value_objects import DateRange

from .events import UnitAllocated
from .resources import UnitSnapshot, UnitStatus


@dataclass(frozen=True)
class Allocation:
    """
    A date range held on a unit by an existing reservation

    Only reservations whose status still blocks the calendar are loaded
    as allocations (everything except CANCELLED and NO_SHOW).
    """
    reservation_id: UUID
    unit_id: int
    dates: DateRange


def ranges_overlap(first: DateRange, second: DateRange) -> bool:
    """[a1, a2) and [b1, b2) intersect iff a1 < b2 and b1 < a2"""
    return first.overlaps_with(second)


@dataclass(eq=False)
class UnitInventory(Aggregate):
    """
    Inventory Aggregate Root

    Holds the units of one service and the allocations that currently
    block them.

    Usage:
        inventory = inventory_repo.get_by_service_id(service_id, dates, lock=True)
        unit = inventory.choose_unit(dates, requested_unit_id)
        inventory.allocate(reservation_id, unit.id, dates)
    """

    service_id: int
    units: List[UnitSnapshot] = field(default_factory=list)
    allocations: List[Allocation] = field(default_factory=list)

    def get_unit(self, unit_id: int) -> UnitSnapshot | None:
        return next((u for u in self.units if u.id == unit_id), None)

    def overlapping_allocations(self, unit_id: int, dates: DateRange) -> List[Allocation]:
        return [
            a for a in self.allocations
            if a.unit_id == unit_id and ranges_overlap(a.dates, dates)
        ]

    def is_unit_free(self, unit_id: int, dates: DateRange) -> bool:
        """
        Is this exact unit free for the range

        The unit must belong to this service, be AVAILABLE, and carry no
        blocking allocation that intersects the range.
        """
        unit = self.get_unit(unit_id)
        if unit is None or unit.status is not UnitStatus.AVAILABLE:
            return False
        return not self.overlapping_allocations(unit_id, dates)

    def available_units(self, dates: DateRange) -> List[UnitSnapshot]:
        """All free units for the range, in deterministic pick order"""
        free = [u for u in self.units if self.is_unit_free(u.id, dates)]
        return sorted(free, key=lambda u: u.sort_key)

    def choose_unit(self, dates: DateRange, requested_unit_id: int | None = None) -> UnitSnapshot:
        """
        Resolve the unit a new reservation will occupy

        With a requested unit, validate that exact unit; otherwise pick
        the first free unit in floor/number order.

        Raises:
            NotFoundError: requested unit does not exist in this service
            ConflictError: unit is not bookable, or nothing is free
        """
        if requested_unit_id is not None:
            unit = self.get_unit(requested_unit_id)
            if unit is None:
                raise NotFoundError('Unit')
            if unit.status is not UnitStatus.AVAILABLE:
                raise ConflictError(f"Unit is {unit.status.value} and cannot be booked")
            if self.overlapping_allocations(unit.id, dates):
                raise ConflictError('Unit is not available for the selected dates')
            return unit

        candidates = self.available_units(dates)
        if not candidates:
            raise ConflictError('No units available for the selected dates')
        return candidates[0]

    def allocate(self, reservation_id: UUID, unit_id: int, dates: DateRange) -> Allocation:
        """
        Record a new allocation

        Re-checks the unit on this (locked) copy of the inventory, so a
        decision taken on a stale read cannot double-book.
        """
        if not self.is_unit_free(unit_id, dates):
            raise ConflictError('Unit is not available for the selected dates')

        allocation = Allocation(reservation_id=reservation_id, unit_id=unit_id, dates=dates)
        self.allocations.append(allocation)

        self.add_event(UnitAllocated(
            aggregate_id=self.id,
            service_id=self.service_id,
            unit_id=unit_id,
            reservation_id=reservation_id,
            dates=dates,
        ))
        return allocation

    def mark_occupied(self, unit_id: int):
        """Reflect the ledger write on the in-memory snapshot"""
        self.units = [
            UnitSnapshot(u.id, u.service_id, u.number, UnitStatus.OCCUPIED, u.floor) if u.id == unit_id else u
            for u in self.units
        ]

    @classmethod
    def build(cls, service_id: int, units: Iterable[UnitSnapshot], allocations: Iterable[Allocation]) -> 'UnitInventory':
        return cls(service_id=service_id, units=list(units), allocations=list(allocations))

    def __str__(self):
        return f"UnitInventory(service={self.service_id}, units={len(self.units)}, allocations={len(self.allocations)})"
