from datetime import date
from uuid import uuid4

import pytest

from apps.reservations.domain.events import UnitAllocated
from apps.reservations.domain.inventory import Allocation, UnitInventory
from apps.reservations.domain.resources import UnitSnapshot, UnitStatus
from shared.domain.exceptions import ConflictError, NotFoundError
from shared.domain.value_objects import DateRange

FEB_1_5 = DateRange(date(2025, 2, 1), date(2025, 2, 5))


def unit(id, number, floor=1, status=UnitStatus.AVAILABLE):
    return UnitSnapshot(id=id, service_id=9, number=number, status=status, floor=floor)


def inventory(units, allocations=()):
    return UnitInventory.build(9, units, allocations)


def test_free_units_are_picked_by_floor_then_number():
    inv = inventory([unit(3, "201", floor=2), unit(2, "102"), unit(1, "101"), unit(4, "PH", floor=None)])

    assert [u.number for u in inv.available_units(FEB_1_5)] == ["101", "102", "201", "PH"]
    assert inv.choose_unit(FEB_1_5).number == "101"


def test_overlapping_allocation_blocks_the_unit():
    held = Allocation(uuid4(), 1, DateRange(date(2025, 2, 4), date(2025, 2, 8)))
    inv = inventory([unit(1, "101"), unit(2, "102")], [held])

    assert not inv.is_unit_free(1, FEB_1_5)
    assert inv.choose_unit(FEB_1_5).number == "102"


def test_back_to_back_stays_do_not_collide():
    held = Allocation(uuid4(), 1, DateRange(date(2025, 2, 5), date(2025, 2, 8)))
    inv = inventory([unit(1, "101")], [held])

    assert inv.is_unit_free(1, FEB_1_5)


def test_requested_unit_errors():
    held = Allocation(uuid4(), 1, FEB_1_5)
    inv = inventory([unit(1, "101"), unit(2, "102", status=UnitStatus.MAINTENANCE)], [held])

    with pytest.raises(NotFoundError, match="Unit not found"):
        inv.choose_unit(FEB_1_5, requested_unit_id=99)
    with pytest.raises(ConflictError, match="Unit is MAINTENANCE and cannot be booked"):
        inv.choose_unit(FEB_1_5, requested_unit_id=2)
    with pytest.raises(ConflictError, match="not available for the selected dates"):
        inv.choose_unit(FEB_1_5, requested_unit_id=1)


def test_nothing_free_raises_conflict():
    inv = inventory([unit(1, "101", status=UnitStatus.OCCUPIED)])

    with pytest.raises(ConflictError, match="No units available"):
        inv.choose_unit(FEB_1_5)


def test_allocate_rechecks_and_records_event():
    inv = inventory([unit(1, "101")])
    reservation_id = uuid4()

    inv.allocate(reservation_id, 1, FEB_1_5)

    assert [type(e) for e in inv.events] == [UnitAllocated]
    with pytest.raises(ConflictError):
        inv.allocate(uuid4(), 1, DateRange(date(2025, 2, 3), date(2025, 2, 6)))
    assert len(inv.allocations) == 1
