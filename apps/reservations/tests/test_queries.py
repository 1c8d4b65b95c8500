from datetime import timedelta

import pytest

from apps.catalog.models import Unit
from apps.reservations import services
from apps.reservations.domain.entities import ReservationStatus
from shared.domain.exceptions import ConflictError, ForbiddenError, ValidationError

pytestmark = pytest.mark.django_db


def test_owner_and_staff_can_read_a_reservation(guest, staff, outsider, slot_service, slot, aromatherapy):
    reservation = services.allocate(guest.id, slot_service.id, slot.id, addons=[(aromatherapy.id, 2)])

    loaded = services.get_reservation(reservation.id, guest.id)
    assert loaded == reservation
    assert loaded.reference == reservation.reference
    assert [(a.extra_item_id, a.quantity) for a in loaded.addons] == [(aromatherapy.id, 2)]
    assert loaded.total_price == reservation.total_price

    assert services.get_reservation(reservation.id, staff.id).owner_id == guest.id
    with pytest.raises(ForbiddenError):
        services.get_reservation(reservation.id, outsider.id)


def test_owner_listing_is_paginated_and_filterable(guest, slot_service, slot):
    first = services.allocate(guest.id, slot_service.id, slot.id)
    services.allocate(guest.id, slot_service.id, slot.id)
    services.cancel(first.id, guest.id)

    page = services.list_owner_reservations(guest.id, page_size=1)
    assert page.total == 2
    assert page.num_pages == 2
    assert page.has_next
    assert len(page.items) == 1

    cancelled = services.list_owner_reservations(guest.id, status="CANCELLED")
    assert [r.id for r in cancelled.items] == [first.id]
    assert cancelled.items[0].status is ReservationStatus.CANCELLED


def test_establishment_listing_is_for_members_only(guest, staff, establishment, slot_service, slot):
    services.allocate(guest.id, slot_service.id, slot.id)

    page = services.list_establishment_reservations(establishment.id, staff.id)
    assert page.total == 1

    with pytest.raises(ForbiddenError):
        services.list_establishment_reservations(establishment.id, guest.id)


def test_find_available_units_skips_booked_and_blocked(guest, hotel_service, hotel_slot, units, today):
    check_in = today + timedelta(days=1)
    check_out = today + timedelta(days=4)
    services.allocate(guest.id, hotel_service.id, hotel_slot.id, check_in=check_in, check_out=check_out)
    Unit.objects.filter(pk=units["201"].pk).update(status=Unit.Status.BLOCKED)

    free = services.find_available_units(hotel_service.id, check_in, check_out)

    assert [u.number for u in free] == ["102"]


def test_find_available_units_needs_a_unit_based_service(slot_service, today):
    with pytest.raises(ConflictError):
        services.find_available_units(slot_service.id, today, today + timedelta(days=1))


def test_unknown_status_filter_is_a_validation_error(guest, staff, establishment):
    with pytest.raises(ValidationError, match="Unknown reservation status"):
        services.list_owner_reservations(guest.id, status="BOGUS")

    with pytest.raises(ValidationError, match="Unknown reservation status"):
        services.list_establishment_reservations(establishment.id, staff.id, status="BOGUS")
