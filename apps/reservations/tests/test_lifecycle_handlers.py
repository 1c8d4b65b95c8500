from datetime import timedelta
from uuid import uuid4

import pytest

from apps.catalog.models import Unit
from apps.reservations import services
from apps.reservations.domain.entities import ReservationStatus
from apps.reservations.domain.events import ReservationCancelled, ReservationCreated
from apps.reservations.models import Reservation as ReservationModel
from shared.application.message_bus import message_bus
from shared.domain.exceptions import ConflictError, ForbiddenError, NotFoundError

pytestmark = pytest.mark.django_db


@pytest.fixture
def stay(guest, hotel_service, hotel_slot, units, today):
    return services.allocate(
        guest.id,
        hotel_service.id,
        hotel_slot.id,
        check_in=today + timedelta(days=1),
        check_out=today + timedelta(days=3),
    )


@pytest.fixture
def seats(guest, slot_service, slot):
    return services.allocate(guest.id, slot_service.id, slot.id, quantity=2)


def unit_status(unit_id):
    return Unit.objects.get(pk=unit_id).status


def test_owner_cancel_returns_slot_seats(guest, seats, slot):
    cancelled = services.cancel(seats.id, guest.id, reason="sick")

    slot.refresh_from_db()
    assert slot.remaining == slot.capacity
    assert cancelled.status is ReservationStatus.CANCELLED

    row = ReservationModel.objects.get(pk=seats.id)
    assert row.status == ReservationModel.Status.CANCELLED
    assert row.cancellation_reason == "sick"
    assert row.cancelled_at is not None


def test_cancelling_twice_changes_nothing(guest, seats, slot):
    services.cancel(seats.id, guest.id)

    with pytest.raises(ConflictError, match="already cancelled"):
        services.cancel(seats.id, guest.id)

    slot.refresh_from_db()
    assert slot.remaining == slot.capacity


def test_staff_cancel_frees_the_unit(staff, stay):
    services.cancel(stay.id, staff.id)

    assert unit_status(stay.unit_id) == Unit.Status.AVAILABLE


def test_outsider_cannot_cancel(outsider, seats, slot):
    with pytest.raises(ForbiddenError):
        services.cancel(seats.id, outsider.id)

    slot.refresh_from_db()
    assert slot.remaining == 1


def test_staff_only_transitions(guest, outsider, stay):
    with pytest.raises(ForbiddenError):
        services.check_in(stay.id, guest.id)
    with pytest.raises(ForbiddenError):
        services.mark_no_show(stay.id, outsider.id)


def test_unknown_reservation(staff):
    with pytest.raises(NotFoundError, match="Reservation not found"):
        services.check_in(uuid4(), staff.id)


def test_full_stay_lifecycle(staff, stay):
    checked_in = services.check_in(stay.id, staff.id)
    assert checked_in.status is ReservationStatus.CHECKED_IN
    assert unit_status(stay.unit_id) == Unit.Status.OCCUPIED

    with pytest.raises(ConflictError, match="checked-in"):
        services.mark_no_show(stay.id, staff.id)

    checked_out = services.check_out(stay.id, staff.id)
    assert checked_out.status is ReservationStatus.CHECKED_OUT
    assert checked_out.checked_in_at is not None
    assert checked_out.checked_out_at is not None
    assert unit_status(stay.unit_id) == Unit.Status.AVAILABLE


def test_direct_check_out_without_check_in(staff, stay):
    checked_out = services.check_out(stay.id, staff.id)

    assert checked_out.status is ReservationStatus.CHECKED_OUT
    assert checked_out.checked_in_at is None
    assert unit_status(stay.unit_id) == Unit.Status.AVAILABLE


def test_no_show_frees_unit_and_is_terminal(staff, guest, stay):
    services.mark_no_show(stay.id, staff.id)
    assert unit_status(stay.unit_id) == Unit.Status.AVAILABLE

    for action in (services.check_in, services.check_out, services.mark_no_show, services.confirm):
        with pytest.raises(ConflictError, match="no-show"):
            action(stay.id, staff.id)
    with pytest.raises(ConflictError, match="no-show"):
        services.cancel(stay.id, guest.id)


def test_release_keeps_manual_override(staff, stay):
    services.set_unit_status(stay.unit_id, "MAINTENANCE", staff.id)

    services.cancel(stay.id, staff.id)

    assert unit_status(stay.unit_id) == Unit.Status.MAINTENANCE


def test_slot_reservation_cannot_check_in(staff, seats):
    with pytest.raises(ConflictError, match="not available for this service type"):
        services.check_in(seats.id, staff.id)


def test_confirm_pending_reservation(guest, staff, slot_service, slot):
    slot_service.requires_confirmation = True
    slot_service.save()
    pending = services.allocate(guest.id, slot_service.id, slot.id)

    with pytest.raises(ForbiddenError):
        services.confirm(pending.id, guest.id)

    confirmed = services.confirm(pending.id, staff.id)
    assert confirmed.status is ReservationStatus.CONFIRMED
    assert confirmed.confirmed_at is not None

    with pytest.raises(ConflictError, match="already confirmed"):
        services.confirm(pending.id, staff.id)


def test_events_are_published_after_commit(guest, seats, django_capture_on_commit_callbacks, monkeypatch):
    received = []
    monkeypatch.setitem(message_bus._event_handlers, ReservationCancelled, [received.append])

    with django_capture_on_commit_callbacks(execute=True):
        services.cancel(seats.id, guest.id, reason="weather")

    assert [e.reservation_id for e in received] == [seats.id]
    assert received[0].old_status == "CONFIRMED"


def test_allocation_publishes_created_event(guest, slot_service, slot, django_capture_on_commit_callbacks, monkeypatch):
    received = []
    monkeypatch.setitem(message_bus._event_handlers, ReservationCreated, [received.append])

    with django_capture_on_commit_callbacks(execute=True):
        reservation = services.allocate(guest.id, slot_service.id, slot.id)

    assert [e.reference for e in received] == [reservation.reference]
