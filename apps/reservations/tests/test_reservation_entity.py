from datetime import date
from decimal import Decimal

import pytest

from apps.reservations.domain.entities import Reservation, ReservationStatus
from apps.reservations.domain.events import (
    ReservationCancelled,
    ReservationCheckedOut,
    ReservationCreated,
)
from apps.reservations.domain.resources import ServiceKind
from shared.domain.exceptions import ConflictError
from shared.domain.value_objects import DateRange, Money


def stay(status=ReservationStatus.CONFIRMED):
    return Reservation(
        reference="RS1",
        owner_id=1,
        establishment_id=1,
        service_id=1,
        service_kind=ServiceKind.UNIT_BASED,
        slot_id=1,
        quantity=1,
        total_price=Money(Decimal("425.00")),
        unit_id=101,
        dates=DateRange(date(2025, 2, 1), date(2025, 2, 5)),
        status=status,
    )


def seat(status=ReservationStatus.CONFIRMED):
    return Reservation(
        reference="RS2",
        owner_id=1,
        establishment_id=1,
        service_id=2,
        service_kind=ServiceKind.SLOT_BASED,
        slot_id=5,
        quantity=2,
        total_price=Money(Decimal("60.00")),
        status=status,
    )


def snapshot(reservation):
    return (
        reservation.status,
        reservation.updated_at,
        reservation.cancelled_at,
        reservation.checked_in_at,
        reservation.checked_out_at,
        reservation.cancellation_reason,
    )


def test_allocate_starts_confirmed_and_records_creation():
    reservation = Reservation.allocate(
        reference="RS3",
        owner_id=1,
        establishment_id=1,
        service_id=2,
        service_kind=ServiceKind.SLOT_BASED,
        slot_id=5,
        quantity=1,
        total_price=Money(Decimal("30.00")),
    )

    assert reservation.status is ReservationStatus.CONFIRMED
    assert reservation.confirmed_at == reservation.created_at
    assert [type(e) for e in reservation.events] == [ReservationCreated]


def test_allocate_refuses_non_initial_states():
    with pytest.raises(ValueError):
        Reservation.allocate(
            status=ReservationStatus.CHECKED_IN,
            reference="RS4",
            owner_id=1,
            establishment_id=1,
            service_id=2,
            service_kind=ServiceKind.SLOT_BASED,
            slot_id=5,
            quantity=1,
            total_price=Money(Decimal("30.00")),
        )


def test_unit_based_reservation_needs_dates():
    with pytest.raises(ValueError):
        Reservation(
            reference="RS5",
            owner_id=1,
            establishment_id=1,
            service_id=1,
            service_kind=ServiceKind.UNIT_BASED,
            slot_id=1,
            quantity=1,
            total_price=Money(Decimal("100.00")),
        )


def test_pending_confirm_then_cancel():
    reservation = stay(ReservationStatus.PENDING)
    reservation.confirm()
    reservation.cancel("guest changed plans")

    assert reservation.status is ReservationStatus.CANCELLED
    assert reservation.cancellation_reason == "guest changed plans"
    assert reservation.cancelled_at is not None
    cancelled = reservation.events[-1]
    assert isinstance(cancelled, ReservationCancelled)
    assert cancelled.old_status == "CONFIRMED"


def test_direct_check_out_from_confirmed_is_allowed():
    reservation = stay()
    reservation.check_out()

    assert reservation.status is ReservationStatus.CHECKED_OUT
    assert reservation.checked_in_at is None
    assert isinstance(reservation.events[-1], ReservationCheckedOut)


def test_no_show_after_check_in_mentions_checked_in():
    reservation = stay()
    reservation.check_in()

    with pytest.raises(ConflictError, match="checked-in"):
        reservation.mark_no_show()
    assert reservation.status is ReservationStatus.CHECKED_IN


@pytest.mark.parametrize(
    "action",
    ["check_in", "check_out", "mark_no_show"],
)
def test_slot_reservations_have_no_stay_transitions(action):
    reservation = seat()
    with pytest.raises(ConflictError, match="not available for this service type"):
        getattr(reservation, action)()


@pytest.mark.parametrize(
    "status, action, message",
    [
        (ReservationStatus.CANCELLED, "cancel", "Reservation is already cancelled"),
        (ReservationStatus.CHECKED_IN, "cancel", "Cannot cancel a checked-in reservation"),
        (ReservationStatus.CHECKED_OUT, "cancel", "already been checked out"),
        (ReservationStatus.NO_SHOW, "cancel", "Cannot cancel a no-show reservation"),
        (ReservationStatus.CONFIRMED, "confirm", "already confirmed"),
        (ReservationStatus.CANCELLED, "confirm", "cancelled"),
        (ReservationStatus.CHECKED_IN, "check_in", "already checked in"),
        (ReservationStatus.CHECKED_OUT, "check_in", "checked out"),
        (ReservationStatus.CANCELLED, "check_in", "cancelled"),
        (ReservationStatus.NO_SHOW, "check_in", "no-show"),
        (ReservationStatus.PENDING, "check_in", "must be confirmed"),
        (ReservationStatus.CHECKED_OUT, "check_out", "already checked out"),
        (ReservationStatus.CANCELLED, "check_out", "cancelled"),
        (ReservationStatus.NO_SHOW, "check_out", "no-show"),
        (ReservationStatus.CHECKED_OUT, "mark_no_show", "checked-out"),
        (ReservationStatus.NO_SHOW, "mark_no_show", "already marked as no-show"),
        (ReservationStatus.CANCELLED, "mark_no_show", "cancelled"),
    ],
)
def test_rejected_transitions_leave_reservation_untouched(status, action, message):
    reservation = stay(status)
    before = snapshot(reservation)

    with pytest.raises(ConflictError, match=message):
        getattr(reservation, action)()

    assert snapshot(reservation) == before
    assert reservation.events == []


@pytest.mark.parametrize("status", [ReservationStatus.CANCELLED, ReservationStatus.CHECKED_OUT, ReservationStatus.NO_SHOW])
def test_terminal_states_reject_everything(status):
    reservation = stay(status)
    for action in ("confirm", "cancel", "check_in", "check_out", "mark_no_show"):
        with pytest.raises(ConflictError):
            getattr(reservation, action)()
    assert reservation.status is status
    assert status.is_terminal
