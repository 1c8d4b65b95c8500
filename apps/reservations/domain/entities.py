"""
Reservation Domain Entities

- ReservationStatus: FSM states of the reservation lifecycle
- ReservationAddon: add-on selection with its price-at-booking snapshot
- Reservation: aggregate root, the only place status transitions happen
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List

from shared.domain.base import Aggregate, utcnow
from shared.domain.exceptions import ConflictError
from shared.domain.value_objects import DateRange, Money

from .events import (
    ReservationCancelled,
    ReservationCheckedIn,
    ReservationCheckedOut,
    ReservationConfirmed,
    ReservationCreated,
    ReservationMarkedNoShow,
)
from .resources import ServiceKind


class ReservationStatus(Enum):
    """
    Reservation Status Finite State Machine

    State transitions:
    - PENDING -> CONFIRMED (staff confirmed)
    - PENDING -> CANCELLED
    - CONFIRMED -> CANCELLED (slot capacity / unit released)
    - CONFIRMED -> CHECKED_IN (unit-based only)
    - CONFIRMED -> CHECKED_OUT (direct check-out, unit freed)
    - CONFIRMED -> NO_SHOW (unit-based only, unit freed)
    - CHECKED_IN -> CHECKED_OUT (unit freed)

    CANCELLED, CHECKED_OUT and NO_SHOW are terminal.
    """
    PENDING = 'PENDING'
    CONFIRMED = 'CONFIRMED'
    CANCELLED = 'CANCELLED'
    CHECKED_IN = 'CHECKED_IN'
    CHECKED_OUT = 'CHECKED_OUT'
    NO_SHOW = 'NO_SHOW'

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        """Still holds its resource (slot seat or unit)"""
        return self in ACTIVE_STATUSES

    @property
    def blocks_calendar(self) -> bool:
        """Counts against unit availability in overlap checks"""
        return self not in (ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW)


TERMINAL_STATUSES = frozenset({
    ReservationStatus.CANCELLED,
    ReservationStatus.CHECKED_OUT,
    ReservationStatus.NO_SHOW,
})

ACTIVE_STATUSES = frozenset({
    ReservationStatus.PENDING,
    ReservationStatus.CONFIRMED,
    ReservationStatus.CHECKED_IN,
})


@dataclass(frozen=True)
class ReservationAddon:
    """Add-on selection; price_at_booking never changes after creation"""
    extra_item_id: int
    quantity: int
    price_at_booking: Money

    @property
    def subtotal(self) -> Money:
        return self.price_at_booking * self.quantity


@dataclass(eq=False)
class Reservation(Aggregate):
    """
    Reservation Aggregate Root

    A single-resource, single-interval claim on a slot (slot-based
    services) or on a unit for a date range (unit-based services).

    Key invariants:
    - Created only by the allocation coordinator, never deleted
    - Status changes only through the transition methods below
    - A rejected transition leaves every field untouched
    - Add-on prices are snapshots taken at allocation time
    """

    reference: str
    owner_id: int
    establishment_id: int
    service_id: int
    service_kind: ServiceKind
    slot_id: int
    quantity: int
    total_price: Money

    unit_id: int | None = None
    dates: DateRange | None = None
    addons: List[ReservationAddon] = field(default_factory=list)

    # Guest contact details (unit-based reservations)
    number_of_guests: int | None = None
    guest_name: str = ''
    guest_email: str = ''
    guest_phone: str = ''
    guest_document: str = ''
    notes: str = ''

    status: ReservationStatus = ReservationStatus.CONFIRMED

    cancellation_reason: str = ''

    # Timestamps
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    checked_in_at: datetime | None = None
    checked_out_at: datetime | None = None

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError("Quantity must be at least 1")
        if self.is_unit_based and self.dates is None:
            raise ValueError("Unit-based reservations need a date range")

    @classmethod
    def allocate(cls, *, status: ReservationStatus = ReservationStatus.CONFIRMED, **attrs) -> 'Reservation':
        """
        Build a freshly allocated reservation

        Only the allocation coordinator calls this, after the ledger
        has accepted the resource claim.
        """
        if status not in (ReservationStatus.CONFIRMED, ReservationStatus.PENDING):
            raise ValueError(f"A new reservation cannot start as {status.value}")

        reservation = cls(status=status, **attrs)
        if status == ReservationStatus.CONFIRMED:
            reservation.confirmed_at = reservation.created_at

        reservation.add_event(ReservationCreated(
            aggregate_id=reservation.id,
            reservation_id=reservation.id,
            reference=reservation.reference,
            service_id=reservation.service_id,
            slot_id=reservation.slot_id,
            owner_id=reservation.owner_id,
            status=status.value,
            total_price=reservation.total_price,
            unit_id=reservation.unit_id,
            dates=reservation.dates,
        ))
        return reservation

    # ----- Transitions -----

    def confirm(self, at: datetime | None = None):
        """
        Confirm (PENDING -> CONFIRMED)

        Events: ReservationConfirmed
        """
        if self.status == ReservationStatus.CONFIRMED:
            raise ConflictError('Reservation is already confirmed')
        if self.status == ReservationStatus.CANCELLED:
            raise ConflictError('Cannot confirm a cancelled reservation')
        if self.status == ReservationStatus.CHECKED_IN:
            raise ConflictError('Cannot confirm a checked-in reservation')
        if self.status == ReservationStatus.CHECKED_OUT:
            raise ConflictError('Cannot confirm a reservation that has already been checked out')
        if self.status == ReservationStatus.NO_SHOW:
            raise ConflictError('Cannot confirm a no-show reservation')

        at = at or utcnow()
        self.status = ReservationStatus.CONFIRMED
        self.confirmed_at = at
        self.touch(at)

        self.add_event(ReservationConfirmed(
            aggregate_id=self.id,
            reservation_id=self.id,
            service_id=self.service_id,
        ))

    def cancel(self, reason: str = '', at: datetime | None = None):
        """
        Cancel (PENDING/CONFIRMED -> CANCELLED)

        The coordinator releases slot capacity or frees the unit in the
        same transaction.
        Events: ReservationCancelled
        """
        if self.status == ReservationStatus.CANCELLED:
            raise ConflictError('Reservation is already cancelled')
        if self.status == ReservationStatus.CHECKED_IN:
            raise ConflictError('Cannot cancel a checked-in reservation')
        if self.status == ReservationStatus.CHECKED_OUT:
            raise ConflictError('Cannot cancel a reservation that has already been checked out')
        if self.status == ReservationStatus.NO_SHOW:
            raise ConflictError('Cannot cancel a no-show reservation')

        at = at or utcnow()
        old_status = self.status
        self.status = ReservationStatus.CANCELLED
        self.cancellation_reason = reason
        self.cancelled_at = at
        self.touch(at)

        self.add_event(ReservationCancelled(
            aggregate_id=self.id,
            reservation_id=self.id,
            service_id=self.service_id,
            reason=reason,
            old_status=old_status.value,
        ))

    def check_in(self, at: datetime | None = None):
        """
        Check in guest (CONFIRMED -> CHECKED_IN)

        Events: ReservationCheckedIn
        """
        self._require_unit_based('Check-in')

        if self.status == ReservationStatus.CHECKED_IN:
            raise ConflictError('Reservation is already checked in')
        if self.status == ReservationStatus.CHECKED_OUT:
            raise ConflictError('Cannot check in a reservation that has already been checked out')
        if self.status == ReservationStatus.CANCELLED:
            raise ConflictError('Cannot check in a cancelled reservation')
        if self.status == ReservationStatus.NO_SHOW:
            raise ConflictError('Cannot check in a no-show reservation')
        if self.status == ReservationStatus.PENDING:
            raise ConflictError('Reservation must be confirmed before check-in')

        at = at or utcnow()
        self.status = ReservationStatus.CHECKED_IN
        self.checked_in_at = at
        self.touch(at)

        self.add_event(ReservationCheckedIn(
            aggregate_id=self.id,
            reservation_id=self.id,
            unit_id=self.unit_id,
        ))

    def check_out(self, at: datetime | None = None):
        """
        Check out guest (CHECKED_IN -> CHECKED_OUT, or CONFIRMED -> CHECKED_OUT)

        A confirmed reservation may be checked out directly without a
        recorded check-in.
        Events: ReservationCheckedOut
        """
        self._require_unit_based('Check-out')

        if self.status == ReservationStatus.CHECKED_OUT:
            raise ConflictError('Reservation is already checked out')
        if self.status == ReservationStatus.CANCELLED:
            raise ConflictError('Cannot check out a cancelled reservation')
        if self.status == ReservationStatus.NO_SHOW:
            raise ConflictError('Cannot check out a no-show reservation')
        if self.status == ReservationStatus.PENDING:
            raise ConflictError('Reservation must be confirmed before check-out')

        at = at or utcnow()
        old_status = self.status
        self.status = ReservationStatus.CHECKED_OUT
        self.checked_out_at = at
        self.touch(at)

        self.add_event(ReservationCheckedOut(
            aggregate_id=self.id,
            reservation_id=self.id,
            unit_id=self.unit_id,
            old_status=old_status.value,
        ))

    def mark_no_show(self, at: datetime | None = None):
        """
        Mark no-show (CONFIRMED -> NO_SHOW)

        Rejected once the guest has checked in, whatever the time.
        Events: ReservationMarkedNoShow
        """
        self._require_unit_based('No-show')

        if self.status == ReservationStatus.CHECKED_IN:
            raise ConflictError('Cannot mark a checked-in reservation as no-show')
        if self.status == ReservationStatus.CHECKED_OUT:
            raise ConflictError('Cannot mark a checked-out reservation as no-show')
        if self.status == ReservationStatus.NO_SHOW:
            raise ConflictError('Reservation is already marked as no-show')
        if self.status == ReservationStatus.CANCELLED:
            raise ConflictError('Cannot mark a cancelled reservation as no-show')
        if self.status == ReservationStatus.PENDING:
            raise ConflictError('Reservation must be confirmed before it can be marked as no-show')

        at = at or utcnow()
        self.status = ReservationStatus.NO_SHOW
        self.touch(at)

        self.add_event(ReservationMarkedNoShow(
            aggregate_id=self.id,
            reservation_id=self.id,
            unit_id=self.unit_id,
        ))

    # ----- Queries -----

    @property
    def is_unit_based(self) -> bool:
        return self.service_kind is ServiceKind.UNIT_BASED

    @property
    def nights(self) -> int | None:
        return self.dates.nights if self.dates else None

    @property
    def check_in_date(self):
        return self.dates.start_date if self.dates else None

    @property
    def check_out_date(self):
        return self.dates.end_date if self.dates else None

    @property
    def holds_slot_capacity(self) -> bool:
        """Slot-based reservations consume slot seats; unit-based ones do not"""
        return not self.is_unit_based

    def belongs_to(self, user_id: int) -> bool:
        return self.owner_id == user_id

    def _require_unit_based(self, action: str):
        if not self.is_unit_based:
            raise ConflictError(f"{action} is not available for this service type")

    def __str__(self):
        return f"Reservation {self.reference} ({self.status.value})"

    def __repr__(self):
        return (
            f"Reservation(id={self.id}, reference={self.reference}, "
            f"status={self.status.value}, dates={self.dates})"
        )
