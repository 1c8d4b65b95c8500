"""
Reservation Domain Events

Published by the unit of work after the transaction that produced them
has committed.
"""

from dataclasses import dataclass
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange, Money


# ===== Reservation Events =====

@dataclass
class ReservationCreated(DomainEvent):
    """
    Event: A reservation was allocated

    status is CONFIRMED, or PENDING for services that require staff
    confirmation.
    """
    reservation_id: UUID
    reference: str
    service_id: int
    slot_id: int
    owner_id: int
    status: str
    total_price: Money
    unit_id: int | None = None
    dates: DateRange | None = None


@dataclass
class ReservationConfirmed(DomainEvent):
    """Event: Staff confirmed a pending reservation (PENDING -> CONFIRMED)"""
    reservation_id: UUID
    service_id: int


@dataclass
class ReservationCancelled(DomainEvent):
    """
    Event: Reservation was cancelled

    The slot capacity or the unit has been released in the same
    transaction.
    """
    reservation_id: UUID
    service_id: int
    reason: str
    old_status: str


@dataclass
class ReservationCheckedIn(DomainEvent):
    """Event: Guest has checked in (CONFIRMED -> CHECKED_IN)"""
    reservation_id: UUID
    unit_id: int | None


@dataclass
class ReservationCheckedOut(DomainEvent):
    """Event: Guest has checked out; the unit was freed"""
    reservation_id: UUID
    unit_id: int | None
    old_status: str


@dataclass
class ReservationMarkedNoShow(DomainEvent):
    """Event: Guest never arrived (CONFIRMED -> NO_SHOW); the unit was freed"""
    reservation_id: UUID
    unit_id: int | None


# ===== Inventory Events =====

@dataclass
class UnitAllocated(DomainEvent):
    """Event: A unit was taken for a reservation's date range"""
    service_id: int
    unit_id: int
    reservation_id: UUID
    dates: DateRange
