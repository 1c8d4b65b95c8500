"""
Public entry points of the reservation engine.

Writes are dispatched as commands through the message bus; reads go
straight to ReservationQueries. Every function returns domain objects
and raises DomainError subclasses on failure.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Mapping
from uuid import UUID

from shared.application.message_bus import MessageBus, message_bus

from .application.access import ReservationAccess
from .application.command_handlers import (
    AddonRequest,
    AllocateReservationCommand,
    AllocateReservationHandler,
    CancelReservationCommand,
    CancelReservationHandler,
    CheckInReservationCommand,
    CheckInReservationHandler,
    CheckOutReservationCommand,
    CheckOutReservationHandler,
    ConfirmReservationCommand,
    ConfirmReservationHandler,
    MarkNoShowCommand,
    MarkNoShowHandler,
    SetUnitStatusCommand,
    SetUnitStatusHandler,
)
from .application.queries import ReservationPage, ReservationQueries
from .domain.entities import Reservation, ReservationStatus
from .domain.resources import UnitSnapshot, UnitStatus
from .ledger import ResourceLedger
from .repositories import CatalogRepository, InventoryRepository, ReservationRepository


def register_handlers(bus: MessageBus = message_bus) -> None:
    """Wire every reservation command to its handler (idempotent)."""

    reservation_repo = ReservationRepository()
    inventory_repo = InventoryRepository()
    catalog_repo = CatalogRepository()
    access = ReservationAccess(catalog_repo)
    ledger = ResourceLedger()

    handlers = {
        AllocateReservationCommand: AllocateReservationHandler(
            reservation_repo, inventory_repo, catalog_repo, ledger
        ),
        ConfirmReservationCommand: ConfirmReservationHandler(reservation_repo, access),
        CancelReservationCommand: CancelReservationHandler(reservation_repo, access, ledger),
        CheckInReservationCommand: CheckInReservationHandler(reservation_repo, access),
        CheckOutReservationCommand: CheckOutReservationHandler(reservation_repo, access, ledger),
        MarkNoShowCommand: MarkNoShowHandler(reservation_repo, access, ledger),
        SetUnitStatusCommand: SetUnitStatusHandler(catalog_repo, access, ledger),
    }
    for command_type, handler in handlers.items():
        if not bus.has_command_handler(command_type):
            bus.register_command_handler(command_type, handler.handle)


def _queries() -> ReservationQueries:
    catalog_repo = CatalogRepository()
    return ReservationQueries(
        ReservationRepository(),
        InventoryRepository(),
        catalog_repo,
        ReservationAccess(catalog_repo),
    )


def _as_addon_request(value) -> AddonRequest:
    if isinstance(value, AddonRequest):
        return value
    if isinstance(value, Mapping):
        return AddonRequest(value["extra_item_id"], value.get("quantity", 1))
    extra_item_id, quantity = value
    return AddonRequest(extra_item_id, quantity)


# ----- Commands -----

def allocate(
    owner_id: int,
    service_id: int,
    slot_id: int,
    *,
    quantity: int = 1,
    check_in: date | None = None,
    check_out: date | None = None,
    unit_id: int | None = None,
    addons: Iterable = (),
    number_of_guests: int | None = None,
    guest_name: str = "",
    guest_email: str = "",
    guest_phone: str = "",
    guest_document: str = "",
    notes: str = "",
) -> Reservation:
    """
    Allocate a reservation.

    ``addons`` items may be AddonRequest instances, ``(extra_item_id,
    quantity)`` pairs or mappings with those keys.
    """

    command = AllocateReservationCommand(
        owner_id=owner_id,
        service_id=service_id,
        slot_id=slot_id,
        quantity=quantity,
        check_in=check_in,
        check_out=check_out,
        unit_id=unit_id,
        addons=[_as_addon_request(a) for a in addons],
        number_of_guests=number_of_guests,
        guest_name=guest_name,
        guest_email=guest_email,
        guest_phone=guest_phone,
        guest_document=guest_document,
        notes=notes,
    )
    return message_bus.handle_command(command)


def cancel(reservation_id: UUID, actor_id: int, reason: str = "") -> Reservation:
    return message_bus.handle_command(CancelReservationCommand(reservation_id, actor_id, reason))


def confirm(reservation_id: UUID, actor_id: int) -> Reservation:
    return message_bus.handle_command(ConfirmReservationCommand(reservation_id, actor_id))


def check_in(reservation_id: UUID, actor_id: int) -> Reservation:
    return message_bus.handle_command(CheckInReservationCommand(reservation_id, actor_id))


def check_out(reservation_id: UUID, actor_id: int) -> Reservation:
    return message_bus.handle_command(CheckOutReservationCommand(reservation_id, actor_id))


def mark_no_show(reservation_id: UUID, actor_id: int) -> Reservation:
    return message_bus.handle_command(MarkNoShowCommand(reservation_id, actor_id))


def set_unit_status(unit_id: int, status: UnitStatus | str, actor_id: int) -> UnitStatus:
    return message_bus.handle_command(SetUnitStatusCommand(unit_id, status, actor_id))


# ----- Queries -----

def get_reservation(reservation_id: UUID, actor_id: int) -> Reservation:
    return _queries().get_reservation(reservation_id, actor_id)


def list_owner_reservations(
    owner_id: int,
    status: ReservationStatus | str | None = None,
    page: int = 1,
    page_size: int | None = None,
) -> ReservationPage:
    return _queries().list_owner_reservations(owner_id, status, page, page_size)


def list_establishment_reservations(
    establishment_id: int,
    actor_id: int,
    status: ReservationStatus | str | None = None,
    page: int = 1,
    page_size: int | None = None,
) -> ReservationPage:
    return _queries().list_establishment_reservations(establishment_id, actor_id, status, page, page_size)


def find_available_units(service_id: int, check_in: date, check_out: date) -> List[UnitSnapshot]:
    return _queries().find_available_units(service_id, check_in, check_out)
