"""
Reservation Command Handlers

The allocation coordinator: every write to reservations, slot capacity
and unit status goes through one of these handlers, inside a single
DjangoUnitOfWork transaction.

Commands:
- AllocateReservationCommand: Create a reservation (slot seat or unit stay)
- ConfirmReservationCommand: Staff confirms a pending reservation
- CancelReservationCommand: Cancel and release the resource
- CheckInReservationCommand: Check in a guest (unit-based)
- CheckOutReservationCommand: Check out a guest and free the unit
- MarkNoShowCommand: Mark a no-show and free the unit
- SetUnitStatusCommand: Administrative unit status override
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Sequence
from uuid import UUID, uuid4

import structlog
from django.conf import settings
from django.utils import timezone

from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import (
    ConflictError,
    InsufficientCapacity,
    NotFoundError,
    ValidationError,
)
from shared.domain.value_objects import DateRange

from apps.reservations.application.access import ReservationAccess
from apps.reservations.domain.entities import (
    Reservation,
    ReservationAddon,
    ReservationStatus,
)
from apps.reservations.domain.pricing import (
    PricedAddon,
    price_addon,
    quote_slot,
    quote_stay,
    resolve_unit_price,
)
from apps.reservations.domain.resources import ServiceSnapshot, UnitSnapshot, UnitStatus

logger = structlog.get_logger(__name__)


# ===== Commands =====

@dataclass(frozen=True)
class AddonRequest:
    """One add-on line of an allocation request"""
    extra_item_id: int
    quantity: int = 1


@dataclass
class AllocateReservationCommand:
    """
    Command to allocate a new reservation

    check_in/check_out (and optionally unit_id) are only read for
    unit-based services; quantity is the seat count for slot-based ones.
    """
    owner_id: int
    service_id: int
    slot_id: int
    quantity: int = 1
    check_in: date | None = None
    check_out: date | None = None
    unit_id: int | None = None
    addons: Sequence[AddonRequest] = field(default_factory=list)
    number_of_guests: int | None = None
    guest_name: str = ''
    guest_email: str = ''
    guest_phone: str = ''
    guest_document: str = ''
    notes: str = ''


@dataclass
class ConfirmReservationCommand:
    reservation_id: UUID
    actor_id: int


@dataclass
class CancelReservationCommand:
    reservation_id: UUID
    actor_id: int
    reason: str = ''


@dataclass
class CheckInReservationCommand:
    reservation_id: UUID
    actor_id: int


@dataclass
class CheckOutReservationCommand:
    reservation_id: UUID
    actor_id: int


@dataclass
class MarkNoShowCommand:
    reservation_id: UUID
    actor_id: int


@dataclass
class SetUnitStatusCommand:
    """Staff override of a unit's status (maintenance, cleaning, ...)"""
    unit_id: int
    status: UnitStatus | str
    actor_id: int


# ===== Command Handlers =====

class AllocateReservationHandler:
    """
    Handler for AllocateReservation command

    Strategy:
    1. Validate service, slot, dates and add-ons on plain reads
    2. Resolve the unit (unit-based) or pre-check capacity (slot-based)
    3. Compute the price
    4. Inside one transaction:
       - slot-based: conditional UPDATE of slot.remaining
       - unit-based: reload the inventory with SELECT FOR UPDATE, re-check
         the chosen unit, set it OCCUPIED
       - insert the reservation and its add-on rows
    5. Publish ReservationCreated (and UnitAllocated) after commit

    The pre-checks only produce early, friendly errors; the locked
    re-check and the conditional UPDATE are what keep the ledger right.
    """

    def __init__(self, reservation_repo, inventory_repo, catalog_repo, ledger,
                 today: Callable[[], date] = timezone.localdate):
        self.reservation_repo = reservation_repo
        self.inventory_repo = inventory_repo
        self.catalog_repo = catalog_repo
        self.ledger = ledger
        self.today = today

    def handle(self, command: AllocateReservationCommand) -> Reservation:
        log = logger.bind(
            owner_id=command.owner_id,
            service_id=command.service_id,
            slot_id=command.slot_id,
        )
        log.info("allocation_requested", quantity=command.quantity,
                 check_in=command.check_in, check_out=command.check_out)

        service = self.catalog_repo.get_service(command.service_id)
        if not service.active:
            raise ConflictError('Service is not active')

        slot = self.catalog_repo.get_slot(command.slot_id, service.currency)
        if not slot.belongs_to(service.id):
            raise ConflictError('Slot does not belong to the specified service')

        if command.quantity < 1:
            raise ValidationError('Quantity must be at least 1', {'quantity': command.quantity})

        dates = None
        unit = None
        if service.is_unit_based:
            dates = self._validate_stay(command)
            unit = self._resolve_unit(service, dates, command.unit_id)
        elif not slot.has_capacity_for(command.quantity):
            raise InsufficientCapacity()

        addons = self._resolve_addons(service, command.addons)
        unit_price = resolve_unit_price(service, slot)
        if dates is not None:
            quote = quote_stay(unit_price, dates, addons)
        else:
            quote = quote_slot(unit_price, command.quantity, addons)

        status = ReservationStatus.PENDING if service.requires_confirmation else ReservationStatus.CONFIRMED

        with DjangoUnitOfWork() as uow:
            reservation = Reservation.allocate(
                status=status,
                reference=self._generate_reference(),
                owner_id=command.owner_id,
                establishment_id=service.establishment_id,
                service_id=service.id,
                service_kind=service.kind,
                slot_id=slot.id,
                quantity=command.quantity,
                total_price=quote.total,
                unit_id=unit.id if unit else None,
                dates=dates,
                addons=[
                    ReservationAddon(a.extra_item_id, a.quantity, a.unit_price)
                    for a in addons
                ],
                number_of_guests=command.number_of_guests,
                guest_name=command.guest_name,
                guest_email=command.guest_email,
                guest_phone=command.guest_phone,
                guest_document=command.guest_document,
                notes=command.notes,
            )

            if service.is_unit_based:
                # Locked re-read: the unit picked above may have been taken
                # by a concurrent allocation since.
                inventory = self.inventory_repo.get_by_service_id(service.id, dates, lock=True)
                inventory.allocate(reservation.id, unit.id, dates)
                self.ledger.occupy_unit(unit.id)
                inventory.mark_occupied(unit.id)
                uow.collect_events(inventory)
            else:
                self.ledger.reserve_slot_capacity(slot.id, command.quantity)

            self.reservation_repo.add(reservation)
            uow.collect_events(reservation)

        log.info(
            "reservation_allocated",
            reservation_id=str(reservation.id),
            reference=reservation.reference,
            status=reservation.status.value,
            unit_id=reservation.unit_id,
            total=str(reservation.total_price),
        )
        return reservation

    def _validate_stay(self, command: AllocateReservationCommand) -> DateRange:
        if command.check_in is None or command.check_out is None:
            raise ValidationError(
                'Check-in and check-out dates are required for unit-based services',
                {'check_in': command.check_in, 'check_out': command.check_out},
            )
        if command.check_in < self.today():
            raise ConflictError('Check-in date cannot be in the past')
        if command.check_in >= command.check_out:
            raise ConflictError('Check-out date must be after check-in date')
        return DateRange(command.check_in, command.check_out)

    def _resolve_unit(self, service: ServiceSnapshot, dates: DateRange, unit_id: int | None) -> UnitSnapshot:
        if unit_id is not None and self.catalog_repo.get_unit_service_id(unit_id) != service.id:
            raise ConflictError('Unit does not belong to the specified service')

        inventory = self.inventory_repo.get_by_service_id(service.id, dates)
        return inventory.choose_unit(dates, unit_id)

    def _resolve_addons(self, service: ServiceSnapshot, requests: Sequence[AddonRequest]) -> List[PricedAddon]:
        ids = [r.extra_item_id for r in requests]
        if len(ids) != len(set(ids)):
            raise ValidationError('Each extra item can only be selected once', {'extra_item_ids': ids})

        catalog = self.catalog_repo.get_extra_items(ids)
        priced = []
        for request in requests:
            item = catalog.get(request.extra_item_id)
            if item is None or not item.active:
                raise NotFoundError(f'Extra item {request.extra_item_id}')
            if item.service_id != service.id:
                raise ConflictError(f'Extra item {item.id} does not belong to the service')
            if request.quantity < 1:
                raise ValidationError(
                    'Extra item quantity must be at least 1',
                    {'extra_item_id': item.id, 'quantity': request.quantity},
                )
            if request.quantity > item.max_quantity:
                raise ValidationError(
                    f'Extra item {item.name} quantity exceeds maximum of {item.max_quantity}',
                    {'extra_item_id': item.id, 'quantity': request.quantity},
                )
            priced.append(price_addon(item.id, request.quantity, item.price, service.currency))
        return priced

    def _generate_reference(self) -> str:
        """Human-readable reference: {prefix}{timestamp}{random}"""
        prefix = getattr(settings, 'RESERVATIONS_REFERENCE_PREFIX', 'RS')
        timestamp = timezone.now().strftime('%Y%m%d%H%M%S')
        return f"{prefix}{timestamp}{uuid4().hex[:6].upper()}"


def release_resources(ledger, reservation: Reservation):
    """
    Give back what a reservation held

    Slot-based reservations return their seats; unit-based ones free the
    unit. Call after the reservation's new status has been saved so the
    unit check no longer counts it as active.
    """
    if reservation.holds_slot_capacity:
        ledger.release_slot_capacity(reservation.slot_id, reservation.quantity)
    elif reservation.unit_id is not None:
        ledger.free_unit(reservation.unit_id)


class ConfirmReservationHandler:
    """Handler for confirming a pending reservation"""

    def __init__(self, reservation_repo, access: ReservationAccess):
        self.reservation_repo = reservation_repo
        self.access = access

    def handle(self, command: ConfirmReservationCommand) -> Reservation:
        with DjangoUnitOfWork() as uow:
            reservation = self.reservation_repo.get_by_id(command.reservation_id, lock=True)
            self.access.require_member(
                reservation.establishment_id, command.actor_id,
                'You do not have permission to confirm this reservation',
            )

            reservation.confirm()

            self.reservation_repo.save(reservation)
            uow.collect_events(reservation)

        logger.info("reservation_confirmed", reservation_id=str(reservation.id), actor_id=command.actor_id)
        return reservation


class CancelReservationHandler:
    """Handler for cancelling a reservation and releasing its resource"""

    def __init__(self, reservation_repo, access: ReservationAccess, ledger):
        self.reservation_repo = reservation_repo
        self.access = access
        self.ledger = ledger

    def handle(self, command: CancelReservationCommand) -> Reservation:
        with DjangoUnitOfWork() as uow:
            reservation = self.reservation_repo.get_by_id(command.reservation_id, lock=True)
            self.access.require_owner_or_member(
                reservation, command.actor_id,
                'You do not have permission to cancel this reservation',
            )

            reservation.cancel(command.reason)

            self.reservation_repo.save(reservation)
            release_resources(self.ledger, reservation)
            uow.collect_events(reservation)

        logger.info(
            "reservation_cancelled",
            reservation_id=str(reservation.id),
            actor_id=command.actor_id,
            reason=command.reason,
        )
        return reservation


class CheckInReservationHandler:
    """Handler for checking in a guest"""

    def __init__(self, reservation_repo, access: ReservationAccess):
        self.reservation_repo = reservation_repo
        self.access = access

    def handle(self, command: CheckInReservationCommand) -> Reservation:
        with DjangoUnitOfWork() as uow:
            reservation = self.reservation_repo.get_by_id(command.reservation_id, lock=True)
            self.access.require_member(
                reservation.establishment_id, command.actor_id,
                'You do not have permission to check in this reservation',
            )

            reservation.check_in()

            self.reservation_repo.save(reservation)
            uow.collect_events(reservation)

        logger.info("reservation_checked_in", reservation_id=str(reservation.id), unit_id=reservation.unit_id)
        return reservation


class CheckOutReservationHandler:
    """Handler for checking out a guest; the unit is freed"""

    def __init__(self, reservation_repo, access: ReservationAccess, ledger):
        self.reservation_repo = reservation_repo
        self.access = access
        self.ledger = ledger

    def handle(self, command: CheckOutReservationCommand) -> Reservation:
        with DjangoUnitOfWork() as uow:
            reservation = self.reservation_repo.get_by_id(command.reservation_id, lock=True)
            self.access.require_member(
                reservation.establishment_id, command.actor_id,
                'You do not have permission to check out this reservation',
            )

            reservation.check_out()

            self.reservation_repo.save(reservation)
            release_resources(self.ledger, reservation)
            uow.collect_events(reservation)

        logger.info("reservation_checked_out", reservation_id=str(reservation.id), unit_id=reservation.unit_id)
        return reservation


class MarkNoShowHandler:
    """Handler for marking a no-show; the unit is freed"""

    def __init__(self, reservation_repo, access: ReservationAccess, ledger):
        self.reservation_repo = reservation_repo
        self.access = access
        self.ledger = ledger

    def handle(self, command: MarkNoShowCommand) -> Reservation:
        with DjangoUnitOfWork() as uow:
            reservation = self.reservation_repo.get_by_id(command.reservation_id, lock=True)
            self.access.require_member(
                reservation.establishment_id, command.actor_id,
                'You do not have permission to mark this reservation as no-show',
            )

            reservation.mark_no_show()

            self.reservation_repo.save(reservation)
            release_resources(self.ledger, reservation)
            uow.collect_events(reservation)

        logger.info("reservation_marked_no_show", reservation_id=str(reservation.id), unit_id=reservation.unit_id)
        return reservation


class SetUnitStatusHandler:
    """Handler for administrative unit status changes"""

    def __init__(self, catalog_repo, access: ReservationAccess, ledger):
        self.catalog_repo = catalog_repo
        self.access = access
        self.ledger = ledger

    def handle(self, command: SetUnitStatusCommand) -> UnitStatus:
        try:
            status = UnitStatus(command.status)
        except ValueError:
            raise ValidationError('Unknown unit status', {'status': command.status})
        service = self.catalog_repo.get_service(self.catalog_repo.get_unit_service_id(command.unit_id))
        self.access.require_member(
            service.establishment_id, command.actor_id,
            'You do not have permission to update this unit',
        )

        with DjangoUnitOfWork():
            previous = self.ledger.set_unit_status(command.unit_id, status)

        logger.info(
            "unit_status_changed",
            unit_id=command.unit_id,
            old_status=previous.value,
            new_status=status.value,
            actor_id=command.actor_id,
        )
        return status
