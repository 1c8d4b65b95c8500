"""
Reservation Repositories

Map between the Django models and the domain aggregates:
- CatalogRepository: read-only snapshots of services, slots, add-ons, roles
- InventoryRepository: loads the UnitInventory aggregate (optionally locked)
- ReservationRepository: loads and persists Reservation aggregates
"""

from __future__ import annotations

from typing import Dict, Iterable, List
from uuid import UUID

from django.conf import settings

from apps.catalog.models import (
    AvailabilitySlot,
    EstablishmentMember,
    ExtraItem,
    Service,
    Unit,
)
from shared.domain.exceptions import NotFoundError
from shared.domain.value_objects import DateRange, Money

from .domain.entities import Reservation, ReservationAddon, ReservationStatus
from .domain.inventory import Allocation, UnitInventory
from .domain.resources import (
    ExtraItemSnapshot,
    ServiceKind,
    ServiceSnapshot,
    SlotSnapshot,
    UnitSnapshot,
    UnitStatus,
)
from .ledger import lock_queryset_if_possible
from .models import Reservation as ReservationModel
from .models import ReservationExtraItem


class CatalogRepository:
    """Read side of the external catalog."""

    def get_service(self, service_id: int) -> ServiceSnapshot:
        try:
            row = Service.objects.get(pk=service_id)
        except Service.DoesNotExist:
            raise NotFoundError('Service')
        return ServiceSnapshot(
            id=row.pk,
            establishment_id=row.establishment_id,
            kind=ServiceKind(row.kind),
            base_price=Money(row.base_price, row.currency or settings.RESERVATIONS_DEFAULT_CURRENCY),
            duration_minutes=row.duration_minutes,
            active=row.active,
            requires_confirmation=row.requires_confirmation,
        )

    def get_slot(self, slot_id: int, currency: str) -> SlotSnapshot:
        try:
            row = AvailabilitySlot.objects.get(pk=slot_id)
        except AvailabilitySlot.DoesNotExist:
            raise NotFoundError('Availability slot')
        return SlotSnapshot(
            id=row.pk,
            service_id=row.service_id,
            date=row.date,
            start_time=row.start_time,
            end_time=row.end_time,
            capacity=row.capacity,
            remaining=row.remaining,
            price=Money(row.price, currency) if row.price is not None else None,
        )

    def get_extra_items(self, ids: Iterable[int]) -> Dict[int, ExtraItemSnapshot]:
        return {
            row.pk: ExtraItemSnapshot(
                id=row.pk,
                service_id=row.service_id,
                name=row.name,
                price=row.price,
                max_quantity=row.max_quantity,
                active=row.active,
            )
            for row in ExtraItem.objects.filter(pk__in=list(ids))
        }

    def get_unit_service_id(self, unit_id: int) -> int:
        service_id = Unit.objects.filter(pk=unit_id).values_list('service_id', flat=True).first()
        if service_id is None:
            raise NotFoundError('Unit')
        return service_id

    def get_role(self, user_id: int, establishment_id: int) -> str | None:
        """Role of the user in the establishment, or None for outsiders"""
        return (
            EstablishmentMember.objects
            .filter(user_id=user_id, establishment_id=establishment_id)
            .values_list('role', flat=True)
            .first()
        )


class InventoryRepository:
    """
    Loads UnitInventory aggregates

    With lock=True the service's unit rows are read with SELECT FOR UPDATE,
    serializing concurrent allocations on the same service.
    """

    def get_by_service_id(self, service_id: int, dates: DateRange | None = None, lock: bool = False) -> UnitInventory:
        units_qs = Unit.objects.filter(service_id=service_id).order_by('pk')
        if lock:
            units_qs = lock_queryset_if_possible(units_qs)

        units = [
            UnitSnapshot(
                id=u.pk,
                service_id=u.service_id,
                number=u.number,
                status=UnitStatus(u.status),
                floor=u.floor,
            )
            for u in units_qs
        ]

        allocations_qs = (
            ReservationModel.objects
            .filter(service_id=service_id, unit__isnull=False, check_in__isnull=False)
            .exclude(status__in=ReservationModel.NON_BLOCKING_STATUSES)
        )
        if dates is not None:
            allocations_qs = allocations_qs.filter(
                check_in__lt=dates.end_date,
                check_out__gt=dates.start_date,
            )

        allocations = [
            Allocation(
                reservation_id=row['pk'],
                unit_id=row['unit_id'],
                dates=DateRange(row['check_in'], row['check_out']),
            )
            for row in allocations_qs.values('pk', 'unit_id', 'check_in', 'check_out')
        ]
        return UnitInventory.build(service_id, units, allocations)


class ReservationRepository:
    """Persistence for the Reservation aggregate"""

    def get_by_id(self, reservation_id: UUID, lock: bool = False) -> Reservation:
        qs = ReservationModel.objects.filter(pk=reservation_id)
        if lock:
            qs = lock_queryset_if_possible(qs)
        row = qs.first()
        if row is None:
            raise NotFoundError('Reservation')
        return self._to_domain(row)

    def add(self, reservation: Reservation) -> None:
        """Insert a new reservation and its add-on snapshot rows"""
        ReservationModel.objects.create(
            id=reservation.id,
            reference=reservation.reference,
            owner_id=reservation.owner_id,
            establishment_id=reservation.establishment_id,
            service_id=reservation.service_id,
            slot_id=reservation.slot_id,
            unit_id=reservation.unit_id,
            quantity=reservation.quantity,
            check_in=reservation.check_in_date,
            check_out=reservation.check_out_date,
            nights=reservation.nights,
            total_price=reservation.total_price.amount,
            currency=reservation.total_price.currency,
            number_of_guests=reservation.number_of_guests,
            guest_name=reservation.guest_name,
            guest_email=reservation.guest_email,
            guest_phone=reservation.guest_phone,
            guest_document=reservation.guest_document,
            notes=reservation.notes,
            **self._lifecycle_fields(reservation),
            created_at=reservation.created_at,
        )
        ReservationExtraItem.objects.bulk_create([
            ReservationExtraItem(
                reservation_id=reservation.id,
                extra_item_id=addon.extra_item_id,
                quantity=addon.quantity,
                price_at_booking=addon.price_at_booking.amount,
            )
            for addon in reservation.addons
        ])

    def save(self, reservation: Reservation) -> None:
        """
        Persist a lifecycle transition

        Only status, timestamps and the cancellation reason change after
        creation; add-on snapshots are never rewritten.
        """
        updated = ReservationModel.objects.filter(pk=reservation.id).update(
            **self._lifecycle_fields(reservation),
        )
        if not updated:
            raise NotFoundError('Reservation')

    def list_for_owner(self, owner_id: int, status: ReservationStatus | None = None):
        qs = ReservationModel.objects.filter(owner_id=owner_id)
        if status is not None:
            qs = qs.filter(status=status.value)
        return qs.order_by('-created_at', 'pk')

    def list_for_establishment(self, establishment_id: int, status: ReservationStatus | None = None):
        qs = ReservationModel.objects.filter(establishment_id=establishment_id)
        if status is not None:
            qs = qs.filter(status=status.value)
        return qs.order_by('-created_at', 'pk')

    def to_domain_list(self, rows: Iterable[ReservationModel]) -> List[Reservation]:
        return [self._to_domain(row) for row in rows]

    # ----- Mapping -----

    @staticmethod
    def _lifecycle_fields(reservation: Reservation) -> dict:
        return {
            'status': reservation.status.value,
            'cancellation_reason': reservation.cancellation_reason,
            'confirmed_at': reservation.confirmed_at,
            'cancelled_at': reservation.cancelled_at,
            'checked_in_at': reservation.checked_in_at,
            'checked_out_at': reservation.checked_out_at,
            'updated_at': reservation.updated_at,
        }

    def _to_domain(self, row: ReservationModel) -> Reservation:
        kind = Service.objects.values_list('kind', flat=True).get(pk=row.service_id)
        dates = None
        if row.check_in is not None and row.check_out is not None:
            dates = DateRange(row.check_in, row.check_out)

        addons = [
            ReservationAddon(
                extra_item_id=line.extra_item_id,
                quantity=line.quantity,
                price_at_booking=Money(line.price_at_booking, row.currency),
            )
            for line in row.extras.order_by('pk')
        ]

        return Reservation(
            id=row.pk,
            created_at=row.created_at,
            updated_at=row.updated_at,
            reference=row.reference,
            owner_id=row.owner_id,
            establishment_id=row.establishment_id,
            service_id=row.service_id,
            service_kind=ServiceKind(kind),
            slot_id=row.slot_id,
            quantity=row.quantity,
            total_price=Money(row.total_price, row.currency),
            unit_id=row.unit_id,
            dates=dates,
            addons=addons,
            number_of_guests=row.number_of_guests,
            guest_name=row.guest_name,
            guest_email=row.guest_email,
            guest_phone=row.guest_phone,
            guest_document=row.guest_document,
            notes=row.notes,
            status=ReservationStatus(row.status),
            cancellation_reason=row.cancellation_reason,
            confirmed_at=row.confirmed_at,
            cancelled_at=row.cancelled_at,
            checked_in_at=row.checked_in_at,
            checked_out_at=row.checked_out_at,
        )
