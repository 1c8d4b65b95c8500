"""Resource ledger: authoritative slot capacity and unit status store.

Every mutation here must run inside the caller's transaction; the
allocation coordinator opens it with DjangoUnitOfWork.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from django.db import IntegrityError, transaction  # type: ignore
from django.db.models import F, Q, Sum  # type: ignore
from django.db.transaction import TransactionManagementError  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from apps.catalog.models import AvailabilitySlot, Service, Unit
from shared.domain.exceptions import (
    ConflictError,
    InsufficientCapacity,
    LedgerCorruption,
    NotFoundError,
    UnitInUse,
    ValidationError,
)

from .domain.resources import UnitStatus
from .models import Reservation as ReservationModel

logger = logging.getLogger(__name__)


def lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def _ensure_atomic(operation: str) -> None:
    if not transaction.get_connection().in_atomic_block:
        raise TransactionManagementError(
            f"Ledger operation '{operation}' must run inside a transaction"
        )


def _holds_unit(today: date) -> Q:
    return Q(status=ReservationModel.Status.CHECKED_IN) | Q(
        status__in=ReservationModel.ACTIVE_STATUSES,
        check_out__gt=today,
    )


class ResourceLedger:
    """Counter and status store for slot seats and hotel units."""

    # ----- Slot capacity -----

    def reserve_slot_capacity(self, slot_id: int, quantity: int) -> None:
        """Take `quantity` seats with a single conditional UPDATE."""

        _ensure_atomic("reserve_slot_capacity")
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", {"quantity": quantity})

        updated = AvailabilitySlot.objects.filter(
            pk=slot_id,
            remaining__gte=quantity,
        ).update(remaining=F("remaining") - quantity, updated_at=timezone.now())

        if not updated:
            if not AvailabilitySlot.objects.filter(pk=slot_id).exists():
                raise NotFoundError("Availability slot")
            raise InsufficientCapacity()

        logger.debug(f"Reserved {quantity} seat(s) on slot {slot_id}")

    def release_slot_capacity(self, slot_id: int, quantity: int) -> int:
        """Give `quantity` seats back; returns the new remaining count."""

        _ensure_atomic("release_slot_capacity")
        slot = lock_queryset_if_possible(AvailabilitySlot.objects.filter(pk=slot_id)).first()
        if slot is None:
            raise NotFoundError("Availability slot")

        new_remaining = slot.remaining + quantity
        if new_remaining > slot.capacity:
            logger.error(
                f"Ledger corruption on slot {slot_id}: releasing {quantity} would set "
                f"remaining to {new_remaining} with capacity {slot.capacity}"
            )
            raise LedgerCorruption(
                f"Releasing {quantity} seat(s) would exceed the capacity of slot {slot_id}"
            )

        try:
            AvailabilitySlot.objects.filter(pk=slot_id).update(
                remaining=F("remaining") + quantity,
                updated_at=timezone.now(),
            )
        except IntegrityError as exc:
            raise LedgerCorruption(f"Slot {slot_id} capacity constraint violated: {exc}") from exc

        logger.debug(f"Released {quantity} seat(s) on slot {slot_id}")
        return new_remaining

    # ----- Unit status -----

    def has_active_reservations(self, unit_id: int, today: date | None = None, *, exclude_reservation_id=None) -> bool:
        """Active reservation on the unit whose stay ends after `today`.

        A checked-in guest holds the unit until checked out, whatever the date.
        """

        today = today or timezone.localdate()
        qs = ReservationModel.objects.filter(
            _holds_unit(today),
            unit_id=unit_id,
        )
        if exclude_reservation_id is not None:
            qs = qs.exclude(pk=exclude_reservation_id)
        return qs.exists()

    def set_unit_status(self, unit_id: int, status: UnitStatus, today: date | None = None) -> UnitStatus:
        """Write a unit status; returns the previous status."""

        _ensure_atomic("set_unit_status")
        unit = lock_queryset_if_possible(Unit.objects.filter(pk=unit_id)).first()
        if unit is None:
            raise NotFoundError("Unit")

        previous = UnitStatus(unit.status)
        if status is UnitStatus.AVAILABLE and self.has_active_reservations(unit_id, today):
            raise UnitInUse()

        if previous is not status:
            Unit.objects.filter(pk=unit_id).update(status=status.value, updated_at=timezone.now())
            logger.info(f"Unit {unit_id} status {previous.value} -> {status.value}")
        return previous

    def occupy_unit(self, unit_id: int) -> None:
        """AVAILABLE -> OCCUPIED for a new allocation."""

        _ensure_atomic("occupy_unit")
        unit = lock_queryset_if_possible(Unit.objects.filter(pk=unit_id)).first()
        if unit is None:
            raise NotFoundError("Unit")
        if unit.status != Unit.Status.AVAILABLE:
            raise ConflictError(f"Unit is {unit.status} and cannot be booked")
        self.set_unit_status(unit_id, UnitStatus.OCCUPIED)

    def free_unit(self, unit_id: int, today: date | None = None) -> UnitStatus:
        """
        Recompute a unit's status after a reservation released it.

        OCCUPIED goes back to AVAILABLE unless another active reservation
        still holds the unit; manual overrides (MAINTENANCE, BLOCKED,
        CLEANING) are kept. Returns the resulting status.
        """

        _ensure_atomic("free_unit")
        unit = lock_queryset_if_possible(Unit.objects.filter(pk=unit_id)).first()
        if unit is None:
            raise NotFoundError("Unit")

        current = UnitStatus(unit.status)
        if current is not UnitStatus.OCCUPIED:
            return current
        if self.has_active_reservations(unit_id, today):
            logger.info(f"Unit {unit_id} stays OCCUPIED: another active reservation holds it")
            return current

        self.set_unit_status(unit_id, UnitStatus.AVAILABLE, today)
        return UnitStatus.AVAILABLE


@dataclass(frozen=True)
class LedgerDrift:
    """A stored counter or status that disagrees with the reservations."""

    resource: str
    resource_id: int
    stored: str
    expected: str


def find_drift(service_id: int | None = None, today: date | None = None) -> list[LedgerDrift]:
    """
    Compare slot.remaining and unit.status with active reservations.

    Slot seats held = Σ quantity of active slot-based reservations.
    A unit should be OCCUPIED while an active reservation ending after
    `today` holds it; manual overrides are never reported.
    """

    today = today or timezone.localdate()
    drift: list[LedgerDrift] = []

    slots = AvailabilitySlot.objects.filter(service__kind=Service.Kind.SLOT_BASED)
    if service_id is not None:
        slots = slots.filter(service_id=service_id)
    held_by_slot = dict(
        ReservationModel.objects.filter(
            slot__in=slots,
            status__in=ReservationModel.ACTIVE_STATUSES,
        )
        .order_by()
        .values("slot_id")
        .annotate(held=Sum("quantity"))
        .values_list("slot_id", "held")
    )
    for slot in slots.order_by("pk"):
        expected = slot.capacity - held_by_slot.get(slot.pk, 0)
        if slot.remaining != expected:
            drift.append(LedgerDrift("slot", slot.pk, str(slot.remaining), str(expected)))

    units = Unit.objects.filter(status__in=[Unit.Status.AVAILABLE, Unit.Status.OCCUPIED])
    if service_id is not None:
        units = units.filter(service_id=service_id)
    held_units = set(
        ReservationModel.objects.filter(_holds_unit(today), unit__in=units).values_list("unit_id", flat=True)
    )
    for unit in units.order_by("pk"):
        expected = Unit.Status.OCCUPIED if unit.pk in held_units else Unit.Status.AVAILABLE
        if unit.status != expected:
            drift.append(LedgerDrift("unit", unit.pk, str(unit.status), str(expected)))

    return drift
