"""Reservation persistence models.

Rows are written only by the allocation coordinator through
ReservationRepository; they are never deleted, cancellation and no-show
are statuses.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Reservation(models.Model):
    """Claim on a slot seat or on a hotel unit for a date range."""

    class Status(models.TextChoices):
        PENDING = "PENDING", _("Pending confirmation")
        CONFIRMED = "CONFIRMED", _("Confirmed")
        CANCELLED = "CANCELLED", _("Cancelled")
        CHECKED_IN = "CHECKED_IN", _("Checked in")
        CHECKED_OUT = "CHECKED_OUT", _("Checked out")
        NO_SHOW = "NO_SHOW", _("No-show")

    ACTIVE_STATUSES = (Status.PENDING, Status.CONFIRMED, Status.CHECKED_IN)
    NON_BLOCKING_STATUSES = (Status.CANCELLED, Status.NO_SHOW)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    reference = models.CharField(max_length=32, unique=True, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    establishment = models.ForeignKey(
        "catalog.Establishment",
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    service = models.ForeignKey(
        "catalog.Service",
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    slot = models.ForeignKey(
        "catalog.AvailabilitySlot",
        on_delete=models.PROTECT,
        related_name="reservations",
    )
    unit = models.ForeignKey(
        "catalog.Unit",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="reservations",
    )
    quantity = models.PositiveIntegerField(default=1)
    check_in = models.DateField(null=True, blank=True)
    check_out = models.DateField(null=True, blank=True)
    nights = models.PositiveSmallIntegerField(null=True, blank=True)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.CONFIRMED,
    )
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="USD")

    number_of_guests = models.PositiveSmallIntegerField(null=True, blank=True)
    guest_name = models.CharField(max_length=255, blank=True)
    guest_email = models.EmailField(blank=True)
    guest_phone = models.CharField(max_length=32, blank=True)
    guest_document = models.CharField(max_length=64, blank=True)
    notes = models.TextField(blank=True)

    cancellation_reason = models.CharField(max_length=255, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_out_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        verbose_name = _("Reservation")
        verbose_name_plural = _("Reservations")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="reservation_positive_quantity",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(check_in__isnull=True, check_out__isnull=True)
                    | models.Q(check_out__gt=models.F("check_in"))
                ),
                name="reservation_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["unit", "check_in", "check_out"], name="reservation_unit_dates_idx"),
            models.Index(fields=["status"], name="reservation_status_idx"),
            models.Index(fields=["owner", "-created_at"], name="reservation_owner_idx"),
        ]

    def __str__(self) -> str:
        return f"Reservation {self.reference} ({self.status})"


class ReservationExtraItem(models.Model):
    """Add-on selected for a reservation, with its price-at-booking."""

    reservation = models.ForeignKey(
        Reservation,
        on_delete=models.CASCADE,
        related_name="extras",
    )
    extra_item = models.ForeignKey(
        "catalog.ExtraItem",
        on_delete=models.PROTECT,
        related_name="reservation_lines",
    )
    quantity = models.PositiveIntegerField()
    price_at_booking = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("Catalog price captured when the reservation was made."),
    )

    class Meta:
        verbose_name = _("Reservation extra item")
        verbose_name_plural = _("Reservation extra items")
        constraints = [
            models.UniqueConstraint(
                fields=["reservation", "extra_item"],
                name="reservation_extra_unique_item",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.extra_item_id} x{self.quantity} @ {self.price_at_booking}"
