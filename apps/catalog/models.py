"""Catalog read models consumed by the reservation engine."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Establishment(models.Model):
    """A business offering bookable services (salon, clinic, hotel)."""

    name = models.CharField(max_length=255)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Establishment")
        verbose_name_plural = _("Establishments")
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class EstablishmentMember(models.Model):
    """Staff role of a user inside an establishment."""

    class Role(models.TextChoices):
        OWNER = "OWNER", _("Owner")
        MANAGER = "MANAGER", _("Manager")
        STAFF = "STAFF", _("Staff")

    establishment = models.ForeignKey(
        Establishment,
        on_delete=models.CASCADE,
        related_name="members",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="establishment_memberships",
    )
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.STAFF)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Establishment member")
        verbose_name_plural = _("Establishment members")
        constraints = [
            models.UniqueConstraint(
                fields=["establishment", "user"],
                name="catalog_member_unique_user",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} @ {self.establishment_id} ({self.role})"


class Service(models.Model):
    """Bookable service: appointment slots or hotel room inventory."""

    class Kind(models.TextChoices):
        SLOT_BASED = "SLOT_BASED", _("Time slots")
        UNIT_BASED = "UNIT_BASED", _("Hotel units")

    establishment = models.ForeignKey(
        Establishment,
        on_delete=models.CASCADE,
        related_name="services",
    )
    name = models.CharField(max_length=255)
    kind = models.CharField(max_length=16, choices=Kind.choices, default=Kind.SLOT_BASED)
    base_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    currency = models.CharField(max_length=3, default="USD")
    duration_minutes = models.PositiveIntegerField(default=60)
    active = models.BooleanField(default=True)
    requires_confirmation = models.BooleanField(
        default=False,
        help_text=_("New reservations wait in PENDING until staff confirms them."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Service")
        verbose_name_plural = _("Services")
        ordering = ["establishment", "name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.kind})"


class AvailabilitySlot(models.Model):
    """Time-boxed capacity pool of a service."""

    service = models.ForeignKey(
        Service,
        on_delete=models.CASCADE,
        related_name="slots",
    )
    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    capacity = models.PositiveIntegerField()
    remaining = models.IntegerField()
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Overrides the service base price for this slot."),
    )
    notes = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Availability slot")
        verbose_name_plural = _("Availability slots")
        ordering = ["date", "start_time"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(remaining__gte=0) & models.Q(remaining__lte=models.F("capacity")),
                name="catalog_slot_remaining_within_capacity",
            ),
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="catalog_slot_valid_times",
            ),
        ]
        indexes = [
            models.Index(fields=["service", "date"], name="catalog_slot_service_date_idx"),
        ]

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and self.remaining is None:
            self.remaining = self.capacity
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.date} {self.start_time}-{self.end_time} ({self.remaining}/{self.capacity})"


class Unit(models.Model):
    """Individually numbered room of a unit-based service."""

    class Status(models.TextChoices):
        AVAILABLE = "AVAILABLE", _("Available")
        OCCUPIED = "OCCUPIED", _("Occupied")
        MAINTENANCE = "MAINTENANCE", _("Maintenance")
        BLOCKED = "BLOCKED", _("Blocked")
        CLEANING = "CLEANING", _("Cleaning")

    service = models.ForeignKey(
        Service,
        on_delete=models.CASCADE,
        related_name="units",
    )
    number = models.CharField(max_length=20)
    floor = models.SmallIntegerField(null=True, blank=True)
    description = models.CharField(max_length=255, blank=True)
    max_occupancy = models.PositiveSmallIntegerField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.AVAILABLE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Unit")
        verbose_name_plural = _("Units")
        ordering = ["service", "floor", "number"]
        constraints = [
            models.UniqueConstraint(
                fields=["service", "number"],
                name="catalog_unit_unique_number",
            ),
        ]

    def __str__(self) -> str:
        return f"Unit {self.number} ({self.status})"


class ExtraItem(models.Model):
    """Add-on that can be attached to a reservation of its service."""

    service = models.ForeignKey(
        Service,
        on_delete=models.CASCADE,
        related_name="extra_items",
    )
    name = models.CharField(max_length=255)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    max_quantity = models.PositiveIntegerField(default=1)
    active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Extra item")
        verbose_name_plural = _("Extra items")
        ordering = ["service", "name"]

    def __str__(self) -> str:
        return f"{self.name} ({self.price})"
