from datetime import time

import pytest
from django.db import IntegrityError, transaction

from apps.catalog.models import AvailabilitySlot, Unit

pytestmark = pytest.mark.django_db


def test_slot_remaining_defaults_to_capacity(slot):
    assert slot.remaining == slot.capacity == 3


def test_slot_remaining_cannot_exceed_capacity_or_go_negative(slot):
    for remaining in (4, -1):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                AvailabilitySlot.objects.filter(pk=slot.pk).update(remaining=remaining)


def test_slot_end_must_follow_start(slot_service, today):
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            AvailabilitySlot.objects.create(
                service=slot_service,
                date=today,
                start_time=time(12, 0),
                end_time=time(11, 0),
                capacity=1,
            )


def test_unit_numbers_are_unique_per_service(units, hotel_service):
    assert units["101"].status == Unit.Status.AVAILABLE
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            Unit.objects.create(service=hotel_service, number="101")
