from datetime import time, timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from apps.catalog.models import (
    AvailabilitySlot,
    Establishment,
    EstablishmentMember,
    ExtraItem,
    Service,
    Unit,
)


@pytest.fixture
def today():
    return timezone.localdate()


@pytest.fixture
def guest(db):
    return get_user_model().objects.create_user(username="guest", password="pass")


@pytest.fixture
def staff(db, establishment):
    user = get_user_model().objects.create_user(username="frontdesk", password="pass")
    EstablishmentMember.objects.create(
        establishment=establishment,
        user=user,
        role=EstablishmentMember.Role.MANAGER,
    )
    return user


@pytest.fixture
def outsider(db):
    return get_user_model().objects.create_user(username="outsider", password="pass")


@pytest.fixture
def establishment(db):
    return Establishment.objects.create(name="Seaside Hotel & Spa")


@pytest.fixture
def slot_service(establishment):
    return Service.objects.create(
        establishment=establishment,
        name="Massage",
        kind=Service.Kind.SLOT_BASED,
        base_price=Decimal("30.00"),
        duration_minutes=60,
    )


@pytest.fixture
def slot(slot_service, today):
    return AvailabilitySlot.objects.create(
        service=slot_service,
        date=today + timedelta(days=1),
        start_time=time(10, 0),
        end_time=time(11, 0),
        capacity=3,
    )


@pytest.fixture
def hotel_service(establishment):
    return Service.objects.create(
        establishment=establishment,
        name="Rooms",
        kind=Service.Kind.UNIT_BASED,
        base_price=Decimal("100.00"),
        duration_minutes=1440,
    )


@pytest.fixture
def hotel_slot(hotel_service, today):
    return AvailabilitySlot.objects.create(
        service=hotel_service,
        date=today,
        start_time=time(14, 0),
        end_time=time(23, 0),
        capacity=10,
    )


@pytest.fixture
def units(hotel_service):
    # Created out of pick order on purpose.
    return {
        "201": Unit.objects.create(service=hotel_service, number="201", floor=2),
        "102": Unit.objects.create(service=hotel_service, number="102", floor=1),
        "101": Unit.objects.create(service=hotel_service, number="101", floor=1),
    }


@pytest.fixture
def breakfast(hotel_service):
    return ExtraItem.objects.create(
        service=hotel_service,
        name="Breakfast",
        price=Decimal("25.00"),
        max_quantity=2,
    )


@pytest.fixture
def aromatherapy(slot_service):
    return ExtraItem.objects.create(
        service=slot_service,
        name="Aromatherapy",
        price=Decimal("10.00"),
        max_quantity=3,
    )
