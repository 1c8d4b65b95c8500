from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from apps.catalog.models import AvailabilitySlot
from apps.reservations import services

pytestmark = pytest.mark.django_db


def test_consistent_ledger(guest, slot_service, slot, units):
    services.allocate(guest.id, slot_service.id, slot.id, quantity=2)
    out = StringIO()

    call_command("audit_ledger", stdout=out)

    assert "Ledger is consistent" in out.getvalue()


def test_drift_is_reported(guest, slot_service, slot):
    services.allocate(guest.id, slot_service.id, slot.id, quantity=2)
    AvailabilitySlot.objects.filter(pk=slot.pk).update(remaining=3)
    out = StringIO()

    call_command("audit_ledger", stdout=out)

    assert f"slot {slot.pk}: stored 3, expected 1" in out.getvalue()
    with pytest.raises(CommandError, match="Found 1 inconsistent"):
        call_command("audit_ledger", "--fail-on-drift", stdout=StringIO())
