"""Default event subscribers: one structured audit line per domain event."""

import structlog

from shared.application.message_bus import message_bus

from .domain.events import (
    ReservationCancelled,
    ReservationCheckedIn,
    ReservationCheckedOut,
    ReservationConfirmed,
    ReservationCreated,
    ReservationMarkedNoShow,
    UnitAllocated,
)

audit_logger = structlog.get_logger("reservations.audit")


@message_bus.subscribe(
    ReservationCreated,
    ReservationConfirmed,
    ReservationCancelled,
    ReservationCheckedIn,
    ReservationCheckedOut,
    ReservationMarkedNoShow,
    UnitAllocated,
)
def audit_event(event):
    audit_logger.info(event.name, **event.to_dict())
