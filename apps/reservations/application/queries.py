"""
Reservation Queries

Read-only use cases. Nothing here opens a transaction or touches the
ledger; results may be stale by the time the caller acts on them.
"""

from dataclasses import dataclass
from datetime import date
from typing import List
from uuid import UUID

from django.conf import settings
from django.core.paginator import Paginator

from shared.domain.exceptions import ConflictError, ValidationError
from shared.domain.value_objects import DateRange

from apps.reservations.application.access import ReservationAccess
from apps.reservations.domain.entities import Reservation, ReservationStatus
from apps.reservations.domain.resources import UnitSnapshot


@dataclass(frozen=True)
class ReservationPage:
    items: List[Reservation]
    page: int
    page_size: int
    total: int
    num_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.num_pages


class ReservationQueries:

    def __init__(self, reservation_repo, inventory_repo, catalog_repo, access: ReservationAccess):
        self.reservation_repo = reservation_repo
        self.inventory_repo = inventory_repo
        self.catalog_repo = catalog_repo
        self.access = access

    def get_reservation(self, reservation_id: UUID, actor_id: int) -> Reservation:
        reservation = self.reservation_repo.get_by_id(reservation_id)
        self.access.require_owner_or_member(
            reservation, actor_id, 'You do not have access to this reservation',
        )
        return reservation

    def list_owner_reservations(self, owner_id: int, status: ReservationStatus | None = None,
                                page: int = 1, page_size: int | None = None) -> ReservationPage:
        qs = self.reservation_repo.list_for_owner(owner_id, _as_status(status))
        return self._paginate(qs, page, page_size)

    def list_establishment_reservations(self, establishment_id: int, actor_id: int,
                                        status: ReservationStatus | None = None,
                                        page: int = 1, page_size: int | None = None) -> ReservationPage:
        self.access.require_member(
            establishment_id, actor_id, 'You do not have access to this establishment reservations',
        )
        qs = self.reservation_repo.list_for_establishment(establishment_id, _as_status(status))
        return self._paginate(qs, page, page_size)

    def find_available_units(self, service_id: int, check_in: date, check_out: date) -> List[UnitSnapshot]:
        """Units free for [check_in, check_out), in allocation pick order"""
        service = self.catalog_repo.get_service(service_id)
        if not service.is_unit_based:
            raise ConflictError('Unit availability is not available for this service type')
        if check_in >= check_out:
            raise ConflictError('Check-out date must be after check-in date')

        dates = DateRange(check_in, check_out)
        return self.inventory_repo.get_by_service_id(service_id, dates).available_units(dates)

    def _paginate(self, queryset, page: int, page_size: int | None) -> ReservationPage:
        page_size = page_size or settings.RESERVATIONS_DEFAULT_PAGE_SIZE
        if page < 1 or page_size < 1:
            raise ValidationError('Page and page size must be positive', {'page': page, 'page_size': page_size})

        paginator = Paginator(queryset, page_size)
        current = paginator.get_page(page)
        return ReservationPage(
            items=self.reservation_repo.to_domain_list(current.object_list),
            page=current.number,
            page_size=page_size,
            total=paginator.count,
            num_pages=paginator.num_pages,
        )


def _as_status(status) -> ReservationStatus | None:
    if status is None or isinstance(status, ReservationStatus):
        return status
    try:
        return ReservationStatus(status)
    except ValueError:
        raise ValidationError('Unknown reservation status', {'status': status})
