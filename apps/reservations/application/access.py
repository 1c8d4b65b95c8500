"""
Reservation access rules

- Owner privilege: the reservation's owner, or any member of its establishment
- Staff privilege: any member of the establishment (OWNER, MANAGER, STAFF)
"""

from shared.domain.exceptions import ForbiddenError

from apps.reservations.domain.entities import Reservation


class ReservationAccess:

    def __init__(self, catalog_repo):
        self.catalog_repo = catalog_repo

    def is_member(self, actor_id: int, establishment_id: int) -> bool:
        return self.catalog_repo.get_role(actor_id, establishment_id) is not None

    def require_owner_or_member(self, reservation: Reservation, actor_id: int, message: str):
        if reservation.belongs_to(actor_id):
            return
        if not self.is_member(actor_id, reservation.establishment_id):
            raise ForbiddenError(message)

    def require_member(self, establishment_id: int, actor_id: int, message: str):
        if not self.is_member(actor_id, establishment_id):
            raise ForbiddenError(message)
