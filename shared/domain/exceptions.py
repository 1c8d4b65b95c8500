"""
Domain Errors

Every failure the reservation engine reports is a DomainError carrying a
stable code, a human-readable message (shown to end users as-is) and the
HTTP status an outer API layer should map it to.
"""


class DomainError(Exception):
    """Base class for all typed domain failures"""

    code = 'DOMAIN_ERROR'
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {'code': self.code, 'message': self.message}


class NotFoundError(DomainError):
    """A service, slot, unit, add-on or reservation does not exist"""

    code = 'NOT_FOUND'
    status_code = 404

    def __init__(self, resource: str):
        super().__init__(f"{resource} not found")
        self.resource = resource


class ConflictError(DomainError):
    """The request is well-formed but clashes with current state"""

    code = 'CONFLICT'
    status_code = 409


class InsufficientCapacity(ConflictError):
    code = 'INSUFFICIENT_CAPACITY'

    def __init__(self, message: str = 'No available capacity for the requested quantity'):
        super().__init__(message)


class UnitInUse(ConflictError):
    code = 'UNIT_IN_USE'

    def __init__(self, message: str = 'Cannot set unit to AVAILABLE while it has active reservations'):
        super().__init__(message)


class ForbiddenError(DomainError):
    code = 'FORBIDDEN'
    status_code = 403

    def __init__(self, message: str = 'Forbidden'):
        super().__init__(message)


class ValidationError(DomainError):
    """Malformed quantity, dates or add-on selection"""

    code = 'VALIDATION_ERROR'
    status_code = 422

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.details:
            data['details'] = self.details
        return data


class LedgerCorruption(DomainError):
    """Stored capacity or status contradicts the ledger invariants"""

    code = 'LEDGER_CORRUPTION'
    status_code = 500
