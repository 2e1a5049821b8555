"""
Domain error taxonomy.

Every business-rule violation is raised as one of these and translated to
an HTTP response by the handler registered in ``src.api.app``.  Each class
carries the status code it maps to.
"""

from __future__ import annotations


class DomainError(Exception):
    status_code = 500
    default_message = "Unexpected error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(DomainError):
    status_code = 400
    default_message = "Invalid input"


class InvalidStatus(InvalidInput):
    default_message = "Invalid status"


class InvalidVehicle(InvalidInput):
    default_message = "Invalid or unavailable vehicle"


class InvalidTransition(InvalidInput):
    default_message = "Booking cannot move to the requested status"


class AlreadyCompleted(InvalidInput):
    default_message = "Cannot cancel a completed booking"


class NotFoundOrForbidden(DomainError):
    """Absent, soft-deleted, or outside the actor's scope -- never says which."""

    status_code = 404
    default_message = "Booking not found or not accessible"


class Conflict(DomainError):
    """The conditional update matched no row: a concurrent request won."""

    status_code = 404
    default_message = "Booking was modified by another request"


class Forbidden(DomainError):
    status_code = 403
    default_message = "Not permitted for this role"


class AuthenticationFailed(DomainError):
    status_code = 401
    default_message = "Invalid credentials"


class DuplicateResource(DomainError):
    status_code = 409
    default_message = "Resource already exists"
