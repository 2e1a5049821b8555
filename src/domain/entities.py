"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``BookingSnapshot``: enforces valid lifecycle
  transitions (pending -> accepted -> ongoing -> completed | cancelled).
- ``Actor`` is the authenticated caller; the core trusts it as given.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .enums import BOOKING_TRANSITIONS, BookingStatus, UserRole
from .errors import AlreadyCompleted, InvalidTransition


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Actor:
    id: int
    role: UserRole

    def is_(self, *roles: UserRole) -> bool:
        return self.role in roles


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


# ── Entities ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BookingSnapshot:
    """Immutable view of a booking taken before a conditional update."""

    id: int
    status: BookingStatus
    customer_id: int
    driver_id: Optional[int] = None
    fare: Optional[float] = None
    revenue_applied: bool = False

    @classmethod
    def of(cls, row: Any) -> "BookingSnapshot":
        return cls(
            id=row.id,
            status=BookingStatus(row.status),
            customer_id=row.customer_id,
            driver_id=row.driver_id,
            fare=row.fare,
            revenue_applied=bool(row.revenue_applied),
        )

    def check_transition(self, target: BookingStatus) -> None:
        """Raise unless *target* is legal from here or a redundant re-request."""
        if target == BookingStatus.CANCELLED and self.status == BookingStatus.COMPLETED:
            raise AlreadyCompleted()
        if target == self.status:
            return
        if target not in BOOKING_TRANSITIONS.get(self.status, set()):
            raise InvalidTransition(
                f"Cannot move booking from {self.status.value} to {target.value}"
            )
