"""
Authorization Gate
==================

Turns ``(actor, requested action)`` into a *scope*: the ownership
predicates a subsequent conditional update must carry.  Scopes are applied
inside the SQL statement against the stored relationships, so a stale or
forged client view can never widen them.

Decision table for status transitions
-------------------------------------

=============  ================  ==========================================
requested      roles             scope
=============  ================  ==========================================
accepted       driver            driver IS NULL or driver == actor;
                                 patch driver = actor
ongoing        driver            driver == actor
completed      driver            driver == actor
cancelled      customer, driver  customer == actor | driver == actor
=============  ================  ==========================================

Anything else is rejected with ``Forbidden`` before the store is touched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .entities import Actor
from .enums import BookingStatus, REQUESTABLE_STATUSES, UserRole
from .errors import Forbidden, InvalidInput, InvalidStatus


@dataclass(frozen=True)
class BookingScope:
    """Predicates narrowing a booking lookup.  ``None`` means unconstrained."""

    customer_id: Optional[int] = None
    driver_id: Optional[int] = None
    # With ``driver_id`` set, also match bookings that have no driver yet.
    allow_unassigned: bool = False
    # Owner of the booking's vehicle.
    owner_id: Optional[int] = None


@dataclass(frozen=True)
class TransitionGrant:
    scope: BookingScope
    patch: dict[str, Any] = field(default_factory=dict)


def parse_requested_status(raw: str) -> BookingStatus:
    try:
        status = BookingStatus(raw)
    except ValueError:
        raise InvalidStatus(f"Invalid status: {raw}") from None
    if status not in REQUESTABLE_STATUSES:
        raise InvalidStatus(f"Invalid status: {raw}")
    return status


def authorize_transition(actor: Actor, target: BookingStatus) -> TransitionGrant:
    if target == BookingStatus.ACCEPTED:
        if not actor.is_(UserRole.DRIVER):
            raise Forbidden("Only drivers can update to this status")
        return TransitionGrant(
            scope=BookingScope(driver_id=actor.id, allow_unassigned=True),
            patch={"driver_id": actor.id},
        )

    if target in (BookingStatus.ONGOING, BookingStatus.COMPLETED):
        if not actor.is_(UserRole.DRIVER):
            raise Forbidden("Only drivers can update to this status")
        return TransitionGrant(scope=BookingScope(driver_id=actor.id))

    if target == BookingStatus.CANCELLED:
        if actor.is_(UserRole.CUSTOMER):
            return TransitionGrant(scope=BookingScope(customer_id=actor.id))
        if actor.is_(UserRole.DRIVER):
            return TransitionGrant(scope=BookingScope(driver_id=actor.id))
        raise Forbidden("Only customers or drivers can cancel a booking")

    raise InvalidStatus(f"Invalid status: {target.value}")


def authorize_fare_update(actor: Actor) -> BookingScope:
    if not actor.is_(UserRole.OWNER):
        raise Forbidden("Only vehicle owners can set booking revenue")
    return BookingScope(owner_id=actor.id)


def booking_read_scope(actor: Actor) -> BookingScope:
    if actor.is_(UserRole.CUSTOMER):
        return BookingScope(customer_id=actor.id)
    if actor.is_(UserRole.DRIVER):
        return BookingScope(driver_id=actor.id)
    if actor.is_(UserRole.OWNER):
        return BookingScope(owner_id=actor.id)
    return BookingScope()


def resolve_assignment(
    actor: Actor, requested_driver_id: Optional[int]
) -> tuple[int, Optional[int]]:
    """
    Return ``(driver_id, owner_scope)`` for a vehicle driver assignment.

    Drivers may only assign themselves, to any active vehicle.  Owners may
    assign any driver, but only to vehicles they own.
    """
    if actor.is_(UserRole.DRIVER):
        return actor.id, None
    if actor.is_(UserRole.OWNER):
        if requested_driver_id is None:
            raise InvalidInput("driver_id is required")
        return requested_driver_id, actor.id
    raise Forbidden("Only owners or drivers can assign drivers")
