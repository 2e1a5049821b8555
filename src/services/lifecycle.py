"""
Booking Lifecycle Engine
========================

Creates bookings and moves them through

    pending -> accepted -> ongoing -> completed
         \\________\\__________\\-----> cancelled

Transition protocol
-------------------
1. Parse and validate the requested status.
2. Ask the Authorization Gate for the actor's scope (or ``Forbidden``).
3. Scoped pre-read.  Missing, deleted and out-of-scope bookings all look
   the same to the caller (``NotFoundOrForbidden``).
4. Business rules against the pre-read snapshot (``AlreadyCompleted``,
   ``InvalidTransition``).
5. One conditional update filtered by the same scope *and* by the legal
   source statuses of the target.  The target itself is never a source, so
   a returned row proves this request performed the transition.
6. No row: re-read.  Already at the target -> idempotent success without
   side effects; anything else -> ``Conflict``.
7. Commit, then side effects for first transitions only: settlement and a
   ``completed`` email on completion, a ``cancelled`` email on
   cancellation.  Emails are scheduled, not awaited.  Side-effect failures
   are logged, never raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.domain.authorization import (
    BookingScope,
    authorize_fare_update,
    authorize_transition,
    booking_read_scope,
    parse_requested_status,
)
from src.domain.distance import route_distance_km
from src.domain.entities import Actor, BookingSnapshot, Coordinates
from src.domain.enums import (
    BookingStatus,
    NotificationKind,
    REQUESTABLE_STATUSES,
    UserRole,
    source_statuses,
)
from src.domain.errors import (
    AlreadyCompleted,
    Conflict,
    Forbidden,
    InvalidInput,
    InvalidStatus,
    InvalidTransition,
    InvalidVehicle,
    NotFoundOrForbidden,
)
from src.domain.validation import coerce_fare, validate_amount
from src.infrastructure.models import BookingModel, VehicleModel
from src.infrastructure.repositories import BookingRepository, VehicleRepository
from src.services.notifications import BookingNotifier
from src.services.settlement import RevenueSettlement

logger = logging.getLogger(__name__)


@dataclass
class BookingDraft:
    vehicle_id: int
    source: Optional[str] = None
    destination: Optional[str] = None
    source_coords: Optional[Coordinates] = None
    destination_coords: Optional[Coordinates] = None
    fare: Any = None
    booking_date: Optional[datetime] = None


@dataclass
class RouteChange:
    source: Optional[str] = None
    destination: Optional[str] = None
    source_coords: Optional[Coordinates] = None
    destination_coords: Optional[Coordinates] = None
    booking_date: Optional[datetime] = None


class BookingLifecycle:
    def __init__(
        self,
        session: AsyncSession,
        notifier: Optional[BookingNotifier] = None,
        settlement: Optional[RevenueSettlement] = None,
        driver_source: str = settings.booking_driver_source,
    ):
        self.session = session
        self.bookings = BookingRepository(session)
        self.vehicles = VehicleRepository(session)
        self.notifier = notifier or BookingNotifier()
        self.settlement = settlement or RevenueSettlement(session)
        self.driver_source = driver_source

    # ── Creation ──────────────────────────────────────────────────

    async def create_booking(self, actor: Actor, draft: BookingDraft) -> BookingModel:
        if not actor.is_(UserRole.CUSTOMER):
            raise Forbidden("Only customers can create bookings")

        vehicle = await self.vehicles.get_active(draft.vehicle_id)
        if vehicle is None:
            raise InvalidVehicle()

        fare = coerce_fare(draft.fare)
        driver_id = await self._driver_for(vehicle)
        fields: dict[str, Any] = dict(
            customer_id=actor.id,
            driver_id=driver_id,
            vehicle_id=vehicle.id,
            status=BookingStatus.PENDING,
            source=draft.source,
            destination=draft.destination,
            distance_km=route_distance_km(
                draft.source_coords, draft.destination_coords
            ),
            fare=fare,
            **_coordinate_fields(draft.source_coords, draft.destination_coords),
        )
        if draft.booking_date is not None:
            fields["booking_date"] = draft.booking_date

        booking = await self.bookings.create(**fields)
        await self.session.commit()
        logger.info(
            "Booking %d created by customer %d on vehicle %d (driver=%s)",
            booking.id,
            actor.id,
            vehicle.id,
            driver_id,
        )

        self.notifier.dispatch(booking.id, NotificationKind.CONFIRMATION)
        return await self.bookings.get_by_id(booking.id)

    async def _driver_for(self, vehicle: VehicleModel) -> Optional[int]:
        if vehicle.driver_id is not None:
            return vehicle.driver_id
        if self.driver_source == "primary_then_legacy":
            legacy = await self.vehicles.legacy_driver_ids(vehicle.id)
            if legacy:
                return legacy[0]
        return None

    # ── Transitions ───────────────────────────────────────────────

    async def transition(
        self,
        booking_id: int,
        requested_status: Union[str, BookingStatus],
        actor: Actor,
    ) -> BookingModel:
        target = _requested(requested_status)
        grant = authorize_transition(actor, target)

        current = await self.bookings.find_scoped(booking_id, grant.scope)
        if current is None:
            raise NotFoundOrForbidden()
        BookingSnapshot.of(current).check_transition(target)

        updated = await self.bookings.update_scoped(
            booking_id,
            grant.scope,
            {"status": target, **grant.patch},
            from_statuses=source_statuses(target),
        )
        if updated is None:
            return await self._resolve_unmatched(booking_id, grant.scope, target)

        await self.session.commit()
        logger.info(
            "Booking %d moved to %s by %s %d",
            booking_id,
            target.value,
            actor.role.value,
            actor.id,
        )

        await self._after_first_transition(booking_id, target)
        return await self.bookings.get_by_id(booking_id)

    async def _resolve_unmatched(
        self, booking_id: int, scope: BookingScope, target: BookingStatus
    ) -> BookingModel:
        latest = await self.bookings.find_scoped(booking_id, scope)
        if latest is None:
            raise Conflict()
        status = BookingStatus(latest.status)
        if status == target:
            # Redundant re-request: succeed, but trigger nothing.
            return latest
        if target == BookingStatus.CANCELLED and status == BookingStatus.COMPLETED:
            raise AlreadyCompleted()
        raise Conflict()

    async def _after_first_transition(
        self, booking_id: int, target: BookingStatus
    ) -> None:
        if target == BookingStatus.COMPLETED:
            await self._settle_quietly(booking_id)
            self.notifier.dispatch(booking_id, NotificationKind.COMPLETED)
        elif target == BookingStatus.CANCELLED:
            self.notifier.dispatch(booking_id, NotificationKind.CANCELLED)

    async def _settle_quietly(self, booking_id: int) -> None:
        try:
            await self.settlement.settle(booking_id)
        except Exception:
            # The reconciliation worker retries unsettled bookings later.
            logger.exception("Revenue settlement failed for booking %d", booking_id)

    # ── Owner revenue ─────────────────────────────────────────────

    async def set_fare(self, booking_id: int, amount: Any, actor: Actor) -> BookingModel:
        scope = authorize_fare_update(actor)
        fare = validate_amount(amount)

        # A settled fare is frozen: revenue_applied implies fare > 0.
        updated = await self.bookings.update_scoped(
            booking_id, scope, {"fare": fare}, unsettled_only=True
        )
        if updated is None:
            if await self.bookings.find_scoped(booking_id, scope) is not None:
                raise InvalidInput("Revenue already settled for this booking")
            if await self.bookings.find_scoped(booking_id, BookingScope()) is None:
                raise NotFoundOrForbidden("Booking not found")
            raise Forbidden("Not authorized to set revenue for this booking")
        await self.session.commit()
        logger.info("Fare of booking %d set to %.2f by owner %d", booking_id, fare, actor.id)

        if updated.status == BookingStatus.COMPLETED and not updated.revenue_applied:
            await self._settle_quietly(booking_id)
        return await self.bookings.get_by_id(booking_id)

    # ── Customer-side edits ───────────────────────────────────────

    async def get_booking(self, booking_id: int, actor: Actor) -> BookingModel:
        booking = await self.bookings.find_scoped(booking_id, booking_read_scope(actor))
        if booking is None:
            raise NotFoundOrForbidden()
        return booking

    async def list_bookings(self, actor: Actor) -> list[BookingModel]:
        return await self.bookings.list_scoped(booking_read_scope(actor))

    async def update_route(
        self, booking_id: int, change: RouteChange, actor: Actor
    ) -> BookingModel:
        """Edit route details of the customer's own booking while pending."""
        scope = BookingScope(customer_id=actor.id)
        current = await self.bookings.find_scoped(booking_id, scope)
        if current is None:
            raise NotFoundOrForbidden()
        if BookingStatus(current.status) != BookingStatus.PENDING:
            raise InvalidTransition("Only pending bookings can be edited")

        values: dict[str, Any] = {}
        if change.source is not None:
            values["source"] = change.source
        if change.destination is not None:
            values["destination"] = change.destination
        if change.booking_date is not None:
            values["booking_date"] = change.booking_date
        if change.source_coords is not None or change.destination_coords is not None:
            source = change.source_coords or _stored_coords(
                current.source_lat, current.source_lng
            )
            destination = change.destination_coords or _stored_coords(
                current.destination_lat, current.destination_lng
            )
            values.update(_coordinate_fields(source, destination))
            values["distance_km"] = route_distance_km(source, destination)
        if not values:
            return current

        updated = await self.bookings.update_scoped(
            booking_id, scope, values, from_statuses={BookingStatus.PENDING}
        )
        if updated is None:
            raise Conflict()
        await self.session.commit()
        return updated

    async def delete_booking(self, booking_id: int, actor: Actor) -> None:
        updated = await self.bookings.update_scoped(
            booking_id, BookingScope(customer_id=actor.id), {"is_deleted": True}
        )
        if updated is None:
            raise NotFoundOrForbidden()
        await self.session.commit()
        logger.info("Booking %d soft-deleted by customer %d", booking_id, actor.id)


def _requested(requested_status: Union[str, BookingStatus]) -> BookingStatus:
    if isinstance(requested_status, BookingStatus):
        if requested_status not in REQUESTABLE_STATUSES:
            raise InvalidStatus(f"Invalid status: {requested_status.value}")
        return requested_status
    return parse_requested_status(requested_status)


def _stored_coords(lat: Optional[float], lng: Optional[float]) -> Optional[Coordinates]:
    if lat is None or lng is None:
        return None
    return Coordinates(lat=lat, lng=lng)


def _coordinate_fields(
    source: Optional[Coordinates], destination: Optional[Coordinates]
) -> dict[str, Optional[float]]:
    return {
        "source_lat": source.lat if source else None,
        "source_lng": source.lng if source else None,
        "destination_lat": destination.lat if destination else None,
        "destination_lng": destination.lng if destination else None,
    }
