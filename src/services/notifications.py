"""
Booking notification dispatch.

Best-effort email keyed to lifecycle events.  ``dispatch`` schedules
delivery and returns at once: on a request's ``BackgroundTasks`` when one is
bound (run after the response is sent), otherwise as an asyncio task.
Delivery reads through its own session, and ``notify`` never raises: a
failed notification is logged and dropped, never retried, and never affects
the transition that triggered it.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import settings
from src.domain.enums import NotificationKind
from src.infrastructure.database import async_session_factory
from src.infrastructure.mailer import Mailer, get_mailer
from src.infrastructure.repositories import (
    BookingRepository,
    UserRepository,
    VehicleRepository,
)

logger = logging.getLogger(__name__)

_SUBJECTS = {
    NotificationKind.CONFIRMATION: "Booking Confirmation",
    NotificationKind.COMPLETED: "Trip Completed",
    NotificationKind.CANCELLED: "Booking Cancelled",
}

_OPENINGS = {
    NotificationKind.CONFIRMATION: "Your booking is confirmed.",
    NotificationKind.COMPLETED: "Your trip has been completed.",
    NotificationKind.CANCELLED: "Your booking has been cancelled.",
}


def _details(
    registration: Optional[str],
    source: Optional[str],
    destination: Optional[str],
    when: Optional[datetime],
) -> str:
    when_str = (when or datetime.now()).strftime("%Y-%m-%d %H:%M")
    return (
        f"Vehicle: {registration or '-'}\n"
        f"From: {source or '-'}\n"
        f"To: {destination or '-'}\n"
        f"When: {when_str}"
    )


def _fare_line(fare: Optional[float]) -> str:
    return f"\nFare: ${fare:.2f}" if fare is not None else ""


class BookingNotifier:
    def __init__(
        self,
        session_factory: async_sessionmaker = async_session_factory,
        mailer: Optional[Mailer] = None,
        enabled: bool = settings.notifications_enabled,
        background: Optional[BackgroundTasks] = None,
    ):
        self.session_factory = session_factory
        self.mailer = mailer or get_mailer()
        self.enabled = enabled
        self.background = background
        self._pending: set[asyncio.Task] = set()

    def dispatch(self, booking_id: int, kind: NotificationKind) -> None:
        """Schedule a notification without waiting for delivery."""
        if not self.enabled:
            return
        if self.background is not None:
            self.background.add_task(self.notify, booking_id, kind)
            return
        task = asyncio.create_task(self.notify(booking_id, kind))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for notifications scheduled as asyncio tasks."""
        if self._pending:
            await asyncio.gather(*self._pending)

    async def notify(self, booking_id: int, kind: NotificationKind) -> None:
        if not self.enabled:
            return
        try:
            async with self.session_factory() as session:
                await self._deliver(session, booking_id, kind)
        except Exception:
            logger.exception(
                "Failed to send %s notification for booking %d",
                kind.value,
                booking_id,
            )

    async def _deliver(
        self, session: AsyncSession, booking_id: int, kind: NotificationKind
    ) -> None:
        booking = await BookingRepository(session).get_by_id(booking_id)
        if booking is None:
            return
        users = UserRepository(session)
        customer = await users.get_by_id(booking.customer_id)
        if customer is None or not customer.email:
            return
        vehicle = await VehicleRepository(session).get_by_id(booking.vehicle_id)

        details = _details(
            vehicle.registration_number if vehicle else None,
            booking.source,
            booking.destination,
            booking.booking_date,
        )
        fare = "" if kind == NotificationKind.CANCELLED else _fare_line(booking.fare)
        await self.mailer.send(
            customer.email, _SUBJECTS[kind], f"{_OPENINGS[kind]}\n{details}{fare}"
        )

        if kind == NotificationKind.COMPLETED and vehicle is not None:
            owner = await users.get_by_id(vehicle.owner_id)
            if owner is not None and owner.email:
                await self.mailer.send(
                    owner.email,
                    "Booking Completed (Owner Notice)",
                    f"A booking on your vehicle has completed.\n{details}{fare}",
                )
