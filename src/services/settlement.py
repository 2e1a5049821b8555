"""
Revenue Settlement
==================

Credits a vehicle owner with a booking's fare exactly once, when the
booking has reached ``completed``.

Algorithm (one database transaction)
------------------------------------
1. **Claim** -- conditional update setting ``revenue_applied = true`` where
   the booking is active, completed, unclaimed, has ``fare > 0`` and its
   vehicle has an owner.  Zero rows means there is nothing to do.
2. **Credit** -- ``total_revenue = total_revenue + fare`` on the owner.
3. **Commit** -- both writes land together or not at all.

Because the claim is the first write and is conditional, two concurrent
settlements of the same booking cannot both credit the owner, and a crash
between the two writes rolls the claim back with the credit.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.repositories import BookingRepository, UserRepository

logger = logging.getLogger(__name__)


class SettlementError(RuntimeError):
    pass


class RevenueSettlement:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.bookings = BookingRepository(session)
        self.users = UserRepository(session)

    async def settle(self, booking_id: int) -> bool:
        """Settle *booking_id*.  Returns True if the owner was credited.

        Not settleable (deleted, not completed, already applied, no fare,
        no owner) is a silent no-op.  Store errors roll back and propagate.
        """
        try:
            booking = await self.bookings.claim_for_settlement(booking_id)
            if booking is None:
                await self.session.commit()
                return False

            owner_id = await self.bookings.vehicle_owner_id(booking.vehicle_id)
            if owner_id is None or not await self.users.increment_revenue(
                owner_id, booking.fare
            ):
                raise SettlementError(
                    f"Owner vanished while settling booking {booking_id}"
                )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Settled booking %d: credited owner %d with %.2f",
            booking_id,
            owner_id,
            booking.fare,
        )
        return True

    async def settle_pending(self, limit: int = 200) -> int:
        """Sweep completed-but-unsettled bookings.  Returns how many settled.

        One failing booking does not stop the sweep.
        """
        booking_ids = await self.bookings.unsettled_ids(limit)
        # Release the read transaction before the per-booking transactions.
        await self.session.commit()

        settled = 0
        for booking_id in booking_ids:
            try:
                if await self.settle(booking_id):
                    settled += 1
            except Exception:
                logger.exception("Settlement failed for booking %d", booking_id)
        return settled

    async def owed_revenue(self, owner_id: int) -> float:
        return await self.bookings.owed_revenue(owner_id)
