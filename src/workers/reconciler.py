"""
Background Revenue Reconciliation Worker
========================================

Runs every ``RECONCILE_INTERVAL_SECONDS`` (default 60 s).

Settlement normally happens right after a booking completes.  When that
attempt fails (or a fare is set on an already-completed booking) the
booking stays ``completed`` with ``revenue_applied = false``; this worker
finds such bookings and settles them.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one instance sweeps at a time.
* Each settlement is a claim-first transaction, so even overlapping sweeps
  can never credit an owner twice.
"""

from __future__ import annotations

import asyncio
import logging

from src.config import settings
from src.infrastructure.database import async_session_factory
from src.infrastructure.locks import DistributedLock
from src.infrastructure.redis_client import get_redis
from src.services.settlement import RevenueSettlement

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_reconcile_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Reconciliation worker started (interval=%ds)",
        settings.reconcile_interval_seconds,
    )


async def stop_reconcile_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Reconciliation worker stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: run a sweep then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_reconcile_cycle()
        except Exception:
            logger.exception("Unhandled error in reconciliation cycle")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.reconcile_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass


async def run_reconcile_cycle(session_factory=async_session_factory) -> int:
    """Execute one sweep.  Returns the number of bookings settled."""
    redis = await get_redis()
    lock = DistributedLock(redis, "revenue_reconcile", ttl_seconds=120)

    if not await lock.acquire():
        logger.debug("Lock held by another worker -- skipping cycle")
        return 0

    settled = 0
    try:
        async with session_factory() as session:
            settled = await RevenueSettlement(session).settle_pending(
                settings.reconcile_batch_size
            )
        if settled:
            logger.info("Reconciliation cycle: %d bookings settled", settled)
    except Exception:
        logger.exception("Error in reconciliation cycle")
    finally:
        await lock.release()

    return settled
