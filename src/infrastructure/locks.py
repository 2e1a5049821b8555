"""
Redis-based distributed lock.

Used by the revenue reconciliation worker so that only one API process
sweeps unsettled bookings at a time.  Settlement itself is safe to run
concurrently (the claim is a conditional update); the lock only avoids
duplicated work.

Acquire is ``SET NX EX``; release is an atomic check-and-delete in Lua so
an instance never frees a lock that expired and was taken by another.
"""

from __future__ import annotations

import logging
import uuid

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockNotAcquired(RuntimeError):
    pass


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"fleet:lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())
        self.held = False

    async def acquire(self) -> bool:
        """Try once to take the lock.  Returns True on success."""
        self.held = bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )
        return self.held

    async def release(self) -> bool:
        """Release only if we still own the lock.  Returns True if deleted."""
        deleted = await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)
        self.held = False
        if not deleted:
            logger.warning("Lock %s expired before release", self.key)
        return bool(deleted)

    async def __aenter__(self):
        if not await self.acquire():
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()
