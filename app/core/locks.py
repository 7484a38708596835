import asyncio
import weakref
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Protocol

import structlog

from app.core.config import settings
from app.core.redis import RedisClient, redis_client
from app.utils.validation import SlotLockedError

logger = structlog.get_logger(__name__)


def slot_lock_key(tenant_id: str, staff_id, day: date) -> str:
    return f"booking-lock:{tenant_id}:{staff_id}:{day.isoformat()}"


class SlotLocker(Protocol):
    def hold(self, tenant_id: str, staff_id, day: date):
        """Async context manager serialising bookings for one staff member and day."""
        ...


class RedisSlotLocker:
    """Cross-process lock backed by Redis ``SET NX EX``.

    Waits up to ``wait_seconds`` for a busy lock, then raises SlotLockedError.
    """

    def __init__(
        self,
        client: RedisClient = redis_client,
        timeout_seconds: int = settings.SLOT_LOCK_TIMEOUT_SECONDS,
        wait_seconds: float = 5.0,
        poll_interval: float = 0.1,
    ):
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.wait_seconds = wait_seconds
        self.poll_interval = poll_interval

    @asynccontextmanager
    async def hold(self, tenant_id: str, staff_id, day: date) -> AsyncIterator[None]:
        key = slot_lock_key(tenant_id, staff_id, day)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.wait_seconds

        token = await self.client.acquire_slot_lock(key, self.timeout_seconds)
        while token is None:
            if loop.time() >= deadline:
                raise SlotLockedError(key)
            await asyncio.sleep(self.poll_interval)
            token = await self.client.acquire_slot_lock(key, self.timeout_seconds)

        logger.debug("Slot lock acquired", key=key)
        try:
            yield
        finally:
            await self.client.release_slot_lock(key, token)


class LocalSlotLocker:
    """In-process locks, for a single worker or tests.

    A key's lock lives only while some booking holds or awaits it.
    """

    def __init__(self, wait_seconds: float = 5.0):
        self.wait_seconds = wait_seconds
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    @asynccontextmanager
    async def hold(self, tenant_id: str, staff_id, day: date) -> AsyncIterator[None]:
        key = slot_lock_key(tenant_id, staff_id, day)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.wait_seconds)
        except asyncio.TimeoutError:
            raise SlotLockedError(key)

        try:
            yield
        finally:
            lock.release()


def build_slot_locker() -> SlotLocker:
    if settings.SLOT_LOCK_BACKEND == "redis":
        return RedisSlotLocker()
    return LocalSlotLocker()
