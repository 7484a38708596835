import uuid
from typing import Optional

import redis.asyncio as redis
import structlog

from app.core.config import settings

logger = structlog.get_logger(__name__)

# Delete the key only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


class RedisClient:
    """Redis client used for per-staff booking locks."""

    def __init__(self, url: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.redis_pool = None

    async def init_redis(self):
        """Initialize Redis connection pool."""
        try:
            self.redis_pool = redis.ConnectionPool.from_url(
                self.url,
                decode_responses=True,
                retry_on_timeout=True,
                socket_keepalive=True,
            )

            async with redis.Redis(connection_pool=self.redis_pool) as r:
                await r.ping()
                logger.info("Redis connection established")

        except Exception as e:
            logger.error("Failed to connect to Redis", exc_info=e)
            raise

    async def get_redis(self) -> redis.Redis:
        """Get Redis client instance."""
        if not self.redis_pool:
            await self.init_redis()
        return redis.Redis(connection_pool=self.redis_pool)

    async def acquire_slot_lock(self, lock_key: str, timeout_seconds: int) -> Optional[str]:
        """Take the lock if free. Returns the owner token, or None when held."""
        client = await self.get_redis()
        token = uuid.uuid4().hex
        acquired = await client.set(lock_key, token, nx=True, ex=timeout_seconds)
        if not acquired:
            logger.info("Slot lock busy", key=lock_key)
            return None
        return token

    async def release_slot_lock(self, lock_key: str, token: str) -> bool:
        """Release a lock previously acquired with ``token``."""
        client = await self.get_redis()
        released = await client.eval(_RELEASE_SCRIPT, 1, lock_key, token)
        if not released:
            logger.warning("Slot lock expired before release", key=lock_key)
        return bool(released)

    async def close(self):
        if self.redis_pool:
            await self.redis_pool.disconnect()
            self.redis_pool = None


# Global Redis client instance
redis_client = RedisClient()
