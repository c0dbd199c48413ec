"""Redis storage adapter.

This module implements the StorageAdapter protocol on top of redis-py's
asyncio client. Redis gives every operation the contract needs natively:

- ``lock``   -> ``SET key <timestamp> NX EX ttl``
- ``unlock`` -> ``DEL key``
- ``read``   -> ``GET key``
- ``write``  -> ``SET key payload EX ttl``

Because ``SET NX`` is atomic on the server, locks hold across processes and
hosts sharing the same Redis instance.

Examples:
    Create from a URL::

        from idempotent_request.storage.redis_storage import RedisStorageAdapter

        storage = RedisStorageAdapter.from_url("redis://localhost:6379/0")

    Wrap an existing client (e.g. fakeredis in tests)::

        import fakeredis.aioredis

        storage = RedisStorageAdapter(fakeredis.aioredis.FakeRedis())
"""

import time
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from idempotent_request.exceptions import StorageError
from idempotent_request.observability.logging import get_logger
from idempotent_request.storage.base import StorageAdapter

logger = get_logger(__name__)


def _expiry(ttl_seconds: int | None) -> int | None:
    # Redis rejects EX 0; a non-positive TTL means no expiry
    if ttl_seconds is None or int(ttl_seconds) <= 0:
        return None
    return int(ttl_seconds)


class RedisStorageAdapter(StorageAdapter):
    """Storage adapter backed by Redis.

    Attributes:
        redis: The asyncio Redis client. Responses must be bytes, so clients
            should not be created with ``decode_responses=True``.
    """

    def __init__(self, redis: Any) -> None:
        self.redis = redis

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisStorageAdapter":
        """Create an adapter with a new client connected to ``url``.

        Args:
            url: Redis connection URL, e.g. ``redis://localhost:6379/0``.
            **kwargs: Extra keyword arguments for ``redis.asyncio.from_url``.
        """
        return cls(aioredis.from_url(url, **kwargs))

    async def lock(self, key: str, ttl_seconds: int) -> bool:
        try:
            result = await self.redis.set(key, str(time.time()), nx=True, ex=_expiry(ttl_seconds))
        except RedisError as e:
            raise StorageError(f"Failed to lock key {key}: {e}", cause=e, operation="lock") from e
        return bool(result)

    async def unlock(self, key: str) -> None:
        try:
            await self.redis.delete(key)
        except RedisError as e:
            raise StorageError(
                f"Failed to unlock key {key}: {e}", cause=e, operation="unlock"
            ) from e

    async def read(self, key: str) -> bytes | None:
        try:
            value = await self.redis.get(key)
        except RedisError as e:
            raise StorageError(f"Failed to read key {key}: {e}", cause=e, operation="read") from e

        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    async def write(self, key: str, payload: bytes, ttl_seconds: int) -> None:
        try:
            await self.redis.set(key, payload, ex=_expiry(ttl_seconds))
        except RedisError as e:
            raise StorageError(
                f"Failed to write key {key}: {e}", cause=e, operation="write"
            ) from e

    async def close(self) -> None:
        """Close the underlying client connection pool."""
        await self.redis.aclose()
        logger.debug("storage.redis_closed")
