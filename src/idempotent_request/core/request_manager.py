"""Per-key idempotency protocol on top of a storage adapter.

A RequestManager is created for one request and drives the storage side of
the protocol for its idempotency key:

    READ -> LOCK -> (handler runs, outside this class) -> WRITE -> UNLOCK

- ``read()`` returns the cached response if one exists. Storage failures and
  corrupt payloads count as a miss.
- ``lock()`` atomically creates the lock entry and reports whether the lock
  was acquired, held by someone else, or could not be checked at all.
- ``write()`` caches the handler response when its status is in [200, 226].
- ``unlock()`` deletes the lock entry. It must run on every exit path after
  a successful lock; the lock TTL is the only bound if the process dies first.

``write()`` and ``unlock()`` never raise: by the time they run the handler has
already produced a response that must reach the client.

Examples:
    >>> manager = RequestManager(storage, key="pay-123", expire_time=180)
    >>> cached = await manager.read()
    >>> if cached is None and await manager.lock() is LockResult.ACQUIRED:
    ...     try:
    ...         response = await handler(request)
    ...         await manager.write(response)
    ...     finally:
    ...         await manager.unlock()
"""

from enum import Enum

from idempotent_request.exceptions import SerializationError, StorageError
from idempotent_request.models import CachedResponse, HandlerResponse, ProcessingContext
from idempotent_request.observability.logging import get_logger
from idempotent_request.observability.metrics import record_storage_error
from idempotent_request.storage.base import (
    DEFAULT_NAMESPACE,
    StorageAdapter,
    lock_key,
    namespaced_key,
)

logger = get_logger(__name__)

# Only successful responses are cached; anything else is retried on replay
CACHEABLE_STATUS_MIN = 200
CACHEABLE_STATUS_MAX = 226


def is_cacheable(status: int) -> bool:
    """Return True if a response with this status may be cached.

    Examples:
        >>> is_cacheable(201), is_cacheable(226), is_cacheable(302), is_cacheable(500)
        (True, True, False, False)
    """
    return CACHEABLE_STATUS_MIN <= status <= CACHEABLE_STATUS_MAX


class LockResult(str, Enum):
    """Result of attempting to lock an idempotency key.

    Attributes:
        ACQUIRED: This request now holds the key.
        CONTENDED: Another request holds the key.
        UNAVAILABLE: Storage failed, so nobody knows who holds the key.
    """

    ACQUIRED = "acquired"
    CONTENDED = "contended"
    UNAVAILABLE = "unavailable"


class RequestManager:
    """Storage-side protocol for one request's idempotency key.

    Attributes:
        storage: Storage adapter shared by all requests
        key: The client-supplied idempotency key
        expire_time: TTL in seconds for the lock and the cached response
        response_key: Storage key of the cached response
        lock_key: Storage key of the lock
        context: Processing context receiving diagnostics
    """

    def __init__(
        self,
        storage: StorageAdapter,
        key: str,
        expire_time: int,
        namespace: str | None = DEFAULT_NAMESPACE,
        context: ProcessingContext | None = None,
    ) -> None:
        self.storage = storage
        self.key = key
        self.expire_time = expire_time
        self.response_key = namespaced_key(namespace, key)
        self.lock_key = lock_key(namespace, key)
        self.context = context if context is not None else ProcessingContext(key)
        self.locked = False

    async def read(self) -> CachedResponse | None:
        """Fetch the cached response for the key.

        Returns:
            The cached response, or None on a miss. Storage errors and
            undecodable payloads are logged and reported as a miss.
        """
        try:
            payload = await self.storage.read(self.response_key)
        except StorageError as e:
            record_storage_error("read")
            logger.warning("storage.read_failed", key=self.key, error=str(e))
            self.context.diagnostics["read_error"] = str(e)
            return None

        if not payload:
            return None

        try:
            cached = CachedResponse.from_payload(payload)
        except SerializationError as e:
            logger.warning("cache.payload_invalid", key=self.key, error=str(e))
            self.context.diagnostics["read_error"] = str(e)
            return None

        self.context.diagnostics["read"] = cached.status
        return cached

    async def lock(self) -> LockResult:
        """Try to take the lock for the key.

        Returns:
            LockResult.ACQUIRED, CONTENDED or UNAVAILABLE.
        """
        try:
            acquired = await self.storage.lock(self.lock_key, self.expire_time)
        except StorageError as e:
            record_storage_error("lock")
            logger.error("storage.lock_failed", key=self.key, error=str(e))
            self.context.diagnostics["error"] = "Failed to lock the key"
            return LockResult.UNAVAILABLE

        if not acquired:
            return LockResult.CONTENDED

        self.locked = True
        return LockResult.ACQUIRED

    async def write(self, response: HandlerResponse) -> bool:
        """Cache the handler response if its status qualifies.

        Args:
            response: The response produced by the handler

        Returns:
            True if the response was stored.
        """
        if not is_cacheable(response.status):
            return False

        payload = CachedResponse.from_handler_response(response).to_payload()
        try:
            await self.storage.write(self.response_key, payload, self.expire_time)
        except StorageError as e:
            record_storage_error("write")
            logger.error("storage.write_failed", key=self.key, error=str(e))
            self.context.diagnostics["write_error"] = str(e)
            return False

        self.context.diagnostics["write"] = response.status
        return True

    async def unlock(self) -> bool:
        """Release the lock for the key.

        Returns:
            True if the lock entry was deleted. On failure the lock stays
            until its TTL expires.
        """
        try:
            await self.storage.unlock(self.lock_key)
        except StorageError as e:
            record_storage_error("unlock")
            logger.error(
                "storage.unlock_failed",
                key=self.key,
                expire_time=self.expire_time,
                error=str(e),
            )
            self.context.diagnostics["unlocked"] = False
            return False

        self.locked = False
        self.context.diagnostics["unlocked"] = True
        return True
