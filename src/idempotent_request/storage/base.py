"""Storage adapter protocol for the idempotent request layer.

This module defines the key-value contract every storage backend fulfils and
the helpers that derive storage keys from idempotency keys.

The contract is deliberately small:

- ``lock(key, ttl_seconds) -> bool``: atomic create-if-absent with expiry.
  True means the caller now holds the key; False means a record exists.
- ``unlock(key)``: unconditional delete. Deleting a missing key is not an error.
- ``read(key) -> bytes | None``: fetch a value, None when absent or expired.
- ``write(key, payload, ttl_seconds)``: set with expiry, overwriting any value.

Only ``lock`` must be atomic. Any backend offering a native conditional set
(Redis ``SET NX``, an in-process mutex-guarded map, a SQL unique insert)
satisfies it.

Examples:
    Implementing a custom storage adapter::

        class MyStorageAdapter:
            async def lock(self, key: str, ttl_seconds: int) -> bool:
                return await self.backend.set_if_absent(key, b"1", ttl_seconds)

            async def unlock(self, key: str) -> None:
                await self.backend.delete(key)

            async def read(self, key: str) -> bytes | None:
                return await self.backend.get(key)

            async def write(self, key: str, payload: bytes, ttl_seconds: int) -> None:
                await self.backend.set(key, payload, ttl_seconds)

Error Handling:
    Methods raise StorageError when the backend is unavailable.
    Implementations should NOT raise backend-specific exceptions directly.
"""

from typing import Protocol, runtime_checkable

DEFAULT_NAMESPACE = "idempotency_keys"


def namespaced_key(namespace: str | None, key: str) -> str:
    """Build the storage key for a cached response.

    The idempotency key is stripped and the result lower-cased so that the
    same logical key always maps to one storage location.

    Examples:
        >>> namespaced_key("idempotency_keys", " Pay-123 ")
        'idempotency_keys:pay-123'
    """
    parts = [namespace, key.strip()]
    return ":".join(part for part in parts if part).lower()


def lock_key(namespace: str | None, key: str) -> str:
    """Build the storage key for the lock guarding an idempotency key.

    Examples:
        >>> lock_key("idempotency_keys", "Pay-123")
        'idempotency_keys:lock:pay-123'
    """
    return namespaced_key(namespace, f"lock:{key.strip()}")


@runtime_checkable
class StorageAdapter(Protocol):
    """Protocol defining the interface for storage backends.

    All methods are async and must be safe to call concurrently from many
    requests. Only ``lock`` needs to be atomic.
    """

    async def lock(self, key: str, ttl_seconds: int) -> bool:
        """Atomically create ``key`` with an expiry if it does not exist.

        Args:
            key: Storage key of the lock.
            ttl_seconds: Lifetime of the lock in seconds.

        Returns:
            True if the lock was created, False if the key already exists.

        Raises:
            StorageError: If the backend is unavailable.
        """
        ...

    async def unlock(self, key: str) -> None:
        """Delete ``key``. Deleting a missing key is a no-op.

        Raises:
            StorageError: If the backend is unavailable.
        """
        ...

    async def read(self, key: str) -> bytes | None:
        """Return the value stored at ``key``, or None if absent or expired.

        Raises:
            StorageError: If the backend is unavailable.
        """
        ...

    async def write(self, key: str, payload: bytes, ttl_seconds: int) -> None:
        """Store ``payload`` at ``key`` with an expiry, overwriting any value.

        Raises:
            StorageError: If the backend is unavailable.
        """
        ...
