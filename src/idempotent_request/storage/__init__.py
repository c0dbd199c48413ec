"""Storage adapters for the idempotent request layer.

All adapters implement the StorageAdapter protocol defined in base.py.

Available Adapters:
    - MemoryStorageAdapter: In-process storage for single-process apps and tests
    - RedisStorageAdapter: Redis-based distributed storage
"""

from idempotent_request.config import IdempotencyConfig
from idempotent_request.storage.base import StorageAdapter, lock_key, namespaced_key
from idempotent_request.storage.memory import MemoryStorageAdapter
from idempotent_request.storage.redis_storage import RedisStorageAdapter


def create_storage(config: IdempotencyConfig) -> StorageAdapter:
    """Build the storage backend selected by ``config.storage_adapter``.

    Examples:
        >>> create_storage(IdempotencyConfig())
        <idempotent_request.storage.memory.MemoryStorageAdapter object at ...>
    """
    if config.storage_adapter == "redis":
        return RedisStorageAdapter.from_url(config.redis_url)
    return MemoryStorageAdapter()


__all__ = [
    "StorageAdapter",
    "MemoryStorageAdapter",
    "RedisStorageAdapter",
    "create_storage",
    "lock_key",
    "namespaced_key",
]
