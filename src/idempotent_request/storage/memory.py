"""In-memory storage adapter.

This module provides an in-process implementation of the StorageAdapter
protocol: a dictionary of values with per-entry expiry, guarded by a mutex.

The MemoryStorageAdapter is suitable for:
    - Single-process applications
    - Development and testing

Every lock only protects requests served by the same process. For several
workers or hosts use RedisStorageAdapter instead.

Thread Safety:
    - A single threading.Lock guards the dictionary
    - Critical sections never await, so the lock works across event loops
      and threads alike
    - Expired entries are treated as absent and evicted lazily

Examples:
    Basic usage::

        from idempotent_request.storage.memory import MemoryStorageAdapter

        storage = MemoryStorageAdapter()

        if await storage.lock("idempotency_keys:lock:pay-1", ttl_seconds=60):
            try:
                ...
            finally:
                await storage.unlock("idempotency_keys:lock:pay-1")

    Controlling time in tests::

        clock = FakeClock()
        storage = MemoryStorageAdapter(clock=clock)
        await storage.write("k", b"v", ttl_seconds=10)
        clock.advance(11)
        assert await storage.read("k") is None
"""

import threading
import time
from collections.abc import Callable

from idempotent_request.storage.base import StorageAdapter


class MemoryStorageAdapter(StorageAdapter):
    """In-memory storage adapter with mutex-guarded conditional create.

    Attributes:
        _store: Dictionary mapping keys to (value, expires_at) pairs.
        _mutex: Lock protecting _store.
        _clock: Monotonic clock returning seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize a new in-memory storage adapter.

        Args:
            clock: Function returning the current time in seconds. Defaults
                to ``time.monotonic``; tests inject a controllable clock.
        """
        self._store: dict[str, tuple[bytes, float | None]] = {}
        self._mutex = threading.Lock()
        self._clock = clock

    def _expires_at(self, ttl_seconds: int | None) -> float | None:
        if ttl_seconds is None or ttl_seconds <= 0:
            return None
        return self._clock() + ttl_seconds

    def _live_value(self, key: str) -> bytes | None:
        # Caller must hold self._mutex
        entry = self._store.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._store[key]
            return None
        return value

    async def lock(self, key: str, ttl_seconds: int) -> bool:
        """Create the lock entry if no live entry exists.

        The existence check and the insert happen under the same mutex, so
        exactly one of several concurrent callers gets True.
        """
        with self._mutex:
            if self._live_value(key) is not None:
                return False
            self._store[key] = (str(self._clock()).encode("ascii"), self._expires_at(ttl_seconds))
            return True

    async def unlock(self, key: str) -> None:
        with self._mutex:
            self._store.pop(key, None)

    async def read(self, key: str) -> bytes | None:
        with self._mutex:
            return self._live_value(key)

    async def write(self, key: str, payload: bytes, ttl_seconds: int) -> None:
        with self._mutex:
            self._store[key] = (payload, self._expires_at(ttl_seconds))

    async def cleanup_expired(self) -> int:
        """Remove expired entries from storage.

        Expired entries are already invisible to reads; this only reclaims
        memory for hosts that want to purge explicitly.

        Returns:
            The number of entries removed.
        """
        now = self._clock()
        with self._mutex:
            expired_keys = [
                key
                for key, (_, expires_at) in self._store.items()
                if expires_at is not None and expires_at <= now
            ]
            for key in expired_keys:
                del self._store[key]
        return len(expired_keys)

    def __len__(self) -> int:
        with self._mutex:
            return len(self._store)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        with self._mutex:
            return self._live_value(key) is not None
