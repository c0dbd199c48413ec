"""
Pytest configuration and shared fixtures for idempotent_request tests.
"""

from typing import Any

import pytest

from idempotent_request.config import IdempotencyConfig
from idempotent_request.exceptions import StorageError
from idempotent_request.models import HandlerResponse, Request
from idempotent_request.storage.memory import MemoryStorageAdapter


class FakeClock:
    """Controllable monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingStorage(MemoryStorageAdapter):
    """Memory storage that records every call and can simulate outages.

    Attributes:
        calls: (operation, key) tuples in call order
        failing: Operations that raise StorageError
    """

    def __init__(self, clock: Any = None, failing: set[str] | None = None) -> None:
        if clock is None:
            super().__init__()
        else:
            super().__init__(clock=clock)
        self.calls: list[tuple[str, str]] = []
        self.failing = failing if failing is not None else set()

    def _record(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        if operation in self.failing:
            raise StorageError(f"{operation} unavailable", operation=operation)

    def operations(self) -> list[str]:
        return [operation for operation, _ in self.calls]

    async def lock(self, key: str, ttl_seconds: int) -> bool:
        self._record("lock", key)
        return await super().lock(key, ttl_seconds)

    async def unlock(self, key: str) -> None:
        self._record("unlock", key)
        await super().unlock(key)

    async def read(self, key: str) -> bytes | None:
        self._record("read", key)
        return await super().read(key)

    async def write(self, key: str, payload: bytes, ttl_seconds: int) -> None:
        self._record("write", key)
        await super().write(key, payload, ttl_seconds)


class CountingHandler:
    """Async handler returning a fixed response and counting its calls."""

    def __init__(
        self,
        status: int = 201,
        headers: dict[str, str] | None = None,
        body_chunks: list[bytes] | None = None,
    ) -> None:
        self.status = status
        self.headers = headers if headers is not None else {"content-type": "application/json"}
        self.body_chunks = body_chunks if body_chunks is not None else [b'{"id":', b'"pay_1"}']
        self.calls: list[Request] = []

    async def __call__(self, request: Request) -> HandlerResponse:
        self.calls.append(request)
        return HandlerResponse(
            status=self.status,
            headers=dict(self.headers),
            body_chunks=list(self.body_chunks),
        )


@pytest.fixture
def sample_idempotency_key() -> str:
    """Provide a sample idempotency key for tests."""
    return "dont-repeat-this-request-pls"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage(clock: FakeClock) -> RecordingStorage:
    """Fresh recording storage driven by the fake clock."""
    return RecordingStorage(clock=clock)


@pytest.fixture
def handler() -> CountingHandler:
    return CountingHandler()


@pytest.fixture
def routes() -> list[dict[str, Any]]:
    """Route rules used across the test suite."""
    return [
        {"path": "/api/v1/test/*", "http_method": "POST", "expire_time": 180},
        {"path": "/api/v2/test/*", "http_method": "POST", "expire_time": 180},
        {"path": "/admin/v2/store/orders", "http_method": "POST", "expire_time": 180},
        {"path": "/api/v1/payments", "http_method": "POST"},
    ]


@pytest.fixture
def config(routes: list[dict[str, Any]]) -> IdempotencyConfig:
    return IdempotencyConfig(expire_time=3600, routes=routes)


@pytest.fixture
def make_request(sample_idempotency_key: str):
    """Factory building requests that carry the sample key by default."""

    def _make(
        path: str = "/api/v1/payments",
        method: str = "POST",
        key: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> Request:
        all_headers = dict(headers or {})
        if key is None:
            key = sample_idempotency_key
        if key:
            all_headers["Idempotency-Key"] = key
        return Request(method=method, path=path, headers=all_headers)

    return _make


@pytest.fixture
def make_handler():
    """Factory for counting handlers with a custom response."""
    return CountingHandler


@pytest.fixture
def make_storage(clock: FakeClock):
    """Factory for recording storages, optionally failing some operations."""

    def _make(failing: set[str] | None = None) -> RecordingStorage:
        return RecordingStorage(clock=clock, failing=failing)

    return _make
