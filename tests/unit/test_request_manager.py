"""Unit tests for the per-key request manager.

Covers READ / LOCK / WRITE / UNLOCK against storage, including the
degradation rules for storage and payload failures.
"""

import pytest

from idempotent_request.core.request_manager import LockResult, RequestManager, is_cacheable
from idempotent_request.models import CachedResponse, HandlerResponse, ProcessingContext

RESPONSE_KEY = "idempotency_keys:pay-123"
LOCK_KEY = "idempotency_keys:lock:pay-123"


@pytest.fixture
def manager(storage) -> RequestManager:
    return RequestManager(storage, key="Pay-123", expire_time=180)


@pytest.fixture
def created() -> HandlerResponse:
    return HandlerResponse(
        status=201,
        headers={"content-type": "application/json"},
        body_chunks=[b'{"id":', b'"pay_1"}'],
    )


class TestKeys:
    def test_keys_are_namespaced_and_normalized(self, manager: RequestManager) -> None:
        assert manager.response_key == RESPONSE_KEY
        assert manager.lock_key == LOCK_KEY

    def test_custom_namespace(self, storage) -> None:
        manager = RequestManager(storage, key="abc", expire_time=60, namespace="orders")
        assert manager.response_key == "orders:abc"
        assert manager.lock_key == "orders:lock:abc"

    def test_context_created_when_missing(self, manager: RequestManager) -> None:
        assert manager.context.key == "Pay-123"


class TestRead:
    @pytest.mark.asyncio
    async def test_read_miss(self, manager, storage) -> None:
        assert await manager.read() is None
        assert storage.calls == [("read", RESPONSE_KEY)]

    @pytest.mark.asyncio
    async def test_read_hit(self, manager, storage, created) -> None:
        payload = CachedResponse.from_handler_response(created).to_payload()
        await storage.write(RESPONSE_KEY, payload, 180)

        cached = await manager.read()

        assert cached is not None
        assert cached.status == 201
        assert cached.body_chunks() == created.body_chunks
        assert manager.context.diagnostics["read"] == 201

    @pytest.mark.asyncio
    async def test_read_storage_error_is_miss(self, make_storage) -> None:
        storage = make_storage(failing={"read"})
        context = ProcessingContext("k")
        manager = RequestManager(storage, key="k", expire_time=60, context=context)

        assert await manager.read() is None
        assert "read unavailable" in context.diagnostics["read_error"]

    @pytest.mark.asyncio
    async def test_read_corrupt_payload_is_miss(self, manager, storage) -> None:
        await storage.write(RESPONSE_KEY, b"{not json", 180)

        assert await manager.read() is None
        assert "read_error" in manager.context.diagnostics


class TestLock:
    @pytest.mark.asyncio
    async def test_lock_acquired(self, manager, storage) -> None:
        assert await manager.lock() is LockResult.ACQUIRED
        assert manager.locked is True
        assert LOCK_KEY in storage

    @pytest.mark.asyncio
    async def test_lock_contended(self, manager, storage) -> None:
        await storage.lock(LOCK_KEY, 180)

        assert await manager.lock() is LockResult.CONTENDED
        assert manager.locked is False

    @pytest.mark.asyncio
    async def test_lock_uses_expire_time(self, manager, storage, clock) -> None:
        await manager.lock()

        clock.advance(180)
        assert LOCK_KEY not in storage

    @pytest.mark.asyncio
    async def test_lock_unavailable(self, make_storage) -> None:
        storage = make_storage(failing={"lock"})
        manager = RequestManager(storage, key="k", expire_time=60)

        assert await manager.lock() is LockResult.UNAVAILABLE
        assert manager.locked is False
        assert manager.context.diagnostics["error"] == "Failed to lock the key"


class TestWrite:
    @pytest.mark.asyncio
    async def test_write_caches_success(self, manager, storage, created) -> None:
        assert await manager.write(created) is True

        payload = await storage.read(RESPONSE_KEY)
        cached = CachedResponse.from_payload(payload)
        assert cached.status == 201
        assert cached.headers == {"content-type": "application/json"}
        assert cached.body_chunks() == created.body_chunks
        assert manager.context.diagnostics["write"] == 201

    @pytest.mark.asyncio
    async def test_write_expires_with_ttl(self, manager, storage, clock, created) -> None:
        await manager.write(created)
        clock.advance(180)
        assert await storage.read(RESPONSE_KEY) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [199, 227, 302, 400, 409, 500, 503])
    async def test_write_skips_non_qualifying_status(self, manager, storage, status) -> None:
        assert await manager.write(HandlerResponse(status=status)) is False
        assert "write" not in storage.operations()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [200, 201, 204, 226])
    async def test_write_accepts_qualifying_status(self, manager, storage, status) -> None:
        assert await manager.write(HandlerResponse(status=status)) is True

    @pytest.mark.asyncio
    async def test_write_storage_error_not_raised(self, make_storage, created) -> None:
        storage = make_storage(failing={"write"})
        manager = RequestManager(storage, key="k", expire_time=60)

        assert await manager.write(created) is False
        assert "write_error" in manager.context.diagnostics


class TestUnlock:
    @pytest.mark.asyncio
    async def test_unlock_releases(self, manager, storage) -> None:
        await manager.lock()

        assert await manager.unlock() is True
        assert LOCK_KEY not in storage
        assert manager.locked is False
        assert manager.context.diagnostics["unlocked"] is True

    @pytest.mark.asyncio
    async def test_unlock_storage_error_not_raised(self, make_storage) -> None:
        storage = make_storage(failing={"unlock"})
        manager = RequestManager(storage, key="k", expire_time=60)
        await manager.lock()

        assert await manager.unlock() is False
        assert manager.context.diagnostics["unlocked"] is False


@pytest.mark.parametrize(
    "status, expected",
    [(199, False), (200, True), (226, True), (227, False), (500, False)],
)
def test_is_cacheable(status: int, expected: bool) -> None:
    assert is_cacheable(status) is expected
