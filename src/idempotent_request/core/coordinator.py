"""Framework-agnostic coordinator for idempotent request handling.

The coordinator wires the eligibility policy, the per-key request manager
and the downstream handler together:

1. Extract the idempotency key from the configured header
2. Pass the request straight to the handler if the key is empty or the
   policy does not cover the route
3. Replay the cached response if one exists
4. Otherwise take the lock; reject the request if another one holds it.
   Once locked, read again: a request that held the lock in between may
   have cached its response already
5. Run the handler, cache its response if the status qualifies, and
   release the lock on every exit path
6. Emit an instrumentation event

Lock failures caused by storage being unavailable follow
``config.lock_failure_policy``: "fail-open" runs the handler without
exclusivity (outcome ``unprotected``), "fail-closed" answers 503.

Examples:
    Using the coordinator directly::

        from idempotent_request.config import IdempotencyConfig
        from idempotent_request.core.coordinator import IdempotencyCoordinator
        from idempotent_request.storage.memory import MemoryStorageAdapter

        config = IdempotencyConfig(routes=[{"path": "/payments", "http_method": "POST"}])
        coordinator = IdempotencyCoordinator(config, MemoryStorageAdapter())

        async def handler(request):
            return HandlerResponse(status=201, body_chunks=[b"created"])

        result = await coordinator.process(request, handler)
        result.response.status      # 201
        result.context.outcome      # Outcome.EXECUTED
"""

import time
from collections.abc import Awaitable, Callable

from idempotent_request.config import IdempotencyConfig
from idempotent_request.core.policy import Policy, RoutePolicy
from idempotent_request.core.replay import (
    concurrent_response,
    replay_response,
    unavailable_response,
)
from idempotent_request.core.request_manager import LockResult, RequestManager
from idempotent_request.models import (
    CoordinationResult,
    HandlerResponse,
    Outcome,
    ProcessingContext,
    Request,
)
from idempotent_request.observability.events import NullObserver, RequestEvent, RequestObserver
from idempotent_request.observability.logging import get_logger
from idempotent_request.storage.base import StorageAdapter

logger = get_logger(__name__)

Handler = Callable[[Request], Awaitable[HandlerResponse]]


class IdempotencyCoordinator:
    """Runs the idempotency protocol around a downstream handler.

    A single coordinator serves every request; all per-request state lives
    in the ProcessingContext and RequestManager created inside ``process``.

    Attributes:
        config: Configuration object
        storage: Storage adapter shared by all requests
        policy: Eligibility policy
        observer: Receiver of instrumentation events
    """

    def __init__(
        self,
        config: IdempotencyConfig,
        storage: StorageAdapter,
        policy: Policy | None = None,
        observer: RequestObserver | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            config: Configuration object
            storage: Storage adapter for locks and cached responses
            policy: Eligibility policy; defaults to a RoutePolicy built from
                ``config.routes``
            observer: Instrumentation observer; defaults to a no-op
        """
        self.config = config
        self.storage = storage
        self.policy = policy if policy is not None else RoutePolicy.from_config(config)
        self.observer = observer if observer is not None else NullObserver()

    def extract_key(self, request: Request) -> str | None:
        """Return the idempotency key carried by the request, or None if empty."""
        value = request.header(self.config.header_key)
        if value is None:
            return None
        value = value.strip()
        return value or None

    async def process(
        self,
        request: Request,
        handler: Handler,
        context: ProcessingContext | None = None,
    ) -> CoordinationResult:
        """Process a request with idempotency handling.

        Args:
            request: The incoming request
            handler: Async function producing the response when the request
                has to be executed
            context: Context to fill in; a new one is created if omitted.
                Adapters pass their own so the handler can see it.

        Returns:
            CoordinationResult with the response and the processing context

        Raises:
            Exception: Whatever the handler raises, after the lock is released
        """
        key = self.extract_key(request)
        if context is None:
            context = ProcessingContext()
        context.key = key

        if key is None or not self.policy.should(request):
            context.outcome = Outcome.PASSTHROUGH
            return CoordinationResult(await handler(request), context)

        context.expire_time = self.policy.expire_time_for(request)
        manager = RequestManager(
            self.storage,
            key,
            context.expire_time,
            namespace=self.config.namespace,
            context=context,
        )

        lock_result = None
        cached = await manager.read()
        if cached is None:
            lock_result = await manager.lock()
            if lock_result is LockResult.ACQUIRED:
                # The previous holder may have written and unlocked since the first read
                cached = await manager.read()
                if cached is not None:
                    await manager.unlock()

        if cached is not None:
            context.outcome = Outcome.REPLAYED
            response = replay_response(cached, self.config.replayed_response_header)
            logger.info("request.replayed", key=key, status=response.status)
        elif lock_result is LockResult.CONTENDED:
            response = self._reject_concurrent(context)
        elif (
            lock_result is LockResult.UNAVAILABLE
            and self.config.lock_failure_policy == "fail-closed"
        ):
            context.outcome = Outcome.UNAVAILABLE
            response = unavailable_response()
            logger.warning("request.denied", key=key, reason="storage unavailable")
        else:
            response = await self._execute(request, handler, manager)

        self.observer.notify(
            RequestEvent(
                request=request,
                key=key,
                outcome=context.outcome,
                context=context,
                status=response.status,
            )
        )
        return CoordinationResult(response, context)

    def _reject_concurrent(self, context: ProcessingContext) -> HandlerResponse:
        context.outcome = Outcome.CONCURRENT
        context.diagnostics["concurrent_request_response"] = True
        logger.info("request.concurrent", key=context.key)
        return concurrent_response(self.config.concurrent_response_status)

    async def _execute(
        self,
        request: Request,
        handler: Handler,
        manager: RequestManager,
    ) -> HandlerResponse:
        """Run the handler between LOCK and WRITE/UNLOCK.

        The lock is released in ``finally`` so handler exceptions and task
        cancellation still unlock the key. A request running without the
        lock (fail-open) never unlocks: the entry may belong to someone else.
        """
        context = manager.context
        context.outcome = Outcome.EXECUTED if manager.locked else Outcome.UNPROTECTED
        if not manager.locked:
            logger.warning("request.unprotected", key=manager.key)

        start_time = time.perf_counter()
        try:
            response = await handler(request)
            context.diagnostics["execution_time"] = time.perf_counter() - start_time
            await manager.write(response)
        finally:
            if manager.locked:
                await manager.unlock()

        logger.info(
            "request.executed",
            key=manager.key,
            status=response.status,
            outcome=context.outcome.value,
        )
        return response
