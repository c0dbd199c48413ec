"""ASGI middleware adapter for FastAPI and Starlette applications.

This module provides an ASGI middleware wrapper around the core
coordinator, making it easy to integrate with ASGI frameworks like FastAPI
and Starlette.

The middleware:
1. Converts ASGI requests to the internal Request format
2. Processes through the coordinator
3. Converts internal responses back to ASGI format
4. Exposes the processing context as ``request.state.idempotent_request``

Examples:
    FastAPI integration::

        from fastapi import FastAPI
        from idempotent_request.adapters.asgi import ASGIIdempotencyMiddleware
        from idempotent_request.config import IdempotencyConfig
        from idempotent_request.storage.redis_storage import RedisStorageAdapter

        app = FastAPI()

        config = IdempotencyConfig(
            routes=[{"path": "/api/payments", "http_method": "POST", "expire_time": 180}],
        )

        app.add_middleware(
            ASGIIdempotencyMiddleware,
            storage=RedisStorageAdapter.from_url("redis://localhost:6379/0"),
            config=config,
        )

        @app.post("/api/payments")
        async def create_payment(data: PaymentData):
            # Retries carrying the same Idempotency-Key are replayed
            return {"status": "success"}
"""

from collections.abc import Awaitable, Callable
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response

from idempotent_request.config import IdempotencyConfig
from idempotent_request.core.coordinator import IdempotencyCoordinator
from idempotent_request.core.policy import Policy
from idempotent_request.models import HandlerResponse, ProcessingContext, Request
from idempotent_request.observability.events import RequestObserver
from idempotent_request.storage import StorageAdapter, create_storage


class ASGIIdempotencyMiddleware(BaseHTTPMiddleware):
    """ASGI middleware for idempotency handling.

    Attributes:
        storage: Storage adapter for locks and cached responses
        config: Configuration object
        coordinator: Core coordinator instance
    """

    def __init__(
        self,
        app: Any,
        storage: StorageAdapter | None = None,
        config: IdempotencyConfig | None = None,
        policy: Policy | None = None,
        observer: RequestObserver | None = None,
    ) -> None:
        """Initialize the ASGI middleware.

        Args:
            app: The ASGI application
            storage: Storage adapter (built from ``config`` if not provided)
            config: Configuration object (uses defaults if not provided)
            policy: Eligibility policy (route policy from ``config`` if not provided)
            observer: Instrumentation observer (no-op if not provided)
        """
        super().__init__(app)
        self.config = config or IdempotencyConfig()
        self.storage = storage if storage is not None else create_storage(self.config)
        self.coordinator = IdempotencyCoordinator(
            self.config,
            self.storage,
            policy=policy,
            observer=observer,
        )

    async def dispatch(
        self,
        request: StarletteRequest,
        call_next: Callable[[StarletteRequest], Awaitable[Response]],
    ) -> Response:
        """Process an ASGI request with idempotency handling.

        Args:
            request: The Starlette request object
            call_next: Function to call the next middleware/handler

        Returns:
            Starlette Response object
        """
        internal_request = self._convert_request(request)
        context = ProcessingContext()
        request.state.idempotent_request = context

        async def handler(_req: Request) -> HandlerResponse:
            response = await call_next(request)
            return await self._collect_response(response)

        result = await self.coordinator.process(internal_request, handler, context=context)

        return self._convert_response(result.response)

    def _convert_request(self, request: StarletteRequest) -> Request:
        """Convert Starlette request to internal Request format.

        The body is not read: the idempotency layer only needs the method,
        path and headers, and the downstream app must still be able to
        consume the body stream.
        """
        return Request(
            method=request.method,
            path=request.url.path,
            headers=dict(request.headers.items()),
        )

    async def _collect_response(self, response: Response) -> HandlerResponse:
        """Drain a downstream response into ordered body chunks."""
        chunks: list[bytes] = []
        if hasattr(response, "body_iterator"):
            async for chunk in response.body_iterator:
                if isinstance(chunk, str):
                    chunks.append(chunk.encode(response.charset))
                else:
                    chunks.append(bytes(chunk))
        else:
            chunks.append(bytes(response.body))

        # Headers are a plain mapping: a repeated header such as Set-Cookie
        # keeps only its first value, on the live response as well as on replay
        return HandlerResponse(
            status=response.status_code,
            headers=dict(response.headers),
            body_chunks=chunks,
        )

    def _convert_response(self, response: HandlerResponse) -> Response:
        """Convert internal HandlerResponse to Starlette Response."""
        return Response(
            content=response.body,
            status_code=response.status,
            headers=response.headers,
        )
