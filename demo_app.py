"""Demo FastAPI application with the idempotency middleware.

Run with: python demo_app.py
Then repeat a request with the same key, e.g.:

    curl -X POST localhost:8000/api/payments -H 'Idempotency-Key: k1' \\
        -H 'Content-Type: application/json' -d '{"amount": 100}'

The second call returns the first response with ``Idempotency-Replayed: true``.
Set IDEMPOTENCY_STORAGE_ADAPTER=redis to share keys between workers.
"""

import asyncio
import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Optional
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request
from prometheus_client import make_asgi_app
from pydantic import BaseModel

from idempotent_request.adapters.asgi import ASGIIdempotencyMiddleware
from idempotent_request.config import IdempotencyConfig
from idempotent_request.observability import MetricsObserver, configure_logging
from idempotent_request.storage import RedisStorageAdapter, create_storage

DEMO_ROUTES = [
    {"path": "/api/payments", "http_method": "POST", "expire_time": 86400},
    {"path": "/api/orders", "http_method": "POST"},
    {"path": "/api/orders/*", "http_method": "PUT"},
    {"path": "/api/orders/*/cancel", "http_method": "POST", "expire_time": 600},
]

configure_logging(level=os.environ.get("LOG_LEVEL", "INFO"), json_output=False)

# Environment variables override the demo defaults
config = IdempotencyConfig.from_env()
if not config.routes:
    config = config.model_copy(update={"routes": IdempotencyConfig(routes=DEMO_ROUTES).routes})

storage = create_storage(config)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    if isinstance(storage, RedisStorageAdapter):
        await storage.close()


app = FastAPI(
    title="Idempotent Request Demo",
    description="Demo API showing idempotent request handling",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    ASGIIdempotencyMiddleware,
    storage=storage,
    config=config,
    observer=MetricsObserver(),
)
app.mount("/metrics", make_asgi_app())


class PaymentRequest(BaseModel):
    amount: int
    currency: str = "USD"
    description: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    status: str
    amount: int
    currency: str
    created_at: str
    idempotency_key: Optional[str] = None


class OrderRequest(BaseModel):
    product_id: str
    quantity: int
    customer_email: str


class OrderResponse(BaseModel):
    order_id: str
    status: str
    product_id: str
    quantity: int
    total: float
    created_at: str


@app.get("/")
async def root():
    """Root endpoint - returns API info."""
    return {
        "name": "Idempotent Request Demo",
        "version": "0.1.0",
        "routes": [f"{rule.http_method} {rule.path}" for rule in config.routes],
        "usage": f"Send a '{config.header_key}' header to make a request idempotent",
    }


@app.post("/api/payments", response_model=PaymentResponse, status_code=201)
async def create_payment(payment: PaymentRequest, request: Request):
    """Create a payment.

    Repeated requests with the same Idempotency-Key return the stored response
    without charging again.
    """
    # Slow enough to trigger a 429 with two quick curls
    await asyncio.sleep(1.0)

    context = request.state.idempotent_request
    return PaymentResponse(
        id=f"pay_{uuid4().hex[:12]}",
        status="success",
        amount=payment.amount,
        currency=payment.currency,
        created_at=datetime.now(UTC).isoformat(),
        idempotency_key=context.key,
    )


@app.post("/api/orders", response_model=OrderResponse, status_code=201)
async def create_order(order: OrderRequest):
    await asyncio.sleep(0.1)

    return OrderResponse(
        order_id=f"ord_{uuid4().hex[:12]}",
        status="confirmed",
        product_id=order.product_id,
        quantity=order.quantity,
        total=order.quantity * 99.99,
        created_at=datetime.now(UTC).isoformat(),
    )


@app.put("/api/orders/{order_id}")
async def update_order(order_id: str, order: OrderRequest):
    return {
        "order_id": order_id,
        "status": "updated",
        "product_id": order.product_id,
        "quantity": order.quantity,
        "updated_at": datetime.now(UTC).isoformat(),
    }


@app.post("/api/orders/{order_id}/cancel")
async def cancel_order(order_id: str):
    return {
        "order_id": order_id,
        "status": "cancelled",
        "cancelled_at": datetime.now(UTC).isoformat(),
    }


if __name__ == "__main__":
    print("=" * 60)
    print("Idempotent Request Demo Server")
    print("=" * 60)
    print(f"\nStorage: {config.storage_adapter}")
    print("Starting server at http://localhost:8000")
    print("Metrics at http://localhost:8000/metrics")
    print("\nPress Ctrl+C to stop")
    print("=" * 60)
    print()

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
