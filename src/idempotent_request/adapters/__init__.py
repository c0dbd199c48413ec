"""Framework adapters for the idempotent request layer.

This package provides adapters that integrate the framework-agnostic
coordinator with specific web frameworks:

- asgi.py: ASGI middleware for FastAPI, Starlette, etc.

The adapters handle the conversion between framework-specific request/response
objects and the layer's internal representation.
"""

from idempotent_request.adapters.asgi import ASGIIdempotencyMiddleware

__all__ = ["ASGIIdempotencyMiddleware"]
