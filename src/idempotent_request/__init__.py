"""
Idempotent request handling for Python web applications.

This package intercepts requests carrying a client-supplied idempotency key,
allows at most one concurrent execution of the handler per key, caches the
first successful response and replays it to later requests with the same key.
"""

from idempotent_request.config import IdempotencyConfig
from idempotent_request.core.coordinator import IdempotencyCoordinator
from idempotent_request.core.policy import RoutePolicy
from idempotent_request.models import HandlerResponse, Outcome, Request, RouteRule

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "HandlerResponse",
    "IdempotencyConfig",
    "IdempotencyCoordinator",
    "Outcome",
    "Request",
    "RoutePolicy",
    "RouteRule",
]
