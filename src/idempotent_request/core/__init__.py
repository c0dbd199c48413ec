"""Core logic of the idempotent request layer.

This package contains the framework-agnostic protocol:
- Policy: Route-based eligibility and TTL resolution
- Request manager: Per-key READ / LOCK / WRITE / UNLOCK against storage
- Replay: Response reconstruction and synthesized rejections
- Coordinator: Orchestration around the downstream handler

The core logic can be wrapped by adapters for different web frameworks.
"""

from idempotent_request.core.coordinator import IdempotencyCoordinator
from idempotent_request.core.policy import DEFAULT_EXPIRE_TIME, Policy, RoutePolicy
from idempotent_request.core.replay import concurrent_response, replay_response
from idempotent_request.core.request_manager import LockResult, RequestManager

__all__ = [
    "DEFAULT_EXPIRE_TIME",
    "IdempotencyCoordinator",
    "LockResult",
    "Policy",
    "RequestManager",
    "RoutePolicy",
    "concurrent_response",
    "replay_response",
]
