"""Observability utilities for the idempotent request layer.

This package provides monitoring and debugging capabilities:
- Structured logging with contextual information
- Prometheus metrics for performance and behavior tracking
- Instrumentation events with pluggable observers
"""

from idempotent_request.observability.events import (
    MetricsObserver,
    NullObserver,
    RequestEvent,
    RequestObserver,
)
from idempotent_request.observability.logging import configure_logging, get_logger
from idempotent_request.observability.metrics import (
    record_execution_time,
    record_request,
    record_storage_error,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "record_request",
    "record_execution_time",
    "record_storage_error",
    "RequestEvent",
    "RequestObserver",
    "NullObserver",
    "MetricsObserver",
]
