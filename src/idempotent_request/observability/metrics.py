"""Prometheus metrics for the idempotent request layer.

Metrics:

- ``idempotency_requests_total{outcome, status_code}``: processed requests
  by outcome (replayed, executed, concurrent, unprotected, unavailable)
- ``idempotency_execution_seconds``: handler duration for executed requests
- ``idempotency_storage_errors_total{operation}``: storage failures by
  operation (lock, unlock, read, write)

Examples:
    >>> record_request("replayed", 201)
    >>> record_execution_time(0.150)
    >>> record_storage_error("read")
"""

from prometheus_client import Counter, Histogram

# Labels: outcome, status_code
requests_total = Counter(
    "idempotency_requests_total",
    "Total number of requests processed by the idempotency layer",
    ["outcome", "status_code"],
)

# Only tracks handler executions, not replays or rejections
execution_seconds = Histogram(
    "idempotency_execution_seconds",
    "Handler execution time in seconds for idempotent requests",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

storage_errors_total = Counter(
    "idempotency_storage_errors_total",
    "Total number of failed storage operations",
    ["operation"],
)


def record_request(outcome: str, status_code: int) -> None:
    """Record a processed request.

    Args:
        outcome: How the request was handled
        status_code: HTTP status code of the response
    """
    requests_total.labels(outcome=outcome, status_code=str(status_code)).inc()


def record_execution_time(seconds: float) -> None:
    """Record handler execution time in seconds."""
    execution_seconds.observe(seconds)


def record_storage_error(operation: str) -> None:
    storage_errors_total.labels(operation=operation).inc()
