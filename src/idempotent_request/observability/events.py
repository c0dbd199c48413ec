"""Instrumentation events emitted by the coordinator.

After every request that goes through the idempotency protocol the
coordinator hands a ``RequestEvent`` to its observer. The default observer
does nothing; ``MetricsObserver`` feeds the Prometheus metrics. Any object
with a ``notify(event)`` method can be injected instead.

Examples:
    Forwarding events to an audit log::

        class AuditObserver:
            def notify(self, event: RequestEvent) -> None:
                audit.write(event.key, event.outcome.value)

        coordinator = IdempotencyCoordinator(config, storage, observer=AuditObserver())
"""

from typing import Protocol, runtime_checkable

from idempotent_request.models import Outcome, ProcessingContext, Request
from idempotent_request.observability.metrics import record_execution_time, record_request


class RequestEvent:
    """A processed request, its key and how it was handled.

    Attributes:
        request: The request that was processed.
        key: The idempotency key.
        outcome: How the request was handled.
        context: The full processing context, including diagnostics.
        status: Status code of the response returned.
    """

    def __init__(
        self,
        request: Request,
        key: str,
        outcome: Outcome,
        context: ProcessingContext,
        status: int,
    ) -> None:
        self.request = request
        self.key = key
        self.outcome = outcome
        self.context = context
        self.status = status

    def __repr__(self) -> str:
        return f"RequestEvent(key={self.key!r}, outcome={self.outcome.value}, status={self.status})"


@runtime_checkable
class RequestObserver(Protocol):
    """Receives one event per processed request."""

    def notify(self, event: RequestEvent) -> None: ...


class NullObserver:
    """Observer that ignores every event."""

    def notify(self, event: RequestEvent) -> None:
        return None


class MetricsObserver:
    """Observer recording Prometheus metrics for each event."""

    def notify(self, event: RequestEvent) -> None:
        record_request(event.outcome.value, event.status)

        execution_time = event.context.diagnostics.get("execution_time")
        if execution_time is not None:
            record_execution_time(execution_time)
