"""Response replay and synthesized rejection responses.

This module rebuilds HTTP responses from cached records and builds the two
responses the idempotency layer answers on its own:

- the concurrent-request rejection, returned when another request with the
  same key holds the lock
- the unavailable rejection, returned under the fail-closed policy when the
  lock cannot be taken because storage is down

Every other response comes from the wrapped handler untouched.

Examples:
    >>> cached = CachedResponse(status=201, headers={"content-type": "application/json"},
    ...                         response=["eyJpZCI6IDF9"])
    >>> response = replay_response(cached, "Idempotency-Replayed")
    >>> response.headers["Idempotency-Replayed"]
    'true'
    >>> response.body
    b'{"id": 1}'

    >>> concurrent_response(429).body
    b'{"error":{"type":"TooManyRequests","message":"Concurrent requests detected","code":"too_many_requests"}}'
"""

import json

from idempotent_request.models import CachedResponse, HandlerResponse
from idempotent_request.utils.headers import add_replay_header

JSON_CONTENT_TYPE = "application/json"


def replay_response(cached: CachedResponse, header_name: str) -> HandlerResponse:
    """Reconstruct an HTTP response from a cached record.

    Status, headers and body chunks are returned exactly as stored, with the
    replay indicator header added.

    Args:
        cached: The cached response record
        header_name: Name of the replay indicator header

    Returns:
        HandlerResponse with the cached status, headers and body chunks
    """
    return HandlerResponse(
        status=cached.status,
        headers=add_replay_header(cached.headers, header_name),
        body_chunks=cached.body_chunks(),
    )


def error_response(status: int, error_type: str, message: str, code: str) -> HandlerResponse:
    """Build a JSON error response with the layer's error envelope."""
    body = json.dumps(
        {"error": {"type": error_type, "message": message, "code": code}},
        separators=(",", ":"),
    ).encode("utf-8")
    return HandlerResponse(
        status=status,
        headers={"Content-Type": JSON_CONTENT_TYPE},
        body_chunks=[body],
    )


def concurrent_response(status: int = 429) -> HandlerResponse:
    """Response for a request whose key is locked by another request."""
    return error_response(
        status,
        error_type="TooManyRequests",
        message="Concurrent requests detected",
        code="too_many_requests",
    )


def unavailable_response() -> HandlerResponse:
    """Response for a request denied because the lock could not be taken."""
    return error_response(
        503,
        error_type="ServiceUnavailable",
        message="Idempotency storage unavailable",
        code="service_unavailable",
    )
