"""Core type definitions for the idempotent request layer.

This module provides the data structures shared by the policy, the request
manager and the coordinator:

- ``Request`` / ``HandlerResponse``: framework-neutral request and response
  containers that adapters convert to and from.
- ``RouteRule``: one configured eligibility rule (path pattern + method + TTL).
- ``CachedResponse``: the persisted record replayed for repeated keys.
- ``Outcome`` / ``ProcessingContext`` / ``CoordinationResult``: per-request
  bookkeeping returned alongside the response.

Examples:
    Caching a handler response::

        from idempotent_request.models import CachedResponse, HandlerResponse

        response = HandlerResponse(
            status=201,
            headers={"content-type": "application/json"},
            body_chunks=[b'{"id": ', b'"pay_123"}'],
        )
        payload = CachedResponse.from_handler_response(response).to_payload()

        restored = CachedResponse.from_payload(payload)
        assert restored.body_chunks() == [b'{"id": ', b'"pay_123"}']
"""

import base64
import binascii
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from idempotent_request.exceptions import SerializationError
from idempotent_request.utils.headers import get_header_value

# Valid HTTP methods for route rules
VALID_HTTP_METHODS = {
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "DELETE",
    "CONNECT",
    "OPTIONS",
    "TRACE",
    "PATCH",
}

# Upper bound for any TTL, in seconds (7 days)
MAX_EXPIRE_TIME = 604800


class Request:
    """Framework-neutral request representation.

    Adapters convert their framework-specific request objects into this
    format. Only the pieces the idempotency layer needs are kept.

    Attributes:
        method: HTTP method (GET, POST, etc.)
        path: URL path
        headers: Request headers as dict
        body: Request body as bytes
    """

    def __init__(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str] | None = None,
        body: bytes = b"",
    ) -> None:
        self.method = method
        self.path = path
        self.headers = dict(headers or {})
        self.body = body

    def header(self, name: str, default: str | None = None) -> str | None:
        """Return a header value using case-insensitive lookup.

        Args:
            name: Header name.
            default: Value returned when the header is missing.

        Returns:
            The header value, or ``default``.
        """
        return get_header_value(self.headers, name, default)

    def __repr__(self) -> str:
        return f"Request(method={self.method!r}, path={self.path!r})"


class HandlerResponse:
    """An HTTP response produced by the downstream handler or by replay.

    The body is kept as the ordered sequence of chunks the handler emitted so
    that a replay reproduces it exactly.

    Attributes:
        status: HTTP status code (e.g., 200, 404, 500)
        headers: Response headers as key-value pairs
        body_chunks: Ordered response body chunks
    """

    def __init__(
        self,
        status: int,
        headers: dict[str, str] | None = None,
        body_chunks: list[bytes] | None = None,
    ) -> None:
        self.status = status
        self.headers = headers if headers is not None else {}
        self.body_chunks = body_chunks if body_chunks is not None else []

    @property
    def body(self) -> bytes:
        """The full response body."""
        return b"".join(self.body_chunks)

    def __repr__(self) -> str:
        return f"HandlerResponse(status={self.status}, chunks={len(self.body_chunks)})"


class RouteRule(BaseModel):
    """A route eligible for idempotency handling.

    Rules are evaluated in configuration order and the first match wins.

    Attributes:
        path: Literal path or pattern where ``*`` matches one path segment
            (any run of characters except ``/``).
        http_method: HTTP method the rule applies to; normalized to upper case.
        expire_time: Optional TTL in seconds for locks and cached responses
            of matching requests. Falls back to the configured default.

    Examples:
        >>> rule = RouteRule(path="/api/v1/test/*", http_method="post", expire_time=180)
        >>> rule.http_method
        'POST'
    """

    path: str = Field(
        ...,
        description="Literal path or single-segment wildcard pattern",
        examples=["/api/v1/payments", "/api/v1/orders/*/refunds"],
    )
    http_method: str = Field(
        ...,
        description="HTTP method the rule applies to",
        examples=["POST", "PUT"],
    )
    expire_time: int | None = Field(
        default=None,
        description="TTL in seconds for matching requests (1-604800)",
        examples=[180, 3600],
    )

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Validate that the path is an absolute URL path.

        Raises:
            ValueError: If the path is empty or does not start with '/'.
        """
        if not v or not v.startswith("/"):
            raise ValueError(f"route path must start with '/', got {v!r}")
        return v

    @field_validator("http_method")
    @classmethod
    def validate_http_method(cls, v: str) -> str:
        """Normalize the method to upper case and check it is a known HTTP method.

        Raises:
            ValueError: If the method is not a valid HTTP method.
        """
        method = v.strip().upper()
        if method not in VALID_HTTP_METHODS:
            raise ValueError(
                f"Invalid HTTP method: {v}. "
                f"Valid methods are: {', '.join(sorted(VALID_HTTP_METHODS))}"
            )
        return method

    @field_validator("expire_time")
    @classmethod
    def validate_expire_time(cls, v: int | None) -> int | None:
        if v is not None and not (1 <= v <= MAX_EXPIRE_TIME):
            raise ValueError(
                f"expire_time must be between 1 and {MAX_EXPIRE_TIME} (7 days), got {v}"
            )
        return v


class CachedResponse(BaseModel):
    """A cached HTTP response that is replayed for repeated idempotency keys.

    Body chunks are base64-encoded to safely handle binary content and keep a
    stable JSON record across storage backends. The persisted shape is::

        {"status": 201, "headers": {...}, "response": ["<b64 chunk>", ...]}

    Attributes:
        status: HTTP status code.
        headers: HTTP response headers as key-value pairs.
        response: Base64-encoded body chunks, in order.
    """

    status: int = Field(
        ...,
        description="HTTP status code",
        ge=100,
        le=599,
        examples=[200, 201],
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="HTTP response headers",
        examples=[{"content-type": "application/json"}],
    )
    response: list[str] = Field(
        default_factory=list,
        description="Base64-encoded response body chunks",
        examples=[["eyJyZXN1bHQiOiAic3VjY2VzcyJ9"]],
    )

    @field_validator("response")
    @classmethod
    def validate_base64(cls, v: list[str]) -> list[str]:
        """Validate that every chunk is properly base64-encoded.

        Raises:
            ValueError: If a chunk is not valid base64.
        """
        for chunk in v:
            try:
                base64.b64decode(chunk, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError(f"Invalid base64 encoding: {e}") from e
        return v

    @classmethod
    def from_handler_response(cls, response: HandlerResponse) -> "CachedResponse":
        """Build a cacheable record from a handler response."""
        return cls(
            status=response.status,
            headers=dict(response.headers),
            response=[base64.b64encode(chunk).decode("ascii") for chunk in response.body_chunks],
        )

    def body_chunks(self) -> list[bytes]:
        """Decode and return the response body chunks.

        Examples:
            >>> CachedResponse(status=200, response=["SGVsbG8="]).body_chunks()
            [b'Hello']
        """
        return [base64.b64decode(chunk) for chunk in self.response]

    def to_payload(self) -> bytes:
        """Serialize the record for storage."""
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def from_payload(cls, payload: bytes | str) -> "CachedResponse":
        """Deserialize a record read from storage.

        Args:
            payload: Raw bytes (or text) previously produced by ``to_payload``.

        Returns:
            The decoded record.

        Raises:
            SerializationError: If the payload is not a valid record.
        """
        try:
            return cls.model_validate_json(payload)
        except ValidationError as e:
            raise SerializationError(f"Invalid cached response payload: {e}", cause=e) from e


class Outcome(str, Enum):
    """How the idempotency layer handled a request.

    Attributes:
        PASSTHROUGH: No key or no matching route; handler called directly.
        REPLAYED: A cached response was returned; handler not called.
        EXECUTED: Lock acquired and handler executed.
        CONCURRENT: Another request holds the lock; request rejected.
        UNPROTECTED: Storage unavailable while locking; handler executed
            without exclusivity (fail-open).
        UNAVAILABLE: Storage unavailable while locking; request denied
            (fail-closed).
    """

    PASSTHROUGH = "passthrough"
    REPLAYED = "replayed"
    EXECUTED = "executed"
    CONCURRENT = "concurrent"
    UNPROTECTED = "unprotected"
    UNAVAILABLE = "unavailable"


class ProcessingContext:
    """Per-request scratch data describing what the idempotency layer did.

    Created when a request enters the coordinator and returned together with
    the response. It is never persisted.

    Attributes:
        key: The idempotency key, or None if the request carried none.
        expire_time: Effective TTL for this request, once resolved.
        outcome: How the request was handled.
        diagnostics: Free-form details (``read``, ``write``, ``unlocked``,
            ``error``, ``concurrent_request_response``).
    """

    def __init__(self, key: str | None = None) -> None:
        self.key = key
        self.expire_time: int | None = None
        self.outcome: Outcome | None = None
        self.diagnostics: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"ProcessingContext(key={self.key!r}, outcome={self.outcome})"


class CoordinationResult:
    """The response to send plus the context describing how it was produced."""

    def __init__(self, response: HandlerResponse, context: ProcessingContext) -> None:
        self.response = response
        self.context = context
