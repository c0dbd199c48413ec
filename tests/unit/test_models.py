"""Unit tests for core models.

Covers RouteRule validation, CachedResponse serialization and the plain
request/response containers.
"""

import base64
import json

import pytest
from pydantic import ValidationError

from idempotent_request.exceptions import SerializationError
from idempotent_request.models import (
    CachedResponse,
    HandlerResponse,
    Outcome,
    ProcessingContext,
    Request,
    RouteRule,
)


class TestRouteRule:
    """Tests for RouteRule validation."""

    def test_valid_rule(self) -> None:
        rule = RouteRule(path="/api/v1/test/*", http_method="POST", expire_time=180)
        assert rule.path == "/api/v1/test/*"
        assert rule.http_method == "POST"
        assert rule.expire_time == 180

    def test_method_normalized_to_uppercase(self) -> None:
        assert RouteRule(path="/x", http_method=" patch ").http_method == "PATCH"

    def test_expire_time_optional(self) -> None:
        assert RouteRule(path="/x", http_method="POST").expire_time is None

    def test_invalid_method_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RouteRule(path="/x", http_method="FETCH")
        assert "Invalid HTTP method: FETCH" in str(exc_info.value)

    @pytest.mark.parametrize("path", ["", "api/v1", "*"])
    def test_relative_path_rejected(self, path: str) -> None:
        with pytest.raises(ValidationError):
            RouteRule(path=path, http_method="POST")

    @pytest.mark.parametrize("ttl", [0, -5, 604801])
    def test_expire_time_out_of_range(self, ttl: int) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RouteRule(path="/x", http_method="POST", expire_time=ttl)
        assert "expire_time must be between 1 and 604800" in str(exc_info.value)

    def test_missing_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RouteRule(path="/x")  # type: ignore[call-arg]

    def test_rule_is_frozen(self) -> None:
        rule = RouteRule(path="/x", http_method="POST")
        with pytest.raises(ValidationError):
            rule.path = "/y"  # type: ignore[misc]


class TestCachedResponse:
    """Tests for CachedResponse encoding and payload format."""

    def test_from_handler_response_preserves_chunks(self) -> None:
        response = HandlerResponse(
            status=201,
            headers={"content-type": "application/json", "x-request-id": "abc"},
            body_chunks=[b'{"id":', b'"pay_1"}'],
        )

        cached = CachedResponse.from_handler_response(response)

        assert cached.status == 201
        assert cached.headers == {"content-type": "application/json", "x-request-id": "abc"}
        assert cached.body_chunks() == [b'{"id":', b'"pay_1"}']

    def test_payload_shape(self) -> None:
        cached = CachedResponse(
            status=200,
            headers={"content-type": "text/plain"},
            response=[base64.b64encode(b"body").decode("ascii")],
        )

        data = json.loads(cached.to_payload())

        assert data == {
            "status": 200,
            "headers": {"content-type": "text/plain"},
            "response": ["Ym9keQ=="],
        }

    def test_payload_round_trip_binary_chunks(self) -> None:
        chunks = [b"\x00\xff\xfe", b"", "héllo".encode("utf-8")]
        response = HandlerResponse(status=226, headers={"a": "b"}, body_chunks=chunks)

        restored = CachedResponse.from_payload(
            CachedResponse.from_handler_response(response).to_payload()
        )

        assert restored.status == 226
        assert restored.headers == {"a": "b"}
        assert restored.body_chunks() == chunks

    def test_from_payload_accepts_text(self) -> None:
        payload = '{"status": 200, "headers": {}, "response": []}'
        assert CachedResponse.from_payload(payload).status == 200

    @pytest.mark.parametrize(
        "payload",
        [
            b"not json",
            b"{}",
            b'{"status": "abc", "headers": {}, "response": []}',
            b'{"status": 200, "headers": {}, "response": ["!!!not-base64"]}',
            b'{"status": 999, "headers": {}, "response": []}',
            b"\xff\xfe",
        ],
    )
    def test_from_payload_invalid(self, payload: bytes) -> None:
        with pytest.raises(SerializationError) as exc_info:
            CachedResponse.from_payload(payload)
        assert exc_info.value.cause is not None

    def test_invalid_base64_rejected_on_construction(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            CachedResponse(status=200, response=["not valid base64!!"])
        assert "Invalid base64 encoding" in str(exc_info.value)


class TestRequest:
    def test_header_lookup_is_case_insensitive(self) -> None:
        request = Request("POST", "/x", headers={"Idempotency-Key": "abc"})

        assert request.header("idempotency-key") == "abc"
        assert request.header("IDEMPOTENCY-KEY") == "abc"
        assert request.header("missing") is None
        assert request.header("missing", "fallback") == "fallback"

    def test_defaults(self) -> None:
        request = Request("POST", "/x")
        assert request.headers == {}
        assert request.body == b""


class TestHandlerResponse:
    def test_body_joins_chunks(self) -> None:
        response = HandlerResponse(status=200, body_chunks=[b"ab", b"", b"cd"])
        assert response.body == b"abcd"

    def test_defaults(self) -> None:
        response = HandlerResponse(status=204)
        assert response.headers == {}
        assert response.body_chunks == []
        assert response.body == b""


class TestProcessingContext:
    def test_new_context_is_empty(self) -> None:
        context = ProcessingContext("key-1")

        assert context.key == "key-1"
        assert context.outcome is None
        assert context.expire_time is None
        assert context.diagnostics == {}

    def test_outcome_values(self) -> None:
        assert Outcome.REPLAYED.value == "replayed"
        assert Outcome("concurrent") is Outcome.CONCURRENT
