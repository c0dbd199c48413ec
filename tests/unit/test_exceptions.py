"""Unit tests for custom exceptions.

Tests in this module verify that the exception hierarchy is correctly
defined and that exceptions carry the expected information.
"""

import pytest

from idempotent_request.exceptions import (
    ConfigError,
    IdempotencyError,
    SerializationError,
    StorageError,
)


class TestIdempotencyError:
    """Test suite for the base IdempotencyError exception."""

    def test_idempotency_error_creation(self):
        error = IdempotencyError("Test error message")
        assert str(error) == "Test error message"
        assert error.message == "Test error message"

    def test_idempotency_error_can_be_raised(self):
        with pytest.raises(IdempotencyError) as exc_info:
            raise IdempotencyError("Test error")
        assert str(exc_info.value) == "Test error"


class TestConfigError:
    def test_config_error_defaults_to_no_details(self):
        error = ConfigError("bad config")
        assert error.message == "bad config"
        assert error.errors == []

    def test_config_error_keeps_details(self):
        details = [{"loc": ("routes", 0, "path"), "msg": "Field required"}]
        error = ConfigError("bad config", errors=details)
        assert error.errors == details
        assert isinstance(error, IdempotencyError)


class TestStorageError:
    """Test suite for the StorageError exception."""

    def test_storage_error_with_cause(self):
        cause = ConnectionError("Connection refused")
        error = StorageError("Redis unavailable", cause=cause, operation="lock")

        assert error.message == "Redis unavailable"
        assert error.cause is cause
        assert error.operation == "lock"

    def test_storage_error_without_cause(self):
        error = StorageError("Storage failed")
        assert error.cause is None
        assert error.operation is None

    def test_storage_error_inherits_from_idempotency_error(self):
        assert isinstance(StorageError("x"), IdempotencyError)

    def test_storage_error_chaining(self):
        original = ConnectionError("Network down")
        with pytest.raises(StorageError) as exc_info:
            try:
                raise original
            except ConnectionError as e:
                raise StorageError("Storage unavailable", cause=e) from e

        assert exc_info.value.__cause__ is original


class TestSerializationError:
    def test_serialization_error(self):
        cause = ValueError("bad json")
        error = SerializationError("cannot decode", cause=cause)

        assert error.message == "cannot decode"
        assert error.cause is cause
        assert isinstance(error, IdempotencyError)


def test_exceptions_can_be_caught_as_base():
    for error in (
        ConfigError("a"),
        StorageError("b"),
        SerializationError("c"),
    ):
        with pytest.raises(IdempotencyError):
            raise error
