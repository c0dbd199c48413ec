"""Custom exceptions for the idempotent request layer.

This module defines the exception hierarchy used throughout the package to
signal configuration problems, storage backend failures and corrupted cache
payloads.

Examples:
    Handling a storage error::

        from idempotent_request.exceptions import StorageError

        try:
            payload = await storage.read(key)
        except StorageError as e:
            logger.warning("storage.read_failed", error=str(e))
            # Treat as a cache miss
            payload = None

    Failing fast on bad configuration::

        from idempotent_request.config import IdempotencyConfig
        from idempotent_request.exceptions import ConfigError

        try:
            config = IdempotencyConfig.from_dict(raw)
        except ConfigError as e:
            sys.exit(f"invalid idempotency config: {e}")
"""

from typing import Any


class IdempotencyError(Exception):
    """Base exception for all idempotency-related errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class ConfigError(IdempotencyError):
    """Configuration is malformed or incomplete.

    Raised by the configuration loaders when route rules or options fail
    validation. It is meant to surface at application startup, never while
    serving a request.

    Attributes:
        message: Human-readable error description.
        errors: Individual validation problems, as reported by pydantic.

    Examples:
        >>> try:
        ...     IdempotencyConfig.from_dict({"routes": [{"path": "/x"}]})
        ... except ConfigError as e:
        ...     print(e.errors[0]["loc"])
        ('routes', 0, 'http_method')
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        """Initialize the config error with details.

        Args:
            message: Human-readable error description.
            errors: Individual validation problems.
        """
        super().__init__(message)
        self.errors = errors or []


class StorageError(IdempotencyError):
    """Storage backend operation failed.

    This exception is raised when the backend cannot complete an operation,
    typically because it is unreachable (connection refused, timeouts). It is
    distinct from a failed lock acquisition: ``lock()`` returning False means
    another request holds the key, while ``StorageError`` means nobody can
    tell.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception that caused the storage error.
        operation: The storage operation that failed (lock, unlock, read, write).

    Examples:
        Raising a storage error::

            try:
                await redis.get(key)
            except RedisError as e:
                raise StorageError(
                    message=f"Failed to read key from Redis: {e}",
                    cause=e,
                    operation="read",
                ) from e
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        operation: str | None = None,
    ) -> None:
        """Initialize the storage error with details.

        Args:
            message: Human-readable error description.
            cause: The underlying exception that caused the storage error.
            operation: Name of the storage operation that failed.
        """
        super().__init__(message)
        self.cause = cause
        self.operation = operation


class SerializationError(IdempotencyError):
    """A cached payload could not be decoded.

    Raised when bytes read back from storage are not a valid cached response
    record. Callers treat it as a cache miss.

    Attributes:
        message: Human-readable error description.
        cause: The underlying decoding or validation error.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause
