"""Configuration module for the idempotent request layer.

This module provides the IdempotencyConfig class: which header carries the
idempotency key, which routes are eligible, how long locks and cached
responses live, which storage backend to use and how to answer rejected
requests.

Example:
    Basic usage with defaults:

        >>> config = IdempotencyConfig()
        >>> config.header_key
        'Idempotency-Key'
        >>> config.concurrent_response_status
        429

    Custom configuration:

        >>> config = IdempotencyConfig(
        ...     expire_time=3600,
        ...     routes=[{"path": "/api/v1/payments/*", "http_method": "POST", "expire_time": 180}],
        ...     storage_adapter="redis",
        ...     redis_url="redis://myhost:6379/0",
        ... )

    Loading from a per-environment mapping (e.g. a parsed YAML file):

        >>> raw = {
        ...     "default": {"expire_time": 3600},
        ...     "production": {"expire_time": 86400, "storage_adapter": "redis"},
        ... }
        >>> IdempotencyConfig.from_dict(raw, environment="production").expire_time
        86400
        >>> IdempotencyConfig.from_dict(raw, environment="staging").expire_time
        3600

Note:
    The same TTL bounds both the lock and the cached response of a route. A
    TTL shorter than the worst-case handler latency lets a retry acquire the
    lock while the first execution is still running, so configure route TTLs
    above the slowest expected response time.
"""

import json
import os
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from idempotent_request.exceptions import ConfigError
from idempotent_request.models import MAX_EXPIRE_TIME, RouteRule


class IdempotencyConfig(BaseModel):
    """Configuration for the idempotent request layer.

    Attributes:
        header_key: Request header carrying the idempotency key.
            Default is "Idempotency-Key". Lookup is case-insensitive.
        expire_time: Default TTL in seconds for routes without their own
            ``expire_time``. When unset a hard fallback of 3600 applies.
        concurrent_response_status: Status returned to a request rejected
            because another request with the same key is in flight.
            Must be a 4xx or 5xx code. Default is 429.
        replayed_response_header: Header added to replayed responses.
            Default is "Idempotency-Replayed".
        routes: Ordered list of eligible routes. First match wins; requests
            matching no route bypass the idempotency layer.
        storage_adapter: Storage backend, "memory" or "redis". Default "memory".
        redis_url: Connection URL for the Redis storage adapter.
        namespace: Prefix applied to every storage key.
        lock_failure_policy: What to do when the lock cannot be taken because
            storage is unavailable. "fail-open" (default) runs the handler
            without exclusivity; "fail-closed" denies the request with 503.

    Note:
        This class is immutable (frozen=True). Create a new instance if you
        need different settings.

        Unknown keys are rejected, so a misspelled option such as "rotues"
        fails at startup instead of leaving every route unprotected.

        A custom eligibility policy and a storage instance are not config
        values: pass them as ``policy=`` / ``storage=`` to
        ``ASGIIdempotencyMiddleware`` or ``IdempotencyCoordinator``.
    """

    header_key: str = Field(
        default="Idempotency-Key",
        description="Request header carrying the idempotency key",
    )
    expire_time: int | None = Field(
        default=None,
        description="Default TTL in seconds for locks and cached responses (1-604800)",
    )
    concurrent_response_status: int = Field(
        default=429,
        description="Status code for concurrent duplicate requests (400-599)",
    )
    replayed_response_header: str = Field(
        default="Idempotency-Replayed",
        description="Header added to replayed responses",
    )
    routes: list[RouteRule] = Field(
        default_factory=list,
        description="Ordered list of routes eligible for idempotency",
    )
    storage_adapter: Literal["memory", "redis"] = Field(
        default="memory",
        description="Type of storage backend",
    )
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Connection URL for Redis storage adapter",
    )
    namespace: str = Field(
        default="idempotency_keys",
        description="Prefix applied to storage keys",
    )
    lock_failure_policy: Literal["fail-open", "fail-closed"] = Field(
        default="fail-open",
        description="Behavior when storage is unavailable during lock acquisition",
    )

    model_config = {"frozen": True, "extra": "forbid"}

    @field_validator("header_key", "replayed_response_header", "namespace")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("value must not be blank")
        return v.strip()

    @field_validator("expire_time")
    @classmethod
    def validate_expire_time(cls, v: int | None) -> int | None:
        """Validate the default TTL is within acceptable range.

        Raises:
            ValueError: If TTL is not between 1 and 604800 (7 days).
        """
        if v is not None and not (1 <= v <= MAX_EXPIRE_TIME):
            raise ValueError(
                f"expire_time must be between 1 and {MAX_EXPIRE_TIME} (7 days), got {v}"
            )
        return v

    @field_validator("concurrent_response_status")
    @classmethod
    def validate_concurrent_response_status(cls, v: int) -> int:
        if not (400 <= v <= 599):
            raise ValueError(f"concurrent_response_status must be between 400 and 599, got {v}")
        return v

    @field_validator("routes", mode="before")
    @classmethod
    def validate_routes(cls, v: Any) -> Any:
        """Reject route lists that are not lists.

        Raises:
            ValueError: If routes is not a list.
        """
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("routes must be a list of route rules")
        return v

    @classmethod
    def from_dict(
        cls,
        config_dict: Mapping[str, Any],
        environment: str | None = None,
    ) -> "IdempotencyConfig":
        """Create configuration from a mapping.

        When ``environment`` is given, ``config_dict`` is treated as a mapping
        of environment names to sections: the section named ``environment``
        is used if present, otherwise the ``default`` section, otherwise an
        empty configuration.

        Args:
            config_dict: Dictionary with configuration values.
            environment: Optional environment name selecting a section.

        Returns:
            IdempotencyConfig instance populated from the dictionary.

        Raises:
            ConfigError: If the dictionary contains invalid values.
        """
        if environment is not None:
            section = config_dict.get(environment) or config_dict.get("default") or {}
        else:
            section = config_dict

        if not isinstance(section, Mapping):
            raise ConfigError(f"configuration must be a mapping, got {type(section).__name__}")

        try:
            return cls(**section)
        except ValidationError as e:
            raise ConfigError(f"Invalid idempotency configuration: {e}", errors=e.errors()) from e

    @classmethod
    def from_env(cls, prefix: str = "IDEMPOTENCY_") -> "IdempotencyConfig":
        """Create configuration from environment variables.

        Variable names are uppercase field names with the prefix. Routes are
        given as a JSON array in ``<prefix>ROUTES``.

        Args:
            prefix: Prefix for environment variable names. Default is "IDEMPOTENCY_".

        Returns:
            IdempotencyConfig instance populated from environment variables.

        Raises:
            ConfigError: If a variable cannot be parsed or fails validation.

        Example:
            >>> import os
            >>> os.environ['IDEMPOTENCY_EXPIRE_TIME'] = '600'
            >>> os.environ['IDEMPOTENCY_ROUTES'] = '[{"path": "/orders", "http_method": "POST"}]'
            >>> config = IdempotencyConfig.from_env()
            >>> config.routes[0].path
            '/orders'
        """
        config_dict: dict[str, Any] = {}

        # Map of field names to their types for proper conversion
        field_types = {
            "header_key": str,
            "expire_time": int,
            "concurrent_response_status": int,
            "replayed_response_header": str,
            "routes": list,
            "storage_adapter": str,
            "redis_url": str,
            "namespace": str,
            "lock_failure_policy": str,
        }

        for field_name, field_type in field_types.items():
            env_var = f"{prefix}{field_name.upper()}"
            env_value = os.environ.get(env_var)

            if env_value is None:
                continue

            try:
                if field_type is int:
                    config_dict[field_name] = int(env_value)
                elif field_type is list:
                    config_dict[field_name] = json.loads(env_value)
                else:
                    config_dict[field_name] = env_value
            except ValueError as e:
                raise ConfigError(f"Cannot parse {env_var}: {e}") from e

        return cls.from_dict(config_dict)
