"""Route-based eligibility policy.

A policy decides whether a request takes part in idempotency handling and
how long its lock and cached response live. The bundled ``RoutePolicy``
matches the request path and method against an ordered list of route rules:

- methods must be equal
- paths are compared after stripping one trailing slash from both sides
- a ``*`` in a pattern matches any run of characters except ``/``
- the first matching rule wins

Examples:
    >>> from idempotent_request.models import Request, RouteRule
    >>> policy = RoutePolicy(
    ...     [
    ...         RouteRule(path="/api/v1/test/*", http_method="POST", expire_time=180),
    ...         RouteRule(path="/admin/v2/store/orders", http_method="POST"),
    ...     ],
    ...     expire_time=600,
    ... )
    >>> policy.should(Request("POST", "/api/v1/test/123"))
    True
    >>> policy.should(Request("GET", "/api/v1/test/123"))
    False
    >>> policy.expire_time_for(Request("POST", "/api/v1/test/123"))
    180
    >>> policy.expire_time_for(Request("POST", "/admin/v2/store/orders/"))
    600
"""

import re
from typing import Protocol, runtime_checkable

from idempotent_request.config import IdempotencyConfig
from idempotent_request.models import Request, RouteRule

# TTL used when neither the matched route nor the configuration sets one
DEFAULT_EXPIRE_TIME = 3600


@runtime_checkable
class Policy(Protocol):
    """Capability interface for eligibility policies.

    Any object exposing these two methods can replace ``RoutePolicy``.
    """

    def should(self, request: Request) -> bool:
        """Return True if the request must be handled idempotently."""
        ...

    def expire_time_for(self, request: Request) -> int:
        """Return the TTL in seconds applied to the request's lock and cache entry."""
        ...


def _strip_trailing_slash(path: str) -> str:
    return path[:-1] if path.endswith("/") else path


def compile_pattern(pattern: str) -> re.Pattern[str] | None:
    """Compile a route pattern containing ``*`` into an anchored regex.

    Args:
        pattern: Normalized route pattern.

    Returns:
        The compiled matcher, or None for literal patterns.

    Examples:
        >>> compile_pattern("/orders/*/items").fullmatch("/orders/42/items") is not None
        True
        >>> compile_pattern("/orders") is None
        True
    """
    if "*" not in pattern:
        return None
    # re.escape turns '*' into '\*'; each one becomes a single-segment wildcard
    return re.compile("^" + re.escape(pattern).replace(r"\*", "[^/]*") + "$")


class _CompiledRule:
    def __init__(self, rule: RouteRule) -> None:
        self.rule = rule
        self.pattern = _strip_trailing_slash(rule.path)
        self.regex = compile_pattern(self.pattern)

    def matches(self, method: str, path: str) -> bool:
        if self.rule.http_method != method:
            return False
        if self.regex is None:
            return self.pattern == path
        return self.regex.fullmatch(path) is not None


class RoutePolicy:
    """Policy matching requests against ordered route rules.

    Patterns are compiled once at construction so matching a request costs
    one regex match per wildcard rule at most.

    Attributes:
        routes: The configured route rules, in evaluation order.
        expire_time: Default TTL for matched routes without their own value.
    """

    def __init__(self, routes: list[RouteRule], expire_time: int | None = None) -> None:
        self.routes = list(routes)
        self.expire_time = expire_time
        self._compiled = [_CompiledRule(rule) for rule in self.routes]

    @classmethod
    def from_config(cls, config: IdempotencyConfig) -> "RoutePolicy":
        """Build a policy from the configured routes and default TTL."""
        return cls(config.routes, expire_time=config.expire_time)

    def match(self, request: Request) -> RouteRule | None:
        """Return the first rule matching the request, or None."""
        path = _strip_trailing_slash(request.path)
        for compiled in self._compiled:
            if compiled.matches(request.method, path):
                return compiled.rule
        return None

    def should(self, request: Request) -> bool:
        return self.match(request) is not None

    def expire_time_for(self, request: Request) -> int:
        """Resolve the TTL for a request.

        The matched rule's ``expire_time`` wins, then the policy default, then
        ``DEFAULT_EXPIRE_TIME``. Unmatched requests get the default.
        """
        rule = self.match(request)
        if rule is not None and rule.expire_time is not None:
            return rule.expire_time
        if self.expire_time is not None:
            return self.expire_time
        return DEFAULT_EXPIRE_TIME
