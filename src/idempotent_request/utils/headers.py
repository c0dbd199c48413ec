"""Header manipulation utilities for the idempotent request layer."""


def get_header_value(
    headers: dict[str, str],
    header_name: str,
    default: str | None = None,
) -> str | None:
    """Get header value with case-insensitive lookup.

    Args:
        headers: Headers dictionary
        header_name: Name of header to find (case-insensitive)
        default: Default value if header not found

    Returns:
        Header value or default

    Example:
        >>> headers = {"Content-Type": "application/json"}
        >>> get_header_value(headers, "content-type")
        'application/json'
        >>> get_header_value(headers, "missing", "default")
        'default'
    """
    header_name_lower = header_name.lower()

    for key, value in headers.items():
        if key.lower() == header_name_lower:
            return value

    return default


def add_replay_header(headers: dict[str, str], header_name: str) -> dict[str, str]:
    """Return a copy of ``headers`` marked as a replayed response.

    Any existing header with the same name (in any case) is replaced.

    Args:
        headers: Cached response headers
        header_name: Name of the replay indicator header

    Returns:
        New headers dictionary with ``header_name: true`` added

    Example:
        >>> add_replay_header({"Content-Type": "application/json"}, "Idempotency-Replayed")
        {'Content-Type': 'application/json', 'Idempotency-Replayed': 'true'}
    """
    # Create new dict to avoid mutating the cached headers
    header_name_lower = header_name.lower()
    result = {key: value for key, value in headers.items() if key.lower() != header_name_lower}
    result[header_name] = "true"
    return result
