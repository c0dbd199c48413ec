"""Utility modules for the idempotent request layer."""

from .headers import add_replay_header, get_header_value

__all__ = [
    "add_replay_header",
    "get_header_value",
]
