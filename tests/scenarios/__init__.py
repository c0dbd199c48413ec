"""Conformance test scenarios for idempotency middleware.

This package contains end-to-end scenario tests that verify the middleware
behaves correctly according to the specification. Each scenario tests a
specific aspect of idempotency handling.
"""
