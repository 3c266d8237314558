"""Errors surfaced by the cache inspection tools."""

from __future__ import annotations


class CacheInspectorError(Exception):
    """Base error; ``str(exc)`` is the single-line message shown to operators."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StoreConnectionError(CacheInspectorError):
    """Redis could not be reached, rejected our credentials, or answered PING oddly."""


class EnumerationError(CacheInspectorError):
    """The key scan or a per-key TTL/value lookup failed."""


__all__ = ["CacheInspectorError", "EnumerationError", "StoreConnectionError"]
