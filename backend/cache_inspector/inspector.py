"""List the keys under a namespace prefix with their TTL and a value preview."""

from __future__ import annotations

import re
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass
from typing import Any

from redis.exceptions import RedisError, ResponseError

from .config import ConnectionConfig
from .exceptions import CacheInspectorError, EnumerationError, StoreConnectionError
from .logging_config import get_logger
from .preview import preview_value, type_marker
from .redis_client import (
    ClientFactory,
    describe_redis_error,
    is_connection_error,
    open_connection,
)
from .settings import settings

logger = get_logger(__name__)

# TTL replies: -1 the key has no expiry, -2 the key no longer exists
TTL_NO_EXPIRY = -1
TTL_MISSING = -2

_GLOB_SPECIAL_RE = re.compile(r"([\\*?\[\]])")


@dataclass(frozen=True, slots=True)
class CacheKeyReport:
    """What the inspector knows about one key; built, rendered, discarded."""

    key: str
    short_key: str
    ttl_seconds: int | None  # None: no expiration
    expired: bool = False
    value_preview: str | None = None

    @property
    def ttl_label(self) -> str:
        if self.expired:
            return "expired"
        if self.ttl_seconds is None:
            return "no expiration"
        return f"{self.ttl_seconds}s remaining"

    def to_dict(self) -> dict[str, Any]:
        if self.expired:
            ttl: int | str | None = None
        elif self.ttl_seconds is None:
            ttl = "no-expiry"
        else:
            ttl = self.ttl_seconds
        return {
            "key": self.key,
            "short_key": self.short_key,
            "ttl_seconds": ttl,
            "ttl": self.ttl_label,
            "expired": self.expired,
            "value_preview": self.value_preview,
        }


def strip_prefix(key: str, prefix: str) -> str:
    if prefix and key.startswith(prefix):
        return key[len(prefix) :]
    return key


def glob_pattern(prefix: str) -> str:
    """MATCH pattern for every key starting with ``prefix`` (glob characters escaped)."""
    return _GLOB_SPECIAL_RE.sub(r"\\\1", prefix) + "*"


def render_report(report: CacheKeyReport) -> str:
    line = f"  {report.short_key}  (TTL: {report.ttl_label})"
    if report.value_preview is not None:
        line += f"\n    -> {report.value_preview}"
    return line


def _decode_key(key: bytes | str) -> str:
    if isinstance(key, bytes):
        return key.decode("utf-8", errors="backslashreplace")
    return key


class KeyInspector:
    """
    Sequential, read-only walk over the keys of one namespace.

    Every store round-trip is awaited before the next one starts, so the report
    order only depends on the sorted key names.
    """

    def __init__(
        self,
        client: Any,
        prefix: str,
        show_values: bool = False,
        *,
        use_scan: bool = False,
        scan_count: int | None = None,
    ) -> None:
        self._client = client
        self.prefix = prefix
        self.show_values = show_values
        self.use_scan = use_scan
        self.scan_count = scan_count or settings.SCAN_COUNT
        self._raw_keys: dict[str, bytes | str] = {}

    @property
    def pattern(self) -> str:
        return glob_pattern(self.prefix)

    async def matching_keys(self) -> list[str]:
        """
        All keys under the prefix, sorted lexicographically on the full key.

        KEYS is a single blocking call on the server and is fine for the sizes
        this tool is meant for; ``use_scan`` switches to cursor-based SCAN.

        Raises:
            StoreConnectionError: the server could not be reached
            EnumerationError: the scan itself failed
        """
        try:
            if self.use_scan:
                raw_keys = [
                    key
                    async for key in self._client.scan_iter(
                        match=self.pattern, count=self.scan_count
                    )
                ]
            else:
                raw_keys = await self._client.keys(self.pattern)
        except (RedisError, OSError) as exc:
            raise self._translate(exc, "key scan", emitted=0) from exc

        # SCAN may return a key more than once
        self._raw_keys = {_decode_key(key): key for key in raw_keys}
        keys = sorted(self._raw_keys)
        logger.info(
            "cache_keys_listed",
            prefix=self.prefix,
            count=len(keys),
            mode="scan" if self.use_scan else "keys",
        )
        return keys

    async def reports(self, keys: Iterable[str]) -> AsyncIterator[CacheKeyReport]:
        """
        Yield one report per key, in the given order.

        Raises:
            StoreConnectionError: the server was unreachable from the start
            EnumerationError: a lookup failed; reports already yielded stand
        """
        emitted = 0
        for key in keys:
            raw_key = self._raw_keys.get(key, key)
            try:
                report = await self._inspect_key(key, raw_key)
            except (RedisError, OSError) as exc:
                raise self._translate(exc, f"lookup of {key!r}", emitted=emitted) from exc
            emitted += 1
            yield report

    async def _inspect_key(self, key: str, raw_key: bytes | str) -> CacheKeyReport:
        ttl = await self._client.ttl(raw_key)
        expired = ttl == TTL_MISSING
        ttl_seconds = ttl if ttl >= 0 else None

        preview = None
        if self.show_values:
            preview = await self._preview(raw_key)

        return CacheKeyReport(
            key=key,
            short_key=strip_prefix(key, self.prefix),
            ttl_seconds=ttl_seconds,
            expired=expired,
            value_preview=preview,
        )

    async def _preview(self, raw_key: bytes | str) -> str | None:
        try:
            raw_value = await self._client.get(raw_key)
        except ResponseError as exc:
            if not str(exc).startswith("WRONGTYPE"):
                raise
            return type_marker(await self._client.type(raw_key))
        return preview_value(raw_value)

    def _translate(self, exc: BaseException, action: str, *, emitted: int) -> CacheInspectorError:
        cause = describe_redis_error(exc)
        logger.info(
            "cache_inspection_failed",
            prefix=self.prefix,
            action=action,
            reported=emitted,
            error=cause,
        )
        if emitted == 0 and is_connection_error(exc):
            return StoreConnectionError(cause)
        return EnumerationError(f"{action} failed: {cause}")


async def inspect(
    config: ConnectionConfig,
    prefix: str | None = None,
    show_values: bool = False,
    *,
    use_scan: bool = False,
    client_factory: ClientFactory | None = None,
) -> AsyncIterator[CacheKeyReport]:
    """
    Reports for every key under ``prefix``, over one scoped connection.

    The sequence is lazy, finite and single-use; nothing is yielded when no key
    matches. The connection is closed after the last report or on the first error.
    """
    prefix = settings.KEY_PREFIX if prefix is None else prefix
    async with open_connection(config, client_factory) as client:
        inspector = KeyInspector(client, prefix, show_values, use_scan=use_scan)
        keys = await inspector.matching_keys()
        async for report in inspector.reports(keys):
            yield report


__all__ = [
    "CacheKeyReport",
    "KeyInspector",
    "glob_pattern",
    "inspect",
    "render_report",
    "strip_prefix",
]
