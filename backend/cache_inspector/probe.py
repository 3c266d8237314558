"""Redis connectivity probe (PING round-trip)."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any

from redis.exceptions import RedisError

from .config import ConnectionConfig
from .exceptions import StoreConnectionError
from .logging_config import get_logger
from .redis_client import ClientFactory, describe_redis_error, open_connection

logger = get_logger(__name__)

_PONG_REPLIES = (b"PONG", "PONG")


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Outcome of a single liveness check."""

    ok: bool
    target: str
    latency_ms: float | None = None
    error: str | None = None

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


def _is_affirmative(reply: Any) -> bool:
    # redis-py parses PONG into True; raw connections hand back the token itself
    return reply is True or reply in _PONG_REPLIES


async def probe_or_raise(
    config: ConnectionConfig,
    *,
    client_factory: ClientFactory | None = None,
) -> float:
    """
    Send one PING and return the round-trip latency in milliseconds.

    Raises:
        StoreConnectionError: unreachable server, rejected credentials, timeout
            or an unexpected reply
    """
    async with open_connection(config, client_factory) as client:
        started = time.perf_counter()
        try:
            reply = await client.ping()
        except RedisError as exc:
            raise StoreConnectionError(describe_redis_error(exc)) from exc
        except OSError as exc:
            raise StoreConnectionError(f"connection failed ({exc})") from exc
        latency_ms = round((time.perf_counter() - started) * 1000, 2)

    if not _is_affirmative(reply):
        raise StoreConnectionError(f"unexpected reply to PING: {reply!r}")
    return latency_ms


async def probe(
    config: ConnectionConfig,
    *,
    client_factory: ClientFactory | None = None,
) -> ProbeResult:
    """
    Check that Redis answers PING; never raises for store failures.

    The connection is closed before the result is returned, on both paths.
    """
    target = config.describe()
    try:
        latency_ms = await probe_or_raise(config, client_factory=client_factory)
    except StoreConnectionError as exc:
        logger.info("redis_ping_failed", target=target, error=exc.message)
        return ProbeResult(ok=False, target=target, error=exc.message)

    logger.info("redis_ping_ok", target=target, latency_ms=latency_ms)
    return ProbeResult(ok=True, target=target, latency_ms=latency_ms)


__all__ = ["ProbeResult", "probe", "probe_or_raise"]
