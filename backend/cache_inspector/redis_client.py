"""Redis client construction and scoped connection handling."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import NoBackoff
from redis.exceptions import (
    AuthenticationError,
    BusyLoadingError,
    RedisError,
    ResponseError,
)
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from .config import ConnectionConfig
from .logging_config import get_logger
from .settings import settings

logger = get_logger(__name__)

ClientFactory = Callable[[ConnectionConfig], Any]

# Errors that mean "could not talk to the server at all".
CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    RedisConnectionError,
    RedisTimeoutError,
    BusyLoadingError,
    OSError,
)


def create_client(config: ConnectionConfig) -> Redis:
    """
    Build an asyncio Redis client for ``config``.

    The connection is opened lazily by the first command. Responses are left as
    bytes so that binary values can be recognised instead of failing to decode.
    """
    retries = settings.MAX_RETRIES_PER_REQUEST
    return Redis(
        host=config.host,
        port=config.port,
        db=config.db,
        password=config.password or None,
        socket_connect_timeout=config.connect_timeout,
        retry=Retry(NoBackoff(), retries),
        decode_responses=False,
    )


@asynccontextmanager
async def open_connection(
    config: ConnectionConfig,
    client_factory: ClientFactory | None = None,
) -> AsyncIterator[Any]:
    """
    Yield a client for ``config`` and always close it afterwards.

    A failure while closing is logged and swallowed so it never hides the error
    that ended the block.
    """
    factory = client_factory or create_client
    client = factory(config)
    logger.info("redis_connection_opened", target=config.describe())
    try:
        yield client
    finally:
        try:
            await client.aclose()
        except (RedisError, OSError) as exc:
            logger.warning("redis_close_failed", target=config.describe(), error=str(exc))
        else:
            logger.info("redis_connection_closed", target=config.describe())


def describe_redis_error(exc: BaseException) -> str:
    """Single-line, operator-facing cause for a Redis client error."""
    message = (str(exc).strip() or type(exc).__name__).splitlines()[0]
    if isinstance(exc, AuthenticationError):
        return f"authentication rejected ({message})"
    if isinstance(exc, RedisTimeoutError):
        return f"timed out ({message})"
    if isinstance(exc, RedisConnectionError):
        return f"connection failed ({message})"
    if isinstance(exc, ResponseError):
        return f"server error ({message})"
    return message


def is_connection_error(exc: BaseException) -> bool:
    return isinstance(exc, CONNECTION_ERRORS)


__all__ = [
    "CONNECTION_ERRORS",
    "create_client",
    "describe_redis_error",
    "is_connection_error",
    "open_connection",
]
