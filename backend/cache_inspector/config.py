"""Redis connection parameters: defaults, local settings file, process environment.

Resolution is layered and never fails:

* if any ``REDIS_*`` connection variable is set in the environment, the environment
  is the only source (the settings file is not opened at all);
* otherwise ``backend/.env`` is parsed when it exists;
* anything still missing, blank or invalid falls back to the defaults.

The resolved :class:`ConnectionConfig` is passed explicitly to the tools; the
process environment is never written to.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .logging_config import get_logger
from .settings import settings

logger = get_logger(__name__)

RECOGNIZED_KEYS = ("REDIS_HOST", "REDIS_PORT", "REDIS_PASSWORD", "REDIS_DB")

_FIELD_BY_KEY = {
    "REDIS_HOST": "host",
    "REDIS_PORT": "port",
    "REDIS_PASSWORD": "password",
    "REDIS_DB": "db",
}
_NUMERIC_FIELDS = {"port", "db"}

_ENV_LINE_RE = re.compile(r"^\s*REDIS_(HOST|PORT|PASSWORD|DB)\s*=\s*(.+?)\s*$")
_QUOTES = "\"'"


class ConnectionConfig(BaseModel):
    """Everything needed to open one Redis connection."""

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = Field(default=6379, ge=1, le=65535)
    password: str | None = None  # None -> unauthenticated connection
    db: int = Field(default=0, ge=0)
    connect_timeout_ms: int = Field(default=5000, gt=0)

    @property
    def connect_timeout(self) -> float:
        return self.connect_timeout_ms / 1000.0

    def describe(self) -> str:
        return f"{self.host}:{self.port} (db {self.db})"


def default_values() -> dict[str, Any]:
    """Defaults layer."""
    return {
        "host": "localhost",
        "port": 6379,
        "password": None,
        "db": 0,
        "connect_timeout_ms": settings.CONNECT_TIMEOUT_MS,
    }


def _strip_quotes(value: str) -> str:
    value = value.strip()
    if value[:1] in _QUOTES:
        value = value[1:]
    if value[-1:] in _QUOTES:
        value = value[:-1]
    return value.strip()


def parse_env_file(text: str) -> dict[str, str]:
    """
    Parse ``KEY=VALUE`` lines of a settings file.

    Only REDIS_HOST, REDIS_PORT, REDIS_PASSWORD and REDIS_DB are kept; every other
    line is ignored. One pair of surrounding quotes and any whitespace are removed
    from the value. A later line overrides an earlier one.
    """
    values: dict[str, str] = {}
    for line in text.splitlines():
        match = _ENV_LINE_RE.match(line)
        if match:
            values[f"REDIS_{match.group(1)}"] = _strip_quotes(match.group(2))
    return values


def environ_values(environ: Mapping[str, str]) -> dict[str, str]:
    """Environment layer: recognized keys with a non-blank value."""
    return {
        key: environ[key]
        for key in RECOGNIZED_KEYS
        if environ.get(key) is not None and environ[key].strip()
    }


def build_config(values: Mapping[str, str]) -> ConnectionConfig:
    """Overlay ``values`` (keyed by REDIS_* name) on the defaults."""
    data = default_values()
    for key, field in _FIELD_BY_KEY.items():
        raw = values.get(key)
        if raw is None or not raw.strip():
            continue
        data[field] = raw.strip() if field in _NUMERIC_FIELDS else raw

    try:
        return ConnectionConfig(**data)
    except ValidationError as exc:
        invalid = {str(error["loc"][0]) for error in exc.errors() if error.get("loc")}

    defaults = default_values()
    for field in sorted(invalid):
        logger.warning(
            "redis_setting_ignored",
            field=field,
            value=None if field == "password" else data.get(field),
            fallback=defaults.get(field),
        )
        data[field] = defaults.get(field)
    return ConnectionConfig(**data)


def _read_env_file(path: Path) -> dict[str, str]:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning("redis_env_file_unreadable", path=str(path), error=str(exc))
        return {}
    return parse_env_file(text)


def resolve(
    environ: Mapping[str, str] | None = None,
    env_file: Path | str | None = None,
) -> ConnectionConfig:
    """
    Resolve the Redis connection parameters.

    Args:
        environ: Environment mapping (defaults to ``os.environ``)
        env_file: Settings file path (defaults to ``settings.ENV_FILE``)

    Returns:
        A fully populated ConnectionConfig
    """
    environ = os.environ if environ is None else environ

    from_environ = environ_values(environ)
    if from_environ:
        config = build_config(from_environ)
        source = "environment"
    else:
        path = Path(env_file).expanduser() if env_file is not None else settings.env_file
        if path.is_file():
            config = build_config(_read_env_file(path))
            source = str(path)
        else:
            config = build_config({})
            source = "defaults"

    logger.info(
        "redis_config_resolved",
        source=source,
        host=config.host,
        port=config.port,
        db=config.db,
        authenticated=config.password is not None,
    )
    return config


__all__ = [
    "RECOGNIZED_KEYS",
    "ConnectionConfig",
    "build_config",
    "default_values",
    "environ_values",
    "parse_env_file",
    "resolve",
]
