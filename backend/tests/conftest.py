from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import pytest
import structlog
from redis.exceptions import ResponseError

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.cache_inspector.config import RECOGNIZED_KEYS, ConnectionConfig  # noqa: E402
from backend.cache_inspector.settings import settings  # noqa: E402


def _as_bytes(value: bytes | str) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


class FakeRedis:
    """
    In-memory stand-in for the parts of ``redis.asyncio.Redis`` the tools use.

    ``fail(command, exc, after=n)`` makes ``command`` raise ``exc`` once it has
    succeeded ``n`` times.
    """

    def __init__(self, *, ping_reply: Any = True) -> None:
        self.entries: dict[bytes, dict[str, Any]] = {}
        self.ping_reply = ping_reply
        self.calls: list[tuple[Any, ...]] = []
        self.closed = False
        self._errors: dict[str, tuple[BaseException, int]] = {}

    def add(
        self,
        key: bytes | str,
        value: bytes | str | None = None,
        *,
        ttl: int = -1,
        type_: str = "string",
    ) -> FakeRedis:
        self.entries[_as_bytes(key)] = {
            "value": None if value is None else _as_bytes(value),
            "ttl": ttl,
            "type": type_,
        }
        return self

    def fail(self, command: str, exc: BaseException, *, after: int = 0) -> FakeRedis:
        self._errors[command] = (exc, after)
        return self

    def commands(self, name: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == name]

    def _record(self, command: str, *args: Any) -> None:
        if self.closed:
            raise RuntimeError("command issued on a closed client")
        self.calls.append((command, *args))
        if command in self._errors:
            exc, after = self._errors[command]
            if len(self.commands(command)) > after:
                raise exc

    def _matching(self, pattern: str) -> list[bytes]:
        assert pattern.endswith("*")
        prefix = _as_bytes(pattern[:-1].replace("\\", ""))
        return [key for key in self.entries if key.startswith(prefix)]

    async def ping(self) -> Any:
        self._record("ping")
        return self.ping_reply

    async def keys(self, pattern: str) -> list[bytes]:
        self._record("keys", pattern)
        return self._matching(pattern)

    async def scan_iter(self, match: str | None = None, count: int | None = None):
        self._record("scan", match, count)
        matched = self._matching(match or "*")
        # SCAN gives no ordering guarantee and may repeat keys
        for key in reversed(matched):
            yield key
        if matched:
            yield matched[0]

    async def ttl(self, key: bytes | str) -> int:
        self._record("ttl", key)
        entry = self.entries.get(_as_bytes(key))
        return -2 if entry is None else entry["ttl"]

    async def get(self, key: bytes | str) -> bytes | None:
        self._record("get", key)
        entry = self.entries.get(_as_bytes(key))
        if entry is None:
            return None
        if entry["type"] != "string":
            raise ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
        return entry["value"]

    async def type(self, key: bytes | str) -> bytes:
        self._record("type", key)
        entry = self.entries.get(_as_bytes(key))
        return b"none" if entry is None else entry["type"].encode()

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def client_factory(fake_redis: FakeRedis):
    def factory(config: ConnectionConfig) -> FakeRedis:
        return fake_redis

    return factory


@pytest.fixture
def connection_config() -> ConnectionConfig:
    return ConnectionConfig()


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep the developer's REDIS_* variables and backend/.env out of the tests."""
    for key in RECOGNIZED_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(settings, "ENV_FILE", tmp_path / "missing.env")
    monkeypatch.setattr(settings, "DEBUG", False)
    monkeypatch.setattr(settings, "LOG_JSON", False)
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
