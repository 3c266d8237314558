from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BACKEND_ROOT = Path(__file__).resolve().parents[1]
ENV_FILE = BACKEND_ROOT / ".env"
APP_VERSION = "0.1.0"


class Settings(BaseSettings):
    # Read from the process environment only; the Redis settings file is owned
    # by the connection resolver in config.py.
    model_config = SettingsConfigDict(env_prefix="CACHE_INSPECTOR_", extra="ignore")

    # human-readable console logs at INFO level
    DEBUG: bool = False
    LOG_JSON: bool = False

    # namespace prefix used by the application cache ("cache:dashboard:...", "cache:stats:...")
    KEY_PREFIX: str = "cache:"

    # local settings file holding REDIS_HOST / REDIS_PORT / REDIS_PASSWORD / REDIS_DB
    ENV_FILE: Path = ENV_FILE

    # Redis client behaviour
    CONNECT_TIMEOUT_MS: int = Field(default=5000, gt=0)
    MAX_RETRIES_PER_REQUEST: int = Field(default=1, ge=0)
    SCAN_COUNT: int = Field(default=500, gt=0)  # COUNT hint for --scan

    # Value previews
    STRUCTURED_PREVIEW_LIMIT: int = Field(default=120, gt=0)
    SCALAR_PREVIEW_LIMIT: int = Field(default=80, gt=0)

    @property
    def env_file(self) -> Path:
        return Path(self.ENV_FILE).expanduser()


settings = Settings()
