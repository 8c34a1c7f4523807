"""Process settings and the per-tick runtime configuration."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from pushcron.errors import ConfigError

if TYPE_CHECKING:
    from pushcron.scheduler.store import ConfigStore

logger = logging.getLogger(__name__)


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Process-level settings. All values come from environment variables."""

    # Database
    database_path: Path = Field(default=Path("data/pushcron.db"))

    # Key under which the runtime configuration JSON is stored
    config_key: str = Field(default="GLOBAL_CONFIG")

    # Scheduler
    tick_cron: str = Field(default="* * * * *")
    scheduler_timezone: str = Field(default="UTC")

    # Retry bounds applied on top of the stored retry_config
    max_retry_cap: int = Field(default=10)
    max_retry_interval_ms: int = Field(default=60_000)

    # Outbound HTTP
    http_timeout_seconds: float = Field(default=15.0)
    server_chan_api_prefix: str = Field(default="https://sctapi.ftqq.com/")

    # Admin API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8787)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)


settings = Settings()


# -- Runtime configuration ------------------------------------------------------


class RetryConfig(BaseModel):
    """Retry policy for a failed push.

    Attributes:
        max_retry: Number of retries after the first failed attempt.
        retry_interval: Delay before each retry, in milliseconds.
    """

    max_retry: int = Field(default=3, ge=0)
    retry_interval: int = Field(default=1000, ge=0)


class AppConfig(BaseModel):
    """Configuration loaded fresh on every tick.

    ``notification_channels`` maps a channel name to that channel's global
    settings (credentials, default receivers, API prefix).
    """

    notification_channels: dict[str, dict[str, Any]]
    retry_config: RetryConfig = Field(default_factory=RetryConfig)


def _bounded(config: AppConfig, current: Settings) -> AppConfig:
    """Clamp the retry policy so one task cannot stall a tick indefinitely."""
    retry = config.retry_config
    max_retry = min(retry.max_retry, current.max_retry_cap)
    interval = min(retry.retry_interval, current.max_retry_interval_ms)
    if (max_retry, interval) == (retry.max_retry, retry.retry_interval):
        return config
    logger.warning(
        "retry_config clamped: max_retry %d -> %d, retry_interval %dms -> %dms",
        retry.max_retry,
        max_retry,
        retry.retry_interval,
        interval,
    )
    return config.model_copy(
        update={"retry_config": RetryConfig(max_retry=max_retry, retry_interval=interval)}
    )


def parse_app_config(raw: str | None, current: Settings | None = None) -> AppConfig:
    """Validate a stored JSON document. Raises ConfigError when unusable."""
    if not raw:
        msg = "Configuration not found; store it under the configured key first"
        raise ConfigError(msg)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        msg = f"Configuration is not valid JSON: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = "Configuration must be a JSON object"
        raise ConfigError(msg)
    try:
        config = AppConfig.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid configuration: {exc}"
        raise ConfigError(msg) from exc
    return _bounded(config, current or settings)


class ConfigSource(Protocol):
    """Anything that can produce a fresh AppConfig."""

    async def load(self) -> AppConfig:
        ...


class StoreConfigSource:
    """Reads the runtime configuration from the key-value table."""

    def __init__(self, store: ConfigStore, key: str | None = None) -> None:
        self._store = store
        self._key = key or settings.config_key

    async def load(self) -> AppConfig:
        raw = await self._store.get(self._key)
        return parse_app_config(raw)
