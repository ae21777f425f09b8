"""Settings models and configuration loading for the HermitHome backend."""

from functools import cached_property, lru_cache
from typing import Annotated, Any, Self
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from hermit.lib.config.constants import CHANGE_FEED_CHANNEL


def _strip(v: Any) -> Any:
    return v.strip() if isinstance(v, str) else v


def _validate_timezone(v: str) -> str:
    """Reject zone names the tz database does not know."""
    try:
        ZoneInfo(v)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown time zone: {v!r}") from None
    return v


def _validate_log_level(v: str) -> str:
    level = v.upper()
    if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ValueError(f"Unknown log level: {v!r}")
    return level


_Stripped = Annotated[str, BeforeValidator(_strip)]
_TimeZone = Annotated[str, AfterValidator(_validate_timezone)]
_LogLevel = Annotated[str, AfterValidator(_validate_log_level)]


class StoreSettings(BaseModel):
    """Storage connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str
    timeout_sec: float = 30.0
    pool_size: int = 5
    probe_interval_sec: float = 60.0
    reconnect_max_retries: int = 3


class EventBusSettings(BaseModel):
    """Redis change-feed settings."""

    model_config = ConfigDict(frozen=True)

    redis_url: str = "redis://localhost:6379/0"
    channel: str = CHANGE_FEED_CHANNEL


class WatcherSettings(BaseModel):
    """Change watcher supervisor settings."""

    model_config = ConfigDict(frozen=True)

    initial_backoff_sec: float = 1.0
    max_backoff_sec: float = 60.0


class ServerSettings(BaseModel):
    """HTTP listener settings."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 3000


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    ``DB_PATH`` has no default: a process without a storage connection
    string fails validation here and refuses to start.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    db_path: Annotated[_Stripped, Field(min_length=1)]
    db_timeout_sec: float = Field(default=30.0, gt=0)
    db_pool_size: int = Field(default=5, ge=1)
    probe_interval_sec: float = Field(default=60.0, gt=0)
    reconnect_max_retries: int = Field(default=3, ge=1)

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)

    # Change watcher
    watcher_initial_backoff_sec: float = Field(default=1.0, gt=0)
    watcher_max_backoff_sec: float = Field(default=60.0, gt=0)

    # History records
    civil_timezone: _TimeZone = "Asia/Ho_Chi_Minh"

    log_level: _LogLevel = "INFO"

    @cached_property
    def store(self) -> StoreSettings:
        """Get storage settings as nested object."""
        return StoreSettings(
            db_path=self.db_path,
            timeout_sec=self.db_timeout_sec,
            pool_size=self.db_pool_size,
            probe_interval_sec=self.probe_interval_sec,
            reconnect_max_retries=self.reconnect_max_retries,
        )

    @cached_property
    def eventbus(self) -> EventBusSettings:
        """Get event bus settings."""
        return EventBusSettings(redis_url=self.redis_url)

    @cached_property
    def watcher(self) -> WatcherSettings:
        """Get change watcher settings."""
        return WatcherSettings(
            initial_backoff_sec=self.watcher_initial_backoff_sec,
            max_backoff_sec=self.watcher_max_backoff_sec,
        )

    @cached_property
    def server(self) -> ServerSettings:
        """Get HTTP listener settings."""
        return ServerSettings(host=self.host, port=self.port)

    @model_validator(mode="after")
    def validate_settings(self) -> Self:
        """Validate cross-field configuration constraints."""
        if self.watcher_initial_backoff_sec > self.watcher_max_backoff_sec:
            raise ValueError(
                f"WATCHER_INITIAL_BACKOFF_SEC ({self.watcher_initial_backoff_sec}) "
                f"must not exceed WATCHER_MAX_BACKOFF_SEC "
                f"({self.watcher_max_backoff_sec})"
            )
        return self


# Settings override for testing - allows injecting custom Settings without
# modifying environment variables or clearing the lru_cache.
_settings_override: Settings | None = None


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    """Load settings from environment (cached)."""
    return Settings()  # type: ignore[call-arg]


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns the test override if set, otherwise loads from environment
    variables (cached after first load). For testing, use set_settings()
    from hermit.lib.config.testing to override.
    """
    if _settings_override is not None:
        return _settings_override
    return _load_settings()
