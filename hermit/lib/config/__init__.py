"""Centralized configuration for the HermitHome backend.

This package provides:
- Pydantic settings models loaded from the environment
- Configuration record defaults and bounds
"""

from .constants import (
    CHANGE_FEED_CHANNEL,
    DEFAULT_LIGHT_OFF_HOUR,
    DEFAULT_LIGHT_ON_HOUR,
    DEFAULT_MAX_HUMIDITY,
    DEFAULT_MAX_LIGHT,
    DEFAULT_MAX_TEMPERATURE,
    DEFAULT_MIN_HUMIDITY,
    DEFAULT_MIN_LIGHT,
    DEFAULT_MIN_TEMPERATURE,
    HOUR_MAX,
    HOUR_MIN,
)
from .settings import (
    EventBusSettings,
    ServerSettings,
    Settings,
    StoreSettings,
    WatcherSettings,
    get_settings,
)

__all__ = [
    # Settings models
    "EventBusSettings",
    "ServerSettings",
    "Settings",
    "StoreSettings",
    "WatcherSettings",
    # Constants
    "CHANGE_FEED_CHANNEL",
    "DEFAULT_LIGHT_OFF_HOUR",
    "DEFAULT_LIGHT_ON_HOUR",
    "DEFAULT_MAX_HUMIDITY",
    "DEFAULT_MAX_LIGHT",
    "DEFAULT_MAX_TEMPERATURE",
    "DEFAULT_MIN_HUMIDITY",
    "DEFAULT_MIN_LIGHT",
    "DEFAULT_MIN_TEMPERATURE",
    "HOUR_MAX",
    "HOUR_MIN",
    # Functions
    "get_settings",
]
