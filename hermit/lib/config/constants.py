"""Shared constants for the configuration module."""

# Configuration record defaults, seeded on first read
DEFAULT_MIN_TEMPERATURE = 20
DEFAULT_MAX_TEMPERATURE = 30
DEFAULT_MIN_HUMIDITY = 40
DEFAULT_MAX_HUMIDITY = 80
DEFAULT_MIN_LIGHT = 100
DEFAULT_MAX_LIGHT = 1000
DEFAULT_LIGHT_ON_HOUR = 6
DEFAULT_LIGHT_OFF_HOUR = 18

# Valid range for the light schedule hours (inclusive)
HOUR_MIN = 0
HOUR_MAX = 23

# Redis pub/sub channel carrying configuration change events
CHANGE_FEED_CHANNEL = "config.change"
