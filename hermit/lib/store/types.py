"""Type definitions for storage operations."""

from typing import Any, TypedDict

type SQLParams = tuple[Any, ...] | dict[str, Any]
"""SQL parameter types: positional tuple or named dict for query binding."""


class CurrentStats(TypedDict):
    """Latest reading recorded for a user."""

    userId: str
    temperature: float
    humidity: float
    light: int
    timestamp: str
