"""Test doubles shared across test modules."""

import json
from typing import Any

from hermit.lib.eventbus import ChangeEvent


class RecordingPublisher:
    """Stands in for the Redis publisher and keeps what was published."""

    def __init__(self, error: Exception | None = None) -> None:
        self.events: list[ChangeEvent] = []
        self.error = error

    async def publish(self, event: ChangeEvent) -> int:
        if self.error is not None:
            raise self.error
        self.events.append(event)
        return 1

    async def close(self) -> None:
        pass


class FakeChannel:
    """Push channel that records decoded frames."""

    def __init__(self, *, open: bool = True, error: Exception | None = None) -> None:
        self.frames: list[dict[str, Any]] = []
        self._open = open
        self._error = error

    @property
    def is_open(self) -> bool:
        return self._open

    def close(self) -> None:
        self._open = False

    async def send_text(self, data: str) -> None:
        if self._error is not None:
            raise self._error
        self.frames.append(json.loads(data))
