"""Redis-based change feed for configuration documents.

The configuration store publishes one message per committed insert or
update; the change watcher in the web server subscribes and fans each
change out to the matching viewer session. Anything else that writes
configuration documents can publish on the same channel.

Messages are JSON objects shaped like::

    {"operationType": "update", "fullDocument": {"userId": "u1", ...}}
"""

import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Self

import redis.asyncio as aioredis

from hermit.lib.config import get_settings
from hermit.logging import get_logger

logger = get_logger("lib.eventbus")


class OperationType(StrEnum):
    """Kind of change carried by a change event."""

    INSERT = "insert"
    UPDATE = "update"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: Any) -> "OperationType":
        """Map any raw operation name onto the three kinds we distinguish."""
        try:
            return cls(raw)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A configuration document change, with the document's full new state."""

    operation: OperationType
    document: dict[str, Any] = field(default_factory=dict)

    @property
    def is_upsert(self) -> bool:
        return self.operation in (OperationType.INSERT, OperationType.UPDATE)

    def to_dict(self) -> dict[str, Any]:
        return {
            "operationType": str(self.operation),
            "fullDocument": self.document,
        }

    @classmethod
    def from_dict(cls, data: Any) -> Self:
        """Parse a decoded bus message.

        Raises:
            ValueError: If the message is not an object or carries no
                document object.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected an object, got {type(data).__name__}")
        document = data.get("fullDocument")
        if not isinstance(document, dict):
            raise ValueError("missing fullDocument")
        return cls(OperationType.parse(data.get("operationType")), document)


class EventPublisher:
    """Publishes configuration change events to the bus."""

    def __init__(self, redis_url: str | None = None, channel: str | None = None) -> None:
        bus = get_settings().eventbus
        self._redis_url = redis_url or bus.redis_url
        self._channel = channel or bus.channel
        self._client: aioredis.Redis | None = None

    def connect(self) -> None:
        """Create the Redis client (connections are opened lazily)."""
        if self._client is None:
            self._client = aioredis.from_url(self._redis_url)
            logger.info("Event publisher connected to Redis")

    async def publish(self, event: ChangeEvent) -> int:
        """Publish a change event.

        Returns:
            The number of subscribers that received the message.
        """
        if self._client is None:
            self.connect()
        assert self._client is not None
        message = json.dumps(event.to_dict())
        receivers = await self._client.publish(self._channel, message)
        logger.debug("Published to %s: %s", self._channel, message)
        return receivers

    async def close(self) -> None:
        """Close the publisher connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Event publisher closed")


class EventSubscriber:
    """Subscribes to configuration change events on the bus."""

    def __init__(self, redis_url: str | None = None, channel: str | None = None) -> None:
        bus = get_settings().eventbus
        self._redis_url = redis_url or bus.redis_url
        self._channel = channel or bus.channel
        self._client: aioredis.Redis | None = None
        self._pubsub: aioredis.client.PubSub | None = None

    async def connect(self) -> None:
        """Connect to Redis and subscribe to the change channel."""
        self._client = aioredis.from_url(self._redis_url)
        self._pubsub = self._client.pubsub()
        await self._pubsub.subscribe(self._channel)
        logger.info("Event subscriber connected to Redis, channel: %s", self._channel)

    async def receive(self) -> AsyncIterator[ChangeEvent]:
        """Yield change events as they arrive.

        Malformed messages are logged and skipped. Connection errors
        propagate to the caller, which owns the restart policy.
        """
        if self._pubsub is None:
            return

        async for message in self._pubsub.listen():
            if message["type"] != "message":
                continue

            try:
                event = ChangeEvent.from_dict(json.loads(message["data"]))
            except (ValueError, TypeError) as e:
                logger.warning("Invalid change message: %s", e)
                continue
            yield event

    async def close(self) -> None:
        """Close the subscriber connection."""
        if self._pubsub is not None:
            await self._pubsub.unsubscribe()
            await self._pubsub.aclose()
            self._pubsub = None
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        logger.info("Event subscriber closed")

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()


# Global publisher instance
_publisher: EventPublisher | None = None


def get_publisher() -> EventPublisher:
    """Get or create the global publisher instance."""
    global _publisher
    if _publisher is None:
        _publisher = EventPublisher()
    return _publisher


async def close_publisher() -> None:
    """Close and forget the global publisher."""
    global _publisher
    if _publisher is not None:
        await _publisher.close()
        _publisher = None
