"""Live viewer sessions, keyed by user identity.

A session is the push channel currently open for a user. The registry keeps
at most one per user: registering a second channel for the same user
replaces the first, which then stops receiving pushes (closing it is the
transport's job, not the registry's).
"""

import threading
from typing import Protocol

from starlette.websockets import WebSocket, WebSocketState

from hermit.logging import get_logger

_logger = get_logger("server.sessions")


class Channel(Protocol):
    """The two operations fanout needs from a push channel."""

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, data: str) -> None: ...


class WebSocketChannel:
    """Channel backed by a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket

    @property
    def websocket(self) -> WebSocket:
        return self._websocket

    @property
    def is_open(self) -> bool:
        return (
            self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        await self._websocket.send_text(data)

    def __repr__(self) -> str:
        return f"<WebSocketChannel {id(self._websocket):#x}>"


class SessionRegistry:
    """Last-writer-wins map from user identity to push channel.

    All operations are serialized by one lock. No operation awaits, so the
    lock is never held across a suspension point.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, Channel] = {}

    def register(self, user_id: str, channel: Channel) -> Channel | None:
        """Track ``channel`` as the session for ``user_id``.

        Returns:
            The channel it replaced, if any.
        """
        with self._lock:
            previous = self._sessions.get(user_id)
            self._sessions[user_id] = channel
            total = len(self._sessions)
        if previous is not None and previous is not channel:
            _logger.info(
                "Session for %s replaced by a newer connection (total: %d)",
                user_id, total,
            )
        else:
            _logger.info("Session registered for %s (total: %d)", user_id, total)
        return previous

    def deregister(self, user_id: str, channel: Channel | None = None) -> bool:
        """Stop tracking the session for ``user_id``.

        When ``channel`` is given, the entry is only removed if it still
        points at that channel, so a replaced connection closing late
        cannot evict its successor.

        Returns:
            True if an entry was removed.
        """
        with self._lock:
            current = self._sessions.get(user_id)
            if current is None or (channel is not None and current is not channel):
                return False
            del self._sessions[user_id]
            remaining = len(self._sessions)
        _logger.info("Session removed for %s (remaining: %d)", user_id, remaining)
        return True

    def lookup(self, user_id: str) -> Channel | None:
        with self._lock:
            return self._sessions.get(user_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


# Global session registry
session_registry = SessionRegistry()
