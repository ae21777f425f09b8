"""Change watcher: fans configuration changes out to live viewer sessions.

One watcher runs per process, as a background task started by the
application lifespan. It consumes the configuration change feed and, for
every insert or update, pushes the hydrated configuration to the session
registered for that document's user, if one is open.

Failures are contained at two levels:

- a single bad event (no user identity, send error, anything unexpected)
  is logged and skipped;
- a feed that dies or ends is reopened by ``supervise`` after an
  exponential backoff.
"""

import asyncio
import json
from collections.abc import AsyncIterator, Callable

from hermit.lib.config import get_settings
from hermit.lib.eventbus import ChangeEvent
from hermit.lib.exceptions import DeliveryFailed
from hermit.lib.records import USER_ID_KEY, hydrate
from hermit.lib.retry import backoff_delay
from hermit.lib.store import change_feed
from hermit.logging import get_logger

from .sessions import SessionRegistry, session_registry

_logger = get_logger("server.watcher")

type FeedFactory = Callable[[], AsyncIterator[ChangeEvent]]


class ChangeWatcher:
    """Pushes each configuration change to its user's open session."""

    def __init__(
        self,
        registry: SessionRegistry | None = None,
        feed: FeedFactory = change_feed,
    ) -> None:
        self._registry = registry if registry is not None else session_registry
        self._feed = feed
        self.events_seen = 0

    async def handle(self, event: ChangeEvent) -> bool:
        """Deliver one change event.

        Returns:
            True if a frame was written to a session.
        """
        if not event.is_upsert:
            _logger.debug("Ignoring %s change", event.operation)
            return False

        user_id = event.document.get(USER_ID_KEY)
        if not isinstance(user_id, str) or not user_id:
            _logger.warning("Skipping change without a user identity")
            return False

        channel = self._registry.lookup(user_id)
        if channel is None:
            _logger.debug("No session for %s", user_id)
            return False
        if not channel.is_open:
            _logger.debug("Session for %s is not open", user_id)
            return False

        frame = json.dumps(hydrate(event.document))
        try:
            await channel.send_text(frame)
        except Exception as e:
            _logger.warning("%s", DeliveryFailed(user_id, str(e)))
            return False

        _logger.debug("Pushed configuration to %s", user_id)
        return True

    async def run(self) -> None:
        """Consume one change feed until it ends or fails."""
        self.events_seen = 0
        async for event in self._feed():
            self.events_seen += 1
            try:
                await self.handle(event)
            except Exception:
                _logger.exception("Skipping change event that could not be handled")


async def supervise(
    watcher: ChangeWatcher,
    *,
    initial_backoff_sec: float | None = None,
    max_backoff_sec: float | None = None,
) -> None:
    """Keep ``watcher`` running, reopening the feed whenever it stops.

    The backoff doubles with each consecutive run that saw no events and
    resets once a run delivers anything. Only cancellation stops this loop.
    """
    cfg = get_settings().watcher
    initial = initial_backoff_sec or cfg.initial_backoff_sec
    maximum = max_backoff_sec or cfg.max_backoff_sec
    attempt = 0

    while True:
        try:
            await watcher.run()
            _logger.warning("Change feed ended")
        except asyncio.CancelledError:
            _logger.info("Change watcher stopped")
            raise
        except Exception as e:
            _logger.error("Change feed failed: %s", e)

        if watcher.events_seen:
            attempt = 0
        delay = backoff_delay(attempt, initial_sec=initial, max_sec=maximum)
        attempt += 1
        _logger.info("Restarting change watcher in %.1fs", delay)
        await asyncio.sleep(delay)
