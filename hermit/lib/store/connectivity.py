"""Storage connectivity status, liveness probe and reconnect routine.

The connectivity status is the one piece of storage state every request
handler consults before touching the database. Only the probe and the
reconnect routine write it.
"""

import asyncio
import threading
from dataclasses import dataclass
from datetime import datetime

from hermit.lib.config import get_settings
from hermit.lib.exceptions import StoreError, StoreUnavailable
from hermit.lib.retry import with_retry
from hermit.lib.store.connection import close_store, get_db, init_store
from hermit.lib.utils import utcnow
from hermit.logging import get_logger

_logger = get_logger("lib.store.connectivity")


@dataclass(frozen=True, slots=True)
class ConnectivitySnapshot:
    connected: bool
    checked_at: datetime | None
    last_error: str | None


class ConnectivityStatus:
    """Shared storage connectivity flag.

    Reads and writes are serialized by a single lock that is never held
    across an await.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connected = False
        self._checked_at: datetime | None = None
        self._last_error: str | None = None

    @property
    def connected(self) -> bool:
        with self._lock:
            return self._connected

    def mark_up(self) -> None:
        with self._lock:
            was_connected = self._connected
            self._connected = True
            self._checked_at = utcnow()
            self._last_error = None
        if not was_connected:
            _logger.info("Storage connected")

    def mark_down(self, error: str) -> None:
        with self._lock:
            was_connected = self._connected
            self._connected = False
            self._checked_at = utcnow()
            self._last_error = error
        if was_connected:
            _logger.error("Lost connection to storage: %s", error)

    def snapshot(self) -> ConnectivitySnapshot:
        with self._lock:
            return ConnectivitySnapshot(
                self._connected, self._checked_at, self._last_error
            )


_status = ConnectivityStatus()
_reconnect_task: asyncio.Task[bool] | None = None


def get_connectivity() -> ConnectivityStatus:
    """Get the process-wide connectivity status."""
    return _status


def reset_connectivity() -> None:
    """Forget all connectivity state (used on shutdown and in tests)."""
    global _status, _reconnect_task
    _status = ConnectivityStatus()
    _reconnect_task = None


async def connect() -> bool:
    """Open storage and record the outcome in the connectivity status."""
    try:
        await init_store()
    except StoreError as e:
        _logger.error("Storage connection error: %s", e)
        _status.mark_down(str(e))
        return False
    _status.mark_up()
    return True


async def _reconnect_once() -> None:
    await close_store()
    await init_store()


async def _reconnect() -> bool:
    store = get_settings().store
    ok = await with_retry(
        _reconnect_once,
        name="Storage reconnect",
        logger=_logger,
        max_retries=store.reconnect_max_retries,
        initial_backoff_sec=1.0,
        retryable_exceptions=(StoreError,),
    )
    if ok:
        _status.mark_up()
    else:
        _status.mark_down("reconnect failed")
    return ok


def schedule_reconnect() -> asyncio.Task[bool]:
    """Start the reconnect routine unless one is already running."""
    global _reconnect_task
    if _reconnect_task is None or _reconnect_task.done():
        _reconnect_task = asyncio.create_task(_reconnect())
    return _reconnect_task


def report_unavailable(error: StoreUnavailable) -> None:
    """Record a connection failure observed by a caller and start recovery."""
    _status.mark_down(str(error))
    schedule_reconnect()


async def probe_once() -> bool:
    """Ping storage once, flipping the flag and reconnecting on failure."""
    try:
        async with get_db() as db:
            await db.fetchone("SELECT 1")
    except StoreError as e:
        _status.mark_down(str(e))
        return await schedule_reconnect()
    _status.mark_up()
    return True


async def run_probe(interval_sec: float | None = None) -> None:
    """Probe storage on a fixed interval until cancelled."""
    interval = interval_sec or get_settings().store.probe_interval_sec
    _logger.info("Storage liveness probe running every %ss", interval)
    while True:
        await asyncio.sleep(interval)
        await probe_once()
