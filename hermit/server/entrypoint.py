"""Application factory for the web server."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from starlette.applications import Starlette
from starlette.routing import Route, WebSocketRoute

from hermit.lib.config import get_settings
from hermit.lib.eventbus import close_publisher
from hermit.lib.store import close_store
from hermit.lib.store.connectivity import connect, reset_connectivity, run_probe
from hermit.logging import configure, get_logger

from .api.configs import read_config, update_config
from .api.ingest import write_reading
from .api.stats import current_stats
from .api.status import ping, status
from .sessions import session_registry
from .watcher import ChangeWatcher, supervise
from .websockets import ws_config

_logger = get_logger("server.entrypoint")


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncIterator[None]:
    """Open storage and start the probe and change watcher; undo on shutdown.

    Settings are validated here, so a missing ``DB_PATH`` aborts startup.
    A storage connection failure does not: the probe keeps retrying and
    requests get 503 meanwhile.
    """
    settings = get_settings()
    configure(settings.log_level)
    await connect()

    tasks = [
        asyncio.create_task(run_probe(settings.store.probe_interval_sec)),
        asyncio.create_task(supervise(ChangeWatcher(session_registry))),
    ]
    _logger.info("Liveness probe and change watcher started")

    try:
        yield
    finally:
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        session_registry.clear()
        await close_publisher()
        await close_store()
        reset_connectivity()
        _logger.info("Background tasks stopped, storage closed")


def create_app() -> Starlette:
    """Create and configure the Starlette application."""
    configure()

    routes = [
        Route("/write", write_reading, methods=["POST"]),
        Route("/read/{userId}", read_config),
        Route("/update/{userId}", update_config, methods=["POST"]),
        Route("/get-current-stats/{userId}", current_stats),
        Route("/status", status),
        Route("/ping", ping),
        WebSocketRoute("/ws", ws_config),
    ]

    return Starlette(routes=routes, lifespan=lifespan)
