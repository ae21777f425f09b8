"""Logging configuration for the HermitHome backend."""

import logging
import sys

NAMESPACE = "hermit"

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s - %(message)s"

_configured = False


def configure(level: int | str | None = None) -> None:
    """Configure logging for the application.

    Handlers are installed once. A later call only changes the level, so
    the application factory can configure early and the lifespan can apply
    ``LOG_LEVEL`` once settings have been validated.
    """
    global _configured
    app_log = logging.getLogger(NAMESPACE)
    if _configured:
        if level is not None:
            app_log.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    app_log.setLevel(level if level is not None else logging.INFO)
    app_log.addHandler(handler)

    # uvicorn.error and uvicorn.access propagate to this one
    uv_log = logging.getLogger("uvicorn")
    uv_log.handlers.clear()
    uv_log.addHandler(handler)

    # Session lifecycle is logged by hermit.server.sessions instead
    logging.getLogger("uvicorn.protocols.websockets").setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the 'hermit' namespace.

    Args:
        name: Logger name (will be prefixed with 'hermit.')
    """
    return logging.getLogger(f"{NAMESPACE}.{name}")
