"""Web server entrypoint.

Runs the Starlette application using uvicorn. The process refuses to
start without a storage connection string (``DB_PATH``).

Usage: python -m hermit.server
"""
import sys

import uvicorn
from pydantic import ValidationError

from hermit.lib.config import get_settings
from hermit.logging import configure, get_logger

_logger = get_logger("server")


def main() -> None:
    """Validate settings, then serve until a shutdown signal arrives."""
    try:
        settings = get_settings()
    except ValidationError as e:
        configure()
        _logger.critical("Invalid configuration, refusing to start:\n%s", e)
        sys.exit(1)

    configure(settings.log_level)

    uvicorn.run(
        "hermit.server.entrypoint:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
