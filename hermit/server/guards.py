"""Request guards shared by the storage-backed endpoints."""

from collections.abc import Awaitable, Callable
from functools import wraps

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from hermit.lib.exceptions import StoreUnavailable
from hermit.lib.store import get_connectivity, report_unavailable
from hermit.logging import get_logger

_logger = get_logger("server.guards")

NOT_CONNECTED = "Database not connected"


def _unavailable_response() -> Response:
    return PlainTextResponse(NOT_CONNECTED, status_code=503)


def requires_store[R: Response](
    handler: Callable[[Request], Awaitable[R]],
) -> Callable[[Request], Awaitable[Response]]:
    """Decorator to answer 503 instead of calling ``handler`` while storage is down.

    Also catches a connection loss discovered mid-request, which flips the
    connectivity flag and starts the reconnect routine.
    """

    @wraps(handler)
    async def wrapper(request: Request) -> Response:
        if not get_connectivity().connected:
            return _unavailable_response()
        try:
            return await handler(request)
        except StoreUnavailable as e:
            _logger.error("%s %s: %s", request.method, request.url.path, e)
            report_unavailable(e)
            return _unavailable_response()

    return wrapper
