"""Current reading snapshot endpoint for viewer apps."""

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from hermit.lib.exceptions import StorageOperationFailed
from hermit.lib.store import get_current_stats
from hermit.logging import get_logger
from hermit.server.guards import requires_store

logger = get_logger("server.api.stats")


@requires_store
async def current_stats(request: Request) -> Response:
    """Return the latest reading recorded for a user."""
    user_id = request.path_params["userId"]
    try:
        stats = await get_current_stats(user_id)
    except StorageOperationFailed as e:
        logger.error("Error fetching current_stats: %s", e)
        return PlainTextResponse(
            f"Error fetching current_stats: {e}", status_code=500
        )

    if stats is None:
        return PlainTextResponse(
            f"No current_stats found for userId: {user_id}", status_code=404
        )
    return JSONResponse(stats)
