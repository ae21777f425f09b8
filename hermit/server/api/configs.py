"""Configuration read and update endpoints.

Both answer with the hydrated record: exactly the recognized fields, with
defaults standing in for anything an older stored document lacks.
"""

from starlette.requests import Request
from starlette.responses import JSONResponse

from hermit.lib.exceptions import InvalidPayload, StorageOperationFailed
from hermit.lib.records import hydrate
from hermit.lib.store import get_config, seed_config, upsert_config
from hermit.logging import get_logger
from hermit.server.guards import requires_store
from hermit.server.validators import parse_config_update

logger = get_logger("server.api.configs")


@requires_store
async def read_config(request: Request) -> JSONResponse:
    """Return the user's configuration, seeding defaults on first access."""
    user_id = request.path_params["userId"]
    try:
        document = await get_config(user_id)
        if document is None:
            document = await seed_config(user_id)
    except StorageOperationFailed as e:
        logger.error("Error reading configuration for %s: %s", user_id, e)
        return JSONResponse(
            {"error": f"Error reading thresholds: {e}"}, status_code=500
        )
    return JSONResponse(hydrate(document))


@requires_store
async def update_config(request: Request) -> JSONResponse:
    """Merge the provided fields into the user's configuration."""
    user_id = request.path_params["userId"]

    try:
        data = await request.json()
    except ValueError:
        return JSONResponse({"error": "Invalid JSON"}, status_code=400)

    try:
        fields = parse_config_update(data)
    except InvalidPayload as e:
        logger.warning("Rejected update for %s: %s", user_id, e)
        return JSONResponse(
            {"error": str(e), "field": e.field}, status_code=400
        )

    try:
        document = await upsert_config(user_id, fields)
    except StorageOperationFailed as e:
        logger.error("Error updating configuration for %s: %s", user_id, e)
        return JSONResponse(
            {"error": f"Error updating thresholds: {e}"}, status_code=500
        )

    logger.info("Configuration updated for %s: %s", user_id, sorted(fields))
    return JSONResponse(hydrate(document))
