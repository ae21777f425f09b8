"""Sensor ingestion endpoint."""

from starlette.requests import Request
from starlette.responses import PlainTextResponse

from hermit.lib.exceptions import InvalidPayload, StorageOperationFailed
from hermit.lib.store import record_reading
from hermit.lib.utils import utcnow
from hermit.logging import get_logger
from hermit.server.guards import requires_store
from hermit.server.validators import READING_FIELDS, parse_reading

logger = get_logger("server.api.ingest")


@requires_store
async def write_reading(request: Request) -> PlainTextResponse:
    """Record a sensor reading as the user's current snapshot and in history.

    This path never triggers a push: readings are not configuration.
    """
    recording_time = utcnow()

    try:
        data = await request.json()
    except ValueError:
        logger.warning("Received empty or invalid JSON payload")
        return PlainTextResponse("Invalid JSON payload", status_code=400)

    if isinstance(data, dict):
        logger.info(
            "Received data: %s", {k: data.get(k) for k in READING_FIELDS}
        )

    try:
        reading = parse_reading(data, recording_time)
    except InvalidPayload as e:
        logger.warning("Rejected reading: %s", e)
        return PlainTextResponse(str(e), status_code=400)

    try:
        written = await record_reading(reading)
    except StorageOperationFailed as e:
        logger.error("Error updating data: %s", e)
        return PlainTextResponse(f"Error updating data: {e}", status_code=500)

    if not written:
        logger.error("No data updated or inserted in current_stats")
        return PlainTextResponse(
            "No data updated or inserted in current_stats", status_code=500
        )

    logger.info("Data updated for userId: %s", reading.user_id)
    return PlainTextResponse("Data updated")
