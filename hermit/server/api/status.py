"""Liveness endpoints."""

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse

from hermit.lib.store import get_connectivity
from hermit.server.sessions import session_registry


async def status(request: Request) -> JSONResponse:
    """Report that the process is up and whether storage is reachable."""
    snapshot = get_connectivity().snapshot()
    return JSONResponse(
        {
            "status": "Server running",
            "dbConnected": snapshot.connected,
            "checkedAt": (
                snapshot.checked_at.isoformat() if snapshot.checked_at else None
            ),
            "sessions": len(session_registry),
        }
    )


async def ping(request: Request) -> PlainTextResponse:
    return PlainTextResponse("pong")
