"""Push channel for configuration viewers.

Viewers connect to ``/ws?userId=<id>``. The connection is registered as
that user's session and receives a JSON frame every time the user's
configuration changes (pushed by the change watcher). Clients are not
expected to send anything; whatever they send is ignored.
"""
from contextlib import suppress

from starlette.websockets import WebSocket

from hermit.logging import get_logger

from .sessions import WebSocketChannel, session_registry

_logger = get_logger("server.websockets")

USER_ID_PARAM = "userId"

# Policy violation: the handshake carried no user identity
_CLOSE_NO_IDENTITY = 1008


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    """Drain inbound messages until the client goes away."""
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def ws_config(websocket: WebSocket) -> None:
    """Hold a viewer's push channel open for as long as the client stays."""
    user_id = (websocket.query_params.get(USER_ID_PARAM) or "").strip()
    if not user_id:
        _logger.warning("Rejected push channel without %s", USER_ID_PARAM)
        await websocket.close(code=_CLOSE_NO_IDENTITY)
        return

    await websocket.accept()
    channel = WebSocketChannel(websocket)
    session_registry.register(user_id, channel)

    try:
        await _wait_for_disconnect(websocket)
    finally:
        # Must happen before anything else can target this channel
        session_registry.deregister(user_id, channel)
        with suppress(Exception):
            await websocket.close()
