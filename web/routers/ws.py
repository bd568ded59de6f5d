"""Build status WebSocket endpoint.

- WS /ws/{id} - Stream status, progress and log messages for a build

Unknown ids are rejected before the handshake completes (close code
4404). Frames sent by the client are ignored.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from iso_creator.errors import BuildNotFoundError
from web.deps import service_from_connection

logger = logging.getLogger(__name__)

router = APIRouter()

SUBPROTOCOL = "iso-creator"
CLOSE_NOT_FOUND = 4404


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws/{job_id}")
async def build_status_ws(websocket: WebSocket, job_id: str) -> None:
    """Stream status messages for one build until it ends."""
    service = service_from_connection(websocket)
    try:
        broadcaster = await service.open_status_stream(job_id)
    except BuildNotFoundError:
        await websocket.close(code=CLOSE_NOT_FOUND)
        return

    requested = websocket.scope.get("subprotocols", [])
    await websocket.accept(subprotocol=SUBPROTOCOL if SUBPROTOCOL in requested else None)
    logger.debug("Status stream opened for %s", job_id)

    sender = asyncio.create_task(broadcaster.run(websocket.send_json))
    receiver = asyncio.create_task(_wait_for_disconnect(websocket))
    done, pending = await asyncio.wait(
        {sender, receiver}, return_when=asyncio.FIRST_COMPLETED
    )
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)

    if receiver in done:
        logger.debug("Client left status stream for %s", job_id)
        return

    error = sender.exception()
    if error is None:
        await websocket.close()
    elif isinstance(error, (WebSocketDisconnect, RuntimeError)):
        logger.debug("Status stream for %s ended: %s", job_id, error)
    else:
        raise error
