"""WebSocket transport for the progress relay.

Each connection is one relay subscriber. A writer task drains the
subscriber's queue to the socket while the receive loop handles
``join:installation`` / ``leave:installation`` requests.
"""

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from scalardb_setup.core.progress_relay import ProgressRelay, Subscriber, progress_relay

logger = logging.getLogger(__name__)

router = APIRouter()


async def _pump(ws: WebSocket, sub: Subscriber) -> None:
    while True:
        message = await sub.queue.get()
        await ws.send_json(message)


def handle_client_message(relay: ProgressRelay, sub: Subscriber, raw: str) -> None:
    """Apply one client frame to the relay; replies go through the subscriber's queue."""
    try:
        message: Any = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring non-JSON frame from %s", sub.id)
        return
    if not isinstance(message, dict):
        return

    data = message.get("data")
    installation_id = data.get("installationId") if isinstance(data, dict) else None
    if not installation_id:
        logger.warning("Frame without installationId from %s: %s", sub.id, message.get("event"))
        return

    event = message.get("event")
    if event == "join:installation":
        relay.join(sub, str(installation_id), ack=message.get("ack"))
    elif event == "leave:installation":
        relay.leave(sub, str(installation_id))
    else:
        logger.debug("Unknown event from %s: %s", sub.id, event)


@router.websocket("/ws")
async def progress_socket(ws: WebSocket) -> None:
    await ws.accept()

    sub = progress_relay.subscribe()
    writer = asyncio.create_task(_pump(ws, sub))
    try:
        while True:
            handle_client_message(progress_relay, sub, await ws.receive_text())
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected: %s", sub.id)
    finally:
        writer.cancel()
        await asyncio.gather(writer, return_exceptions=True)
        progress_relay.unsubscribe(sub)
