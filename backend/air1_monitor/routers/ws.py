from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from air1_monitor.services.hub import SnapshotHub

logger = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    hub: SnapshotHub = websocket.app.state.hub
    queue = hub.subscribe()
    logger.info("WS connected, %d client(s)", hub.subscriber_count)

    try:
        # Send the current payload right away, the client does not wait for the next tick
        if hub.latest is not None:
            await websocket.send_json(hub.latest)

        send_task = asyncio.create_task(_ws_sender(websocket, queue))
        recv_task = asyncio.create_task(_ws_receiver(websocket))
        done, pending = await asyncio.wait(
            {send_task, recv_task},
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
    except WebSocketDisconnect:
        pass
    except Exception as exc:
        logger.warning("WS error: %s", exc)
    finally:
        hub.unsubscribe(queue)
        logger.info("WS disconnected, %d client(s) left", hub.subscriber_count)


async def _ws_sender(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        message = await queue.get()
        await websocket.send_json(message)


async def _ws_receiver(websocket: WebSocket) -> None:
    while True:
        await websocket.receive_text()
