"""Realtime API - WebSocket fan-out of signal bus topics.

    /api/v1/realtime/ws?topic=pet:{petId}:access-requests&topic=user:{userId}:notifications

Each bus event is sent as one JSON message (Event fields). There is no
replay: after (re)connecting, clients re-read the state they care about.
"""
import asyncio
from typing import List

import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from infrastructure.realtime.bus import Subscription

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _watch_disconnect(websocket: WebSocket, subscription: Subscription) -> None:
    try:
        while True:
            await websocket.receive_text()  # client messages are ignored
    except WebSocketDisconnect:
        pass
    finally:
        subscription.close()


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, topic: List[str] = Query(...)):
    bus = websocket.app.state.signal_bus
    subscription = bus.subscribe(*topic)
    await websocket.accept()

    watcher = asyncio.create_task(_watch_disconnect(websocket, subscription))
    logger.info("realtime_client_connected", topics=topic)

    try:
        async for event in subscription:
            await websocket.send_json(event.model_dump(mode="json"))
    except WebSocketDisconnect:
        pass
    finally:
        subscription.close()
        watcher.cancel()
        logger.info("realtime_client_disconnected", topics=topic)
