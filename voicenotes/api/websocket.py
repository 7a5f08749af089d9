"""WebSocket endpoints.

* ``/ws/record`` - the client streams raw PCM (16-bit, mono) into the
  active recording session. Start/stop are REST commands.
* ``/ws/sync``   - the peer device's sync link. The primary listens here;
  the companion dials in with ``PeerConnector``.
* ``/ws/events`` - store change events for UI rendering.

Pipeline: PCM → session sink → (stop) → pipeline → store → events / peer
"""

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from voicenotes.api.deps import device_for_app
from voicenotes.core.exceptions import InvalidStateError
from voicenotes.core.models import WebSocketMessage, WebSocketMessageType
from voicenotes.services.sync.links import ServerWebSocketLink

logger = logging.getLogger(__name__)

router = APIRouter()


async def _send(websocket: WebSocket, kind: WebSocketMessageType, data: dict) -> None:
    msg = WebSocketMessage(type=kind, data=data)
    await websocket.send_json(msg.model_dump(mode="json"))


@router.websocket("/ws/record")
async def record_ws(websocket: WebSocket) -> None:
    """Feed streamed PCM bytes into the device's recording session.

    Protocol:
        - Client sends: raw PCM bytes (16-bit, session sample rate, mono).
        - Server sends: ``connected`` once, ``error`` when audio arrives
          while no capture is active.
    """
    device = device_for_app(websocket.app)
    await websocket.accept()
    await _send(
        websocket,
        WebSocketMessageType.connected,
        device.session.snapshot().model_dump(mode="json"),
    )

    received = 0
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            data = message.get("bytes")
            if not data:
                continue
            try:
                received += device.session.feed(data)
            except InvalidStateError as exc:
                await _send(websocket, WebSocketMessageType.error, {"detail": exc.detail})
    except WebSocketDisconnect:
        pass
    logger.info("Record stream closed, kept %d bytes", received)


@router.websocket("/ws/sync")
async def sync_ws(websocket: WebSocket) -> None:
    """Peer link endpoint: every frame is one encoded sync message."""
    device = device_for_app(websocket.app)
    await websocket.accept()
    link = ServerWebSocketLink(websocket)
    await device.channel.attach(link)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text") or message.get("bytes")
            if raw:
                await device.channel.handle_raw(raw, link)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Sync link %s failed", link.name)
    finally:
        device.channel.detach(link)


@router.websocket("/ws/events")
async def events_ws(websocket: WebSocket) -> None:
    """Push ``memo_upserted`` / ``memo_removed`` events as they happen."""
    device = device_for_app(websocket.app)
    await websocket.accept()
    queue = device.store.subscribe()
    await _send(
        websocket,
        WebSocketMessageType.connected,
        {"role": device.role, "memos": len(device.store)},
    )

    async def _forward() -> None:
        while True:
            event = await queue.get()
            await _send(websocket, event.kind, event.memo.model_dump(mode="json"))

    forward = asyncio.create_task(_forward())
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    finally:
        forward.cancel()
        device.store.unsubscribe(queue)
