"""Chat Socket — WebSocket endpoint driving one RelayEngine session per connection.

Invariants:
    - One task per connection; inbound frames processed strictly in arrival order
      (per-sender FIFO)
    - Failed authentication closes the socket with 1008 and never registers
    - Any exit from the receive loop (client close, transport error) runs
      engine.disconnect exactly once

Design Decisions:
    - Socket accepted before authentication so the close carries a 1008 code and
      a reason clients can display (rejecting pre-accept yields a bare HTTP 403)
    - ?target= (or legacy ?targetUsername=) sets a default target for plain-text
      frames; JSON frames may address anyone
    - Route owns no relay logic: parse/route/notify all live in the engine
"""

import logging

from fastapi import APIRouter, Depends, Query, WebSocket, status

from relay.api.dependencies import get_relay_engine
from relay.config import Settings, get_settings
from relay.core.errors import AuthenticationError, DeliveryError
from relay.infrastructure.websocket_connection import WebSocketConnection
from relay.services.relay_engine import RelayEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["chat"])


@router.websocket("/chat")
async def chat_socket(
    websocket: WebSocket,
    token: str | None = Query(None),
    target: str | None = Query(None),
    target_username: str | None = Query(None, alias="targetUsername"),
    engine: RelayEngine = Depends(get_relay_engine),
    settings: Settings = Depends(get_settings),
):
    """Authenticate, flush pending messages, then relay frames until close."""
    await websocket.accept()
    connection = WebSocketConnection(
        websocket, send_timeout=settings.relay_send_timeout_seconds,
    )
    try:
        session = await engine.connect(
            connection, token, default_target=target or target_username,
        )
    except AuthenticationError as e:
        await connection.close(status.WS_1008_POLICY_VIOLATION, e.message)
        return
    except DeliveryError:
        # New connection broke during the pending flush; engine already unregistered it
        return

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            await engine.handle_text(session, raw)
    except DeliveryError as e:
        logger.info(
            "Connection for %s broke while sending a notice: %s",
            session.identity, e.message,
            extra={"identity": session.identity},
        )
    finally:
        engine.disconnect(session)
