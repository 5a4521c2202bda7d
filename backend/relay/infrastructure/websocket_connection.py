"""WebSocket Connection — Starlette WebSocket adapted to the Connection protocol.

Invariants:
    - send_text either completes or raises DeliveryError; it never blocks
      longer than the configured send timeout
    - close is best-effort and idempotent (closing a dead socket is a no-op)
    - is_open is True only while both sides are CONNECTED

Design Decisions:
    - Timeout lives here, not in the engine: "slow peer" is a transport concern,
      the engine only sees DeliveryError and falls back to queueing
"""

import asyncio
import logging

from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from relay.core.errors import DeliveryError

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """One accepted WebSocket, identity-comparable by object identity."""

    def __init__(self, websocket: WebSocket, send_timeout: float = 5.0):
        self._websocket = websocket
        self._send_timeout = send_timeout

    @property
    def is_open(self) -> bool:
        return (
            self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, text: str) -> None:
        if not self.is_open:
            raise DeliveryError("Connection is not open")
        try:
            await asyncio.wait_for(
                self._websocket.send_text(text), timeout=self._send_timeout,
            )
        except asyncio.TimeoutError:
            raise DeliveryError(
                f"Send timed out after {self._send_timeout}s",
            )
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise DeliveryError(f"Send failed: {e!r}")

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self._websocket.application_state == WebSocketState.DISCONNECTED:
            return
        try:
            await self._websocket.close(code=code, reason=reason)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            # Peer already gone; nothing left to release
            logger.debug("Close on dead socket ignored: %r", e)
