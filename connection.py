# connection.py
import enum
import json
import logging
from typing import Union

from fastapi import WebSocket, status
from starlette.websockets import WebSocketDisconnect

from broadcaster import release
from models import InitialMessage, PongMessage
from price_feed import now_ms
from registry import ConnectionEntry

logger = logging.getLogger(__name__)


class ConnectionState(str, enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class ConnectionHandler:
    """Lifecycle of one client: connecting -> open -> closed."""

    def __init__(self, websocket: WebSocket, server):
        self.server = server
        self.entry = ConnectionEntry(websocket)
        self.state = ConnectionState.CONNECTING

    @property
    def client_id(self) -> str:
        return self.entry.client_id

    @property
    def websocket(self) -> WebSocket:
        return self.entry.websocket

    async def run(self) -> None:
        if not self.server.accepting:
            logger.info("Refusing client %s: server is shutting down", self.client_id)
            self.state = ConnectionState.CLOSED
            await self.websocket.close(code=status.WS_1001_GOING_AWAY)
            return

        close_code = status.WS_1000_NORMAL_CLOSURE
        try:
            await self.open()
            while self.state is ConnectionState.OPEN:
                message = await self.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
                frame = message.get("text")
                if frame is None:
                    frame = message.get("bytes")
                if frame is not None:
                    await self.handle_message(frame)
        except WebSocketDisconnect:
            logger.info("Client %s disconnected", self.client_id)
        except Exception as e:
            logger.error("WebSocket error for client %s: %s", self.client_id, e)
            close_code = status.WS_1011_INTERNAL_ERROR
        finally:
            self.close()
            # Attempt graceful close if still connected
            if self.entry.is_open:
                try:
                    await self.websocket.close(code=close_code)
                except Exception as e:
                    logger.debug("Error closing client %s: %s", self.client_id, e)

    async def open(self) -> None:
        await self.websocket.accept()
        self.state = ConnectionState.OPEN
        if self.server.registry.add(self.entry):
            self.server.metrics.add_connection()
        logger.info("Client %s connected (total=%d)", self.client_id, len(self.server.registry))

        initial = InitialMessage(
            stocks=self.server.feed.snapshot(),
            client_id=self.client_id,
            server_time=now_ms(),
        )
        await self.websocket.send_text(initial.to_json())

    async def handle_message(self, frame: Union[str, bytes]) -> None:
        """Answer a latency probe; log and drop anything unparseable."""
        try:
            if isinstance(frame, bytes):
                frame = frame.decode("utf-8")
            data = json.loads(frame)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Error parsing message from client %s: %s", self.client_id, e)
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object message from client %s", self.client_id)
            return

        if data.get("type") == "ping":
            # A ping without clientTime gets a pong without it.
            pong = PongMessage(client_time=data.get("clientTime"), server_time=now_ms())
            await self.websocket.send_text(pong.to_json(exclude_none=True))
        # Any other message kind is ignored.

    def close(self) -> None:
        if self.state is ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSED
        release(self.entry, self.server.registry, self.server.metrics)
        logger.info("Client %s closed (total=%d)", self.client_id, len(self.server.registry))
