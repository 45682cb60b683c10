"""
WebSocket Server

Handles real-time bidirectional communication with the presentation
client. Used for streaming engine snapshots and audio intents out, and
receiving camera frames and monitoring commands in.
"""
from typing import Optional, Dict, Any, Callable, Awaitable
import json
import uuid
from datetime import datetime, timezone

import websockets

from focusguard.api.serialization import json_safe
from focusguard.services.logger_service import get_logger
from focusguard.types.messages import MessageType, WebSocketMessage


# Type alias for message handlers
MessageHandler = Callable[[WebSocketMessage, str], Awaitable[None]]


def _timestamp() -> float:
    return datetime.now(timezone.utc).timestamp()


class WebSocketServer:
    """
    WebSocket server for presentation client communication.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8765,
    ):
        """
        Initialize the WebSocket server.

        Args:
            host: Host to bind to.
            port: Port to listen on.
        """
        self._host = host
        self._port = port
        self._server: Optional[Any] = None
        # client id -> open connection
        self._clients: Dict[str, Any] = {}
        self._message_handlers: Dict[MessageType, MessageHandler] = {}
        self._is_running: bool = False
        self._logger = get_logger()

    async def start(self) -> None:
        """Start the WebSocket server."""
        self._server = await websockets.serve(
            self._handle_connection,
            self._host,
            self._port,
            max_size=None,
        )
        self._is_running = True
        self._logger.system(
            "websocket_server_started",
            {"url": f"ws://{self._host}:{self._port}"},
        )

    async def stop(self) -> None:
        """Stop the WebSocket server and disconnect all clients."""
        self._is_running = False

        for client in list(self._clients.values()):
            try:
                await client.close()
            except Exception as e:
                self._logger.system(
                    "websocket_client_close_error",
                    {"error": str(e)},
                    level="DEBUG",
                )
        self._clients.clear()

        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    def is_running(self) -> bool:
        return self._is_running

    def get_connected_clients(self) -> int:
        """
        Get number of connected clients.

        Returns:
            Number of connected clients.
        """
        return len(self._clients)

    def register_handler(
        self,
        message_type: MessageType,
        handler: MessageHandler,
    ) -> None:
        """
        Register a handler for a message type.

        Args:
            message_type: Type of message to handle.
            handler: Async function to handle the message.
        """
        self._message_handlers[message_type] = handler

    def unregister_handler(self, message_type: MessageType) -> None:
        self._message_handlers.pop(message_type, None)

    async def send_to_client(
        self,
        client_id: str,
        message: WebSocketMessage,
    ) -> bool:
        """
        Send a message to a specific client.

        Args:
            client_id: ID of the target client.
            message: Message to send.

        Returns:
            True if sent successfully.
        """
        websocket = self._clients.get(client_id)
        if websocket is None:
            return False

        try:
            await websocket.send(self._serialize_message(message))
            return True
        except Exception as e:
            self._logger.system(
                "websocket_send_to_client_error",
                {"client_id": client_id, "error": str(e)},
                level="ERROR",
            )
            return False

    async def broadcast(self, message: WebSocketMessage) -> int:
        """
        Send a message to every connected client.

        Returns:
            Number of clients the message reached.
        """
        sent = 0
        text = self._serialize_message(message)

        for client_id, client in list(self._clients.items()):
            try:
                await client.send(text)
                sent += 1
            except Exception as e:
                self._logger.system(
                    "websocket_broadcast_client_error",
                    {"client_id": client_id, "error": str(e)},
                    level="WARNING",
                )
                self._clients.pop(client_id, None)

        return sent

    # --- Internal Methods ---

    async def _handle_connection(self, websocket: Any, path: str = "") -> None:
        """
        Handle a new WebSocket connection.

        Args:
            websocket: The WebSocket connection.
            path: Connection path (older websockets releases only).
        """
        client_id = str(uuid.uuid4())
        self._clients[client_id] = websocket

        self._logger.system(
            "websocket_client_connected",
            {"client_id": client_id, "total_clients": len(self._clients)},
        )

        try:
            async for message in websocket:
                await self._process_message(message, client_id)
        except websockets.ConnectionClosed:
            pass
        except Exception as e:
            self._logger.system(
                "websocket_client_error",
                {"client_id": client_id, "error": str(e)},
                level="WARNING",
            )
        finally:
            self._clients.pop(client_id, None)
            self._logger.system(
                "websocket_client_disconnected",
                {"client_id": client_id, "total_clients": len(self._clients)},
            )

    async def _process_message(
        self,
        raw_message: str,
        client_id: str,
    ) -> None:
        """
        Process a received message.

        Args:
            raw_message: Raw JSON message string.
            client_id: ID of the sending client.
        """
        message = self._parse_message(raw_message)
        if message is None:
            self._logger.system(
                "websocket_invalid_message",
                {"client_id": client_id},
                level="WARNING",
            )
            await self._reply_error(client_id, "Invalid message")
            return

        # Frames arrive every few seconds; keep them out of the console
        if message.type != MessageType.FRAME_UPDATE:
            self._logger.system(
                "websocket_message_received",
                {"client_id": client_id, "message_type": message.type.value},
                level="DEBUG",
            )

        handler = self._message_handlers.get(message.type)
        if handler is None:
            return
        try:
            await handler(message, client_id)
        except Exception as e:
            self._logger.system(
                "websocket_handler_error",
                {"message_type": message.type.value, "error": str(e)},
                level="ERROR",
            )
            await self._reply_error(client_id, str(e), message)

    async def _reply_error(
        self,
        client_id: str,
        error: str,
        request: Optional[WebSocketMessage] = None,
    ) -> None:
        """Answer the sender with an ERROR, echoing the failed request's type and id."""
        payload: Dict[str, Any] = {"error": error}
        if request is not None:
            payload["message_type"] = request.type.value
        await self.send_to_client(client_id, WebSocketMessage(
            type=MessageType.ERROR,
            timestamp=_timestamp(),
            payload=payload,
            message_id=request.message_id if request is not None else None,
        ))

    def _parse_message(self, raw_message: Any) -> Optional[WebSocketMessage]:
        """
        Parse a raw message into a WebSocketMessage.

        Returns:
            Parsed message or None if invalid.
        """
        try:
            data = json.loads(raw_message)
            if not isinstance(data, dict):
                return None
            return WebSocketMessage.from_dict(data)
        except (json.JSONDecodeError, TypeError, ValueError):
            return None

    def _serialize_message(self, message: WebSocketMessage) -> str:
        return json.dumps(json_safe(message.to_dict()), ensure_ascii=False)
