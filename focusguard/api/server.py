"""
Combined Server

Main server that runs both WebSocket and REST API servers together
around one Sampling Scheduler.
"""
import asyncio
import datetime
import signal
from typing import Optional, Any, Dict

from focusguard.api.rest_api import HttpMethod, RestAPI
from focusguard.api.serialization import json_safe
from focusguard.api.websocket_server import WebSocketServer
from focusguard.core.sampling_scheduler import SamplingScheduler
from focusguard.services.logger_service import get_logger
from focusguard.types import SystemConfig
from focusguard.types.domain_events import DomainEvent, DomainEventType
from focusguard.types.messages import MessageType, WebSocketMessage


EVENT_TO_MESSAGE_TYPE = {
    DomainEventType.ENGINE_STATE_UPDATED: MessageType.STATE_UPDATE,
    DomainEventType.BADGE_UNLOCKED: MessageType.BADGE_UNLOCKED,
    DomainEventType.AUDIO_INTENT: MessageType.AUDIO_INTENT,
    DomainEventType.SYSTEM_STATUS_UPDATED: MessageType.STATUS_UPDATE,
    DomainEventType.MONITORING_STARTED: MessageType.STATUS_UPDATE,
    DomainEventType.MONITORING_STOPPED: MessageType.STATUS_UPDATE,
}


class Server:
    """
    Main server combining WebSocket and REST API.
    """

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        scheduler: Optional[SamplingScheduler] = None,
    ):
        """
        Initialize the combined server.

        Args:
            config: System configuration.
            scheduler: Pre-built scheduler (adapters injected), if any.
        """
        self._config = config or SystemConfig()

        self._scheduler = scheduler or SamplingScheduler(self._config)
        self._websocket_server = WebSocketServer(
            host=self._config.controller.websocket_host,
            port=self._config.controller.websocket_port,
        )
        self._rest_api = RestAPI(
            host=self._config.controller.api_host,
            port=self._config.controller.api_port,
        )

        self._is_running: bool = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._logger = get_logger()

        self._wire_components()

    async def start(self) -> None:
        """Start all server components."""
        self._logger.system(
            "servers_starting",
            {
                "websocket_url": f"ws://{self._config.controller.websocket_host}:{self._config.controller.websocket_port}",
                "api_url": f"http://{self._config.controller.api_host}:{self._config.controller.api_port}",
            },
        )

        await self._websocket_server.start()
        await self._rest_api.start()

        await self._scheduler.initialize()

        self._is_running = True
        self._logger.system("servers_started", {})

        if self._config.controller.autostart:
            self._scheduler.start()

    async def stop(self) -> None:
        """Stop all server components gracefully."""
        if not self._is_running:
            return
        self._logger.system("servers_stopping", {})
        self._is_running = False

        await self._scheduler.shutdown()
        await self._websocket_server.stop()
        await self._rest_api.stop()

        self._logger.system("servers_stopped", {})

    def run(self) -> None:
        """
        Run the server (blocking).

        This is the main entry point for running the server.
        """
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._setup_signal_handlers()

        try:
            self._loop.run_until_complete(self.start())
            self._loop.run_forever()
        except KeyboardInterrupt:
            self._logger.system("keyboard_interrupt", {})
        finally:
            self._loop.run_until_complete(self.stop())
            self._loop.close()

    def is_running(self) -> bool:
        return self._is_running

    def get_scheduler(self) -> SamplingScheduler:
        return self._scheduler

    def get_websocket_server(self) -> WebSocketServer:
        return self._websocket_server

    def get_rest_api(self) -> RestAPI:
        return self._rest_api

    # --- Internal Methods ---

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        if self._loop is None:
            return

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                self._loop.add_signal_handler(
                    sig,
                    lambda s=sig: asyncio.ensure_future(self._shutdown_handler(s)),
                )
            except NotImplementedError:
                # Windows event loops: fall back to KeyboardInterrupt
                return

    def _wire_components(self) -> None:
        # Scheduler -> WebSocket (outbound) via domain events
        self._scheduler.register_event_handler(self._handle_domain_event)

        # WebSocket -> Scheduler (inbound)
        self._setup_websocket_handlers()

        # REST routes -> Scheduler (inbound)
        self._setup_api_routes()

    def _handle_domain_event(self, event: DomainEvent) -> None:
        message_type = EVENT_TO_MESSAGE_TYPE.get(event.event_type)
        if message_type is None:
            self._logger.system(
                "unknown_domain_event_type",
                {"event_type": getattr(event.event_type, "value", str(event.event_type))},
                level="WARNING",
            )
            return

        if event.event_type in (DomainEventType.MONITORING_STARTED, DomainEventType.MONITORING_STOPPED):
            payload: Any = self._scheduler.get_system_status()
        else:
            payload = event.payload

        msg = WebSocketMessage(
            type=message_type,
            timestamp=event.timestamp,
            payload=json_safe(payload),
            target_client_id=(event.metadata or {}).get("recipient_id"),
        )

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._logger.system(
                "domain_event_without_loop",
                {"event_type": event.event_type.value},
                level="DEBUG",
            )
            return

        if msg.target_client_id:
            task = loop.create_task(self._websocket_server.send_to_client(msg.target_client_id, msg))
        else:
            task = loop.create_task(self._broadcast_websocket_message(msg))
        task.add_done_callback(self._handle_task_result)

    def _handle_task_result(self, task: asyncio.Task) -> None:
        if task.cancelled():
            self._logger.system(
                "background_task_cancelled",
                {"source": "handle_domain_event"},
                level="DEBUG",
            )
            return
        exc = task.exception()
        if exc is not None:
            self._logger.system(
                "background_task_error",
                {"source": "handle_domain_event", "error": str(exc)},
                level="ERROR",
            )

    async def _broadcast_websocket_message(self, msg: WebSocketMessage) -> None:
        sent = await self._websocket_server.broadcast(msg)
        self._logger.system(
            "message_broadcast",
            {"message_type": msg.type.value, "clients": sent},
            level="DEBUG",
        )

    def _setup_api_routes(self) -> None:
        """Set up REST API routes with scheduler handlers."""
        scheduler = self._scheduler

        self._rest_api.register_route("/status", HttpMethod.GET, scheduler.get_system_status)
        self._rest_api.register_route("/state", HttpMethod.GET, scheduler.get_snapshot)
        self._rest_api.register_route("/stats", HttpMethod.GET, scheduler.get_stats_overview)
        self._rest_api.register_route("/logs", HttpMethod.GET, scheduler.get_logs)

        self._rest_api.register_route("/monitoring/start", HttpMethod.POST, scheduler.start)
        self._rest_api.register_route("/monitoring/stop", HttpMethod.POST, scheduler.stop)

        self._rest_api.register_route("/settings/audio", HttpMethod.POST, scheduler.set_audio_enabled)
        self._rest_api.register_route("/settings/custom_audio", HttpMethod.POST, scheduler.save_custom_audio)
        self._rest_api.register_route("/settings/use_custom_audio", HttpMethod.POST, scheduler.set_use_custom_audio)

        async def export_session() -> Dict[str, Any]:
            return {"exported": scheduler.export_session_data()}

        self._rest_api.register_route("/session/export", HttpMethod.POST, export_session)

    def _setup_websocket_handlers(self) -> None:
        """
        Set up WebSocket message handlers.
        """
        scheduler = self._scheduler

        async def on_start_monitoring(message: WebSocketMessage, client_id: str) -> None:
            scheduler.start()

        async def on_stop_monitoring(message: WebSocketMessage, client_id: str) -> None:
            scheduler.stop()

        async def on_frame_update(message: WebSocketMessage, client_id: str) -> None:
            image = message.payload.get("image")
            if not image:
                raise ValueError("frame_update requires an 'image' field")
            scheduler.push_frame(image)

        async def on_config_update(message: WebSocketMessage, client_id: str) -> None:
            payload = message.payload
            if "audio_enabled" in payload:
                scheduler.set_audio_enabled(payload["audio_enabled"])
            if "custom_audio" in payload:
                scheduler.save_custom_audio(payload["custom_audio"])
            if "use_custom_audio" in payload:
                scheduler.set_use_custom_audio(payload["use_custom_audio"])

            await self._websocket_server.send_to_client(client_id, WebSocketMessage(
                type=MessageType.STATUS_UPDATE,
                timestamp=datetime.datetime.now(datetime.timezone.utc).timestamp(),
                payload={"audio": scheduler.get_audio_settings()},
                message_id=message.message_id,
            ))

        async def on_ping(message: WebSocketMessage, client_id: str) -> None:
            pong_msg = WebSocketMessage(
                type=MessageType.PONG,
                timestamp=datetime.datetime.now(datetime.timezone.utc).timestamp(),
                payload={},
                message_id=message.message_id,  # Echo the incoming message_id
            )
            await self._websocket_server.send_to_client(client_id, pong_msg)

        self._websocket_server.register_handler(MessageType.START_MONITORING, on_start_monitoring)
        self._websocket_server.register_handler(MessageType.STOP_MONITORING, on_stop_monitoring)
        self._websocket_server.register_handler(MessageType.FRAME_UPDATE, on_frame_update)
        self._websocket_server.register_handler(MessageType.CONFIG_UPDATE, on_config_update)
        self._websocket_server.register_handler(MessageType.PING, on_ping)

    async def _shutdown_handler(self, sig: signal.Signals) -> None:
        """
        Handle shutdown signals.

        Args:
            sig: The signal received.
        """
        self._logger.system("shutdown_signal", {"signal": sig.name})
        await self.stop()
        if self._loop is not None:
            self._loop.stop()


def create_server(config_path: Optional[str] = None) -> Server:
    """
    Factory function to create a server instance.

    Args:
        config_path: Optional path to a YAML configuration file.

    Returns:
        Configured server instance.
    """
    config = SystemConfig.from_file(config_path) if config_path else SystemConfig()
    return Server(config)
