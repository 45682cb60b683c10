#!/usr/bin/env python3
"""
FocusGuard - Main Entry Point

Usage:
    python -m focusguard.main [--config CONFIG_PATH] [--host HOST] [--ws-port PORT]

Or after installing the package:
    focusguard [--config CONFIG_PATH] [--host HOST] [--ws-port PORT]
"""
import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from focusguard.types import ClassifierProvider, FrameCaptureMode, SystemConfig

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="FocusGuard homework focus monitoring server"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file (YAML)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind servers to",
    )
    parser.add_argument(
        "--ws-port",
        type=int,
        default=None,
        help="WebSocket server port",
    )
    parser.add_argument(
        "--api-port",
        type=int,
        default=None,
        help="REST API server port",
    )
    parser.add_argument(
        "--classifier",
        type=str,
        choices=[p.value for p in ClassifierProvider],
        default=None,
        help="Visual classifier provider",
    )
    parser.add_argument(
        "--capture",
        type=str,
        choices=[m.value for m in FrameCaptureMode],
        default=None,
        help="Frame capture mode",
    )
    parser.add_argument(
        "--autostart",
        action="store_true",
        help="Start monitoring as soon as the server is ready",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--session-log-level",
        type=str,
        choices=LOG_LEVELS,
        default="INFO",
        help="Session log level",
    )
    parser.add_argument(
        "--system-log-level",
        type=str,
        choices=LOG_LEVELS,
        default="INFO",
        help="System log level",
    )
    return parser.parse_args(argv)


def load_config(config_path: Optional[str]) -> SystemConfig:
    """
    Load configuration from file or use defaults.

    Args:
        config_path: Path to configuration file.

    Returns:
        System configuration.
    """
    from focusguard.services.logger_service import get_logger

    logger = get_logger()

    if config_path:
        logger.system("config_loading", {"path": config_path})
        return SystemConfig.from_file(config_path)

    logger.system("config_using_defaults", {})
    return SystemConfig()


def apply_overrides(config: SystemConfig, args: argparse.Namespace) -> SystemConfig:
    """Apply command line overrides on top of the loaded configuration."""
    if args.host:
        config.controller.websocket_host = args.host
        config.controller.api_host = args.host
    if args.ws_port is not None:
        config.controller.websocket_port = args.ws_port
    if args.api_port is not None:
        config.controller.api_port = args.api_port
    if args.classifier:
        config.classifier.provider = ClassifierProvider(args.classifier)
    if args.capture:
        config.frame_capture.mode = FrameCaptureMode(args.capture)
    if args.autostart:
        config.controller.autostart = True
    return config


def setup_logging(debug: bool = False) -> None:
    """
    Set up logging configuration.

    Args:
        debug: Enable debug level logging.
    """
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Suppress verbose third-party library logs
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("websockets.server").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


async def run_server(config: SystemConfig) -> None:
    """
    Run the server until a shutdown signal arrives.

    Args:
        config: System configuration.
    """
    from focusguard.api.server import Server
    from focusguard.services.logger_service import get_logger

    server = Server(config)
    logger = get_logger()

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def signal_handler():
        logger.system("shutdown_signal_received", {})
        shutdown_event.set()

    # add_signal_handler is not supported on Windows
    if sys.platform != "win32":
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, signal_handler)

    try:
        await server.start()
        await shutdown_event.wait()
    except asyncio.CancelledError:
        logger.system("server_shutdown_requested", {})
    finally:
        await server.stop()


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    setup_logging(debug=args.debug)

    from focusguard.services.logger_service import initialize_logger
    logger = initialize_logger(
        session_level=args.session_log_level,
        system_level="DEBUG" if args.debug else args.system_log_level,
    )

    try:
        config = apply_overrides(load_config(args.config), args)
    except (OSError, ValueError) as e:
        logger.system(
            "config_error",
            {"error": str(e), "error_type": type(e).__name__},
            level="ERROR",
        )
        return 2

    logger.system(
        "focusguard_startup",
        {
            "websocket_url": f"ws://{config.controller.websocket_host}:{config.controller.websocket_port}",
            "api_url": f"http://{config.controller.api_host}:{config.controller.api_port}",
            "classifier": config.classifier.provider.value,
            "capture": config.frame_capture.mode.value,
            "debug": args.debug,
        },
    )

    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.system("keyboard_interrupt", {})
        return 0
    except Exception as e:
        logger.system(
            "focusguard_error",
            {"error": str(e), "error_type": type(e).__name__},
            level="ERROR",
        )
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
