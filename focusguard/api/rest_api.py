"""
REST API Server

Provides HTTP endpoints for monitoring control, audio settings, and
read-only views of the engine state.

Design:
- Server.py decides *which* routes exist (wiring) by calling `register_route(...)`.
- RestAPI is a thin transport layer that binds registered routes into aiohttp.
- /health is kept as a built-in liveness endpoint.
"""

from __future__ import annotations

from typing import Optional, Dict, Any, Callable, Awaitable, List
from enum import Enum
import json
import inspect

from aiohttp import web

from focusguard.api.serialization import json_safe
from focusguard.services.logger_service import get_logger


class HttpMethod(Enum):
    """HTTP methods."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


# Route handler takes no args, the request dict, or named JSON body fields
RouteHandler = Callable[..., Awaitable[Any]] | Callable[..., Any]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, PATCH, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class RestAPI:
    """
    REST API server for monitoring control and status endpoints.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8080,
    ):
        self._host = host
        self._port = port
        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._routes: Dict[str, Dict[HttpMethod, RouteHandler]] = {}
        self._is_running: bool = False
        self._logger = get_logger()

    async def start(self) -> None:
        """Start the REST API server."""
        self._app = self.build_app()

        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        site = web.TCPSite(self._runner, self._host, self._port)
        await site.start()
        self._is_running = True

        self._logger.system(
            "rest_api_started",
            {"url": f"http://{self._host}:{self._port}", "routes": self.list_routes()},
        )

    async def stop(self) -> None:
        """Stop the REST API server."""
        self._is_running = False
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        self._app = None

    def is_running(self) -> bool:
        """Check if server is running."""
        return self._is_running

    def build_app(self) -> web.Application:
        """Create the aiohttp application with all registered routes bound."""
        app = web.Application(middlewares=[self._cors_middleware])
        self._setup_app(app)
        return app

    def register_route(
        self,
        path: str,
        method: HttpMethod,
        handler: RouteHandler,
    ) -> None:
        """
        Register a route handler.

        Args:
            path: URL path (e.g., "/status")
            method: HttpMethod enum (e.g., HttpMethod.GET)
            handler: function taking nothing, the request dict, or named body fields
        """
        if not path.startswith("/"):
            path = "/" + path

        if path not in self._routes:
            self._routes[path] = {}

        if method in self._routes[path]:
            raise ValueError(f"Route already registered: {method.value} {path}")

        self._routes[path][method] = handler

    def list_routes(self) -> List[str]:
        return sorted(
            f"{method.value} {path}"
            for path, methods in self._routes.items()
            for method in methods
        )

    # --- Internal Methods ---

    def _setup_app(self, app: web.Application) -> None:
        """Bind built-in routes and all registered routes into aiohttp."""
        # Built-in liveness endpoint (does not depend on scheduler wiring)
        app.router.add_get("/health", self._health_handler)

        for path, methods in self._routes.items():
            for method, handler in methods.items():
                aiohttp_handler = self._make_aiohttp_handler(handler)
                app.router.add_route(method.value, path, aiohttp_handler)
            app.router.add_route("OPTIONS", path, self._preflight_handler)

    @web.middleware
    async def _cors_middleware(self, request: web.Request, handler) -> web.StreamResponse:
        response = await handler(request)
        response.headers.update(CORS_HEADERS)
        return response

    def _make_aiohttp_handler(self, handler: RouteHandler):

        async def _wrapped(request: web.Request) -> web.Response:
            try:
                req = await self._request_to_dict(request)

                params = inspect.signature(handler).parameters

                if len(params) == 0:
                    call_result = handler()

                elif len(params) == 1 and "request" in params:
                    # Explicit request param: pass full request dict
                    call_result = handler(req)

                else:
                    # Map named params from the JSON body
                    payload = req.get("json") or {}
                    if not isinstance(payload, dict):
                        raise ValueError("Expected JSON object body")

                    kwargs = {
                        name: payload[name]
                        for name in params.keys()
                        if name in payload
                    }

                    missing = [
                        name for name, param in params.items()
                        if name not in kwargs and param.default is inspect.Parameter.empty
                    ]
                    if missing:
                        raise ValueError(f"Missing required fields: {missing}")

                    call_result = handler(**kwargs)

                if inspect.isawaitable(call_result):
                    call_result = await call_result

                call_result = json_safe(call_result)

                if call_result is None:
                    call_result = {"status": "ok"}

                return self._create_response(call_result, status=200)

            except web.HTTPException:
                raise

            except ValueError as e:
                return self._create_error_response(str(e), status=400)

            except Exception as e:
                self._logger.system(
                    "rest_handler_error",
                    {"path": request.path, "error": str(e), "type": type(e).__name__},
                    level="ERROR",
                )
                return self._create_error_response(f"Internal server error: {e}", status=500)

        return _wrapped

    async def _request_to_dict(self, request: web.Request) -> Dict[str, Any]:
        """
        Convert aiohttp Request into a simple dict envelope with method,
        path, query, headers and the JSON body (or raw text).
        """
        body_json: Any = None
        body_text: Optional[str] = None

        if request.can_read_body:
            body_text = await request.text()
            if body_text:
                try:
                    body_json = json.loads(body_text)
                except json.JSONDecodeError:
                    body_json = None
            else:
                body_text = None

        return {
            "method": request.method,
            "path": request.path,
            "query": dict(request.rel_url.query),
            "headers": dict(request.headers),
            "json": body_json,
            "text": body_text,
        }

    def _create_response(
        self,
        data: Any,
        status: int = 200,
    ) -> web.Response:
        """Create an HTTP JSON response."""
        try:
            json.dumps(data)
        except TypeError:
            data = {"error": "Response not JSON serializable"}
            status = 500

        return web.json_response(data, status=status)

    def _create_error_response(
        self,
        message: str,
        status: int = 400,
    ) -> web.Response:
        """Create an error response."""
        return self._create_response({"error": message}, status=status)

    # --- Built-in Handlers ---

    async def _health_handler(self, request: web.Request) -> web.Response:
        """Health check endpoint handler."""
        return web.json_response({"status": "ok"})

    async def _preflight_handler(self, request: web.Request) -> web.Response:
        return web.Response(status=204)
