"""
The Bifrost application: route registration plus the ASGI dispatcher.

Per HTTP request the pipeline is::

    middleware -> route lookup -> enrichment -> handler -> normalization
                       | miss
                       v
                  static fallback -> 404

WebSocket upgrades bypass the pipeline entirely and go to the registered
:class:`~bifrost.websocket.WebSocketHandlers`.
"""

import asyncio
import inspect
import logging
import time
import uuid
from collections.abc import Callable, Iterable
from typing import Any

from bifrost.config import RouterConfig
from bifrost.enrich import enrich
from bifrost.exceptions import (
    HandlerError,
    HTTPException,
    RegistrationClosedError,
    RequestTimeout,
)
from bifrost.lifespan import Lifespan
from bifrost.livereload import LiveReloadHub, inject_reload_bytes, inject_reload_script
from bifrost.middleware import MiddlewarePipeline, ResponseDraft
from bifrost.normalize import normalize
from bifrost.pages import PageRoute, scan_pages
from bifrost.request import Request
from bifrost.response import JSONResponse, Response, TextResponse
from bifrost.routing import RoutePattern, RouteTable
from bifrost.static import StaticFiles
from bifrost.types import MiddlewareHandler, Receive, RouteHandler, Scope, Send
from bifrost.websocket import WebSocketHandlers, serve_websocket

access_logger = logging.getLogger("bifrost.access")
error_logger = logging.getLogger("bifrost.errors")
timeout_logger = logging.getLogger("bifrost.timeout")

# The non-standard verb page modules may export
CUSTOM_METHOD: str = "INSERT"


def not_found() -> TextResponse:
    return TextResponse("404", status_code=404)


class Bifrost:
    """
    HTTP/WebSocket router.

    Routes, middleware and the WebSocket handler set are registered before
    serving. The router freezes on ASGI lifespan startup (or on its first
    request, for servers without lifespan support); registering anything
    afterwards raises :class:`RegistrationClosedError`.

    Usage:
        app = Bifrost(public_dir="dist", spa=True)

        @app.get("/users/:id")
        async def user(request):
            return {"id": request.params["id"]}

        # Run with: uvicorn main:app
    """

    def __init__(self, config: RouterConfig | None = None, **options: Any) -> None:
        if config is None:
            config = RouterConfig(**options)
        elif options:
            raise TypeError("Pass either a RouterConfig or keyword options, not both")
        self.config = config

        self._routes = RouteTable()
        self._middleware = MiddlewarePipeline()
        self._ws_handlers: WebSocketHandlers | None = None
        self._lifespan = Lifespan()
        self._static = StaticFiles(
            config.public_dir,
            spa=config.spa,
            livereload=config.livereload,
        )
        self.live_reload = LiveReloadHub()
        self._frozen = False

        if config.pages_dir is not None:
            self.add_pages(scan_pages(config.pages_dir))

    # -------------------------------------------------------------------------
    # ASGI Interface
    # -------------------------------------------------------------------------

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI application entry point."""
        scope["app"] = self

        if scope["type"] == "lifespan":
            await self._lifespan.serve(receive, send, before_startup=self.freeze)
        elif scope["type"] == "websocket":
            self.freeze()
            await self._handle_websocket(scope, receive, send)
        elif scope["type"] == "http":
            self.freeze()
            async with self._lifespan.track():
                await self._handle_http(scope, receive, send)

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Close registration. Idempotent."""
        if self._frozen:
            return
        self._frozen = True
        self._routes.freeze()
        self._middleware.freeze()

    @property
    def routes(self) -> list[RoutePattern]:
        return self._routes.routes

    def register(self, method: str, path: str, handler: RouteHandler) -> RoutePattern:
        """Register *handler* for *method* requests matching *path*."""
        return self._routes.register(method, path, handler)

    def route(
        self,
        path: str,
        methods: Iterable[str] = ("GET",),
    ) -> Callable[[RouteHandler], RouteHandler]:
        """Decorator registering one handler for several methods."""
        def decorator(handler: RouteHandler) -> RouteHandler:
            for method in methods:
                self.register(method, path, handler)
            return handler
        return decorator

    def _verb(self, method: str, path: str, handler: RouteHandler | None) -> Any:
        if handler is not None:
            return self.register(method, path, handler)
        return self.route(path, methods=(method,))

    def get(self, path: str, handler: RouteHandler | None = None) -> Any:
        """Register a GET route, directly or as a decorator."""
        return self._verb("GET", path, handler)

    def post(self, path: str, handler: RouteHandler | None = None) -> Any:
        return self._verb("POST", path, handler)

    def put(self, path: str, handler: RouteHandler | None = None) -> Any:
        return self._verb("PUT", path, handler)

    def patch(self, path: str, handler: RouteHandler | None = None) -> Any:
        return self._verb("PATCH", path, handler)

    def delete(self, path: str, handler: RouteHandler | None = None) -> Any:
        return self._verb("DELETE", path, handler)

    def insert(self, path: str, handler: RouteHandler | None = None) -> Any:
        return self._verb(CUSTOM_METHOD, path, handler)

    def add_pages(self, manifest: Iterable[PageRoute]) -> None:
        """Register every entry of a page manifest, in order."""
        for page in manifest:
            self.register(page.method, page.path, page.handler)

    def use(self, *middleware: MiddlewareHandler) -> "Bifrost":
        """Append middleware to the chain. Returns self for chaining."""
        self._middleware.add(*middleware)
        return self

    def websocket(self, handlers: WebSocketHandlers) -> WebSocketHandlers:
        """Set the WebSocket handler set. The last registration wins."""
        if self._frozen:
            raise RegistrationClosedError(
                "Cannot set websocket handlers: router is already serving"
            )
        self._ws_handlers = handlers
        return handlers

    # -------------------------------------------------------------------------
    # Lifespan
    # -------------------------------------------------------------------------

    def on_startup(self, handler: Callable[[], Any]) -> Callable[[], Any]:
        """Decorator to register a startup handler."""
        return self._lifespan.on_startup(handler)

    def on_shutdown(self, handler: Callable[[], Any]) -> Callable[[], Any]:
        """Decorator to register a shutdown handler."""
        return self._lifespan.on_shutdown(handler)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def _handle_websocket(self, scope: Scope, receive: Receive, send: Send) -> None:
        handlers = self._ws_handlers
        if handlers is None and self.config.livereload:
            handlers = WebSocketHandlers(
                open=self.live_reload.open,
                close=self.live_reload.close,
            )
        if handlers is None:
            # Nobody to hand the connection to
            await send({"type": "websocket.close", "code": 1008})
            return
        await serve_websocket(handlers, scope, receive, send)

    async def _handle_http(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive, max_body_size=self.config.max_body_size)
        request_id = str(uuid.uuid4())
        request.state["request_id"] = request_id
        start_time = time.perf_counter()

        draft = ResponseDraft()
        try:
            if self.config.timeout is None:
                response = await self.dispatch(request, draft)
            else:
                response = await asyncio.wait_for(
                    self.dispatch(request, draft),
                    timeout=self.config.timeout,
                )
            draft.apply(response)
            body = response.render()
        except asyncio.TimeoutError:
            timeout_logger.warning(
                "Request timed out after %.1fs  path=%s request_id=%s",
                self.config.timeout,
                request.path,
                request_id,
            )
            response = self._error_response(
                RequestTimeout(f"Request exceeded {self.config.timeout}s time limit"),
                request_id,
            )
            body = response.render()
        except Exception as exc:
            response = self._error_response(exc, request_id)
            body = response.render()

        response.set_header("x-request-id", request_id)
        await response(send, body)

        access_logger.info(
            "%s %s %d %.2fms request_id=%s client=%s",
            request.method,
            request.path,
            response.status_code,
            (time.perf_counter() - start_time) * 1000,
            request_id,
            request.client[0] if request.client else "-",
        )

    async def dispatch(self, request: Request, draft: ResponseDraft | None = None) -> Response:
        """
        Produce the response for *request*.

        Middleware run first; a short-circuit result skips route lookup.
        A route miss falls back to static files, then to a plain ``404``.
        Exceptions propagate to the caller.
        """
        if draft is None:
            draft = ResponseDraft()

        early = await self._middleware.run(request, draft)
        if early is not None:
            return self._finish(normalize(early))

        match = self._routes.lookup(request.method, request.path)
        if match is None:
            static = await self._static.lookup(request)
            return static if static is not None else not_found()

        await enrich(request, match)

        handler = match.route.handler
        try:
            result = handler(request)
            if inspect.isawaitable(result):
                result = await result
        except HTTPException:
            raise
        except Exception as exc:
            raise HandlerError(getattr(handler, "__name__", repr(handler))) from exc

        return self._finish(normalize(result))

    def _finish(self, response: Response) -> Response:
        """Inject the live reload script into HTML bodies."""
        if not (self.config.livereload and response.is_html):
            return response
        content = response.content
        if isinstance(content, str):
            response.content = inject_reload_script(content)
        elif isinstance(content, (bytes, bytearray)):
            response.content = inject_reload_bytes(bytes(content), response.charset)
        return response

    def _error_response(self, exc: Exception, request_id: str) -> Response:
        """Log *exc* and turn it into a JSON error response."""
        if isinstance(exc, HTTPException):
            if exc.status_code >= 500:
                error_logger.error(
                    "request_id=%s status=%d detail=%s",
                    request_id, exc.status_code, exc.detail,
                    exc_info=exc,
                )
            else:
                error_logger.warning(
                    "request_id=%s status=%d detail=%s",
                    request_id, exc.status_code, exc.detail,
                )
            detail = exc.detail if exc.status_code < 500 else _public_detail(exc)
            return JSONResponse(
                content={
                    "error": detail,
                    "status_code": exc.status_code,
                    "request_id": request_id,
                },
                status_code=exc.status_code,
                headers=exc.headers,
            )

        error_logger.error(
            "Unhandled exception request_id=%s: %s",
            request_id, exc,
            exc_info=exc,
        )
        # Never expose internal details to the client
        return JSONResponse(
            content={
                "error": "Internal Server Error",
                "status_code": 500,
                "request_id": request_id,
            },
            status_code=500,
        )

    # -------------------------------------------------------------------------
    # Running
    # -------------------------------------------------------------------------

    def run(self, log_level: str = "info") -> None:
        """Serve the router with uvicorn on the configured host and port."""
        import uvicorn

        uvicorn.run(
            self,
            host=self.config.host,
            port=self.config.port,
            log_level="debug" if self.config.debug else log_level,
        )


def _public_detail(exc: HTTPException) -> str:
    # Handler failures carry the handler name, which is internal
    if isinstance(exc, HandlerError):
        return "Internal Server Error"
    return exc.detail
