"""
Bifrost - an ASGI request router.

Maps requests to handlers by method and ``:param`` path templates, runs a
middleware chain, normalizes handler return values into responses, and
falls back to static files with optional SPA and live reload support.
"""

from bifrost.app import Bifrost
from bifrost.config import RouterConfig
from bifrost.element import Component, Fragment, Tag, Text, h, render
from bifrost.exceptions import (
    HTTPException,
    PayloadParseError,
    RegistrationClosedError,
    RouteCompileError,
)
from bifrost.middleware import BearerAuthMiddleware, Middleware, ResponseDraft
from bifrost.multipart import UploadFile
from bifrost.pages import PageRoute, scan_pages
from bifrost.request import Request
from bifrost.response import (
    FileResponse,
    HTMLResponse,
    JSONResponse,
    RedirectResponse,
    Response,
    TextResponse,
)
from bifrost.routing import RoutePattern, RouteTable, compile_pattern
from bifrost.websocket import WebSocket, WebSocketHandlers

__version__ = "0.1.0"
__all__ = [
    "Bifrost",
    "RouterConfig",
    "Request",
    "Response",
    "TextResponse",
    "HTMLResponse",
    "JSONResponse",
    "RedirectResponse",
    "FileResponse",
    "RouteTable",
    "RoutePattern",
    "compile_pattern",
    "Middleware",
    "ResponseDraft",
    "BearerAuthMiddleware",
    "Component",
    "Fragment",
    "Tag",
    "Text",
    "h",
    "render",
    "HTTPException",
    "PayloadParseError",
    "RegistrationClosedError",
    "RouteCompileError",
    "UploadFile",
    "PageRoute",
    "scan_pages",
    "WebSocket",
    "WebSocketHandlers",
]
