"""
WebSocket support for Bifrost.

Upgrade requests never reach the route table. They are handed to a
single :class:`WebSocketHandlers` set whose four optional callbacks are
invoked for every connection::

    router.websocket(WebSocketHandlers(
        open=lambda ws: print("hello", ws.path),
        message=echo,
    ))

Callbacks may be plain functions or coroutine functions. The handler set
is shared by all connections, so callbacks must not keep per-connection
state outside the :class:`WebSocket` they receive (``ws.state`` is there
for that).
"""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from bifrost.types import Receive, Scope, Send

logger = logging.getLogger("bifrost.websocket")


class WebSocket:
    """
    High-level WebSocket interface.

    Wraps the ASGI ``websocket`` scope and send callable. Incoming frames
    are read by :func:`serve_websocket` and handed to the ``message``
    callback.
    """

    def __init__(self, scope: Scope, send: Send) -> None:
        self._scope = scope
        self._send = send
        self.sent_count: int = 0
        self.state: dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Scope accessors
    # ------------------------------------------------------------------

    @property
    def path(self) -> str:
        return self._scope.get("path", "/")

    @property
    def query_string(self) -> str:
        return self._scope.get("query_string", b"").decode("utf-8")

    @property
    def headers(self) -> dict[str, str]:
        hdrs: dict[str, str] = {}
        for name, value in self._scope.get("headers", []):
            hdrs[name.decode("latin-1").lower()] = value.decode("latin-1")
        return hdrs

    @property
    def client(self) -> tuple[str, int] | None:
        c = self._scope.get("client")
        return (c[0], c[1]) if c else None

    @property
    def app(self) -> Any:
        return self._scope.get("app")

    # ------------------------------------------------------------------
    # Protocol actions
    # ------------------------------------------------------------------

    async def accept(
        self,
        subprotocol: str | None = None,
        headers: list[tuple[bytes, bytes]] | None = None,
    ) -> None:
        """Accept the incoming WebSocket connection."""
        msg: dict[str, Any] = {"type": "websocket.accept"}
        if subprotocol:
            msg["subprotocol"] = subprotocol
        if headers:
            msg["headers"] = headers
        await self._send(msg)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        """Close the WebSocket connection."""
        await self._send({
            "type": "websocket.close",
            "code": code,
            "reason": reason,
        })

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send_text(self, data: str) -> None:
        await self._send({"type": "websocket.send", "text": data})
        self.sent_count += 1

    async def send_bytes(self, data: bytes) -> None:
        await self._send({"type": "websocket.send", "bytes": data})
        self.sent_count += 1

    async def send_json(self, data: Any, mode: str = "text") -> None:
        encoded = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
        if mode == "text":
            await self.send_text(encoded)
        else:
            await self.send_bytes(encoded.encode("utf-8"))

    async def send(self, data: str | bytes) -> None:
        if isinstance(data, bytes):
            await self.send_bytes(data)
        else:
            await self.send_text(data)


@dataclass(frozen=True, slots=True)
class WebSocketHandlers:
    """The four connection callbacks. All optional."""

    open: Callable[[WebSocket], Any] | None = None
    message: Callable[[WebSocket, str | bytes], Any] | None = None
    close: Callable[[WebSocket, int, str], Any] | None = None
    drain: Callable[[WebSocket], Any] | None = None


async def _invoke(callback: Callable[..., Any] | None, *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


async def serve_websocket(
    handlers: WebSocketHandlers,
    scope: Scope,
    receive: Receive,
    send: Send,
) -> None:
    """
    Drive one connection through the handler set.

    ``drain`` runs after a ``message`` callback that sent data, once the
    ASGI server has accepted every queued frame. A callback that raises
    closes the socket with 1011.
    """
    ws = WebSocket(scope, send)

    while True:
        message = await receive()
        kind = message["type"]

        try:
            if kind == "websocket.connect":
                await ws.accept()
                await _invoke(handlers.open, ws)
            elif kind == "websocket.receive":
                data = message.get("text")
                if data is None:
                    data = message.get("bytes", b"")
                sent_before = ws.sent_count
                await _invoke(handlers.message, ws, data)
                if ws.sent_count != sent_before:
                    await _invoke(handlers.drain, ws)
            elif kind == "websocket.disconnect":
                await _invoke(
                    handlers.close,
                    ws,
                    message.get("code", 1000),
                    message.get("reason") or "",
                )
                return
        except Exception:
            logger.exception("WebSocket callback failed path=%s", ws.path)
            await ws.close(code=1011, reason="Internal error")
            return
