"""
Helpers for building ASGI scope / receive / send in tests.
"""

from collections.abc import Awaitable, Callable
from typing import Any


def make_scope(
    method: str = "GET",
    path: str = "/",
    headers: dict[str, str] | None = None,
    query_string: str = "",
    scope_type: str = "http",
    extras: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a minimal ASGI scope dict."""
    raw_headers: list[tuple[bytes, bytes]] = []
    for name, value in (headers or {}).items():
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    scope: dict[str, Any] = {
        "type": scope_type,
        "method": method,
        "path": path,
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "client": ("127.0.0.1", 12345),
        "scheme": "http",
    }
    if extras:
        scope.update(extras)
    return scope


def make_receive(body: bytes = b"") -> Callable[[], Awaitable[dict[str, Any]]]:
    """Create a simple ASGI receive callable that yields one body chunk."""
    called = False

    async def receive() -> dict[str, Any]:
        nonlocal called
        if not called:
            called = True
            return {"type": "http.request", "body": body, "more_body": False}
        return {"type": "http.disconnect"}

    return receive


class CountingReceive:
    """Receive callable that records how many times it was awaited."""

    def __init__(self, chunks: list[bytes]) -> None:
        self._chunks = list(chunks)
        self.calls = 0

    async def __call__(self) -> dict[str, Any]:
        self.calls += 1
        if self._chunks:
            chunk = self._chunks.pop(0)
            return {"type": "http.request", "body": chunk, "more_body": bool(self._chunks)}
        return {"type": "http.disconnect"}


class ResponseCapture:
    """Captures ASGI send() messages for assertions."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []
        self.status: int = 0
        self.headers: dict[str, str] = {}
        self.body: bytes = b""

    async def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)
        if message["type"] == "http.response.start":
            self.status = message.get("status", 0)
            for name, value in message.get("headers", []):
                self.headers[name.decode("latin-1").lower()] = value.decode("latin-1")
        elif message["type"] == "http.response.body":
            self.body += message.get("body", b"")

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


async def call_app(
    app: Any,
    method: str = "GET",
    path: str = "/",
    body: bytes = b"",
    headers: dict[str, str] | None = None,
    query_string: str = "",
) -> ResponseCapture:
    """Run one HTTP request through an ASGI app and capture the response."""
    cap = ResponseCapture()
    scope = make_scope(method=method, path=path, headers=headers, query_string=query_string)
    await app(scope, make_receive(body), cap)
    return cap


# ---------------------------------------------------------------------------
# WebSocket test helpers
# ---------------------------------------------------------------------------


def make_ws_scope(
    path: str = "/",
    headers: dict[str, str] | None = None,
    query_string: str = "",
) -> dict[str, Any]:
    """Build a minimal ASGI websocket scope."""
    raw_headers: list[tuple[bytes, bytes]] = []
    for name, value in (headers or {}).items():
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    return {
        "type": "websocket",
        "path": path,
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "client": ("127.0.0.1", 9999),
        "scheme": "ws",
    }


class WebSocketCapture:
    """Feeds scripted client messages and captures what the app sends."""

    def __init__(self, incoming: list[dict[str, Any]] | None = None) -> None:
        self.sent: list[dict[str, Any]] = []
        self._incoming = list(incoming or [])
        self._idx = 0

    async def receive(self) -> dict[str, Any]:
        if self._idx < len(self._incoming):
            msg = self._incoming[self._idx]
            self._idx += 1
            return msg
        return {"type": "websocket.disconnect", "code": 1000}

    async def send(self, message: dict[str, Any]) -> None:
        self.sent.append(message)


# ---------------------------------------------------------------------------
# Multipart test helpers
# ---------------------------------------------------------------------------


def build_multipart_body(
    boundary: str,
    parts: list[dict[str, Any]],
) -> bytes:
    """
    Build a multipart/form-data body for testing.

    Each part is a dict with ``name``, ``data`` and optionally
    ``filename`` and ``content_type``.
    """
    lines: list[bytes] = []

    for part in parts:
        lines.append(f"--{boundary}".encode())

        if "filename" in part:
            disposition = f'Content-Disposition: form-data; name="{part["name"]}"; filename="{part["filename"]}"'
        else:
            disposition = f'Content-Disposition: form-data; name="{part["name"]}"'
        lines.append(disposition.encode())

        if "content_type" in part:
            lines.append(f'Content-Type: {part["content_type"]}'.encode())

        lines.append(b"")

        data = part["data"]
        lines.append(data.encode() if isinstance(data, str) else data)

    lines.append(f"--{boundary}--".encode())

    return b"\r\n".join(lines) + b"\r\n"
