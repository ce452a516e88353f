"""
Response types for Bifrost.

Each class is an explicit response kind: returning one from a handler
bypasses content sniffing in the normalizer.
"""

import json
import mimetypes
from abc import ABC, abstractmethod
from typing import Any

from bifrost.types import Send


class Response(ABC):
    """
    Abstract base response class.

    Subclasses fix the media type and implement :meth:`render`.
    """

    media_type: str = "text/plain"
    charset: str = "utf-8"

    def __init__(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self._headers: dict[str, str] = {
            name.lower(): value for name, value in (headers or {}).items()
        }
        self._content = content

    @property
    def content(self) -> Any:
        return self._content

    @content.setter
    def content(self, value: Any) -> None:
        self._content = value

    @property
    def headers(self) -> dict[str, str]:
        return self._headers

    @property
    def content_type(self) -> str:
        """Full content type with charset."""
        if self.media_type.startswith("text/") or "json" in self.media_type:
            return f"{self.media_type}; charset={self.charset}"
        return self.media_type

    @property
    def is_html(self) -> bool:
        return "html" in self.media_type

    @abstractmethod
    def render(self) -> bytes:
        """Render the response body. Must be implemented by subclasses."""
        ...

    def set_header(self, name: str, value: str) -> "Response":
        """Set a response header. Returns self for chaining."""
        self._headers[name.lower()] = value
        return self

    def _build_headers(self, body: bytes) -> list[tuple[bytes, bytes]]:
        """Build header list for ASGI response."""
        headers: list[tuple[bytes, bytes]] = [
            (b"content-type", self.content_type.encode("latin-1")),
            (b"content-length", str(len(body)).encode("latin-1")),
        ]
        for name, value in self._headers.items():
            if name in ("content-type", "content-length"):
                continue
            headers.append((name.encode("latin-1"), value.encode("latin-1")))
        return headers

    async def __call__(self, send: Send, body: bytes | None = None) -> None:
        """Send the response via ASGI, rendering it unless *body* is given."""
        if body is None:
            body = self.render()

        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self._build_headers(body),
        })

        await send({
            "type": "http.response.body",
            "body": body,
        })


class TextResponse(Response):
    """Plain text response."""

    media_type = "text/plain"

    def render(self) -> bytes:
        if self._content is None:
            return b""
        if isinstance(self._content, bytes):
            return self._content
        return str(self._content).encode(self.charset)


class HTMLResponse(TextResponse):
    """HTML response."""

    media_type = "text/html"


class JSONResponse(Response):
    """JSON response with compact serialization."""

    media_type = "application/json"

    def __init__(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        indent: int | None = None,
    ) -> None:
        super().__init__(content, status_code, headers)
        self._indent = indent

    def render(self) -> bytes:
        return json.dumps(
            self._content,
            ensure_ascii=False,
            allow_nan=False,
            indent=self._indent,
            separators=(",", ":") if self._indent is None else None,
            default=str,
        ).encode(self.charset)


class RedirectResponse(Response):
    """HTTP redirect response."""

    def __init__(
        self,
        url: str,
        status_code: int = 307,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(None, status_code, headers)
        self._headers["location"] = url

    def render(self) -> bytes:
        return b""


class FileResponse(Response):
    """
    A fully buffered file.

    The media type is guessed from *filename* unless given explicitly.
    Files are passed through the normalizer untouched.
    """

    def __init__(
        self,
        content: bytes,
        filename: str | None = None,
        status_code: int = 200,
        headers: dict[str, str] | None = None,
        media_type: str | None = None,
    ) -> None:
        super().__init__(content, status_code, headers)
        if media_type is None and filename is not None:
            media_type, _ = mimetypes.guess_type(filename)
        self.media_type = media_type or "application/octet-stream"
        self.filename = filename

    def render(self) -> bytes:
        return self._content

    def with_content(self, content: bytes) -> "FileResponse":
        """Copy of this response with a different body."""
        return FileResponse(
            content,
            filename=self.filename,
            status_code=self.status_code,
            headers=dict(self._headers),
            media_type=self.media_type,
        )
