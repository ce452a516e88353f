"""
Request handling for Bifrost.

``Request`` wraps an ASGI scope and receive channel. Besides the raw
request data it carries the fields derived by the enricher: ``params``,
``bearer_token`` and ``payload``. The query mapping is available on every
request, matched or not.
"""

from collections.abc import Mapping
from functools import cached_property
from typing import Any
from urllib.parse import parse_qsl

from bifrost.exceptions import PayloadTooLarge
from bifrost.types import Receive, Scope, State

# Default maximum request body size: 1 MB
DEFAULT_MAX_BODY_SIZE: int = 1_048_576

BEARER_PREFIX: str = "Bearer "


def parse_query(query_string: str) -> dict[str, str]:
    """Parse a query string. Duplicate keys resolve to the last value."""
    return dict(parse_qsl(query_string, keep_blank_values=True))


def parse_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` value."""
    if authorization is None or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip()


class Request:
    """
    HTTP request context.

    Created per incoming request and discarded once the response is sent.
    The body is read from the ASGI channel at most once; later calls to
    :meth:`body` return the cached bytes.
    """

    def __init__(
        self,
        scope: Scope,
        receive: Receive,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
    ) -> None:
        self._scope = scope
        self._receive = receive
        self._body: bytes | None = None
        self._max_body_size = max_body_size
        self.state: State = {}

        # Filled in by the enricher on a route match
        self.params: dict[str, str] = {}
        self.payload: Any = None
        self.bearer_token: str | None = parse_bearer_token(
            self.headers.get("authorization")
        )

    @property
    def method(self) -> str:
        """HTTP method (GET, POST, etc.)."""
        return self._scope.get("method", "GET")

    @property
    def path(self) -> str:
        """Request path."""
        return self._scope.get("path", "/")

    @property
    def query_string(self) -> str:
        """Raw query string."""
        return self._scope.get("query_string", b"").decode("utf-8")

    @cached_property
    def query(self) -> Mapping[str, str]:
        """Parsed query parameters, last value wins."""
        return parse_query(self.query_string)

    @cached_property
    def headers(self) -> Mapping[str, str]:
        """Request headers keyed by lower-cased name."""
        headers: dict[str, str] = {}
        for name, value in self._scope.get("headers", []):
            headers[name.decode("latin-1").lower()] = value.decode("latin-1")
        return headers

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")

    @property
    def content_length(self) -> int | None:
        length = self.headers.get("content-length")
        return int(length) if length and length.isdigit() else None

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def scheme(self) -> str:
        return self._scope.get("scheme", "http")

    @property
    def client(self) -> tuple[str, int] | None:
        """Client address as (host, port) tuple."""
        client = self._scope.get("client")
        if client:
            return (client[0], client[1])
        return None

    @property
    def url(self) -> str:
        url = f"{self.scheme}://{self.host}{self.path}"
        if self.query_string:
            url = f"{url}?{self.query_string}"
        return url

    @property
    def app(self) -> Any:
        """Reference to the router instance."""
        return self._scope.get("app")

    @property
    def body_consumed(self) -> bool:
        return self._body is not None

    async def body(self) -> bytes:
        """
        Read and return the request body.

        Raises:
            PayloadTooLarge: If body exceeds max_body_size.
        """
        if self._body is not None:
            return self._body

        # Early rejection via Content-Length header
        if (
            self._max_body_size > 0
            and self.content_length is not None
            and self.content_length > self._max_body_size
        ):
            raise PayloadTooLarge(
                f"Request body too large. "
                f"Maximum allowed: {self._max_body_size} bytes"
            )

        chunks: list[bytes] = []
        total_size = 0

        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            body = message.get("body", b"")
            if body:
                total_size += len(body)
                if self._max_body_size > 0 and total_size > self._max_body_size:
                    raise PayloadTooLarge(
                        f"Request body too large. "
                        f"Maximum allowed: {self._max_body_size} bytes"
                    )
                chunks.append(body)

            if not message.get("more_body", False):
                break

        self._body = b"".join(chunks)
        return self._body

    def get_header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: str | None = None) -> str | None:
        return self.query.get(name, default)
