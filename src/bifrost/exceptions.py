"""
Bifrost exceptions.

Errors raised while handling a request derive from :class:`HTTPException`
and are turned into responses by the dispatcher. The remaining errors are
raised at registration or startup time.
"""


class BifrostException(Exception):
    """Base exception for all Bifrost errors."""

    def __init__(self, message: str = "An error occurred") -> None:
        self.message = message
        super().__init__(self.message)


class HTTPException(BifrostException):
    """HTTP-related exceptions with status codes."""

    def __init__(
        self,
        status_code: int = 500,
        detail: str = "Internal Server Error",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.headers = headers or {}
        super().__init__(detail)


class BadRequest(HTTPException):
    """400 Bad Request."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(400, detail)


class PayloadParseError(BadRequest):
    """Request body did not match its declared Content-Type."""

    def __init__(self, detail: str = "Malformed request body") -> None:
        super().__init__(detail)


class Unauthorized(HTTPException):
    """401 Unauthorized."""

    def __init__(
        self,
        detail: str = "Unauthorized",
        headers: dict[str, str] | None = None,
    ) -> None:
        default_headers = {"WWW-Authenticate": "Bearer"}
        if headers:
            default_headers.update(headers)
        super().__init__(401, detail, default_headers)


class PayloadTooLarge(HTTPException):
    """413 Payload Too Large."""

    def __init__(self, detail: str = "Payload Too Large") -> None:
        super().__init__(413, detail)


class InternalServerError(HTTPException):
    """500 Internal Server Error."""

    def __init__(self, detail: str = "Internal Server Error") -> None:
        super().__init__(500, detail)


class HandlerError(InternalServerError):
    """A route handler raised. The original exception is chained."""

    def __init__(self, handler_name: str) -> None:
        self.handler_name = handler_name
        super().__init__(f"Handler {handler_name!r} failed")


class RequestTimeout(HTTPException):
    """504 Gateway Timeout: request exceeded its deadline."""

    def __init__(self, detail: str = "Request Timeout") -> None:
        super().__init__(504, detail)


class RouteCompileError(BifrostException):
    """A path template could not be compiled."""
    pass


class RegistrationClosedError(BifrostException):
    """Routes, middleware or websocket handlers registered after startup."""
    pass


class StaticIOError(BifrostException):
    """A static file vanished or became unreadable after being found."""
    pass


class RenderError(BifrostException):
    """A virtual element tree could not be rendered."""
    pass
