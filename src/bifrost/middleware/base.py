"""
Middleware pipeline for Bifrost.

A middleware is called with the request and the :class:`ResponseDraft`
for that request, in registration order, before route lookup. Returning
``None`` continues the chain. Returning anything else short-circuits: the
remaining middleware and the route lookup are skipped and the value is
normalized into the response.

Middleware may be plain functions, coroutine functions, or instances of
:class:`Middleware`::

    async def require_json(request, response):
        if request.method == "POST" and "json" not in request.content_type:
            return JSONResponse({"error": "JSON only"}, status_code=415)

    router.use(require_json)
"""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from bifrost.exceptions import RegistrationClosedError
from bifrost.request import Request
from bifrost.response import Response
from bifrost.types import MiddlewareHandler


@dataclass
class ResponseDraft:
    """
    Mutable response accessory shared by all middleware of one request.

    Headers and the status override are applied to whatever response the
    request ends up with.
    """

    headers: dict[str, str] = field(default_factory=dict)
    status_code: int | None = None

    def set_header(self, name: str, value: str) -> "ResponseDraft":
        self.headers[name] = value
        return self

    def apply(self, response: Response) -> Response:
        for name, value in self.headers.items():
            response.set_header(name, value)
        if self.status_code is not None:
            response.status_code = self.status_code
        return response


class Middleware(ABC):
    """
    Abstract base middleware class.

    Subclasses implement :meth:`process`; instances are registered with
    ``router.use(...)``.
    """

    async def __call__(self, request: Request, response: ResponseDraft) -> Any:
        return await self.process(request, response)

    @abstractmethod
    async def process(self, request: Request, response: ResponseDraft) -> Any:
        """Return None to continue, anything else to short-circuit."""
        ...


class MiddlewarePipeline:
    """
    Ordered middleware list.

    A middleware that never returns stalls its request; the dispatcher's
    per-request timeout is what bounds it.
    """

    def __init__(self) -> None:
        self._middleware: list[MiddlewareHandler] = []
        self._frozen = False

    def add(self, *middleware: MiddlewareHandler) -> None:
        """Append middleware to the end of the chain."""
        if self._frozen:
            raise RegistrationClosedError(
                "Cannot add middleware: router is already serving"
            )
        for entry in middleware:
            if not callable(entry):
                raise TypeError(f"Middleware must be callable, got {entry!r}")
        self._middleware.extend(middleware)

    def freeze(self) -> None:
        self._frozen = True

    def __iter__(self) -> Iterator[MiddlewareHandler]:
        return iter(self._middleware)

    def __len__(self) -> int:
        return len(self._middleware)

    async def run(self, request: Request, draft: ResponseDraft) -> Any:
        """
        Run each middleware in order.

        Returns the first non-None result, or None if every entry continued.
        """
        for entry in self._middleware:
            result = entry(request, draft)
            if inspect.isawaitable(result):
                result = await result
            if result is not None:
                return result
        return None
