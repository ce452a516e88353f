"""
Lifespan management for Bifrost.

Runs startup and shutdown hooks on the ASGI ``lifespan`` events and keeps
count of in-flight HTTP requests so shutdown can wait for them.
"""

import asyncio
import inspect
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from bifrost.types import Receive, Send

logger = logging.getLogger("bifrost.lifespan")


class Lifespan:
    """
    Startup / shutdown hook registry and ASGI lifespan protocol handler.

    Usage:
        lifespan = Lifespan()

        @lifespan.on_startup
        async def connect():
            ...
    """

    # Maximum seconds to wait for in-flight requests to finish
    DEFAULT_SHUTDOWN_TIMEOUT: float = 30.0

    def __init__(self, shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> None:
        self._startup_handlers: list[Callable[[], Any]] = []
        self._shutdown_handlers: list[Callable[[], Any]] = []
        self._shutdown_timeout = shutdown_timeout
        self._inflight: int = 0
        self._inflight_zero = asyncio.Event()
        self._inflight_zero.set()

    def on_startup(self, handler: Callable[[], Any]) -> Callable[[], Any]:
        """Decorator to register a startup handler."""
        self._startup_handlers.append(handler)
        return handler

    def on_shutdown(self, handler: Callable[[], Any]) -> Callable[[], Any]:
        """Decorator to register a shutdown handler."""
        self._shutdown_handlers.append(handler)
        return handler

    async def startup(self) -> None:
        """Run all startup handlers in registration order."""
        for handler in self._startup_handlers:
            await _call(handler)

    async def shutdown(self) -> None:
        """Run all shutdown handlers in reverse order."""
        for handler in reversed(self._shutdown_handlers):
            await _call(handler)

    @property
    def inflight_requests(self) -> int:
        return self._inflight

    @asynccontextmanager
    async def track(self) -> AsyncIterator[None]:
        """Count a request as in flight for the duration of the block."""
        self._inflight += 1
        self._inflight_zero.clear()
        try:
            yield
        finally:
            self._inflight -= 1
            if self._inflight == 0:
                self._inflight_zero.set()

    async def serve(
        self,
        receive: Receive,
        send: Send,
        before_startup: Callable[[], None] | None = None,
    ) -> None:
        """Handle the ASGI lifespan protocol until shutdown."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                try:
                    if before_startup is not None:
                        before_startup()
                    await self.startup()
                except Exception as exc:
                    logger.exception("Startup failed")
                    await send({
                        "type": "lifespan.startup.failed",
                        "message": str(exc),
                    })
                    return
                await send({"type": "lifespan.startup.complete"})

            elif message["type"] == "lifespan.shutdown":
                await self._drain_requests()
                try:
                    await self.shutdown()
                except Exception as exc:
                    logger.exception("Shutdown failed")
                    await send({
                        "type": "lifespan.shutdown.failed",
                        "message": str(exc),
                    })
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _drain_requests(self) -> None:
        """Wait for in-flight requests to finish, with a timeout."""
        if self._inflight == 0:
            return

        logger.info(
            "Waiting for %d in-flight request(s) to finish (timeout=%ss)...",
            self._inflight,
            self._shutdown_timeout,
        )
        try:
            await asyncio.wait_for(
                self._inflight_zero.wait(),
                timeout=self._shutdown_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Shutdown timeout reached with %d request(s) still in-flight. "
                "Proceeding with shutdown.",
                self._inflight,
            )


async def _call(handler: Callable[[], Any]) -> None:
    result = handler()
    if inspect.isawaitable(result):
        await result
