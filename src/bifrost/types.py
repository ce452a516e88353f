"""
Type definitions for the Bifrost router.
"""

from collections.abc import Awaitable, Callable, MutableMapping
from typing import Any, TypeAlias

# ASGI Types
Scope: TypeAlias = MutableMapping[str, Any]
Message: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[Message]]
Send: TypeAlias = Callable[[Message], Awaitable[None]]

# Handler Types
# Handlers and middleware may be plain functions or coroutine functions.
RouteHandler: TypeAlias = Callable[..., Any]
MiddlewareHandler: TypeAlias = Callable[..., Any]

# Per-request state
State: TypeAlias = MutableMapping[str, Any]
