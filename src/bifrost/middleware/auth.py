"""
Bearer token authentication middleware.
"""

import logging
from typing import Any

import jwt

from bifrost.exceptions import Unauthorized
from bifrost.middleware.base import Middleware, ResponseDraft
from bifrost.request import Request

logger = logging.getLogger("bifrost.auth")


class BearerAuthMiddleware(Middleware):
    """
    Verifies ``request.bearer_token`` as a JWT.

    Valid claims are stored in ``request.state["claims"]``. With
    ``required=True`` a missing or invalid token raises
    :class:`Unauthorized`, which the dispatcher turns into a 401; otherwise
    the request continues without claims.

    Usage:
        router.use(BearerAuthMiddleware(secret_key="...", exclude_paths=["/login"]))
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        required: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._required = required
        self._exclude_paths = exclude_paths or []

    def decode(self, token: str) -> dict[str, Any] | None:
        try:
            return jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            logger.info("expired bearer token")
            return None
        except jwt.InvalidTokenError:
            return None

    async def process(self, request: Request, response: ResponseDraft) -> Any:
        if any(request.path.startswith(p) for p in self._exclude_paths):
            return None

        claims = self.decode(request.bearer_token) if request.bearer_token else None
        if claims is None:
            if self._required:
                raise Unauthorized("Valid bearer token required")
            return None

        request.state["claims"] = claims
        return None
