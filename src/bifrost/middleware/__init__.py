"""
Middleware package for Bifrost.
"""

from bifrost.middleware.auth import BearerAuthMiddleware
from bifrost.middleware.base import Middleware, MiddlewarePipeline, ResponseDraft

__all__ = [
    "BearerAuthMiddleware",
    "Middleware",
    "MiddlewarePipeline",
    "ResponseDraft",
]
