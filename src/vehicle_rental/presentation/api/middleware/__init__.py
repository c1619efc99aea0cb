"""Middleware module for vehicle rental API."""

from .logging import create_logging_middleware, RequestResponseLoggingMiddleware

__all__ = [
    "create_logging_middleware",
    "RequestResponseLoggingMiddleware"
]
