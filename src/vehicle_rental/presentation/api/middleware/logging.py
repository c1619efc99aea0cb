"""HTTP request/response logging middleware for FastAPI."""

import time
from typing import Callable, Optional, Set

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ....infrastructure.logging import (
    clear_correlation_id,
    generate_correlation_id,
    get_logger,
    log_request,
    log_response,
    set_correlation_id
)

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# Headers to exclude from logging (sensitive information)
EXCLUDED_HEADERS = {
    'authorization',
    'cookie',
    'set-cookie',
    'x-api-key',
    'proxy-authorization',
}

# Content types never logged as bodies
EXCLUDED_CONTENT_TYPES = (
    'application/octet-stream',
    'image/',
    'application/pdf',
    'multipart/form-data',
)

DEFAULT_EXCLUDED_PATHS = frozenset({'/health', '/docs', '/redoc', '/openapi.json', '/favicon.ico'})


class RequestResponseLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log HTTP requests and responses with correlation IDs."""

    def __init__(
        self,
        app: ASGIApp,
        log_request_body: bool = False,
        max_body_size: int = 1024,
        exclude_paths: Optional[Set[str]] = None
    ):
        """
        Initialize the logging middleware.

        Args:
            app: The ASGI application
            log_request_body: Whether to log request bodies (booking payloads in debug runs)
            max_body_size: Maximum body size to log in bytes
            exclude_paths: Paths to exclude from logging
        """
        super().__init__(app)
        self.log_request_body = log_request_body
        self.max_body_size = max_body_size
        self.exclude_paths = exclude_paths if exclude_paths is not None else DEFAULT_EXCLUDED_PATHS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process the request and response with logging."""
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        correlation_id = request.headers.get(CORRELATION_HEADER) or generate_correlation_id()
        set_correlation_id(correlation_id)
        start_time = time.perf_counter()

        try:
            log_request(
                logger,
                request.method,
                request.url.path,
                request_query=str(request.query_params) if request.query_params else None,
                request_headers=self._sanitize_headers(dict(request.headers)),
                request_body=await self._get_request_body(request) if self.log_request_body else None,
                client_host=request.client.host if request.client else 'unknown'
            )

            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000

            response.headers[CORRELATION_HEADER] = correlation_id
            log_response(
                logger,
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                content_type=response.headers.get('content-type')
            )
            return response

        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={
                    "request_method": request.method,
                    "request_path": request.url.path,
                    "duration_ms": round(duration_ms, 2),
                    "error": str(exc),
                    "error_type": type(exc).__name__
                },
                exc_info=True
            )
            raise

        finally:
            clear_correlation_id()

    def _sanitize_headers(self, headers: dict) -> dict:
        """Redact sensitive headers."""
        return {
            key: "[REDACTED]" if key.lower() in EXCLUDED_HEADERS else value
            for key, value in headers.items()
        }

    async def _get_request_body(self, request: Request) -> str:
        """Get request body for logging if appropriate."""
        content_type = request.headers.get('content-type', '').lower()
        if any(excluded in content_type for excluded in EXCLUDED_CONTENT_TYPES):
            return "[BINARY_CONTENT]"

        body = await request.body()
        if len(body) > self.max_body_size:
            return f"[BODY_TOO_LARGE:{len(body)}_bytes]"

        try:
            return body.decode('utf-8')
        except UnicodeDecodeError:
            return "[BINARY_CONTENT]"


def create_logging_middleware(
    log_request_body: bool = False,
    max_body_size: int = 1024,
    exclude_paths: Optional[Set[str]] = None
) -> Callable[[ASGIApp], RequestResponseLoggingMiddleware]:
    """Factory function to create logging middleware with configuration."""
    def middleware_factory(app: ASGIApp) -> RequestResponseLoggingMiddleware:
        return RequestResponseLoggingMiddleware(
            app=app,
            log_request_body=log_request_body,
            max_body_size=max_body_size,
            exclude_paths=exclude_paths
        )

    return middleware_factory
