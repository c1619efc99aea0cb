"""FastAPI main application module."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ...domain.exceptions import (
    AlreadyCancelledError,
    BookingNotModifiableError,
    IllegalTransitionError,
    InvalidDateRangeError,
    NotFoundError,
    PaymentFailedError,
    RentalError,
    VehicleHasActiveBookingsError,
    VehicleHasAnyBookingsError,
    VehicleUnavailableError,
)
from ...infrastructure.logging import get_logger, setup_logging_from_env
from ...infrastructure.services import initialize_services, shutdown_services
from .config import get_settings
from .middleware import RequestResponseLoggingMiddleware
from .routes import bookings, health, vehicles

logger = get_logger(__name__)

# Most specific classes first; the first match wins
ERROR_STATUS_CODES = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (VehicleUnavailableError, status.HTTP_409_CONFLICT),
    (VehicleHasActiveBookingsError, status.HTTP_409_CONFLICT),
    (VehicleHasAnyBookingsError, status.HTTP_409_CONFLICT),
    (AlreadyCancelledError, status.HTTP_409_CONFLICT),
    (BookingNotModifiableError, status.HTTP_409_CONFLICT),
    (IllegalTransitionError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidDateRangeError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PaymentFailedError, status.HTTP_402_PAYMENT_REQUIRED),
)


def status_code_for(exc: RentalError) -> int:
    """Map a domain error to its HTTP status code."""
    for error_class, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting Vehicle Rental System API")
    await initialize_services()

    yield

    logger.info("Shutting down Vehicle Rental System API")
    await shutdown_services()


def add_exception_handlers(app: FastAPI) -> None:
    """Add custom exception handlers to the FastAPI application."""

    @app.exception_handler(RentalError)
    async def rental_error_handler(request: Request, exc: RentalError):
        """Handle business rule violations from the rental domain."""
        status_code = status_code_for(exc)
        logger.warning(
            f"Rental error on {request.url}: {str(exc)}",
            extra={"error_type": exc.kind, "status_code": status_code}
        )
        return JSONResponse(
            status_code=status_code,
            content={
                "detail": str(exc),
                "type": exc.kind
            }
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        """Handle validation errors from business logic."""
        logger.warning(f"Validation error on {request.url}: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": str(exc),
                "type": "validation_error"
            }
        )

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(request: Request, exc: RuntimeError):
        """Handle runtime errors from business logic."""
        logger.error(f"Runtime error on {request.url}: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error occurred",
                "type": "runtime_error"
            }
        )


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()
    setup_logging_from_env()

    app = FastAPI(
        title="Vehicle Rental System",
        description="API for fleet management, availability checks and the rental booking lifecycle",
        version=health.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        debug=settings.debug,
        lifespan=lifespan
    )

    add_exception_handlers(app)

    app.add_middleware(RequestResponseLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=settings.allowed_methods,
        allow_headers=settings.allowed_headers,
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(
        vehicles.router,
        prefix=f"{settings.api_prefix}/vehicles",
        tags=["vehicles"]
    )
    app.include_router(
        bookings.router,
        prefix=f"{settings.api_prefix}/bookings",
        tags=["bookings"]
    )

    return app


# Create app instance
app = create_app()
