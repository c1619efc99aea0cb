"""Dependency injection and service factory."""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from typing import AsyncGenerator, Callable, Optional

from src.vehicle_rental.application.ports.repositories import (
    BookingRepository,
    MaintenanceRepository,
    VehicleRepository,
)
from src.vehicle_rental.application.services.availability_service import AvailabilityService
from src.vehicle_rental.application.services.booking_service import BookingService
from src.vehicle_rental.application.services.booking_wizard import BookingWizard
from src.vehicle_rental.application.services.fleet_status_service import FleetStatusService
from src.vehicle_rental.application.services.vehicle_service import VehicleService
from src.vehicle_rental.infrastructure.collaborators import InMemoryDocumentRegistry, InMemoryPaymentGateway
from src.vehicle_rental.infrastructure.database.connection import DatabaseManager
from src.vehicle_rental.infrastructure.logging import get_logger
from src.vehicle_rental.infrastructure.repositories.memory_repositories import (
    InMemoryBookingRepository,
    InMemoryMaintenanceRepository,
    InMemoryVehicleRepository,
)
from src.vehicle_rental.infrastructure.repositories.sql_repositories import (
    SQLAlchemyBookingRepository,
    SQLAlchemyMaintenanceRepository,
    SQLAlchemyVehicleRepository,
)


@dataclass
class RepositoryBundle:
    """Repositories sharing one unit of work."""

    bookings: BookingRepository
    vehicles: VehicleRepository
    maintenance: MaintenanceRepository


class BaseServiceFactory(ABC):
    """Builds application services on top of a repository backend."""

    def __init__(self, today_provider: Callable[[], date] = date.today):
        self._today_provider = today_provider
        # Collaborators keep state across requests
        self.payment_gateway = InMemoryPaymentGateway()
        self.document_registry = InMemoryDocumentRegistry()

    async def initialize(self) -> None:
        """Initialize the service factory."""

    async def shutdown(self) -> None:
        """Shutdown the service factory."""

    @abstractmethod
    def repositories(self) -> "AsyncGenerator[RepositoryBundle, None]":
        """Open a unit of work and yield its repositories."""
        raise NotImplementedError

    def _build_booking_service(self, repos: RepositoryBundle) -> BookingService:
        return BookingService(
            booking_repository=repos.bookings,
            vehicle_repository=repos.vehicles,
            availability_service=AvailabilityService(repos.bookings, repos.vehicles),
            fleet_status_service=FleetStatusService(repos.vehicles, repos.bookings, repos.maintenance),
            payment_gateway=self.payment_gateway,
            today_provider=self._today_provider
        )

    @asynccontextmanager
    async def get_booking_service(self) -> AsyncGenerator[BookingService, None]:
        """Get booking service."""
        async with self.repositories() as repos:
            yield self._build_booking_service(repos)

    @asynccontextmanager
    async def get_booking_wizard(self) -> AsyncGenerator[BookingWizard, None]:
        """Get booking wizard backed by the document registry."""
        async with self.repositories() as repos:
            yield BookingWizard(
                self._build_booking_service(repos),
                document_registry=self.document_registry,
                today_provider=self._today_provider
            )

    @asynccontextmanager
    async def get_vehicle_service(self) -> AsyncGenerator[VehicleService, None]:
        """Get vehicle registry service."""
        async with self.repositories() as repos:
            yield VehicleService(repos.vehicles, repos.bookings)

    @asynccontextmanager
    async def get_fleet_status_service(self) -> AsyncGenerator[FleetStatusService, None]:
        """Get fleet status service."""
        async with self.repositories() as repos:
            yield FleetStatusService(repos.vehicles, repos.bookings, repos.maintenance)

    @asynccontextmanager
    async def get_availability_service(self) -> AsyncGenerator[AvailabilityService, None]:
        """Get availability service."""
        async with self.repositories() as repos:
            yield AvailabilityService(repos.bookings, repos.vehicles)


class ServiceFactory(BaseServiceFactory):
    """Factory wiring services to PostgreSQL through SQLAlchemy."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_pre_ping: bool = True,
        echo: bool = False,
        today_provider: Callable[[], date] = date.today
    ):
        super().__init__(today_provider)
        self.database_manager = DatabaseManager(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            echo=echo
        )
        self._connected = False

    async def initialize(self) -> None:
        if not self._connected:
            await self.database_manager.connect()
            self._connected = True

    async def shutdown(self) -> None:
        if self._connected:
            await self.database_manager.disconnect()
            self._connected = False

    @asynccontextmanager
    async def repositories(self) -> AsyncGenerator[RepositoryBundle, None]:
        # One session per request; row locks taken inside it last until commit
        async with self.database_manager.get_session() as session:
            yield RepositoryBundle(
                bookings=SQLAlchemyBookingRepository(session),
                vehicles=SQLAlchemyVehicleRepository(session),
                maintenance=SQLAlchemyMaintenanceRepository(session)
            )


class InMemoryServiceFactory(BaseServiceFactory):
    """Factory wiring services to process-local repositories."""

    def __init__(self, today_provider: Callable[[], date] = date.today):
        super().__init__(today_provider)
        self.bundle = RepositoryBundle(
            bookings=InMemoryBookingRepository(),
            vehicles=InMemoryVehicleRepository(),
            maintenance=InMemoryMaintenanceRepository()
        )

    @asynccontextmanager
    async def repositories(self) -> AsyncGenerator[RepositoryBundle, None]:
        yield self.bundle


logger = get_logger(__name__)

# Global service factory instance
_service_factory: Optional[BaseServiceFactory] = None


def build_service_factory(settings) -> BaseServiceFactory:
    """Create the factory for the configured repository backend."""
    if settings.repository_backend == "memory":
        return InMemoryServiceFactory()
    return ServiceFactory(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        echo=settings.db_echo
    )


def get_service_factory() -> BaseServiceFactory:
    """Get the global service factory instance."""
    global _service_factory

    if _service_factory is None:
        from src.vehicle_rental.presentation.api.config import get_settings

        _service_factory = build_service_factory(get_settings())

    return _service_factory


def set_service_factory(factory: Optional[BaseServiceFactory]) -> None:
    """Replace the global factory (used by scripts and tests)."""
    global _service_factory
    _service_factory = factory


async def initialize_services() -> None:
    """Initialize application services."""
    factory = get_service_factory()
    await factory.initialize()
    logger.info("Services initialized", extra={"factory": type(factory).__name__})


async def shutdown_services() -> None:
    """Shutdown application services."""
    factory = get_service_factory()
    await factory.shutdown()
