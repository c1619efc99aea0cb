"""Port interfaces for repositories (Dependency Inversion Principle)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import AsyncContextManager, Iterable, List, Optional, TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from src.vehicle_rental.domain.entities.booking import Booking, BookingStatus
    from src.vehicle_rental.domain.entities.maintenance import MaintenanceSchedule
    from src.vehicle_rental.domain.entities.vehicle import (
        Vehicle,
        VehicleCategory,
        VehicleStatus,
        Transmission,
        FuelType,
    )
    from src.vehicle_rental.domain.value_objects.date_range import DateRange


@dataclass(frozen=True)
class BookingFilter:
    """Criteria for listing bookings."""

    status: Optional["BookingStatus"] = None
    vehicle_id: Optional[UUID] = None
    customer_id: Optional[UUID] = None
    start_from: Optional[date] = None
    end_until: Optional[date] = None


@dataclass(frozen=True)
class VehicleFilter:
    """Criteria for listing vehicles."""

    category: Optional["VehicleCategory"] = None
    status: Optional["VehicleStatus"] = None
    transmission: Optional["Transmission"] = None
    fuel_type: Optional["FuelType"] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    min_seats: Optional[int] = None
    search: Optional[str] = None
    sort_by: str = "created_at"
    sort_desc: bool = True


class BookingRepository(ABC):
    """Port interface for booking repository."""

    @abstractmethod
    async def save(self, booking: "Booking") -> "Booking":
        """Save a booking (create or update)."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_id(self, booking_id: UUID) -> Optional["Booking"]:
        """Find booking by ID."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_vehicle_id(self, vehicle_id: UUID) -> List["Booking"]:
        """Find all bookings for a vehicle (ordered by start date DESC)."""
        raise NotImplementedError

    @abstractmethod
    async def find_conflicting(
        self,
        vehicle_id: UUID,
        date_range: "DateRange",
        exclude_booking_id: Optional[UUID] = None
    ) -> List["Booking"]:
        """Find non-terminal bookings for a vehicle whose range overlaps the given one."""
        raise NotImplementedError

    @abstractmethod
    async def find_active_by_vehicle_id(self, vehicle_id: UUID) -> Optional["Booking"]:
        """Find the ACTIVE booking for a vehicle, if any."""
        raise NotImplementedError

    @abstractmethod
    async def count_by_vehicle_id(
        self,
        vehicle_id: UUID,
        statuses: Optional[Iterable["BookingStatus"]] = None
    ) -> int:
        """Count bookings for a vehicle, optionally restricted to some statuses."""
        raise NotImplementedError

    @abstractmethod
    async def find_all(self, criteria: BookingFilter, offset: int = 0, limit: Optional[int] = None) -> List["Booking"]:
        """Find bookings matching the criteria (ordered by created_at DESC)."""
        raise NotImplementedError

    @abstractmethod
    async def count(self, criteria: BookingFilter) -> int:
        """Count bookings matching the criteria."""
        raise NotImplementedError


class VehicleRepository(ABC):
    """Port interface for vehicle repository."""

    @abstractmethod
    async def save(self, vehicle: "Vehicle") -> "Vehicle":
        """Save a vehicle (create or update)."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_id(self, vehicle_id: UUID) -> Optional["Vehicle"]:
        """Find vehicle by ID."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_ids(self, vehicle_ids: Iterable[UUID]) -> List["Vehicle"]:
        """Find all vehicles with the given IDs; unknown IDs are skipped."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_license_plate(self, license_plate: str) -> Optional["Vehicle"]:
        """Find vehicle by license plate."""
        raise NotImplementedError

    @abstractmethod
    async def find_all(self, criteria: VehicleFilter, offset: int = 0, limit: Optional[int] = None) -> List["Vehicle"]:
        """Find vehicles matching the criteria."""
        raise NotImplementedError

    @abstractmethod
    async def count(self, criteria: VehicleFilter) -> int:
        """Count vehicles matching the criteria."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, vehicle_id: UUID) -> bool:
        """Hard delete a vehicle."""
        raise NotImplementedError

    @abstractmethod
    def locked(self, vehicle_id: UUID) -> AsyncContextManager[Optional["Vehicle"]]:
        """Serialize writers for one vehicle.

        Yields the vehicle (or None if it does not exist). Every booking
        insert and status write for that vehicle must happen inside this
        context so availability checks cannot race with concurrent writes.
        """
        raise NotImplementedError


class MaintenanceRepository(ABC):
    """Port interface for maintenance schedule repository."""

    @abstractmethod
    async def save(self, schedule: "MaintenanceSchedule") -> "MaintenanceSchedule":
        """Save a maintenance schedule."""
        raise NotImplementedError

    @abstractmethod
    async def find_open_by_vehicle_id(self, vehicle_id: UUID) -> List["MaintenanceSchedule"]:
        """Find scheduled (not completed) maintenance for a vehicle."""
        raise NotImplementedError

    @abstractmethod
    async def find_by_vehicle_id(self, vehicle_id: UUID) -> List["MaintenanceSchedule"]:
        """Find the full maintenance history of a vehicle (newest first)."""
        raise NotImplementedError
