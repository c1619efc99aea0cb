"""Vehicle registry service for fleet catalog management."""

import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from ..ports.repositories import BookingRepository, VehicleFilter, VehicleRepository
from ...domain.entities.booking import NON_TERMINAL_STATUSES
from ...domain.entities.vehicle import FuelType, Transmission, Vehicle, VehicleCategory, VehicleStatus
from ...domain.exceptions import (
    VehicleHasActiveBookingsError,
    VehicleHasAnyBookingsError,
    VehicleNotFoundError,
)
from src.vehicle_rental.infrastructure.logging import get_logger, log_business_rule_violation

MIN_MODEL_YEAR = 1990


class LicensePlateValidator:
    """Service for validating license plates."""

    PATTERN = re.compile(r'^[A-Z0-9]+([ -]?[A-Z0-9]+)*$')

    @staticmethod
    def validate(license_plate: Optional[str]) -> bool:
        """Validate license plate format."""
        if not license_plate:
            return False

        plate = LicensePlateValidator.normalize(license_plate)
        if len(plate) < 2 or len(plate) > 10:
            return False
        return bool(LicensePlateValidator.PATTERN.match(plate))

    @staticmethod
    def normalize(license_plate: str) -> str:
        """Normalize license plate format."""
        return license_plate.strip().upper()


@dataclass(frozen=True)
class VehiclePage:
    """One page of a vehicle listing."""

    items: List[Vehicle]
    total: int
    page: int
    page_size: int


class VehicleService:
    """Application service for the vehicle registry."""

    def __init__(self, vehicle_repository: VehicleRepository, booking_repository: BookingRepository):
        self._vehicle_repository = vehicle_repository
        self._booking_repository = booking_repository
        self._license_validator = LicensePlateValidator()
        self._logger = get_logger(__name__)

    async def register_vehicle(
        self,
        make: str,
        model: str,
        year: int,
        category: VehicleCategory,
        daily_rate: Decimal,
        seats: int,
        transmission: Transmission,
        fuel_type: FuelType,
        mileage: int,
        license_plate: str,
        status: VehicleStatus = VehicleStatus.AVAILABLE,
        color: Optional[str] = None,
        vin: Optional[str] = None,
        location: Optional[str] = None,
        description: Optional[str] = None
    ) -> Vehicle:
        """Add a vehicle to the fleet."""
        normalized_plate = await self._validate_plate(license_plate)
        self._validate_year(year)

        vehicle = Vehicle(
            make=make,
            model=model,
            year=year,
            category=category,
            daily_rate=daily_rate,
            seats=seats,
            transmission=transmission,
            fuel_type=fuel_type,
            mileage=mileage,
            license_plate=normalized_plate,
            status=status,
            color=color,
            vin=vin,
            location=location,
            description=description
        )
        saved = await self._vehicle_repository.save(vehicle)

        self._logger.info(
            f"Vehicle registered: {saved.display_name}",
            extra={"vehicle_id": str(saved.id), "license_plate": saved.license_plate}
        )
        return saved

    async def get_vehicle(self, vehicle_id: UUID) -> Vehicle:
        """Get a vehicle by ID."""
        vehicle = await self._vehicle_repository.find_by_id(vehicle_id)
        if not vehicle:
            raise VehicleNotFoundError(vehicle_id)
        return vehicle

    async def list_vehicles(
        self,
        criteria: Optional[VehicleFilter] = None,
        page: int = 1,
        page_size: int = 12
    ) -> VehiclePage:
        """List vehicles matching the filter."""
        criteria = criteria or VehicleFilter()
        total = await self._vehicle_repository.count(criteria)
        items = await self._vehicle_repository.find_all(
            criteria, offset=(page - 1) * page_size, limit=page_size
        )
        return VehiclePage(items=items, total=total, page=page, page_size=page_size)

    async def update_vehicle(self, vehicle_id: UUID, **changes) -> Vehicle:
        """Edit catalog attributes; status changes go through the fleet status service.

        The read and the write happen under the vehicle lock, so a status
        override made concurrently is never overwritten with a stale value.
        """
        async with self._vehicle_repository.locked(vehicle_id) as vehicle:
            if vehicle is None:
                raise VehicleNotFoundError(vehicle_id)

            if "license_plate" in changes:
                changes["license_plate"] = await self._validate_plate(changes["license_plate"], vehicle_id)
            if "year" in changes:
                self._validate_year(changes["year"])

            vehicle.update_details(**changes)
            saved = await self._vehicle_repository.save(vehicle)

        self._logger.info(
            f"Vehicle {vehicle_id} updated",
            extra={"vehicle_id": str(vehicle_id), "fields": sorted(changes)}
        )
        return saved

    async def delete_vehicle(self, vehicle_id: UUID) -> bool:
        """Hard delete a vehicle that has never been booked.

        The booking guards and the delete run under the vehicle lock, the
        same lock booking creation takes.

        Raises:
            VehicleHasActiveBookingsError: If a pending, confirmed or active booking exists
            VehicleHasAnyBookingsError: If any booking history exists (retire it instead)
        """
        async with self._vehicle_repository.locked(vehicle_id) as vehicle:
            if vehicle is None:
                raise VehicleNotFoundError(vehicle_id)

            if await self.has_non_terminal_bookings(vehicle_id):
                log_business_rule_violation(
                    self._logger,
                    "delete_with_active_bookings",
                    f"Vehicle {vehicle_id} has non-terminal bookings",
                    vehicle_id=str(vehicle_id)
                )
                raise VehicleHasActiveBookingsError("Cannot delete vehicle with active bookings")

            if await self.has_any_bookings(vehicle_id):
                log_business_rule_violation(
                    self._logger,
                    "delete_with_booking_history",
                    f"Vehicle {vehicle_id} has booking history",
                    vehicle_id=str(vehicle_id)
                )
                raise VehicleHasAnyBookingsError(
                    "Cannot delete vehicle with booking history; mark it retired instead"
                )

            deleted = await self._vehicle_repository.delete(vehicle_id)

        if deleted:
            self._logger.info("Vehicle deleted", extra={"vehicle_id": str(vehicle_id)})
        return deleted

    async def has_non_terminal_bookings(self, vehicle_id: UUID) -> bool:
        """Check for bookings in PENDING, CONFIRMED or ACTIVE status."""
        count = await self._booking_repository.count_by_vehicle_id(vehicle_id, NON_TERMINAL_STATUSES)
        return count > 0

    async def has_any_bookings(self, vehicle_id: UUID) -> bool:
        """Check for any booking regardless of status."""
        count = await self._booking_repository.count_by_vehicle_id(vehicle_id)
        return count > 0

    async def _validate_plate(self, license_plate: str, vehicle_id: Optional[UUID] = None) -> str:
        if not self._license_validator.validate(license_plate):
            raise ValueError(f"Invalid license plate format: {license_plate}")

        normalized = self._license_validator.normalize(license_plate)
        existing = await self._vehicle_repository.find_by_license_plate(normalized)
        if existing and existing.id != vehicle_id:
            raise ValueError(f"License plate already registered: {normalized}")
        return normalized

    @staticmethod
    def _validate_year(year: int) -> None:
        max_year = date.today().year + 1
        if year < MIN_MODEL_YEAR or year > max_year:
            raise ValueError(f"Year must be between {MIN_MODEL_YEAR} and {max_year}")
