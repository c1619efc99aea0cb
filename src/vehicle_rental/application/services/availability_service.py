"""Availability checker answering whether a vehicle can be booked for a date range."""

from typing import Dict, Iterable, Optional
from uuid import UUID

from ..ports.repositories import BookingRepository, VehicleRepository
from ...domain.entities.vehicle import Vehicle
from ...domain.exceptions import VehicleNotFoundError
from ...domain.value_objects.availability import AvailabilityResult
from ...domain.value_objects.date_range import DateRange
from src.vehicle_rental.infrastructure.logging import get_logger


class AvailabilityService:
    """Application service for availability checks.

    Results are never cached: every call reads the current bookings, so a
    cancellation is visible to the very next check.
    """

    def __init__(self, booking_repository: BookingRepository, vehicle_repository: VehicleRepository):
        self._booking_repository = booking_repository
        self._vehicle_repository = vehicle_repository
        self._logger = get_logger(__name__)

    async def check_vehicle(
        self,
        vehicle: Vehicle,
        date_range: DateRange,
        exclude_booking_id: Optional[UUID] = None
    ) -> AvailabilityResult:
        """Check availability for an already loaded vehicle.

        Used inside the per-vehicle lock so the read and the following
        write happen in the same critical section.
        """
        conflicts = await self._booking_repository.find_conflicting(
            vehicle.id, date_range, exclude_booking_id=exclude_booking_id
        )
        result = AvailabilityResult(
            vehicle_id=vehicle.id,
            date_range=date_range,
            vehicle_status=vehicle.status,
            conflicting_booking_ids=tuple(booking.id for booking in conflicts)
        )

        self._logger.debug(
            "Availability check completed",
            extra={
                "vehicle_id": str(vehicle.id),
                "date_range": str(date_range),
                "vehicle_status": vehicle.status.value,
                "conflict_count": result.conflict_count,
                "is_available": result.is_available
            }
        )
        return result

    async def check_availability(self, vehicle_id: UUID, date_range: DateRange) -> AvailabilityResult:
        """Check whether a vehicle can be booked for the given range."""
        vehicle = await self._vehicle_repository.find_by_id(vehicle_id)
        if not vehicle:
            raise VehicleNotFoundError(vehicle_id)
        return await self.check_vehicle(vehicle, date_range)

    async def has_conflicts(self, vehicle_id: UUID, date_range: DateRange) -> bool:
        """Check only for overlapping non-terminal bookings, ignoring admin status."""
        conflicts = await self._booking_repository.find_conflicting(vehicle_id, date_range)
        return bool(conflicts)

    async def check_availability_bulk(
        self,
        vehicle_ids: Iterable[UUID],
        date_range: DateRange
    ) -> Dict[UUID, AvailabilityResult]:
        """Check several vehicles at once; unknown vehicles are left out of the result."""
        vehicles = await self._vehicle_repository.find_by_ids(list(vehicle_ids))

        results = {}
        for vehicle in vehicles:
            results[vehicle.id] = await self.check_vehicle(vehicle, date_range)
        return results
