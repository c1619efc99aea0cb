"""In-memory repository implementations for testing and development."""

import asyncio
import copy
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List, Optional
from uuid import UUID

from src.vehicle_rental.application.ports.repositories import (
    BookingFilter,
    BookingRepository,
    MaintenanceRepository,
    VehicleFilter,
    VehicleRepository,
)
from src.vehicle_rental.domain.entities.booking import Booking, BookingStatus
from src.vehicle_rental.domain.entities.maintenance import MaintenanceSchedule
from src.vehicle_rental.domain.entities.vehicle import Vehicle
from src.vehicle_rental.domain.value_objects.date_range import DateRange


def _paginate(items: list, offset: int, limit: Optional[int]) -> list:
    return items[offset:] if limit is None else items[offset:offset + limit]


class InMemoryBookingRepository(BookingRepository):
    """In-memory implementation of booking repository.

    Entities are copied on the way in and out so callers never share state
    with the store, the same way rows are re-read from a database.
    """

    def __init__(self):
        self._bookings: Dict[UUID, Booking] = {}

    async def save(self, booking: Booking) -> Booking:
        """Save a booking."""
        self._bookings[booking.id] = copy.copy(booking)
        return booking

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID."""
        booking = self._bookings.get(booking_id)
        return copy.copy(booking) if booking else None

    async def find_by_vehicle_id(self, vehicle_id: UUID) -> List[Booking]:
        """Find all bookings for a vehicle."""
        bookings = [b for b in self._bookings.values() if b.vehicle_id == vehicle_id]
        bookings.sort(key=lambda b: b.start_date, reverse=True)
        return [copy.copy(b) for b in bookings]

    async def find_conflicting(
        self,
        vehicle_id: UUID,
        date_range: DateRange,
        exclude_booking_id: Optional[UUID] = None
    ) -> List[Booking]:
        """Find non-terminal bookings overlapping the range."""
        conflicts = [
            b for b in self._bookings.values()
            if b.vehicle_id == vehicle_id and b.id != exclude_booking_id and b.conflicts_with(date_range)
        ]
        conflicts.sort(key=lambda b: b.start_date)
        return [copy.copy(b) for b in conflicts]

    async def find_active_by_vehicle_id(self, vehicle_id: UUID) -> Optional[Booking]:
        """Find the ACTIVE booking for a vehicle."""
        for booking in self._bookings.values():
            if booking.vehicle_id == vehicle_id and booking.status == BookingStatus.ACTIVE:
                return copy.copy(booking)
        return None

    async def count_by_vehicle_id(
        self,
        vehicle_id: UUID,
        statuses: Optional[Iterable[BookingStatus]] = None
    ) -> int:
        """Count bookings for a vehicle."""
        wanted = set(statuses) if statuses is not None else None
        return sum(
            1 for b in self._bookings.values()
            if b.vehicle_id == vehicle_id and (wanted is None or b.status in wanted)
        )

    async def find_all(self, criteria: BookingFilter, offset: int = 0, limit: Optional[int] = None) -> List[Booking]:
        """Find bookings matching the criteria, newest first."""
        bookings = [b for b in self._bookings.values() if self._matches(b, criteria)]
        bookings.sort(key=lambda b: b.created_at, reverse=True)
        return [copy.copy(b) for b in _paginate(bookings, offset, limit)]

    async def count(self, criteria: BookingFilter) -> int:
        """Count bookings matching the criteria."""
        return sum(1 for b in self._bookings.values() if self._matches(b, criteria))

    @staticmethod
    def _matches(booking: Booking, criteria: BookingFilter) -> bool:
        if criteria.status is not None and booking.status != criteria.status:
            return False
        if criteria.vehicle_id is not None and booking.vehicle_id != criteria.vehicle_id:
            return False
        if criteria.customer_id is not None and booking.customer_id != criteria.customer_id:
            return False
        if criteria.start_from is not None and booking.start_date < criteria.start_from:
            return False
        if criteria.end_until is not None and booking.end_date > criteria.end_until:
            return False
        return True


class InMemoryVehicleRepository(VehicleRepository):
    """In-memory implementation of vehicle repository.

    ``locked`` uses one asyncio.Lock per vehicle, which serializes writers
    within a single event loop.
    """

    def __init__(self):
        self._vehicles: Dict[UUID, Vehicle] = {}
        self._locks: Dict[UUID, asyncio.Lock] = {}

    async def save(self, vehicle: Vehicle) -> Vehicle:
        """Save a vehicle."""
        self._vehicles[vehicle.id] = copy.copy(vehicle)
        return vehicle

    async def find_by_id(self, vehicle_id: UUID) -> Optional[Vehicle]:
        """Find vehicle by ID."""
        vehicle = self._vehicles.get(vehicle_id)
        return copy.copy(vehicle) if vehicle else None

    async def find_by_ids(self, vehicle_ids: Iterable[UUID]) -> List[Vehicle]:
        """Find vehicles by IDs."""
        return [copy.copy(self._vehicles[vid]) for vid in vehicle_ids if vid in self._vehicles]

    async def find_by_license_plate(self, license_plate: str) -> Optional[Vehicle]:
        """Find vehicle by license plate."""
        plate = license_plate.upper()
        for vehicle in self._vehicles.values():
            if vehicle.license_plate == plate:
                return copy.copy(vehicle)
        return None

    async def find_all(self, criteria: VehicleFilter, offset: int = 0, limit: Optional[int] = None) -> List[Vehicle]:
        """Find vehicles matching the criteria."""
        vehicles = [v for v in self._vehicles.values() if self._matches(v, criteria)]
        sort_key = criteria.sort_by if criteria.sort_by in ("created_at", "daily_rate", "year", "make", "mileage") \
            else "created_at"
        vehicles.sort(key=lambda v: getattr(v, sort_key), reverse=criteria.sort_desc)
        return [copy.copy(v) for v in _paginate(vehicles, offset, limit)]

    async def count(self, criteria: VehicleFilter) -> int:
        """Count vehicles matching the criteria."""
        return sum(1 for v in self._vehicles.values() if self._matches(v, criteria))

    async def delete(self, vehicle_id: UUID) -> bool:
        """Delete a vehicle."""
        if vehicle_id in self._vehicles:
            del self._vehicles[vehicle_id]
            self._locks.pop(vehicle_id, None)
            return True
        return False

    @asynccontextmanager
    async def locked(self, vehicle_id: UUID) -> AsyncIterator[Optional[Vehicle]]:
        """Hold the vehicle's lock while the caller checks and writes."""
        lock = self._locks.setdefault(vehicle_id, asyncio.Lock())
        async with lock:
            yield await self.find_by_id(vehicle_id)

    @staticmethod
    def _matches(vehicle: Vehicle, criteria: VehicleFilter) -> bool:
        if criteria.category is not None and vehicle.category != criteria.category:
            return False
        if criteria.status is not None and vehicle.status != criteria.status:
            return False
        if criteria.transmission is not None and vehicle.transmission != criteria.transmission:
            return False
        if criteria.fuel_type is not None and vehicle.fuel_type != criteria.fuel_type:
            return False
        if criteria.min_price is not None and vehicle.daily_rate < criteria.min_price:
            return False
        if criteria.max_price is not None and vehicle.daily_rate > criteria.max_price:
            return False
        if criteria.min_seats is not None and vehicle.seats < criteria.min_seats:
            return False
        if criteria.search:
            needle = criteria.search.strip().lower()
            haystack = (vehicle.make, vehicle.model, vehicle.license_plate)
            if not any(needle in value.lower() for value in haystack):
                return False
        return True


class InMemoryMaintenanceRepository(MaintenanceRepository):
    """In-memory implementation of maintenance schedule repository."""

    def __init__(self):
        self._schedules: Dict[UUID, MaintenanceSchedule] = {}

    async def save(self, schedule: MaintenanceSchedule) -> MaintenanceSchedule:
        """Save a maintenance schedule."""
        self._schedules[schedule.id] = copy.copy(schedule)
        return schedule

    async def find_open_by_vehicle_id(self, vehicle_id: UUID) -> List[MaintenanceSchedule]:
        """Find scheduled maintenance for a vehicle."""
        schedules = [s for s in self._schedules.values() if s.vehicle_id == vehicle_id and s.is_open]
        schedules.sort(key=lambda s: s.scheduled_date)
        return [copy.copy(s) for s in schedules]

    async def find_by_vehicle_id(self, vehicle_id: UUID) -> List[MaintenanceSchedule]:
        """Find maintenance history for a vehicle."""
        schedules = [s for s in self._schedules.values() if s.vehicle_id == vehicle_id]
        schedules.sort(key=lambda s: s.scheduled_date, reverse=True)
        return [copy.copy(s) for s in schedules]
