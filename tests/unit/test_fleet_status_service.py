"""Unit tests for fleet status projection and administrative overrides."""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from src.vehicle_rental.application.services.fleet_status_service import FleetStatusService, derive_status
from src.vehicle_rental.domain.entities.booking import Booking, BookingStatus
from src.vehicle_rental.domain.entities.maintenance import MaintenanceStatus, MaintenanceType
from src.vehicle_rental.domain.entities.vehicle import VehicleStatus
from src.vehicle_rental.domain.exceptions import VehicleHasActiveBookingsError, VehicleNotFoundError
from src.vehicle_rental.domain.value_objects.date_range import DateRange


class TestDeriveStatus:
    """Test cases for the pure status derivation."""

    @pytest.mark.parametrize("admin_status,active,expected", [
        (VehicleStatus.AVAILABLE, False, VehicleStatus.AVAILABLE),
        (VehicleStatus.AVAILABLE, True, VehicleStatus.RENTED),
        (VehicleStatus.RENTED, False, VehicleStatus.RENTED),
        (VehicleStatus.MAINTENANCE, True, VehicleStatus.MAINTENANCE),
        (VehicleStatus.MAINTENANCE, False, VehicleStatus.MAINTENANCE),
        (VehicleStatus.RETIRED, True, VehicleStatus.RETIRED),
    ])
    def test_derive_status(self, admin_status, active, expected):
        """Test maintenance and retirement win over an active booking."""
        assert derive_status(admin_status, active) == expected


class TestFleetStatusService:
    """Test cases for FleetStatusService over in-memory repositories."""

    @pytest.fixture
    def service(self, vehicle_repository, booking_repository, maintenance_repository):
        return FleetStatusService(vehicle_repository, booking_repository, maintenance_repository)

    async def add_booking(self, booking_repository, vehicle, status):
        booking = Booking(
            vehicle_id=vehicle.id,
            customer_id=uuid4(),
            date_range=DateRange(date(2025, 7, 1), date(2025, 7, 4)),
            daily_rate=vehicle.daily_rate,
            total_amount=Decimal("150.00"),
            status=status
        )
        return await booking_repository.save(booking)

    @pytest.mark.asyncio
    async def test_project_active_booking(self, service, booking_repository, vehicle_repository, make_vehicle):
        """Test an active booking shows the vehicle as rented."""
        vehicle = await vehicle_repository.save(make_vehicle())
        booking = await self.add_booking(booking_repository, vehicle, BookingStatus.ACTIVE)

        view = await service.project(vehicle.id)

        assert view.admin_status == VehicleStatus.AVAILABLE
        assert view.display_status == VehicleStatus.RENTED
        assert view.active_booking_id == booking.id
        assert not view.is_overridden

    @pytest.mark.asyncio
    async def test_maintenance_forced_during_active_rental(
        self, service, booking_repository, vehicle_repository, make_vehicle
    ):
        """Test maintenance overrides an active rental without touching the booking."""
        vehicle = await vehicle_repository.save(make_vehicle())
        booking = await self.add_booking(booking_repository, vehicle, BookingStatus.ACTIVE)

        schedule = await service.schedule_maintenance(vehicle.id, date(2025, 7, 2), MaintenanceType.REPAIR)

        view = await service.project(vehicle.id)
        assert schedule.status == MaintenanceStatus.SCHEDULED
        assert view.display_status == VehicleStatus.MAINTENANCE
        assert view.is_overridden
        stored = await booking_repository.find_by_id(booking.id)
        assert stored.status == BookingStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_complete_maintenance(self, service, vehicle_repository, make_vehicle):
        """Test completing maintenance closes schedules and frees the vehicle."""
        vehicle = await vehicle_repository.save(make_vehicle())
        await service.schedule_maintenance(vehicle.id, date(2025, 7, 2), MaintenanceType.OIL_CHANGE)
        await service.schedule_maintenance(vehicle.id, date(2025, 7, 9), MaintenanceType.TIRE_CHANGE)

        updated = await service.complete_maintenance(vehicle.id)

        assert updated.status == VehicleStatus.AVAILABLE
        history = await service.list_maintenance(vehicle.id)
        assert [s.scheduled_date for s in history] == [date(2025, 7, 9), date(2025, 7, 2)]
        assert all(s.status == MaintenanceStatus.COMPLETED for s in history)

    @pytest.mark.asyncio
    async def test_toggle_retirement(self, service, vehicle_repository, make_vehicle):
        """Test retiring and un-retiring a vehicle with no bookings."""
        vehicle = await vehicle_repository.save(make_vehicle())

        retired = await service.toggle_retirement(vehicle.id)
        assert retired.status == VehicleStatus.RETIRED

        restored = await service.toggle_retirement(vehicle.id)
        assert restored.status == VehicleStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_retirement_blocked_by_pending_booking(
        self, service, booking_repository, vehicle_repository, make_vehicle
    ):
        """Test retirement requires no pending, confirmed or active bookings."""
        vehicle = await vehicle_repository.save(make_vehicle())
        await self.add_booking(booking_repository, vehicle, BookingStatus.PENDING)

        with pytest.raises(VehicleHasActiveBookingsError):
            await service.toggle_retirement(vehicle.id)
        with pytest.raises(VehicleHasActiveBookingsError):
            await service.set_admin_status(vehicle.id, VehicleStatus.RETIRED)

        stored = await vehicle_repository.find_by_id(vehicle.id)
        assert stored.status == VehicleStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_retirement_allowed_with_history(
        self, service, booking_repository, vehicle_repository, make_vehicle
    ):
        """Test completed bookings do not block retirement."""
        vehicle = await vehicle_repository.save(make_vehicle())
        await self.add_booking(booking_repository, vehicle, BookingStatus.COMPLETED)

        retired = await service.set_admin_status(vehicle.id, VehicleStatus.RETIRED)

        assert retired.status == VehicleStatus.RETIRED

    @pytest.mark.asyncio
    async def test_unknown_vehicle(self, service):
        """Test operations on a vehicle that does not exist."""
        with pytest.raises(VehicleNotFoundError):
            await service.project(uuid4())
        with pytest.raises(VehicleNotFoundError):
            await service.schedule_maintenance(uuid4(), date(2025, 7, 1), MaintenanceType.ROUTINE)

    @pytest.mark.asyncio
    async def test_bulk_update_partial_failure(
        self, service, booking_repository, vehicle_repository, make_vehicle
    ):
        """Test bulk status override reports each vehicle independently."""
        free = await vehicle_repository.save(make_vehicle())
        booked = await vehicle_repository.save(make_vehicle())
        await self.add_booking(booking_repository, booked, BookingStatus.CONFIRMED)
        missing_id = uuid4()

        result = await service.bulk_update_vehicle_status([free.id, booked.id, missing_id], VehicleStatus.RETIRED)

        assert result.succeeded == 1
        assert result.failed == 2
        assert [item.error_type for item in result.failures()] == ["vehicle_has_active_bookings", "not_found"]
        assert (await vehicle_repository.find_by_id(free.id)).status == VehicleStatus.RETIRED
