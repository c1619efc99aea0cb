"""Unit tests for the vehicle registry service."""

import asyncio
import pytest
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

from src.vehicle_rental.application.ports.repositories import VehicleFilter
from src.vehicle_rental.application.services.booking_service import BookingService
from src.vehicle_rental.application.services.fleet_status_service import FleetStatusService
from src.vehicle_rental.application.services.vehicle_service import LicensePlateValidator, VehicleService
from src.vehicle_rental.domain.entities.booking import Booking, BookingStatus
from src.vehicle_rental.domain.entities.maintenance import MaintenanceType
from src.vehicle_rental.domain.entities.vehicle import FuelType, Transmission, VehicleCategory, VehicleStatus
from src.vehicle_rental.domain.exceptions import (
    VehicleHasActiveBookingsError,
    VehicleHasAnyBookingsError,
    VehicleNotFoundError,
    VehicleUnavailableError,
)
from src.vehicle_rental.domain.value_objects.date_range import DateRange
from src.vehicle_rental.infrastructure.repositories.memory_repositories import InMemoryVehicleRepository


REGISTRATION = dict(
    make="Honda",
    model="Civic",
    year=2022,
    category=VehicleCategory.STANDARD,
    daily_rate=Decimal("45.00"),
    seats=5,
    transmission=Transmission.MANUAL,
    fuel_type=FuelType.GASOLINE,
    mileage=30000,
)


class TestLicensePlateValidator:
    """Test cases for LicensePlateValidator."""

    def test_validate_valid_plates(self):
        """Test validation of valid license plates."""
        for plate in ["ABC123", "AB-1234", "7XYZ 123", "a1"]:
            assert LicensePlateValidator.validate(plate) is True

    def test_validate_invalid_plates(self):
        """Test validation of invalid license plates."""
        for plate in ["", "  ", "A", "ABCDEFGHIJK", "ABC@123", "-ABC"]:
            assert LicensePlateValidator.validate(plate) is False

    def test_validate_none_plate(self):
        """Test validation of None license plate."""
        assert LicensePlateValidator.validate(None) is False

    def test_normalize_plate(self):
        """Test license plate normalization."""
        assert LicensePlateValidator.normalize("  abc 123  ") == "ABC 123"


class TestVehicleServiceWithMocks:
    """Test cases for VehicleService guard ordering."""

    def setup_mocks(self, vehicle):
        """Set up mock dependencies."""
        self.vehicle_repository = AsyncMock()
        self.booking_repository = AsyncMock()
        self.vehicle_repository.find_by_id.return_value = vehicle

        @asynccontextmanager
        async def locked(vehicle_id):
            yield vehicle

        self.vehicle_repository.locked = Mock(side_effect=locked)
        self.service = VehicleService(self.vehicle_repository, self.booking_repository)

    @pytest.mark.asyncio
    async def test_delete_checks_active_bookings_first(self, make_vehicle):
        """Test a vehicle with open bookings reports active bookings, not history."""
        vehicle = make_vehicle()
        self.setup_mocks(vehicle)
        self.booking_repository.count_by_vehicle_id.return_value = 2

        with pytest.raises(VehicleHasActiveBookingsError):
            await self.service.delete_vehicle(vehicle.id)

        self.vehicle_repository.locked.assert_called_once_with(vehicle.id)
        self.vehicle_repository.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_saves_vehicle_read_under_lock(self, make_vehicle):
        """Test edits are applied to the vehicle yielded by the lock."""
        vehicle = make_vehicle()
        self.setup_mocks(vehicle)
        self.vehicle_repository.find_by_license_plate.return_value = None
        self.vehicle_repository.save.side_effect = lambda saved: saved

        updated = await self.service.update_vehicle(vehicle.id, color="Blue")

        assert updated.color == "Blue"
        self.vehicle_repository.locked.assert_called_once_with(vehicle.id)
        self.vehicle_repository.find_by_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_unknown_vehicle(self):
        """Test deleting a vehicle that does not exist."""
        self.setup_mocks(None)

        with pytest.raises(VehicleNotFoundError):
            await self.service.delete_vehicle(uuid4())


class TestVehicleService:
    """Test cases for VehicleService over in-memory repositories."""

    @pytest.fixture
    def service(self, vehicle_repository, booking_repository):
        return VehicleService(vehicle_repository, booking_repository)

    async def add_booking(self, booking_repository, vehicle, status):
        booking = Booking(
            vehicle_id=vehicle.id,
            customer_id=uuid4(),
            date_range=DateRange(date(2025, 7, 1), date(2025, 7, 4)),
            daily_rate=vehicle.daily_rate,
            total_amount=Decimal("135.00"),
            status=status
        )
        await booking_repository.save(booking)

    @pytest.mark.asyncio
    async def test_register_vehicle(self, service):
        """Test registering normalizes the plate."""
        vehicle = await service.register_vehicle(license_plate=" abc-123 ", **REGISTRATION)

        assert vehicle.license_plate == "ABC-123"
        assert vehicle.status == VehicleStatus.AVAILABLE
        assert (await service.get_vehicle(vehicle.id)).display_name == "2022 Honda Civic"

    @pytest.mark.asyncio
    async def test_register_duplicate_plate(self, service):
        """Test license plates are unique."""
        await service.register_vehicle(license_plate="ABC123", **REGISTRATION)

        with pytest.raises(ValueError, match="already registered"):
            await service.register_vehicle(license_plate="abc123", **REGISTRATION)

    @pytest.mark.asyncio
    async def test_register_invalid_year(self, service):
        """Test model year bounds."""
        fields = dict(REGISTRATION, year=1980)

        with pytest.raises(ValueError, match="Year must be between"):
            await service.register_vehicle(license_plate="OLD123", **fields)

    @pytest.mark.asyncio
    async def test_update_vehicle(self, service):
        """Test editing attributes keeps the plate check for the same vehicle."""
        vehicle = await service.register_vehicle(license_plate="ABC123", **REGISTRATION)

        updated = await service.update_vehicle(vehicle.id, license_plate="abc123", daily_rate=Decimal("55.00"))

        assert updated.license_plate == "ABC123"
        assert updated.daily_rate == Decimal("55.00")

    @pytest.mark.asyncio
    async def test_update_to_taken_plate(self, service):
        """Test a plate owned by another vehicle is rejected."""
        await service.register_vehicle(license_plate="TAKEN1", **REGISTRATION)
        vehicle = await service.register_vehicle(license_plate="FREE1", **REGISTRATION)

        with pytest.raises(ValueError, match="already registered"):
            await service.update_vehicle(vehicle.id, license_plate="TAKEN1")

    @pytest.mark.asyncio
    async def test_list_vehicles_filters(self, service):
        """Test filtering and pagination of the registry."""
        await service.register_vehicle(license_plate="CHEAP1", **REGISTRATION)
        await service.register_vehicle(
            license_plate="LUX1", **dict(REGISTRATION, category=VehicleCategory.LUXURY, daily_rate=Decimal("150"))
        )

        page = await service.list_vehicles(VehicleFilter(min_price=Decimal("100")))
        assert page.total == 1
        assert page.items[0].license_plate == "LUX1"

        page = await service.list_vehicles(VehicleFilter(search="honda"), page=1, page_size=1)
        assert page.total == 2
        assert len(page.items) == 1

    @pytest.mark.asyncio
    async def test_delete_vehicle_without_bookings(self, service):
        """Test a never-booked vehicle can be deleted."""
        vehicle = await service.register_vehicle(license_plate="DEL123", **REGISTRATION)

        assert await service.delete_vehicle(vehicle.id) is True
        with pytest.raises(VehicleNotFoundError):
            await service.get_vehicle(vehicle.id)

    @pytest.mark.asyncio
    async def test_delete_with_active_booking(self, service, booking_repository):
        """Test delete is refused while a booking is open."""
        vehicle = await service.register_vehicle(license_plate="ACT123", **REGISTRATION)
        await self.add_booking(booking_repository, vehicle, BookingStatus.CONFIRMED)

        assert await service.has_non_terminal_bookings(vehicle.id) is True
        with pytest.raises(VehicleHasActiveBookingsError):
            await service.delete_vehicle(vehicle.id)

    @pytest.mark.asyncio
    async def test_delete_with_history(self, service, booking_repository):
        """Test delete is refused once the vehicle has any booking history."""
        vehicle = await service.register_vehicle(license_plate="HIS123", **REGISTRATION)
        await self.add_booking(booking_repository, vehicle, BookingStatus.CANCELLED)

        assert await service.has_non_terminal_bookings(vehicle.id) is False
        assert await service.has_any_bookings(vehicle.id) is True
        with pytest.raises(VehicleHasAnyBookingsError):
            await service.delete_vehicle(vehicle.id)


class YieldingVehicleRepository(InMemoryVehicleRepository):
    """Lets other tasks run in the middle of plate lookups and deletes."""

    async def find_by_license_plate(self, license_plate):
        await asyncio.sleep(0)
        return await super().find_by_license_plate(license_plate)

    async def delete(self, vehicle_id):
        await asyncio.sleep(0)
        return await super().delete(vehicle_id)


class TestVehicleServiceConcurrency:
    """Test cases for registry writes racing other writes on the same vehicle."""

    @pytest.fixture
    def vehicle_repository(self):
        return YieldingVehicleRepository()

    @pytest.mark.asyncio
    async def test_edit_does_not_undo_concurrent_maintenance(
        self, vehicle_repository, booking_repository, maintenance_repository,
        make_vehicle, make_customer, today_provider
    ):
        """Test a plate edit racing a maintenance override keeps the vehicle in MAINTENANCE."""
        service = VehicleService(vehicle_repository, booking_repository)
        fleet = FleetStatusService(vehicle_repository, booking_repository, maintenance_repository)
        bookings = BookingService(booking_repository, vehicle_repository, today_provider=today_provider)
        vehicle = await vehicle_repository.save(make_vehicle(license_plate="OLD123"))

        await asyncio.gather(
            service.update_vehicle(vehicle.id, license_plate="NEW123"),
            fleet.schedule_maintenance(vehicle.id, date(2025, 6, 10), MaintenanceType.OIL_CHANGE)
        )

        stored = await vehicle_repository.find_by_id(vehicle.id)
        assert stored.license_plate == "NEW123"
        assert stored.status == VehicleStatus.MAINTENANCE
        with pytest.raises(VehicleUnavailableError):
            await bookings.create_booking(
                vehicle.id, DateRange(date(2025, 7, 1), date(2025, 7, 4)), make_customer()
            )

    @pytest.mark.asyncio
    async def test_delete_racing_booking_leaves_no_orphans(
        self, vehicle_repository, booking_repository, make_vehicle, make_customer, today_provider
    ):
        """Test a booking request racing a delete either wins or finds no vehicle."""
        service = VehicleService(vehicle_repository, booking_repository)
        bookings = BookingService(booking_repository, vehicle_repository, today_provider=today_provider)
        vehicle = await vehicle_repository.save(make_vehicle())

        deleted, booking = await asyncio.gather(
            service.delete_vehicle(vehicle.id),
            bookings.create_booking(vehicle.id, DateRange(date(2025, 7, 1), date(2025, 7, 4)), make_customer()),
            return_exceptions=True
        )

        assert deleted is True
        assert isinstance(booking, VehicleNotFoundError)
        assert await vehicle_repository.find_by_id(vehicle.id) is None
        assert await booking_repository.count_by_vehicle_id(vehicle.id) == 0
