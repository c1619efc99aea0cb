"""Unit tests for SQLAlchemy database models."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

from src.vehicle_rental.domain.entities.booking import BookingStatus
from src.vehicle_rental.domain.entities.vehicle import FuelType, Transmission, VehicleCategory, VehicleStatus
from src.vehicle_rental.infrastructure.database.models import (
    Base,
    BookingModel,
    MaintenanceModel,
    VehicleModel,
)


class TestDatabaseModels:
    """Test cases for the table definitions."""

    def test_tables_registered(self):
        """Test every model is part of the metadata."""
        assert set(Base.metadata.tables) == {"vehicles", "bookings", "maintenance_schedules"}

    def test_license_plate_unique(self):
        """Test license plates are unique at the database level."""
        column = VehicleModel.__table__.c.license_plate

        assert column.unique is True
        assert column.nullable is False

    def test_booking_indexes(self):
        """Test the composite indexes used by conflict checks."""
        indexes = {index.name: [c.name for c in index.columns] for index in BookingModel.__table__.indexes}

        assert indexes["ix_bookings_vehicle_status"] == ["vehicle_id", "status"]
        assert indexes["ix_bookings_vehicle_dates"] == ["vehicle_id", "start_date", "end_date"]

    def test_foreign_keys(self):
        """Test bookings and maintenance reference vehicles."""
        booking_fk = next(iter(BookingModel.__table__.c.vehicle_id.foreign_keys))
        maintenance_fk = next(iter(MaintenanceModel.__table__.c.vehicle_id.foreign_keys))

        assert booking_fk.target_fullname == "vehicles.id"
        assert maintenance_fk.target_fullname == "vehicles.id"

    def test_enum_columns_store_values(self):
        """Test enums are persisted by value."""
        assert list(VehicleModel.__table__.c.status.type.enums) == [s.value for s in VehicleStatus]
        assert list(BookingModel.__table__.c.status.type.enums) == [s.value for s in BookingStatus]

    def test_booking_model_creation(self):
        """Test creating a BookingModel with required fields."""
        vehicle_id = uuid4()

        model = BookingModel(
            vehicle_id=vehicle_id,
            customer_id=uuid4(),
            start_date=date(2025, 7, 1),
            end_date=date(2025, 7, 4),
            daily_rate=Decimal("50.00"),
            total_amount=Decimal("225.00"),
            extras=["INSURANCE"],
            status=BookingStatus.PENDING
        )

        assert model.vehicle_id == vehicle_id
        assert model.extras == ["INSURANCE"]
        # SQLAlchemy defaults are applied during insertion, not object creation
        assert model.pickup_time is None

    def test_vehicle_model_repr(self):
        """Test string representation."""
        model = VehicleModel(
            make="Toyota",
            model="Corolla",
            year=2023,
            category=VehicleCategory.ECONOMY,
            daily_rate=Decimal("50.00"),
            seats=5,
            transmission=Transmission.AUTOMATIC,
            fuel_type=FuelType.HYBRID,
            license_plate="ABC123"
        )

        assert "ABC123" in repr(model)
