"""SQLAlchemy database models."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, JSON, Numeric, String, Text, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID as PostgresUUID
from sqlalchemy.orm import declarative_base, relationship

from src.vehicle_rental.domain.entities.booking import BookingStatus
from src.vehicle_rental.domain.entities.maintenance import MaintenanceStatus, MaintenanceType
from src.vehicle_rental.domain.entities.vehicle import FuelType, Transmission, VehicleCategory, VehicleStatus

Base = declarative_base()


def _enum_values(enum_class):
    return [e.value for e in enum_class]


class VehicleModel(Base):
    """SQLAlchemy model for fleet vehicles."""

    __tablename__ = "vehicles"

    # Primary key
    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)

    # Catalog details
    make = Column(String(50), nullable=False)
    model = Column(String(50), nullable=False)
    year = Column(Integer, nullable=False)
    category = Column(SQLEnum(VehicleCategory, values_callable=_enum_values), nullable=False, index=True)
    daily_rate = Column(Numeric(precision=10, scale=2), nullable=False)
    seats = Column(Integer, nullable=False)
    transmission = Column(SQLEnum(Transmission, values_callable=_enum_values), nullable=False)
    fuel_type = Column(SQLEnum(FuelType, values_callable=_enum_values), nullable=False)
    mileage = Column(Integer, nullable=False, default=0)
    license_plate = Column(String(20), nullable=False, unique=True, index=True)
    color = Column(String(30), nullable=True)
    vin = Column(String(17), nullable=True)
    location = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)

    # Administrative status, changed only by staff actions
    status = Column(
        SQLEnum(VehicleStatus, values_callable=_enum_values),
        nullable=False,
        default=VehicleStatus.AVAILABLE,
        index=True
    )

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self) -> str:
        return f"<VehicleModel(id={self.id}, license_plate='{self.license_plate}', status='{self.status}')>"


class BookingModel(Base):
    """SQLAlchemy model for rental bookings."""

    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_vehicle_status", "vehicle_id", "status"),
        Index("ix_bookings_vehicle_dates", "vehicle_id", "start_date", "end_date"),
    )

    # Primary key
    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)

    # References
    vehicle_id = Column(PostgresUUID(as_uuid=True), ForeignKey("vehicles.id"), nullable=False, index=True)
    customer_id = Column(PostgresUUID(as_uuid=True), nullable=False, index=True)

    # Rental period (calendar days)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    pickup_time = Column(String(5), nullable=False, default="10:00")
    dropoff_time = Column(String(5), nullable=False, default="10:00")
    pickup_location = Column(String(200), nullable=False, default="")
    dropoff_location = Column(String(200), nullable=False, default="")

    # Pricing
    daily_rate = Column(Numeric(precision=10, scale=2), nullable=False)
    total_amount = Column(Numeric(precision=10, scale=2), nullable=False)
    extras = Column(JSON, nullable=False, default=list)  # list of BookingExtra values

    # Customer snapshot
    customer_name = Column(String(200), nullable=False, default="")
    customer_email = Column(String(255), nullable=False, default="")
    notes = Column(Text, nullable=True)

    status = Column(
        SQLEnum(BookingStatus, values_callable=_enum_values),
        nullable=False,
        default=BookingStatus.PENDING
    )

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    vehicle = relationship("VehicleModel", backref="bookings")

    def __repr__(self) -> str:
        return f"<BookingModel(id={self.id}, vehicle_id={self.vehicle_id}, status='{self.status}')>"


class MaintenanceModel(Base):
    """SQLAlchemy model for maintenance schedules."""

    __tablename__ = "maintenance_schedules"

    # Primary key
    id = Column(PostgresUUID(as_uuid=True), primary_key=True, default=uuid4)

    vehicle_id = Column(PostgresUUID(as_uuid=True), ForeignKey("vehicles.id"), nullable=False, index=True)
    maintenance_type = Column(SQLEnum(MaintenanceType, values_callable=_enum_values), nullable=False)
    scheduled_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(
        SQLEnum(MaintenanceStatus, values_callable=_enum_values),
        nullable=False,
        default=MaintenanceStatus.SCHEDULED
    )

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    vehicle = relationship("VehicleModel", backref="maintenance_schedules")

    def __repr__(self) -> str:
        return f"<MaintenanceModel(id={self.id}, vehicle_id={self.vehicle_id}, status='{self.status}')>"
