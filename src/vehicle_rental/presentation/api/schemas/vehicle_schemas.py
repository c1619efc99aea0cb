"""Pydantic schemas for vehicle API requests and responses."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ....application.services.fleet_status_service import FleetStatusView
from ....domain.entities.maintenance import MaintenanceSchedule, MaintenanceType
from ....domain.entities.vehicle import FuelType, Transmission, Vehicle, VehicleCategory, VehicleStatus
from ....domain.value_objects.availability import AvailabilityResult


class VehicleCreateRequest(BaseModel):
    """Request model for registering a vehicle."""
    make: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=50)
    year: int = Field(..., description="Model year")
    category: VehicleCategory
    daily_rate: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    seats: int = Field(..., ge=1, le=15)
    transmission: Transmission
    fuel_type: FuelType
    mileage: int = Field(0, ge=0)
    license_plate: str = Field(..., min_length=2, max_length=12)
    status: VehicleStatus = VehicleStatus.AVAILABLE
    color: Optional[str] = Field(None, max_length=30)
    vin: Optional[str] = Field(None, max_length=17)
    location: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator('license_plate')
    @classmethod
    def validate_license_plate(cls, v):
        """Validate license plate is not blank."""
        if not v or not v.strip():
            raise ValueError('License plate cannot be empty')
        return v.strip().upper()


class VehicleUpdateRequest(BaseModel):
    """Request model for editing catalog attributes; only sent fields change."""
    make: Optional[str] = Field(None, min_length=1, max_length=50)
    model: Optional[str] = Field(None, min_length=1, max_length=50)
    year: Optional[int] = None
    category: Optional[VehicleCategory] = None
    daily_rate: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    seats: Optional[int] = Field(None, ge=1, le=15)
    transmission: Optional[Transmission] = None
    fuel_type: Optional[FuelType] = None
    mileage: Optional[int] = Field(None, ge=0)
    license_plate: Optional[str] = Field(None, min_length=2, max_length=12)
    color: Optional[str] = Field(None, max_length=30)
    vin: Optional[str] = Field(None, max_length=17)
    location: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)


class VehicleStatusUpdateRequest(BaseModel):
    """Request model for a staff status override."""
    status: VehicleStatus


class BulkVehicleStatusRequest(BaseModel):
    """Request model for overriding the status of several vehicles."""
    vehicle_ids: List[UUID] = Field(..., min_length=1, max_length=100)
    status: VehicleStatus


class VehicleResponse(BaseModel):
    """Response model for vehicle details."""
    model_config = ConfigDict(use_enum_values=True)

    id: UUID
    make: str
    model: str
    year: int
    display_name: str
    category: VehicleCategory
    daily_rate: Decimal
    seats: int
    transmission: Transmission
    fuel_type: FuelType
    mileage: int
    license_plate: str
    status: VehicleStatus
    color: Optional[str] = None
    vin: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, vehicle: Vehicle) -> "VehicleResponse":
        return cls(
            id=vehicle.id,
            make=vehicle.make,
            model=vehicle.model,
            year=vehicle.year,
            display_name=vehicle.display_name,
            category=vehicle.category,
            daily_rate=vehicle.daily_rate,
            seats=vehicle.seats,
            transmission=vehicle.transmission,
            fuel_type=vehicle.fuel_type,
            mileage=vehicle.mileage,
            license_plate=vehicle.license_plate,
            status=vehicle.status,
            color=vehicle.color,
            vin=vehicle.vin,
            location=vehicle.location,
            description=vehicle.description,
            created_at=vehicle.created_at,
            updated_at=vehicle.updated_at
        )


class VehicleListResponse(BaseModel):
    """Response model for listing vehicles."""
    vehicles: List[VehicleResponse]
    total: int
    page: int
    page_size: int


class AvailabilityResponse(BaseModel):
    """Response model for an availability check."""
    model_config = ConfigDict(use_enum_values=True)

    vehicle_id: UUID
    start_date: date
    end_date: date
    is_available: bool
    vehicle_status: VehicleStatus
    conflict_count: int
    message: str

    @classmethod
    def from_result(cls, result: AvailabilityResult) -> "AvailabilityResponse":
        return cls(
            vehicle_id=result.vehicle_id,
            start_date=result.date_range.start_date,
            end_date=result.date_range.end_date,
            is_available=result.is_available,
            vehicle_status=result.vehicle_status,
            conflict_count=result.conflict_count,
            message=result.describe()
        )


class BulkAvailabilityRequest(BaseModel):
    """Request model for checking several vehicles at once."""
    vehicle_ids: List[UUID] = Field(..., min_length=1)
    start_date: date
    end_date: date


class BulkAvailabilityResponse(BaseModel):
    """Response model for a bulk availability check; unknown vehicles are omitted."""
    results: List[AvailabilityResponse]
    available_count: int


class FleetStatusResponse(BaseModel):
    """Response model for the derived fleet status of a vehicle."""
    model_config = ConfigDict(use_enum_values=True)

    vehicle_id: UUID
    admin_status: VehicleStatus
    display_status: VehicleStatus
    active_booking_id: Optional[UUID] = None

    @classmethod
    def from_view(cls, view: FleetStatusView) -> "FleetStatusResponse":
        return cls(
            vehicle_id=view.vehicle_id,
            admin_status=view.admin_status,
            display_status=view.display_status,
            active_booking_id=view.active_booking_id
        )


class BookingFlagsResponse(BaseModel):
    """Booking existence flags used by staff screens before delete or retire."""
    vehicle_id: UUID
    has_non_terminal_bookings: bool
    has_any_bookings: bool


class MaintenanceRequest(BaseModel):
    """Request model for scheduling maintenance."""
    scheduled_date: date
    maintenance_type: MaintenanceType = MaintenanceType.ROUTINE
    notes: Optional[str] = Field(None, max_length=1000)


class MaintenanceResponse(BaseModel):
    """Response model for a maintenance schedule."""
    model_config = ConfigDict(use_enum_values=True)

    id: UUID
    vehicle_id: UUID
    maintenance_type: MaintenanceType
    scheduled_date: date
    notes: Optional[str] = None
    status: str
    completed_at: Optional[datetime] = None
    created_at: datetime

    @classmethod
    def from_entity(cls, schedule: MaintenanceSchedule) -> "MaintenanceResponse":
        return cls(
            id=schedule.id,
            vehicle_id=schedule.vehicle_id,
            maintenance_type=schedule.maintenance_type,
            scheduled_date=schedule.scheduled_date,
            notes=schedule.notes,
            status=schedule.status.value,
            completed_at=schedule.completed_at,
            created_at=schedule.created_at
        )
