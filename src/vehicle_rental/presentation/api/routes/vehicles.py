"""Vehicle registry, availability and fleet status endpoints."""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..config import Settings, get_settings
from ..schemas.booking_schemas import BulkOperationResponse
from ..schemas.vehicle_schemas import (
    AvailabilityResponse,
    BookingFlagsResponse,
    BulkAvailabilityRequest,
    BulkAvailabilityResponse,
    BulkVehicleStatusRequest,
    FleetStatusResponse,
    MaintenanceRequest,
    MaintenanceResponse,
    VehicleCreateRequest,
    VehicleListResponse,
    VehicleResponse,
    VehicleStatusUpdateRequest,
    VehicleUpdateRequest,
)
from ....application.ports.repositories import VehicleFilter
from ....domain.entities.vehicle import FuelType, Transmission, VehicleCategory, VehicleStatus
from ....domain.value_objects.date_range import DateRange
from ....infrastructure.services import BaseServiceFactory, get_service_factory

router = APIRouter()


@router.get("/", response_model=VehicleListResponse)
async def list_vehicles(
    category: Optional[VehicleCategory] = None,
    vehicle_status: Optional[VehicleStatus] = Query(None, alias="status"),
    transmission: Optional[Transmission] = None,
    fuel_type: Optional[FuelType] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    min_seats: Optional[int] = Query(None, ge=1),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("created_at", pattern="^(created_at|daily_rate|year|make|mileage)$"),
    sort_desc: bool = True,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    settings: Settings = Depends(get_settings),
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> VehicleListResponse:
    """List fleet vehicles with filters and pagination."""
    criteria = VehicleFilter(
        category=category,
        status=vehicle_status,
        transmission=transmission,
        fuel_type=fuel_type,
        min_price=min_price,
        max_price=max_price,
        min_seats=min_seats,
        search=search,
        sort_by=sort_by,
        sort_desc=sort_desc
    )
    size = min(page_size or settings.default_page_size, settings.max_page_size)

    async with factory.get_vehicle_service() as vehicle_service:
        result = await vehicle_service.list_vehicles(criteria, page=page, page_size=size)

    return VehicleListResponse(
        vehicles=[VehicleResponse.from_entity(vehicle) for vehicle in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size
    )


@router.post("/", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def register_vehicle(
    request: VehicleCreateRequest,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> VehicleResponse:
    """Add a vehicle to the fleet."""
    async with factory.get_vehicle_service() as vehicle_service:
        vehicle = await vehicle_service.register_vehicle(**request.model_dump())
    return VehicleResponse.from_entity(vehicle)


@router.post("/availability-bulk", response_model=BulkAvailabilityResponse)
async def check_availability_bulk(
    request: BulkAvailabilityRequest,
    settings: Settings = Depends(get_settings),
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> BulkAvailabilityResponse:
    """Check availability of several vehicles for the same dates."""
    if len(request.vehicle_ids) > settings.max_bulk_availability_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {settings.max_bulk_availability_ids} vehicles can be checked at once"
        )

    date_range = DateRange(request.start_date, request.end_date)
    async with factory.get_availability_service() as availability_service:
        results = await availability_service.check_availability_bulk(request.vehicle_ids, date_range)

    responses = [AvailabilityResponse.from_result(result) for result in results.values()]
    return BulkAvailabilityResponse(
        results=responses,
        available_count=sum(1 for response in responses if response.is_available)
    )


@router.post("/bulk-status", response_model=BulkOperationResponse)
async def bulk_update_vehicle_status(
    request: BulkVehicleStatusRequest,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> BulkOperationResponse:
    """Override the status of several vehicles; each one succeeds or fails on its own."""
    async with factory.get_fleet_status_service() as fleet_service:
        result = await fleet_service.bulk_update_vehicle_status(request.vehicle_ids, request.status)
    return BulkOperationResponse.from_result(result)


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: UUID,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> VehicleResponse:
    """Get vehicle by ID."""
    async with factory.get_vehicle_service() as vehicle_service:
        vehicle = await vehicle_service.get_vehicle(vehicle_id)
    return VehicleResponse.from_entity(vehicle)


@router.put("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_id: UUID,
    request: VehicleUpdateRequest,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> VehicleResponse:
    """Edit catalog attributes of a vehicle."""
    async with factory.get_vehicle_service() as vehicle_service:
        vehicle = await vehicle_service.update_vehicle(vehicle_id, **request.model_dump(exclude_unset=True))
    return VehicleResponse.from_entity(vehicle)


@router.delete("/{vehicle_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_vehicle(
    vehicle_id: UUID,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> Response:
    """Hard delete a vehicle that has never been booked."""
    async with factory.get_vehicle_service() as vehicle_service:
        await vehicle_service.delete_vehicle(vehicle_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{vehicle_id}/status", response_model=VehicleResponse)
async def set_vehicle_status(
    vehicle_id: UUID,
    request: VehicleStatusUpdateRequest,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> VehicleResponse:
    """Apply a staff status override."""
    async with factory.get_fleet_status_service() as fleet_service:
        vehicle = await fleet_service.set_admin_status(vehicle_id, request.status)
    return VehicleResponse.from_entity(vehicle)


@router.get("/{vehicle_id}/availability", response_model=AvailabilityResponse)
async def check_availability(
    vehicle_id: UUID,
    start_date: date = Query(..., description="Pickup day"),
    end_date: date = Query(..., description="Return day"),
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> AvailabilityResponse:
    """Check whether a vehicle can be booked for the given dates."""
    date_range = DateRange(start_date, end_date)
    async with factory.get_availability_service() as availability_service:
        result = await availability_service.check_availability(vehicle_id, date_range)
    return AvailabilityResponse.from_result(result)


@router.get("/{vehicle_id}/fleet-status", response_model=FleetStatusResponse)
async def get_fleet_status(
    vehicle_id: UUID,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> FleetStatusResponse:
    """Get the display status derived from admin status and bookings."""
    async with factory.get_fleet_status_service() as fleet_service:
        view = await fleet_service.project(vehicle_id)
    return FleetStatusResponse.from_view(view)


@router.get("/{vehicle_id}/booking-flags", response_model=BookingFlagsResponse)
async def get_booking_flags(
    vehicle_id: UUID,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> BookingFlagsResponse:
    async with factory.get_vehicle_service() as vehicle_service:
        await vehicle_service.get_vehicle(vehicle_id)
        has_open = await vehicle_service.has_non_terminal_bookings(vehicle_id)
        has_any = await vehicle_service.has_any_bookings(vehicle_id)
    return BookingFlagsResponse(vehicle_id=vehicle_id, has_non_terminal_bookings=has_open, has_any_bookings=has_any)


@router.post("/{vehicle_id}/maintenance", response_model=MaintenanceResponse, status_code=status.HTTP_201_CREATED)
async def schedule_maintenance(
    vehicle_id: UUID,
    request: MaintenanceRequest,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> MaintenanceResponse:
    """Schedule maintenance; the vehicle leaves the bookable pool immediately."""
    async with factory.get_fleet_status_service() as fleet_service:
        schedule = await fleet_service.schedule_maintenance(
            vehicle_id,
            scheduled_date=request.scheduled_date,
            maintenance_type=request.maintenance_type,
            notes=request.notes
        )
    return MaintenanceResponse.from_entity(schedule)


@router.post("/{vehicle_id}/maintenance/complete", response_model=VehicleResponse)
async def complete_maintenance(
    vehicle_id: UUID,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> VehicleResponse:
    """Close open maintenance and return the vehicle to AVAILABLE."""
    async with factory.get_fleet_status_service() as fleet_service:
        vehicle = await fleet_service.complete_maintenance(vehicle_id)
    return VehicleResponse.from_entity(vehicle)


@router.get("/{vehicle_id}/maintenance", response_model=List[MaintenanceResponse])
async def list_maintenance(
    vehicle_id: UUID,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> List[MaintenanceResponse]:
    async with factory.get_fleet_status_service() as fleet_service:
        schedules = await fleet_service.list_maintenance(vehicle_id)
    return [MaintenanceResponse.from_entity(schedule) for schedule in schedules]


@router.post("/{vehicle_id}/retirement", response_model=VehicleResponse)
async def toggle_retirement(
    vehicle_id: UUID,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> VehicleResponse:
    """Toggle between AVAILABLE and RETIRED."""
    async with factory.get_fleet_status_service() as fleet_service:
        vehicle = await fleet_service.toggle_retirement(vehicle_id)
    return VehicleResponse.from_entity(vehicle)
