"""Booking lifecycle endpoints."""

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ..config import Settings, get_settings
from ..schemas.booking_schemas import (
    BookingListResponse,
    BookingResponse,
    BookingStatusUpdateRequest,
    BulkBookingStatusRequest,
    BulkOperationResponse,
    CreateBookingRequest,
    DocumentSetResponse,
    ExtendBookingRequest,
    ExtensionQuoteResponse,
    RescheduleBookingRequest,
)
from ....application.ports.repositories import BookingFilter
from ....domain.entities.booking import BookingStatus
from ....domain.exceptions import BookingNotFoundError
from ....domain.value_objects.date_range import DateRange
from ....infrastructure.services import BaseServiceFactory, get_service_factory

router = APIRouter()


@router.get("/", response_model=BookingListResponse)
async def list_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    vehicle_id: Optional[UUID] = None,
    customer_id: Optional[UUID] = None,
    start_from: Optional[date] = Query(None, description="Earliest pickup day"),
    end_until: Optional[date] = Query(None, description="Latest return day"),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1),
    settings: Settings = Depends(get_settings),
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> BookingListResponse:
    """List bookings, newest first."""
    criteria = BookingFilter(
        status=booking_status,
        vehicle_id=vehicle_id,
        customer_id=customer_id,
        start_from=start_from,
        end_until=end_until
    )
    size = min(page_size or settings.default_page_size, settings.max_page_size)

    async with factory.get_booking_service() as booking_service:
        result = await booking_service.list_bookings(criteria, page=page, page_size=size)

    return BookingListResponse(
        bookings=[BookingResponse.from_entity(booking) for booking in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages
    )


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: CreateBookingRequest,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> BookingResponse:
    """
    Create a rental booking.

    The booking starts PENDING. Fails with 409 when the vehicle is not
    available for the requested dates and 422 when the dates are invalid.
    """
    date_range = DateRange(request.start_date, request.end_date)

    async with factory.get_booking_service() as booking_service:
        booking = await booking_service.create_booking(
            vehicle_id=request.vehicle_id,
            date_range=date_range,
            customer=request.customer.to_customer_info(),
            extras=request.extras,
            pickup_location=request.pickup_location,
            dropoff_location=request.dropoff_location,
            pickup_time=request.pickup_time,
            dropoff_time=request.dropoff_time,
            notes=request.notes
        )

    return BookingResponse.from_entity(booking)


@router.post("/bulk-status", response_model=BulkOperationResponse)
async def bulk_update_booking_status(
    request: BulkBookingStatusRequest,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> BulkOperationResponse:
    """Change the status of several bookings; each one succeeds or fails on its own."""
    async with factory.get_booking_service() as booking_service:
        result = await booking_service.bulk_update_status(request.booking_ids, request.status)
    return BulkOperationResponse.from_result(result)


@router.get("/drafts/{reference_id}/documents", response_model=DocumentSetResponse)
async def get_draft_documents(
    reference_id: UUID,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> DocumentSetResponse:
    """Report whether both sides of the driver's license were received for a draft."""
    complete = await factory.document_registry.is_document_set_complete(reference_id)
    return DocumentSetResponse(reference_id=reference_id, complete=complete)


@router.put("/drafts/{reference_id}/documents/{document_type}", response_model=DocumentSetResponse)
async def upload_draft_document(
    reference_id: UUID,
    document_type: str,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> DocumentSetResponse:
    """Record that a license side was uploaded for a booking draft."""
    factory.document_registry.record_upload(reference_id, document_type)
    complete = await factory.document_registry.is_document_set_complete(reference_id)
    return DocumentSetResponse(reference_id=reference_id, complete=complete)


@router.delete("/drafts/{reference_id}/documents/{document_type}", response_model=DocumentSetResponse)
async def remove_draft_document(
    reference_id: UUID,
    document_type: str,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> DocumentSetResponse:
    """Forget an uploaded license side."""
    factory.document_registry.remove_upload(reference_id, document_type)
    complete = await factory.document_registry.is_document_set_complete(reference_id)
    return DocumentSetResponse(reference_id=reference_id, complete=complete)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> BookingResponse:
    """Get booking by ID."""
    async with factory.get_booking_service() as booking_service:
        booking = await booking_service.get_booking(booking_id)

    if not booking:
        raise BookingNotFoundError(booking_id)
    return BookingResponse.from_entity(booking)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def reschedule_booking(
    booking_id: UUID,
    request: RescheduleBookingRequest,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> BookingResponse:
    """Change dates and extras of a pending or confirmed booking."""
    date_range = DateRange(request.start_date, request.end_date)

    async with factory.get_booking_service() as booking_service:
        booking = await booking_service.reschedule_booking(booking_id, date_range, extras=request.extras)
    return BookingResponse.from_entity(booking)


@router.patch("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: UUID,
    request: BookingStatusUpdateRequest,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> BookingResponse:
    """Move a booking along its lifecycle."""
    async with factory.get_booking_service() as booking_service:
        booking = await booking_service.update_status(booking_id, request.status)
    return BookingResponse.from_entity(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> BookingResponse:
    """Cancel a booking; its dates become available immediately."""
    async with factory.get_booking_service() as booking_service:
        booking = await booking_service.cancel_booking(booking_id)
    return BookingResponse.from_entity(booking)


@router.post("/{booking_id}/payment", response_model=BookingResponse)
async def process_payment(
    booking_id: UUID,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> BookingResponse:
    """Capture payment and confirm a pending booking."""
    async with factory.get_booking_service() as booking_service:
        booking = await booking_service.process_payment(booking_id)
    return BookingResponse.from_entity(booking)


@router.post("/{booking_id}/extend/preview", response_model=ExtensionQuoteResponse)
async def preview_extension(
    booking_id: UUID,
    request: ExtendBookingRequest,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> ExtensionQuoteResponse:
    """Quote extending an active rental; nothing is changed."""
    async with factory.get_booking_service() as booking_service:
        quote = await booking_service.preview_extension(booking_id, request.new_end_date)
    return ExtensionQuoteResponse.from_quote(quote)


@router.post("/{booking_id}/extend", response_model=BookingResponse)
async def extend_booking(
    booking_id: UUID,
    request: ExtendBookingRequest,
    factory: BaseServiceFactory = Depends(get_service_factory)
) -> BookingResponse:
    """Push back the return day of an active rental. Fails with 409 on conflicts."""
    async with factory.get_booking_service() as booking_service:
        booking = await booking_service.extend_booking(booking_id, request.new_end_date)
    return BookingResponse.from_entity(booking)
