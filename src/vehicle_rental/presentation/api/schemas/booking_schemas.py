"""Pydantic schemas for booking API requests and responses."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import NAMESPACE_URL, UUID, uuid5

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ....application.services.booking_service import ExtensionQuote
from ....domain.entities.booking import Booking, BookingExtra, BookingStatus
from ....domain.value_objects.bulk_result import BulkOperationResult
from ....domain.value_objects.customer import CustomerInfo

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CustomerRequest(BaseModel):
    """Customer details captured by the booking form."""
    customer_id: Optional[UUID] = Field(None, description="Existing customer ID; derived from email when omitted")
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255)
    phone: str = Field(..., min_length=5, max_length=30)
    drivers_license: str = Field(..., min_length=3, max_length=50)
    address: Optional[str] = Field(None, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    date_of_birth: Optional[date] = None

    def to_customer_info(self) -> CustomerInfo:
        """Build the domain value; guests get a stable ID derived from their email."""
        customer_id = self.customer_id or uuid5(NAMESPACE_URL, f"mailto:{self.email.strip().lower()}")
        return CustomerInfo(
            customer_id=customer_id,
            first_name=self.first_name.strip(),
            last_name=self.last_name.strip(),
            email=self.email.strip().lower(),
            phone=self.phone.strip(),
            drivers_license=self.drivers_license.strip().upper(),
            address=self.address,
            city=self.city,
            zip_code=self.zip_code,
            country=self.country,
            date_of_birth=self.date_of_birth.isoformat() if self.date_of_birth else None
        )


class CreateBookingRequest(BaseModel):
    """Request model for creating a booking."""
    vehicle_id: UUID
    start_date: date = Field(..., description="Pickup day")
    end_date: date = Field(..., description="Return day")
    extras: List[BookingExtra] = Field(default_factory=list)
    pickup_location: str = Field("Main Office - Downtown", max_length=200)
    dropoff_location: str = Field("Main Office - Downtown", max_length=200)
    pickup_time: str = Field("10:00", pattern=TIME_PATTERN, description="Pickup time in HH:MM format")
    dropoff_time: str = Field("10:00", pattern=TIME_PATTERN, description="Dropoff time in HH:MM format")
    customer: CustomerRequest
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator('extras')
    @classmethod
    def deduplicate_extras(cls, v):
        """Each extra is billed once per day regardless of repetition."""
        return list(dict.fromkeys(v))


class RescheduleBookingRequest(BaseModel):
    """Request model for changing dates and extras of a booking."""
    start_date: date
    end_date: date
    extras: Optional[List[BookingExtra]] = Field(None, description="Omit to keep the current extras")


class ExtendBookingRequest(BaseModel):
    """Request model for extending an active rental."""
    new_end_date: date = Field(..., description="New return day; must be after the current one")


class BookingStatusUpdateRequest(BaseModel):
    """Request model for a booking status change."""
    status: BookingStatus


class BulkBookingStatusRequest(BaseModel):
    """Request model for changing the status of several bookings."""
    booking_ids: List[UUID] = Field(..., min_length=1, max_length=100)
    status: BookingStatus


class BookingResponse(BaseModel):
    """Response model for booking operations."""
    model_config = ConfigDict(use_enum_values=True)

    id: UUID
    vehicle_id: UUID
    customer_id: UUID
    customer_name: str
    customer_email: str
    start_date: date
    end_date: date
    days: int
    pickup_time: str
    dropoff_time: str
    pickup_location: str
    dropoff_location: str
    extras: List[BookingExtra]
    daily_rate: Decimal
    total_amount: Decimal
    status: BookingStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            vehicle_id=booking.vehicle_id,
            customer_id=booking.customer_id,
            customer_name=booking.customer_name,
            customer_email=booking.customer_email,
            start_date=booking.start_date,
            end_date=booking.end_date,
            days=booking.date_range.days,
            pickup_time=booking.pickup_time,
            dropoff_time=booking.dropoff_time,
            pickup_location=booking.pickup_location,
            dropoff_location=booking.dropoff_location,
            extras=sorted(booking.extras, key=lambda extra: extra.value),
            daily_rate=booking.daily_rate,
            total_amount=booking.total_amount,
            status=booking.status,
            notes=booking.notes,
            created_at=booking.created_at,
            updated_at=booking.updated_at
        )


class BookingListResponse(BaseModel):
    """Response model for listing bookings."""
    bookings: List[BookingResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class BulkItemResponse(BaseModel):
    """Outcome for one entity of a bulk operation."""
    id: UUID
    success: bool
    status: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None


class BulkOperationResponse(BaseModel):
    """Response model for bulk operations; failures do not abort the batch."""
    results: List[BulkItemResponse]
    succeeded: int
    failed: int

    @classmethod
    def from_result(cls, result: BulkOperationResult) -> "BulkOperationResponse":
        return cls(
            results=[
                BulkItemResponse(
                    id=item.entity_id,
                    success=item.success,
                    status=item.status,
                    error=item.error,
                    error_type=item.error_type
                ) for item in result.items
            ],
            succeeded=result.succeeded,
            failed=result.failed
        )


class ExtensionQuoteResponse(BaseModel):
    """Response model for an extension price preview."""
    booking_id: UUID
    available: bool
    current_end_date: date
    new_end_date: date
    additional_days: int
    daily_rate: Decimal
    additional_amount: Decimal
    new_total: Decimal
    message: str

    @classmethod
    def from_quote(cls, quote: ExtensionQuote) -> "ExtensionQuoteResponse":
        return cls(
            booking_id=quote.booking_id,
            available=quote.is_available,
            current_end_date=quote.current_end_date,
            new_end_date=quote.new_end_date,
            additional_days=quote.additional_days,
            daily_rate=quote.daily_rate,
            additional_amount=quote.additional_amount,
            new_total=quote.new_total,
            message=(
                "Vehicle is available for the requested extension period" if quote.is_available
                else "Vehicle is not available for the requested extension period"
            )
        )


class DocumentSetResponse(BaseModel):
    """Upload state of the documents required for a booking draft."""
    reference_id: UUID
    complete: bool
