"""Domain errors raised by the rental core."""

from typing import Optional
from uuid import UUID


class RentalError(ValueError):
    """Base class for business rule violations in the rental domain."""

    kind = "rental_error"


class InvalidDateRangeError(RentalError):
    """End date not after start date, or start date in the past."""

    kind = "invalid_date_range"


class VehicleUnavailableError(RentalError):
    """Vehicle cannot be booked for the requested dates."""

    kind = "vehicle_unavailable"

    def __init__(self, message: str, conflict_count: int = 0):
        super().__init__(message)
        self.conflict_count = conflict_count


class IllegalTransitionError(RentalError):
    """Requested booking status change is not allowed."""

    kind = "illegal_transition"

    def __init__(self, current_status, requested_status):
        super().__init__(
            f"Cannot transition booking from {current_status.value} to {requested_status.value}"
        )
        self.current_status = current_status
        self.requested_status = requested_status


class AlreadyCancelledError(RentalError):
    """Cancellation requested for a booking that is already cancelled."""

    kind = "already_cancelled"

    def __init__(self, booking_id: UUID):
        super().__init__(f"Booking {booking_id} is already cancelled")
        self.booking_id = booking_id


class BookingNotModifiableError(RentalError):
    """Booking is in a status that does not allow the requested change."""

    kind = "booking_not_modifiable"


class VehicleHasActiveBookingsError(RentalError):
    """Vehicle has bookings in PENDING, CONFIRMED or ACTIVE status."""

    kind = "vehicle_has_active_bookings"


class VehicleHasAnyBookingsError(RentalError):
    """Vehicle has booking history and cannot be hard deleted."""

    kind = "vehicle_has_any_bookings"


class PaymentFailedError(RentalError):
    """Payment collaborator declined the booking payment."""

    kind = "payment_failed"


class NotFoundError(RentalError):
    """Requested entity does not exist."""

    kind = "not_found"

    def __init__(self, entity: str, entity_id: Optional[UUID] = None):
        message = f"{entity} not found" if entity_id is None else f"{entity} not found: {entity_id}"
        super().__init__(message)
        self.entity_id = entity_id


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: Optional[UUID] = None):
        super().__init__("Booking", booking_id)


class VehicleNotFoundError(NotFoundError):
    def __init__(self, vehicle_id: Optional[UUID] = None):
        super().__init__("Vehicle", vehicle_id)
