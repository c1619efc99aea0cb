"""Booking entity for vehicle rentals."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional
from uuid import UUID, uuid4

from ..exceptions import AlreadyCancelledError, BookingNotModifiableError, IllegalTransitionError, InvalidDateRangeError
from ..value_objects.date_range import DateRange


class BookingStatus(Enum):
    """Booking status enumeration."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class BookingExtra(Enum):
    """Optional add-ons billed at a fixed price per rental day."""
    INSURANCE = "INSURANCE"
    GPS = "GPS"
    CHILD_SEAT = "CHILD_SEAT"
    ADDITIONAL_DRIVER = "ADDITIONAL_DRIVER"

    @property
    def daily_price(self) -> Decimal:
        return EXTRA_DAILY_PRICES[self]


EXTRA_DAILY_PRICES: Dict[BookingExtra, Decimal] = {
    BookingExtra.INSURANCE: Decimal("25.00"),
    BookingExtra.GPS: Decimal("10.00"),
    BookingExtra.CHILD_SEAT: Decimal("8.00"),
    BookingExtra.ADDITIONAL_DRIVER: Decimal("15.00"),
}

NON_TERMINAL_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.ACTIVE,
})

TERMINAL_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
})

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.ACTIVE, BookingStatus.CANCELLED}),
    BookingStatus.ACTIVE: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


def can_transition(current: BookingStatus, requested: BookingStatus) -> bool:
    """Check if a status change is in the allowed transition table."""
    return requested in ALLOWED_TRANSITIONS[current]


class Booking:
    """Booking entity representing a vehicle rental over a date range."""

    def __init__(
        self,
        vehicle_id: UUID,
        customer_id: UUID,
        date_range: DateRange,
        daily_rate: Decimal,
        total_amount: Decimal,
        extras: Iterable[BookingExtra] = (),
        pickup_location: str = "",
        dropoff_location: str = "",
        pickup_time: str = "10:00",
        dropoff_time: str = "10:00",
        customer_name: str = "",
        customer_email: str = "",
        notes: Optional[str] = None,
        booking_id: Optional[UUID] = None,
        status: BookingStatus = BookingStatus.PENDING,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        self._id = booking_id or uuid4()
        self._vehicle_id = vehicle_id
        self._customer_id = customer_id
        self._date_range = date_range
        self._daily_rate = Decimal(str(daily_rate))
        self._total_amount = Decimal(str(total_amount))
        self._extras = frozenset(extras)
        self._pickup_location = pickup_location
        self._dropoff_location = dropoff_location
        self._pickup_time = pickup_time
        self._dropoff_time = dropoff_time
        self._customer_name = customer_name
        self._customer_email = customer_email
        self._notes = notes
        self._status = status
        self._created_at = created_at or datetime.utcnow()
        self._updated_at = updated_at or datetime.utcnow()

    @property
    def id(self) -> UUID:
        """Get booking ID."""
        return self._id

    @property
    def vehicle_id(self) -> UUID:
        """Get booked vehicle ID."""
        return self._vehicle_id

    @property
    def customer_id(self) -> UUID:
        return self._customer_id

    @property
    def date_range(self) -> DateRange:
        return self._date_range

    @property
    def start_date(self):
        return self._date_range.start_date

    @property
    def end_date(self):
        return self._date_range.end_date

    @property
    def daily_rate(self) -> Decimal:
        """Get vehicle daily rate captured when the booking was made."""
        return self._daily_rate

    @property
    def total_amount(self) -> Decimal:
        return self._total_amount

    @property
    def extras(self) -> FrozenSet[BookingExtra]:
        return self._extras

    @property
    def pickup_location(self) -> str:
        return self._pickup_location

    @property
    def dropoff_location(self) -> str:
        return self._dropoff_location

    @property
    def pickup_time(self) -> str:
        return self._pickup_time

    @property
    def dropoff_time(self) -> str:
        return self._dropoff_time

    @property
    def customer_name(self) -> str:
        return self._customer_name

    @property
    def customer_email(self) -> str:
        return self._customer_email

    @property
    def notes(self) -> Optional[str]:
        return self._notes

    @property
    def status(self) -> BookingStatus:
        """Get booking status."""
        return self._status

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def is_non_terminal(self) -> bool:
        """Check if the booking still holds the vehicle for its dates."""
        return self._status in NON_TERMINAL_STATUSES

    def conflicts_with(self, date_range: DateRange) -> bool:
        """Check if this booking blocks the vehicle for the given range."""
        return self.is_non_terminal and self._date_range.overlaps(date_range)

    def transition_to(self, new_status: BookingStatus) -> BookingStatus:
        """Move to a new status, returning the previous one.

        Raises:
            AlreadyCancelledError: If cancelling a booking that is already cancelled
            IllegalTransitionError: If the change is not in the allowed table
        """
        if new_status == BookingStatus.CANCELLED and self._status == BookingStatus.CANCELLED:
            raise AlreadyCancelledError(self._id)
        if not can_transition(self._status, new_status):
            raise IllegalTransitionError(self._status, new_status)

        previous = self._status
        self._status = new_status
        self._updated_at = datetime.utcnow()
        return previous

    def confirm(self) -> None:
        """Confirm the booking after payment capture."""
        self.transition_to(BookingStatus.CONFIRMED)

    def activate(self) -> None:
        """Mark the vehicle as picked up."""
        self.transition_to(BookingStatus.ACTIVE)

    def complete(self) -> None:
        """Mark the vehicle as returned."""
        self.transition_to(BookingStatus.COMPLETED)

    def cancel(self) -> None:
        """Cancel the booking and free the vehicle."""
        self.transition_to(BookingStatus.CANCELLED)

    def is_editable(self) -> bool:
        """Check if dates and extras can still be changed."""
        return self._status in (BookingStatus.PENDING, BookingStatus.CONFIRMED)

    def reschedule(self, date_range: DateRange, extras: Iterable[BookingExtra], total_amount: Decimal) -> None:
        """Replace the rental period and extras of an editable booking."""
        if not self.is_editable():
            raise BookingNotModifiableError(
                f"Only pending or confirmed bookings can be modified (status: {self._status.value})"
            )
        self._date_range = date_range
        self._extras = frozenset(extras)
        self._total_amount = Decimal(str(total_amount))
        self._updated_at = datetime.utcnow()

    def extend(self, new_end_date: date, total_amount: Decimal) -> DateRange:
        """Push back the return day of an active rental, returning the added period."""
        if self._status != BookingStatus.ACTIVE:
            raise BookingNotModifiableError(
                f"Only active bookings can be extended (status: {self._status.value})"
            )
        if new_end_date <= self._date_range.end_date:
            raise InvalidDateRangeError("New end date must be after current end date")
        added = DateRange(self._date_range.end_date, new_end_date)
        self._date_range = DateRange(self._date_range.start_date, new_end_date)
        self._total_amount = Decimal(str(total_amount))
        self._updated_at = datetime.utcnow()
        return added

    def __eq__(self, other: object) -> bool:
        """Check equality based on booking ID."""
        if not isinstance(other, Booking):
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        """Hash based on booking ID."""
        return hash(self._id)

    def __str__(self) -> str:
        """String representation."""
        return f"Booking({self._id}, {self._vehicle_id}, {self._date_range}, {self._status.value})"
