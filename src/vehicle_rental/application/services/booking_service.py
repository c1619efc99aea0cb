"""Booking service implementing the rental booking lifecycle."""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Tuple
from uuid import UUID

from ..ports.collaborators import PaymentGateway
from ..ports.repositories import BookingFilter, BookingRepository, VehicleRepository
from .availability_service import AvailabilityService
from .fleet_status_service import FleetStatusService
from ...domain.entities.booking import Booking, BookingExtra, BookingStatus, can_transition
from ...domain.exceptions import (
    AlreadyCancelledError,
    BookingNotFoundError,
    BookingNotModifiableError,
    IllegalTransitionError,
    InvalidDateRangeError,
    PaymentFailedError,
    RentalError,
    VehicleNotFoundError,
    VehicleUnavailableError,
)
from ...domain.value_objects.bulk_result import BulkItemResult, BulkOperationResult
from ...domain.value_objects.customer import CustomerInfo
from ...domain.value_objects.date_range import DateRange
from src.vehicle_rental.infrastructure.logging import (
    get_logger,
    log_booking_transition,
    log_business_rule_violation,
    log_with_extra
)

CENTS = Decimal("0.01")

# Transitions that change what the fleet dashboard shows for the vehicle
PROJECTED_STATUSES = frozenset({BookingStatus.ACTIVE, BookingStatus.COMPLETED})


class PriceCalculator:
    """Service for computing rental totals."""

    @staticmethod
    def calculate_total(daily_rate: Decimal, date_range: DateRange, extras: Iterable[BookingExtra] = ()) -> Decimal:
        """Flat daily rate plus each extra's fixed per-day price, for every rental day."""
        days = date_range.days
        total = Decimal(str(daily_rate)) * days
        for extra in set(extras):
            total += extra.daily_price * days
        return total.quantize(CENTS)


@dataclass(frozen=True)
class BookingPage:
    """One page of a booking listing."""

    items: List[Booking]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.page_size - 1) // self.page_size if self.page_size else 0


@dataclass(frozen=True)
class ExtensionQuote:
    """Price and availability of pushing back an active rental's return day."""

    booking_id: UUID
    current_end_date: date
    new_end_date: date
    additional_days: int
    daily_rate: Decimal
    additional_amount: Decimal
    new_total: Decimal
    conflicting_booking_ids: Tuple[UUID, ...] = ()

    @property
    def is_available(self) -> bool:
        return not self.conflicting_booking_ids


class BookingService:
    """Application service for booking management.

    Every write for a vehicle happens inside ``VehicleRepository.locked``,
    so the availability check and the booking insert form one atomic unit
    and two overlapping requests cannot both succeed.
    """

    def __init__(
        self,
        booking_repository: BookingRepository,
        vehicle_repository: VehicleRepository,
        availability_service: Optional[AvailabilityService] = None,
        fleet_status_service: Optional[FleetStatusService] = None,
        payment_gateway: Optional[PaymentGateway] = None,
        today_provider: Callable[[], date] = date.today
    ):
        self._booking_repository = booking_repository
        self._vehicle_repository = vehicle_repository
        self._availability_service = availability_service or AvailabilityService(
            booking_repository, vehicle_repository
        )
        self._fleet_status_service = fleet_status_service
        self._payment_gateway = payment_gateway
        self._today = today_provider
        self._price_calculator = PriceCalculator()
        self._logger = get_logger(__name__)

    async def create_booking(
        self,
        vehicle_id: UUID,
        date_range: DateRange,
        customer: CustomerInfo,
        extras: Iterable[BookingExtra] = (),
        pickup_location: str = "",
        dropoff_location: str = "",
        pickup_time: str = "10:00",
        dropoff_time: str = "10:00",
        notes: Optional[str] = None
    ) -> Booking:
        """Create a PENDING booking after an availability check.

        Raises:
            InvalidDateRangeError: If the range starts in the past
            VehicleNotFoundError: If the vehicle does not exist
            VehicleUnavailableError: If the vehicle is not AVAILABLE or the dates overlap a booking
        """
        extras = frozenset(extras)
        self._ensure_not_in_past(date_range, vehicle_id)

        async with self._vehicle_repository.locked(vehicle_id) as vehicle:
            if vehicle is None:
                raise VehicleNotFoundError(vehicle_id)

            availability = await self._availability_service.check_vehicle(vehicle, date_range)
            if not availability.is_available:
                log_business_rule_violation(
                    self._logger,
                    "vehicle_unavailable",
                    availability.describe(),
                    vehicle_id=str(vehicle_id),
                    date_range=str(date_range),
                    vehicle_status=vehicle.status.value,
                    conflict_count=availability.conflict_count
                )
                raise VehicleUnavailableError(availability.describe(), availability.conflict_count)

            booking = Booking(
                vehicle_id=vehicle.id,
                customer_id=customer.customer_id,
                date_range=date_range,
                daily_rate=vehicle.daily_rate,
                total_amount=self._price_calculator.calculate_total(vehicle.daily_rate, date_range, extras),
                extras=extras,
                pickup_location=pickup_location,
                dropoff_location=dropoff_location,
                pickup_time=pickup_time,
                dropoff_time=dropoff_time,
                customer_name=customer.full_name,
                customer_email=customer.email,
                notes=notes,
                status=BookingStatus.PENDING
            )
            saved_booking = await self._booking_repository.save(booking)

        log_with_extra(
            self._logger,
            logging.INFO,
            f"Booking created for vehicle {vehicle_id}",
            booking_id=str(saved_booking.id),
            vehicle_id=str(vehicle_id),
            customer_id=str(customer.customer_id),
            date_range=str(date_range),
            total_amount=str(saved_booking.total_amount),
            extras=sorted(extra.value for extra in extras)
        )
        return saved_booking

    async def update_status(self, booking_id: UUID, new_status: BookingStatus) -> Booking:
        """Move a booking to a new status.

        Raises:
            BookingNotFoundError: If the booking does not exist
            AlreadyCancelledError: If cancelling an already cancelled booking
            IllegalTransitionError: If the transition is not allowed
        """
        booking = await self._get_existing(booking_id)

        async with self._vehicle_repository.locked(booking.vehicle_id):
            # Re-read under the lock so the transition applies to the latest status
            booking = await self._get_existing(booking_id)
            booking, previous = await self._apply_transition(booking, new_status)

        await self._after_transition(booking, previous, new_status)
        return booking

    async def cancel_booking(self, booking_id: UUID) -> Booking:
        """Cancel a booking, freeing the vehicle for its dates immediately."""
        return await self.update_status(booking_id, BookingStatus.CANCELLED)

    async def bulk_update_status(self, booking_ids: Iterable[UUID], new_status: BookingStatus) -> BulkOperationResult:
        """Apply a status change to each booking independently.

        One rejected transition does not stop the rest of the batch. Bookings
        are processed in vehicle ID order, which is the order vehicle locks
        are taken in; results keep the request order.
        """
        booking_ids = list(booking_ids)
        lock_keys = []
        for index, booking_id in enumerate(booking_ids):
            booking = await self._booking_repository.find_by_id(booking_id)
            lock_keys.append((str(booking.vehicle_id) if booking else "", index))

        outcomes: List[Optional[BulkItemResult]] = [None] * len(booking_ids)
        for _, index in sorted(lock_keys):
            booking_id = booking_ids[index]
            try:
                booking = await self.update_status(booking_id, new_status)
            except RentalError as exc:
                outcomes[index] = BulkItemResult.failed(booking_id, exc)
            else:
                outcomes[index] = BulkItemResult.ok(booking_id, booking.status.value)

        result = BulkOperationResult(items=outcomes)

        self._logger.info(
            "Bulk booking status update finished",
            extra={"new_status": new_status.value, "succeeded": result.succeeded, "failed": result.failed}
        )
        return result

    async def process_payment(self, booking_id: UUID) -> Booking:
        """Capture payment through the payment collaborator and confirm the booking.

        The status check, the capture and the confirmation happen under the
        vehicle lock, so a second payment or a cancellation racing this one
        sees the outcome instead of a stale PENDING status.

        Raises:
            BookingNotFoundError: If the booking does not exist
            IllegalTransitionError: If the booking can no longer be confirmed
            PaymentFailedError: If the payment collaborator declines
        """
        if self._payment_gateway is None:
            raise RuntimeError("Payment gateway is not configured")

        booking = await self._get_existing(booking_id)

        async with self._vehicle_repository.locked(booking.vehicle_id):
            booking = await self._get_existing(booking_id)
            if not can_transition(booking.status, BookingStatus.CONFIRMED):
                log_business_rule_violation(
                    self._logger,
                    IllegalTransitionError.kind,
                    f"Payment rejected for booking {booking_id} in status {booking.status.value}",
                    booking_id=str(booking_id),
                    current_status=booking.status.value
                )
                raise IllegalTransitionError(booking.status, BookingStatus.CONFIRMED)

            if not await self._payment_gateway.confirm_payment(booking_id):
                log_business_rule_violation(
                    self._logger,
                    "payment_declined",
                    f"Payment declined for booking {booking_id}",
                    booking_id=str(booking_id)
                )
                raise PaymentFailedError(f"Payment failed for booking {booking_id}")

            booking, previous = await self._apply_transition(booking, BookingStatus.CONFIRMED)

        await self._after_transition(booking, previous, BookingStatus.CONFIRMED)
        return booking

    async def reschedule_booking(
        self,
        booking_id: UUID,
        date_range: DateRange,
        extras: Optional[Iterable[BookingExtra]] = None
    ) -> Booking:
        """Change dates and/or extras of a pending or confirmed booking.

        Raises:
            BookingNotModifiableError: If the booking is not PENDING or CONFIRMED
            VehicleUnavailableError: If the new dates overlap another booking
        """
        booking = await self._get_existing(booking_id)
        self._ensure_not_in_past(date_range, booking.vehicle_id)

        async with self._vehicle_repository.locked(booking.vehicle_id) as vehicle:
            if vehicle is None:
                raise VehicleNotFoundError(booking.vehicle_id)

            booking = await self._get_existing(booking_id)
            if not booking.is_editable():
                raise BookingNotModifiableError(
                    f"Only pending or confirmed bookings can be modified (status: {booking.status.value})"
                )

            availability = await self._availability_service.check_vehicle(
                vehicle, date_range, exclude_booking_id=booking.id
            )
            if not availability.is_available:
                log_business_rule_violation(
                    self._logger,
                    "vehicle_unavailable",
                    availability.describe(),
                    booking_id=str(booking_id),
                    date_range=str(date_range),
                    conflict_count=availability.conflict_count
                )
                raise VehicleUnavailableError(availability.describe(), availability.conflict_count)

            new_extras = frozenset(extras) if extras is not None else booking.extras
            total = self._price_calculator.calculate_total(booking.daily_rate, date_range, new_extras)
            booking.reschedule(date_range, new_extras, total)
            booking = await self._booking_repository.save(booking)

        self._logger.info(
            f"Booking {booking_id} rescheduled",
            extra={"booking_id": str(booking_id), "date_range": str(date_range), "total_amount": str(total)}
        )
        return booking

    async def preview_extension(self, booking_id: UUID, new_end_date: date) -> ExtensionQuote:
        """Quote an extension of an active rental without changing anything.

        Raises:
            BookingNotModifiableError: If the booking is not ACTIVE
            InvalidDateRangeError: If the new end date is not after the current one
        """
        booking = await self._get_existing(booking_id)
        return await self._quote_extension(booking, new_end_date)

    async def extend_booking(self, booking_id: UUID, new_end_date: date) -> Booking:
        """Push back the return day of an active rental.

        The conflict check covers the whole extended range, excludes the
        booking itself, and runs under the vehicle lock together with the
        write. Extras are billed for the added days as well.

        Raises:
            BookingNotFoundError: If the booking does not exist
            BookingNotModifiableError: If the booking is not ACTIVE
            InvalidDateRangeError: If the new end date is not after the current one
            VehicleUnavailableError: If another booking holds any of the added days
        """
        booking = await self._get_existing(booking_id)

        async with self._vehicle_repository.locked(booking.vehicle_id):
            booking = await self._get_existing(booking_id)
            quote = await self._quote_extension(booking, new_end_date)
            if not quote.is_available:
                message = "Vehicle is not available for the requested extension period"
                log_business_rule_violation(
                    self._logger,
                    "vehicle_unavailable",
                    message,
                    booking_id=str(booking_id),
                    new_end_date=new_end_date.isoformat(),
                    conflict_count=len(quote.conflicting_booking_ids)
                )
                raise VehicleUnavailableError(message, len(quote.conflicting_booking_ids))

            booking.extend(new_end_date, quote.new_total)
            booking = await self._booking_repository.save(booking)

        log_with_extra(
            self._logger,
            logging.INFO,
            f"Booking {booking_id} extended to {new_end_date.isoformat()}",
            booking_id=str(booking_id),
            previous_end_date=quote.current_end_date.isoformat(),
            additional_days=quote.additional_days,
            additional_amount=str(quote.additional_amount),
            total_amount=str(quote.new_total)
        )
        return booking

    async def get_booking(self, booking_id: UUID) -> Optional[Booking]:
        """Get a specific booking by ID."""
        return await self._booking_repository.find_by_id(booking_id)

    async def list_bookings(
        self,
        criteria: Optional[BookingFilter] = None,
        page: int = 1,
        page_size: int = 20
    ) -> BookingPage:
        """List bookings newest first."""
        criteria = criteria or BookingFilter()
        total = await self._booking_repository.count(criteria)
        items = await self._booking_repository.find_all(
            criteria, offset=(page - 1) * page_size, limit=page_size
        )
        return BookingPage(items=items, total=total, page=page, page_size=page_size)

    async def get_vehicle_bookings(self, vehicle_id: UUID) -> List[Booking]:
        """Get all bookings for a vehicle."""
        return await self._booking_repository.find_by_vehicle_id(vehicle_id)

    def _ensure_not_in_past(self, date_range: DateRange, vehicle_id: UUID) -> None:
        try:
            date_range.ensure_not_in_past(self._today())
        except InvalidDateRangeError as exc:
            log_business_rule_violation(
                self._logger,
                "start_date_in_past",
                str(exc),
                vehicle_id=str(vehicle_id),
                date_range=str(date_range)
            )
            raise

    async def _get_existing(self, booking_id: UUID) -> Booking:
        booking = await self._booking_repository.find_by_id(booking_id)
        if not booking:
            raise BookingNotFoundError(booking_id)
        return booking

    async def _apply_transition(self, booking: Booking, new_status: BookingStatus):
        """Transition and save a booking; the caller holds the vehicle lock."""
        try:
            previous = booking.transition_to(new_status)
        except (AlreadyCancelledError, IllegalTransitionError) as exc:
            log_business_rule_violation(
                self._logger,
                exc.kind,
                str(exc),
                booking_id=str(booking.id),
                current_status=booking.status.value,
                requested_status=new_status.value
            )
            raise
        return await self._booking_repository.save(booking), previous

    async def _after_transition(self, booking: Booking, previous: BookingStatus, new_status: BookingStatus) -> None:
        log_booking_transition(
            self._logger,
            booking.id,
            previous.value,
            new_status.value,
            vehicle_id=str(booking.vehicle_id)
        )

        if new_status in PROJECTED_STATUSES and self._fleet_status_service is not None:
            view = await self._fleet_status_service.project(booking.vehicle_id)
            self._logger.info(
                f"Fleet status for vehicle {booking.vehicle_id} is {view.display_status.value}",
                extra={
                    "vehicle_id": str(booking.vehicle_id),
                    "admin_status": view.admin_status.value,
                    "display_status": view.display_status.value
                }
            )

    async def _quote_extension(self, booking: Booking, new_end_date: date) -> ExtensionQuote:
        if booking.status != BookingStatus.ACTIVE:
            raise BookingNotModifiableError(
                f"Only active bookings can be extended (status: {booking.status.value})"
            )
        if new_end_date <= booking.end_date:
            raise InvalidDateRangeError("New end date must be after current end date")

        extended = DateRange(booking.start_date, new_end_date)
        conflicts = await self._booking_repository.find_conflicting(
            booking.vehicle_id, extended, exclude_booking_id=booking.id
        )
        new_total = self._price_calculator.calculate_total(booking.daily_rate, extended, booking.extras)
        return ExtensionQuote(
            booking_id=booking.id,
            current_end_date=booking.end_date,
            new_end_date=new_end_date,
            additional_days=(new_end_date - booking.end_date).days,
            daily_rate=booking.daily_rate,
            additional_amount=new_total - booking.total_amount,
            new_total=new_total,
            conflicting_booking_ids=tuple(conflict.id for conflict in conflicts)
        )
