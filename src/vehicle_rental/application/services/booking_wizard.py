"""Booking wizard orchestrating the customer booking flow.

The flow has five steps (dates and location, extras, customer details,
documents, payment). The draft is an explicit immutable value passed in
and returned by every operation; nothing is persisted until the single
``create_booking`` call made when leaving the documents step.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import IntEnum
from typing import Callable, Dict, FrozenSet, Iterable, Optional
from uuid import UUID, uuid4

from ..ports.collaborators import DocumentRegistry
from .booking_service import BookingService, PriceCalculator
from ...domain.entities.booking import BookingExtra
from ...domain.exceptions import RentalError
from ...domain.value_objects.customer import CustomerInfo
from ...domain.value_objects.date_range import DateRange
from src.vehicle_rental.infrastructure.logging import get_logger

DEFAULT_LOCATION = "Main Office - Downtown"
REQUIRED_DOCUMENTS: FrozenSet[str] = frozenset({"license_front", "license_back"})


class WizardStep(IntEnum):
    """Booking wizard steps in display order."""
    DATES = 1
    EXTRAS = 2
    CUSTOMER = 3
    DOCUMENTS = 4
    PAYMENT = 5


@dataclass(frozen=True)
class BookingDraft:
    """Client-side booking data accumulated across wizard steps."""

    vehicle_id: UUID
    customer: CustomerInfo
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    pickup_location: str = DEFAULT_LOCATION
    dropoff_location: str = DEFAULT_LOCATION
    pickup_time: str = "10:00"
    dropoff_time: str = "10:00"
    extras: FrozenSet[BookingExtra] = frozenset()
    uploaded_documents: FrozenSet[str] = frozenset()
    step: WizardStep = WizardStep.DATES
    booking_id: Optional[UUID] = None
    # Dates or extras changed after the booking was created
    booking_outdated: bool = False
    reference_id: UUID = field(default_factory=uuid4)

    @classmethod
    def start(cls, vehicle_id: UUID, customer_id: UUID) -> "BookingDraft":
        """Begin an empty draft for a vehicle."""
        return cls(vehicle_id=vehicle_id, customer=CustomerInfo(customer_id=customer_id))

    def with_dates(
        self,
        start_date: Optional[date],
        end_date: Optional[date],
        pickup_location: Optional[str] = None,
        dropoff_location: Optional[str] = None,
        pickup_time: Optional[str] = None,
        dropoff_time: Optional[str] = None
    ) -> "BookingDraft":
        changed = (start_date, end_date) != (self.start_date, self.end_date)
        return replace(
            self,
            start_date=start_date,
            end_date=end_date,
            booking_outdated=self._marks_outdated(changed),
            pickup_location=pickup_location or self.pickup_location,
            dropoff_location=dropoff_location or self.dropoff_location,
            pickup_time=pickup_time or self.pickup_time,
            dropoff_time=dropoff_time or self.dropoff_time
        )

    def with_extras(self, extras: Iterable[BookingExtra]) -> "BookingDraft":
        extras = frozenset(extras)
        return replace(self, extras=extras, booking_outdated=self._marks_outdated(extras != self.extras))

    def with_customer(self, **fields) -> "BookingDraft":
        """Update customer details; the customer ID is kept."""
        fields.pop("customer_id", None)
        return replace(self, customer=replace(self.customer, **fields))

    def mark_document_uploaded(self, document_type: str) -> "BookingDraft":
        if document_type not in REQUIRED_DOCUMENTS:
            raise ValueError(f"Unknown document type: {document_type}")
        return replace(self, uploaded_documents=self.uploaded_documents | {document_type})

    def remove_document(self, document_type: str) -> "BookingDraft":
        return replace(self, uploaded_documents=self.uploaded_documents - {document_type})

    def _marks_outdated(self, changed: bool) -> bool:
        return self.booking_outdated or (changed and self.booking_id is not None)


@dataclass(frozen=True)
class StepOutcome:
    """Result of trying to move the wizard forward."""

    draft: BookingDraft
    advanced: bool
    errors: Dict[str, str] = field(default_factory=dict)
    error_type: Optional[str] = None


def rental_days(draft: BookingDraft) -> int:
    """Get number of rental days, or 0 when the dates are missing or inverted."""
    if not draft.start_date or not draft.end_date:
        return 0
    return max((draft.end_date - draft.start_date).days, 0)


def validate_dates_step(draft: BookingDraft, today: date) -> Dict[str, str]:
    """Field-level validation for the dates step."""
    errors = {}
    if not draft.start_date:
        errors["start_date"] = "Start date is required"
    if not draft.end_date:
        errors["end_date"] = "End date is required"
    if errors:
        return errors

    if rental_days(draft) == 0:
        errors["end_date"] = "End date must be after start date"
    if draft.start_date < today:
        errors["start_date"] = "Start date cannot be in the past"
    return errors


def validate_customer_step(draft: BookingDraft) -> Dict[str, str]:
    """Field-level validation for the customer details step."""
    return {name: "This field is required" for name in draft.customer.missing_fields()}


def validate_documents_step(draft: BookingDraft) -> Dict[str, str]:
    """Both sides of the driver's license must be uploaded."""
    missing = sorted(REQUIRED_DOCUMENTS - draft.uploaded_documents)
    return {name: "Document upload is required" for name in missing}


def price_preview(draft: BookingDraft, daily_rate: Decimal) -> Decimal:
    """Estimate the total the server will charge for the draft."""
    if rental_days(draft) == 0:
        return Decimal("0.00")
    return PriceCalculator.calculate_total(
        daily_rate, DateRange(draft.start_date, draft.end_date), draft.extras
    )


class BookingWizard:
    """Sequences the booking steps and gates forward progress."""

    def __init__(
        self,
        booking_service: BookingService,
        document_registry: Optional[DocumentRegistry] = None,
        today_provider: Callable[[], date] = date.today
    ):
        self._booking_service = booking_service
        self._document_registry = document_registry
        self._today = today_provider
        self._logger = get_logger(__name__)

    async def advance(self, draft: BookingDraft) -> StepOutcome:
        """Try to move to the next step."""
        if draft.step == WizardStep.PAYMENT:
            return StepOutcome(draft, False, {"step": "Payment is the final step"})

        if draft.step == WizardStep.DATES:
            errors = validate_dates_step(draft, self._today())
        elif draft.step == WizardStep.CUSTOMER:
            errors = validate_customer_step(draft)
        elif draft.step == WizardStep.DOCUMENTS:
            return await self._leave_documents_step(draft)
        else:
            errors = {}

        if errors:
            return StepOutcome(draft, False, errors)
        return StepOutcome(replace(draft, step=WizardStep(draft.step + 1)), True)

    def back(self, draft: BookingDraft) -> BookingDraft:
        """Go one step back; the held booking is kept and updated if the draft changes."""
        if draft.step == WizardStep.DATES:
            return draft
        return replace(draft, step=WizardStep(draft.step - 1))

    async def _leave_documents_step(self, draft: BookingDraft) -> StepOutcome:
        errors = validate_documents_step(draft)
        if not errors and self._document_registry is not None:
            if not await self._document_registry.is_document_set_complete(draft.reference_id):
                errors = {"documents": "Uploaded documents have not been received yet"}
        if errors:
            return StepOutcome(draft, False, errors)

        date_range = DateRange(draft.start_date, draft.end_date)
        try:
            if draft.booking_id is None:
                booking = await self._booking_service.create_booking(
                    vehicle_id=draft.vehicle_id,
                    date_range=date_range,
                    customer=draft.customer,
                    extras=draft.extras,
                    pickup_location=draft.pickup_location,
                    dropoff_location=draft.dropoff_location,
                    pickup_time=draft.pickup_time,
                    dropoff_time=draft.dropoff_time
                )
                draft = replace(draft, booking_id=booking.id)
            elif draft.booking_outdated:
                # Bring the held booking in line with the edited dates and extras
                await self._booking_service.reschedule_booking(draft.booking_id, date_range, extras=draft.extras)
                draft = replace(draft, booking_outdated=False)
        except RentalError as exc:
            self._logger.warning(
                f"Booking hold failed for draft {draft.reference_id}: {exc}",
                extra={"draft_id": str(draft.reference_id), "error_type": exc.kind}
            )
            return StepOutcome(draft, False, {"booking": str(exc)}, error_type=exc.kind)

        return StepOutcome(replace(draft, step=WizardStep.PAYMENT), True)
