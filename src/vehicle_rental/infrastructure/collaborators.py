"""In-process adapters for the payment and document collaborators."""

from typing import Dict, Iterable, Set
from uuid import UUID

from src.vehicle_rental.application.ports.collaborators import DocumentRegistry, PaymentGateway
from src.vehicle_rental.application.services.booking_wizard import REQUIRED_DOCUMENTS
from src.vehicle_rental.infrastructure.logging import get_logger


class InMemoryPaymentGateway(PaymentGateway):
    """Payment gateway that approves everything except configured declines."""

    def __init__(self, declined_booking_ids: Iterable[UUID] = ()):
        self._declined: Set[UUID] = set(declined_booking_ids)
        self._captured: Set[UUID] = set()
        self._logger = get_logger(__name__)

    def decline(self, booking_id: UUID) -> None:
        """Make future captures for the booking fail."""
        self._declined.add(booking_id)

    def is_captured(self, booking_id: UUID) -> bool:
        return booking_id in self._captured

    async def confirm_payment(self, booking_id: UUID) -> bool:
        """Capture once per booking; repeated calls report the earlier capture."""
        if booking_id in self._captured:
            self._logger.info("Payment already captured", extra={"booking_id": str(booking_id)})
            return True
        if booking_id in self._declined:
            self._logger.warning("Payment declined", extra={"booking_id": str(booking_id)})
            return False
        self._captured.add(booking_id)
        self._logger.info("Payment captured", extra={"booking_id": str(booking_id)})
        return True


class InMemoryDocumentRegistry(DocumentRegistry):
    """Tracks uploaded document types per booking draft reference."""

    def __init__(self):
        self._uploads: Dict[UUID, Set[str]] = {}

    def record_upload(self, reference_id: UUID, document_type: str) -> None:
        if document_type not in REQUIRED_DOCUMENTS:
            raise ValueError(f"Unknown document type: {document_type}")
        self._uploads.setdefault(reference_id, set()).add(document_type)

    def remove_upload(self, reference_id: UUID, document_type: str) -> None:
        self._uploads.get(reference_id, set()).discard(document_type)

    async def is_document_set_complete(self, reference_id: UUID) -> bool:
        return REQUIRED_DOCUMENTS <= self._uploads.get(reference_id, set())
