"""Port interfaces for external collaborators consumed by the rental core."""

from abc import ABC, abstractmethod
from uuid import UUID


class PaymentGateway(ABC):
    """Port interface for the payment capture subsystem."""

    @abstractmethod
    async def confirm_payment(self, booking_id: UUID) -> bool:
        """Capture payment for a booking; True on success.

        Captures are idempotent per booking: a repeated call for a booking that
        was already captured returns True without charging again.
        """
        raise NotImplementedError


class DocumentRegistry(ABC):
    """Port interface for the document upload subsystem."""

    @abstractmethod
    async def is_document_set_complete(self, reference_id: UUID) -> bool:
        """Check that every required document has been uploaded for the reference."""
        raise NotImplementedError
