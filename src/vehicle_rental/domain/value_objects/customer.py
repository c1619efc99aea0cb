"""Customer information captured at booking time."""

from dataclasses import dataclass
from typing import Optional, Tuple
from uuid import UUID


REQUIRED_CUSTOMER_FIELDS: Tuple[str, ...] = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "drivers_license",
)


@dataclass(frozen=True)
class CustomerInfo:
    """Immutable customer details attached to a booking."""

    customer_id: UUID
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    drivers_license: str = ""
    address: Optional[str] = None
    city: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    date_of_birth: Optional[str] = None

    @property
    def full_name(self) -> str:
        """Get customer full name."""
        return f"{self.first_name} {self.last_name}".strip()

    def missing_fields(self) -> Tuple[str, ...]:
        """Get required fields that are blank."""
        return tuple(
            name for name in REQUIRED_CUSTOMER_FIELDS
            if not (getattr(self, name) or "").strip()
        )

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()
