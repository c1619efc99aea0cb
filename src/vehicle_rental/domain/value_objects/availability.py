"""Availability result value object."""

from dataclasses import dataclass, field
from typing import Tuple
from uuid import UUID

from ..entities.vehicle import VehicleStatus
from .date_range import DateRange


@dataclass(frozen=True)
class AvailabilityResult:
    """Outcome of an availability check for one vehicle and date range."""

    vehicle_id: UUID
    date_range: DateRange
    vehicle_status: VehicleStatus
    conflicting_booking_ids: Tuple[UUID, ...] = field(default_factory=tuple)

    @property
    def conflict_count(self) -> int:
        """Get number of overlapping non-terminal bookings."""
        return len(self.conflicting_booking_ids)

    @property
    def has_conflicts(self) -> bool:
        return self.conflict_count > 0

    @property
    def is_available(self) -> bool:
        """Vehicle is bookable only with zero conflicts and an AVAILABLE admin status."""
        return not self.has_conflicts and self.vehicle_status == VehicleStatus.AVAILABLE

    def describe(self) -> str:
        """Get human readable reason for the result."""
        if self.is_available:
            return "Vehicle is available for the selected dates"
        if self.vehicle_status != VehicleStatus.AVAILABLE:
            return f"Vehicle is not available for booking (status: {self.vehicle_status.value})"
        return "Vehicle is not available for the selected dates"
