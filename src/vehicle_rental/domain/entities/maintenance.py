"""Maintenance schedule attached to a vehicle."""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4


class MaintenanceType(Enum):
    """Maintenance type enumeration."""
    ROUTINE = "ROUTINE"
    REPAIR = "REPAIR"
    INSPECTION = "INSPECTION"
    TIRE_CHANGE = "TIRE_CHANGE"
    OIL_CHANGE = "OIL_CHANGE"
    OTHER = "OTHER"


class MaintenanceStatus(Enum):
    """Maintenance status enumeration."""
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"


class MaintenanceSchedule:
    """Scheduled maintenance for a vehicle.

    Scheduling forces the vehicle into MAINTENANCE; it never creates or
    cancels bookings.
    """

    def __init__(
        self,
        vehicle_id: UUID,
        maintenance_type: MaintenanceType,
        scheduled_date: date,
        notes: Optional[str] = None,
        status: MaintenanceStatus = MaintenanceStatus.SCHEDULED,
        schedule_id: Optional[UUID] = None,
        completed_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None
    ):
        self._id = schedule_id or uuid4()
        self._vehicle_id = vehicle_id
        self._maintenance_type = maintenance_type
        self._scheduled_date = scheduled_date
        self._notes = notes
        self._status = status
        self._completed_at = completed_at
        self._created_at = created_at or datetime.utcnow()

    @property
    def id(self) -> UUID:
        return self._id

    @property
    def vehicle_id(self) -> UUID:
        return self._vehicle_id

    @property
    def maintenance_type(self) -> MaintenanceType:
        return self._maintenance_type

    @property
    def scheduled_date(self) -> date:
        return self._scheduled_date

    @property
    def notes(self) -> Optional[str]:
        return self._notes

    @property
    def status(self) -> MaintenanceStatus:
        return self._status

    @property
    def completed_at(self) -> Optional[datetime]:
        return self._completed_at

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def is_open(self) -> bool:
        return self._status == MaintenanceStatus.SCHEDULED

    def complete(self) -> None:
        """Mark the maintenance as done."""
        if not self.is_open:
            raise ValueError("Maintenance is already completed")
        self._status = MaintenanceStatus.COMPLETED
        self._completed_at = datetime.utcnow()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MaintenanceSchedule):
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __str__(self) -> str:
        return f"MaintenanceSchedule({self._id}, {self._vehicle_id}, {self._status.value})"
