"""Fleet status projection and administrative overrides."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional
from uuid import UUID

from src.vehicle_rental.application.ports.repositories import (
    BookingRepository,
    MaintenanceRepository,
    VehicleRepository,
)
from src.vehicle_rental.domain.entities.booking import NON_TERMINAL_STATUSES
from src.vehicle_rental.domain.entities.maintenance import MaintenanceSchedule, MaintenanceType
from src.vehicle_rental.domain.entities.vehicle import Vehicle, VehicleStatus
from src.vehicle_rental.domain.exceptions import (
    VehicleHasActiveBookingsError,
    VehicleNotFoundError,
)
from src.vehicle_rental.domain.value_objects.bulk_result import BulkItemResult, BulkOperationResult
from src.vehicle_rental.infrastructure.logging import (
    get_logger,
    log_business_rule_violation,
    log_with_extra
)


def derive_status(admin_status: VehicleStatus, active_booking_exists: bool) -> VehicleStatus:
    """Compute the user-visible status of a vehicle.

    MAINTENANCE and RETIRED win outright; otherwise an ACTIVE booking makes
    the vehicle RENTED. A staff-set RENTED is shown as is.
    """
    if admin_status in (VehicleStatus.MAINTENANCE, VehicleStatus.RETIRED):
        return admin_status
    if active_booking_exists:
        return VehicleStatus.RENTED
    return admin_status


@dataclass(frozen=True)
class FleetStatusView:
    """Read model combining administrative status with booking state."""

    vehicle_id: UUID
    admin_status: VehicleStatus
    display_status: VehicleStatus
    active_booking_id: Optional[UUID] = None

    @property
    def is_overridden(self) -> bool:
        """True when an admin status hides an ACTIVE booking (e.g. forced maintenance)."""
        return self.active_booking_id is not None and self.display_status != VehicleStatus.RENTED


class FleetStatusService:
    """Application service keeping fleet status consistent with bookings."""

    def __init__(
        self,
        vehicle_repository: VehicleRepository,
        booking_repository: BookingRepository,
        maintenance_repository: MaintenanceRepository
    ):
        self._vehicle_repository = vehicle_repository
        self._booking_repository = booking_repository
        self._maintenance_repository = maintenance_repository
        self._logger = get_logger(__name__)

    async def project_vehicle(self, vehicle: Vehicle) -> FleetStatusView:
        """Derive the display status for a loaded vehicle."""
        active_booking = await self._booking_repository.find_active_by_vehicle_id(vehicle.id)
        return FleetStatusView(
            vehicle_id=vehicle.id,
            admin_status=vehicle.status,
            display_status=derive_status(vehicle.status, active_booking is not None),
            active_booking_id=active_booking.id if active_booking else None
        )

    async def project(self, vehicle_id: UUID) -> FleetStatusView:
        """Derive the display status for a vehicle by ID."""
        vehicle = await self._get_vehicle(vehicle_id)
        return await self.project_vehicle(vehicle)

    async def schedule_maintenance(
        self,
        vehicle_id: UUID,
        scheduled_date: date,
        maintenance_type: MaintenanceType,
        notes: Optional[str] = None
    ) -> MaintenanceSchedule:
        """Schedule maintenance and force the vehicle into MAINTENANCE.

        Existing bookings are left untouched, even an ACTIVE one.
        """
        async with self._vehicle_repository.locked(vehicle_id) as vehicle:
            if vehicle is None:
                raise VehicleNotFoundError(vehicle_id)

            schedule = MaintenanceSchedule(
                vehicle_id=vehicle_id,
                maintenance_type=maintenance_type,
                scheduled_date=scheduled_date,
                notes=notes
            )
            await self._maintenance_repository.save(schedule)

            vehicle.start_maintenance()
            await self._vehicle_repository.save(vehicle)

            active_booking = await self._booking_repository.find_active_by_vehicle_id(vehicle_id)
            if active_booking is not None:
                log_business_rule_violation(
                    self._logger,
                    "maintenance_during_active_rental",
                    f"Vehicle {vehicle_id} forced into maintenance while booking {active_booking.id} is active",
                    vehicle_id=str(vehicle_id),
                    booking_id=str(active_booking.id)
                )

        log_with_extra(
            self._logger,
            logging.INFO,
            f"Maintenance scheduled for vehicle {vehicle_id}",
            vehicle_id=str(vehicle_id),
            maintenance_id=str(schedule.id),
            maintenance_type=maintenance_type.value,
            scheduled_date=scheduled_date.isoformat()
        )
        return schedule

    async def complete_maintenance(self, vehicle_id: UUID) -> Vehicle:
        """Close open maintenance and force the vehicle back to AVAILABLE."""
        async with self._vehicle_repository.locked(vehicle_id) as vehicle:
            if vehicle is None:
                raise VehicleNotFoundError(vehicle_id)

            open_schedules = await self._maintenance_repository.find_open_by_vehicle_id(vehicle_id)
            for schedule in open_schedules:
                schedule.complete()
                await self._maintenance_repository.save(schedule)

            vehicle.finish_maintenance()
            await self._vehicle_repository.save(vehicle)

        log_with_extra(
            self._logger,
            logging.INFO,
            f"Maintenance completed for vehicle {vehicle_id}",
            vehicle_id=str(vehicle_id),
            closed_schedules=len(open_schedules)
        )
        return vehicle

    async def list_maintenance(self, vehicle_id: UUID) -> List[MaintenanceSchedule]:
        """Get maintenance history for a vehicle."""
        await self._get_vehicle(vehicle_id)
        return await self._maintenance_repository.find_by_vehicle_id(vehicle_id)

    async def toggle_retirement(self, vehicle_id: UUID) -> Vehicle:
        """Toggle AVAILABLE <-> RETIRED for a vehicle without non-terminal bookings."""
        async with self._vehicle_repository.locked(vehicle_id) as vehicle:
            if vehicle is None:
                raise VehicleNotFoundError(vehicle_id)

            await self._ensure_no_non_terminal_bookings(vehicle_id, "retirement_toggle")
            new_status = vehicle.toggle_retirement()
            await self._vehicle_repository.save(vehicle)

        self._logger.info(
            f"Vehicle {vehicle_id} retirement toggled",
            extra={"vehicle_id": str(vehicle_id), "status": new_status.value}
        )
        return vehicle

    async def set_admin_status(self, vehicle_id: UUID, status: VehicleStatus) -> Vehicle:
        """Apply a staff status override; retiring requires no non-terminal bookings."""
        async with self._vehicle_repository.locked(vehicle_id) as vehicle:
            if vehicle is None:
                raise VehicleNotFoundError(vehicle_id)

            if status == VehicleStatus.RETIRED and vehicle.status != VehicleStatus.RETIRED:
                await self._ensure_no_non_terminal_bookings(vehicle_id, "retire_with_bookings")

            previous = vehicle.status
            vehicle.set_status(status)
            await self._vehicle_repository.save(vehicle)

        log_with_extra(
            self._logger,
            logging.INFO,
            f"Vehicle {vehicle_id} status set {previous.value} -> {status.value}",
            vehicle_id=str(vehicle_id),
            previous_status=previous.value,
            new_status=status.value
        )
        return vehicle

    async def bulk_update_vehicle_status(
        self,
        vehicle_ids: Iterable[UUID],
        status: VehicleStatus
    ) -> BulkOperationResult:
        """Apply a status override to each vehicle independently.

        Vehicles are locked in ID order; results keep the request order.
        """
        vehicle_ids = list(vehicle_ids)
        outcomes: List[Optional[BulkItemResult]] = [None] * len(vehicle_ids)
        for index in sorted(range(len(vehicle_ids)), key=lambda i: (str(vehicle_ids[i]), i)):
            vehicle_id = vehicle_ids[index]
            try:
                vehicle = await self.set_admin_status(vehicle_id, status)
            except ValueError as exc:
                outcomes[index] = BulkItemResult.failed(vehicle_id, exc)
            else:
                outcomes[index] = BulkItemResult.ok(vehicle_id, vehicle.status.value)

        result = BulkOperationResult(items=outcomes)

        self._logger.info(
            "Bulk vehicle status update finished",
            extra={"status": status.value, "succeeded": result.succeeded, "failed": result.failed}
        )
        return result

    async def _ensure_no_non_terminal_bookings(self, vehicle_id: UUID, rule: str) -> None:
        count = await self._booking_repository.count_by_vehicle_id(vehicle_id, NON_TERMINAL_STATUSES)
        if count > 0:
            log_business_rule_violation(
                self._logger,
                rule,
                f"Vehicle {vehicle_id} has {count} non-terminal bookings",
                vehicle_id=str(vehicle_id),
                booking_count=count
            )
            raise VehicleHasActiveBookingsError(
                f"Vehicle {vehicle_id} has {count} pending, confirmed or active bookings"
            )

    async def _get_vehicle(self, vehicle_id: UUID) -> Vehicle:
        vehicle = await self._vehicle_repository.find_by_id(vehicle_id)
        if not vehicle:
            raise VehicleNotFoundError(vehicle_id)
        return vehicle
