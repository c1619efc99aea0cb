"""SQLAlchemy repository implementations."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.vehicle_rental.application.ports.repositories import (
    BookingFilter,
    BookingRepository,
    MaintenanceRepository,
    VehicleFilter,
    VehicleRepository,
)
from src.vehicle_rental.domain.entities.booking import Booking, BookingExtra, BookingStatus, NON_TERMINAL_STATUSES
from src.vehicle_rental.domain.entities.maintenance import MaintenanceSchedule, MaintenanceStatus
from src.vehicle_rental.domain.entities.vehicle import Vehicle
from src.vehicle_rental.domain.value_objects.date_range import DateRange
from src.vehicle_rental.infrastructure.database.models import BookingModel, MaintenanceModel, VehicleModel
from src.vehicle_rental.infrastructure.logging import get_logger, log_database_operation

VEHICLE_SORT_COLUMNS = {
    "created_at": VehicleModel.created_at,
    "daily_rate": VehicleModel.daily_rate,
    "year": VehicleModel.year,
    "make": VehicleModel.make,
    "mileage": VehicleModel.mileage,
}


class SQLAlchemyBookingRepository(BookingRepository):
    """SQLAlchemy implementation of booking repository."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._logger = get_logger(__name__)

    async def save(self, booking: Booking) -> Booking:
        """Save a booking to the database."""
        existing = await self._session.get(BookingModel, booking.id)

        if existing:
            log_database_operation(self._logger, "UPDATE", "BookingModel", booking_id=str(booking.id))
            existing.start_date = booking.start_date
            existing.end_date = booking.end_date
            existing.extras = sorted(extra.value for extra in booking.extras)
            existing.total_amount = booking.total_amount
            existing.status = booking.status
            existing.notes = booking.notes
            existing.updated_at = datetime.utcnow()
        else:
            log_database_operation(
                self._logger,
                "INSERT",
                "BookingModel",
                booking_id=str(booking.id),
                vehicle_id=str(booking.vehicle_id)
            )
            self._session.add(BookingModel(
                id=booking.id,
                vehicle_id=booking.vehicle_id,
                customer_id=booking.customer_id,
                start_date=booking.start_date,
                end_date=booking.end_date,
                pickup_time=booking.pickup_time,
                dropoff_time=booking.dropoff_time,
                pickup_location=booking.pickup_location,
                dropoff_location=booking.dropoff_location,
                daily_rate=booking.daily_rate,
                total_amount=booking.total_amount,
                extras=sorted(extra.value for extra in booking.extras),
                customer_name=booking.customer_name,
                customer_email=booking.customer_email,
                notes=booking.notes,
                status=booking.status,
                created_at=booking.created_at,
                updated_at=datetime.utcnow()
            ))

        await self._session.flush()
        return booking

    async def find_by_id(self, booking_id: UUID) -> Optional[Booking]:
        """Find booking by ID."""
        stmt = (
            select(BookingModel)
            .where(BookingModel.id == booking_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        booking_model = result.scalar_one_or_none()

        if not booking_model:
            return None
        return self._model_to_entity(booking_model)

    async def find_by_vehicle_id(self, vehicle_id: UUID) -> List[Booking]:
        """Find all bookings for a vehicle."""
        stmt = (
            select(BookingModel)
            .where(BookingModel.vehicle_id == vehicle_id)
            .order_by(BookingModel.start_date.desc())
        )
        result = await self._session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def find_conflicting(
        self,
        vehicle_id: UUID,
        date_range: DateRange,
        exclude_booking_id: Optional[UUID] = None
    ) -> List[Booking]:
        """Find non-terminal bookings sharing at least one day with the range."""
        log_database_operation(
            self._logger,
            "SELECT",
            "BookingModel",
            vehicle_id=str(vehicle_id),
            date_range=str(date_range),
            operation="availability_check"
        )

        conditions = [
            BookingModel.vehicle_id == vehicle_id,
            BookingModel.status.in_(list(NON_TERMINAL_STATUSES)),
            BookingModel.start_date <= date_range.end_date,
            BookingModel.end_date >= date_range.start_date,
        ]
        if exclude_booking_id is not None:
            conditions.append(BookingModel.id != exclude_booking_id)

        stmt = select(BookingModel).where(and_(*conditions)).order_by(BookingModel.start_date)
        result = await self._session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def find_active_by_vehicle_id(self, vehicle_id: UUID) -> Optional[Booking]:
        """Find the ACTIVE booking for a vehicle, if any."""
        stmt = (
            select(BookingModel)
            .where(and_(
                BookingModel.vehicle_id == vehicle_id,
                BookingModel.status == BookingStatus.ACTIVE
            ))
            .order_by(BookingModel.start_date.desc())
            .limit(1)
        )
        result = await self._session.execute(stmt)
        booking_model = result.scalar_one_or_none()
        return self._model_to_entity(booking_model) if booking_model else None

    async def count_by_vehicle_id(
        self,
        vehicle_id: UUID,
        statuses: Optional[Iterable[BookingStatus]] = None
    ) -> int:
        """Count bookings for a vehicle."""
        stmt = select(func.count(BookingModel.id)).where(BookingModel.vehicle_id == vehicle_id)
        if statuses is not None:
            stmt = stmt.where(BookingModel.status.in_(list(statuses)))

        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def find_all(self, criteria: BookingFilter, offset: int = 0, limit: Optional[int] = None) -> List[Booking]:
        """Find bookings matching the criteria, newest first."""
        stmt = (
            select(BookingModel)
            .where(*self._conditions(criteria))
            .order_by(BookingModel.created_at.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def count(self, criteria: BookingFilter) -> int:
        """Count bookings matching the criteria."""
        stmt = select(func.count(BookingModel.id)).where(*self._conditions(criteria))
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    @staticmethod
    def _conditions(criteria: BookingFilter) -> list:
        conditions = []
        if criteria.status is not None:
            conditions.append(BookingModel.status == criteria.status)
        if criteria.vehicle_id is not None:
            conditions.append(BookingModel.vehicle_id == criteria.vehicle_id)
        if criteria.customer_id is not None:
            conditions.append(BookingModel.customer_id == criteria.customer_id)
        if criteria.start_from is not None:
            conditions.append(BookingModel.start_date >= criteria.start_from)
        if criteria.end_until is not None:
            conditions.append(BookingModel.end_date <= criteria.end_until)
        return conditions

    def _model_to_entity(self, model: BookingModel) -> Booking:
        """Convert database model to domain entity."""
        return Booking(
            booking_id=model.id,
            vehicle_id=model.vehicle_id,
            customer_id=model.customer_id,
            date_range=DateRange(model.start_date, model.end_date),
            daily_rate=model.daily_rate,
            total_amount=model.total_amount,
            extras=[BookingExtra(value) for value in (model.extras or [])],
            pickup_location=model.pickup_location,
            dropoff_location=model.dropoff_location,
            pickup_time=model.pickup_time,
            dropoff_time=model.dropoff_time,
            customer_name=model.customer_name,
            customer_email=model.customer_email,
            notes=model.notes,
            status=model.status,
            created_at=model.created_at,
            updated_at=model.updated_at
        )


class SQLAlchemyVehicleRepository(VehicleRepository):
    """SQLAlchemy implementation of vehicle repository."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._logger = get_logger(__name__)

    async def save(self, vehicle: Vehicle) -> Vehicle:
        """Save a vehicle to the database."""
        existing = await self._session.get(VehicleModel, vehicle.id)

        if existing:
            log_database_operation(self._logger, "UPDATE", "VehicleModel", vehicle_id=str(vehicle.id))
            self._copy_to_model(vehicle, existing)
            existing.updated_at = datetime.utcnow()
        else:
            log_database_operation(
                self._logger,
                "INSERT",
                "VehicleModel",
                vehicle_id=str(vehicle.id),
                license_plate=vehicle.license_plate
            )
            vehicle_model = VehicleModel(id=vehicle.id, created_at=vehicle.created_at, updated_at=datetime.utcnow())
            self._copy_to_model(vehicle, vehicle_model)
            self._session.add(vehicle_model)

        await self._session.flush()
        return vehicle

    async def find_by_id(self, vehicle_id: UUID) -> Optional[Vehicle]:
        """Find vehicle by ID."""
        stmt = (
            select(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        vehicle_model = result.scalar_one_or_none()
        return self._model_to_entity(vehicle_model) if vehicle_model else None

    async def find_by_ids(self, vehicle_ids: Iterable[UUID]) -> List[Vehicle]:
        """Find vehicles by IDs."""
        ids = list(vehicle_ids)
        if not ids:
            return []

        stmt = select(VehicleModel).where(VehicleModel.id.in_(ids))
        result = await self._session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def find_by_license_plate(self, license_plate: str) -> Optional[Vehicle]:
        """Find vehicle by license plate."""
        stmt = select(VehicleModel).where(VehicleModel.license_plate == license_plate.upper())
        result = await self._session.execute(stmt)
        vehicle_model = result.scalar_one_or_none()
        return self._model_to_entity(vehicle_model) if vehicle_model else None

    async def find_all(self, criteria: VehicleFilter, offset: int = 0, limit: Optional[int] = None) -> List[Vehicle]:
        """Find vehicles matching the criteria."""
        sort_column = VEHICLE_SORT_COLUMNS.get(criteria.sort_by, VehicleModel.created_at)
        stmt = (
            select(VehicleModel)
            .where(*self._conditions(criteria))
            .order_by(sort_column.desc() if criteria.sort_desc else sort_column.asc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def count(self, criteria: VehicleFilter) -> int:
        """Count vehicles matching the criteria."""
        stmt = select(func.count(VehicleModel.id)).where(*self._conditions(criteria))
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def delete(self, vehicle_id: UUID) -> bool:
        """Delete a vehicle together with its maintenance history."""
        log_database_operation(self._logger, "DELETE", "VehicleModel", vehicle_id=str(vehicle_id))

        await self._session.execute(delete(MaintenanceModel).where(MaintenanceModel.vehicle_id == vehicle_id))
        result = await self._session.execute(delete(VehicleModel).where(VehicleModel.id == vehicle_id))

        success = result.rowcount > 0
        if not success:
            self._logger.warning("Vehicle deletion failed - not found", extra={"vehicle_id": str(vehicle_id)})
        return success

    @asynccontextmanager
    async def locked(self, vehicle_id: UUID) -> AsyncIterator[Optional[Vehicle]]:
        """Take a row lock on the vehicle for the rest of the transaction.

        SELECT ... FOR UPDATE blocks concurrent writers for the same vehicle
        until the session commits, which makes check-then-insert atomic.
        """
        log_database_operation(self._logger, "SELECT FOR UPDATE", "VehicleModel", vehicle_id=str(vehicle_id))

        stmt = (
            select(VehicleModel)
            .where(VehicleModel.id == vehicle_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        vehicle_model = result.scalar_one_or_none()
        yield self._model_to_entity(vehicle_model) if vehicle_model else None

    @staticmethod
    def _conditions(criteria: VehicleFilter) -> list:
        conditions = []
        if criteria.category is not None:
            conditions.append(VehicleModel.category == criteria.category)
        if criteria.status is not None:
            conditions.append(VehicleModel.status == criteria.status)
        if criteria.transmission is not None:
            conditions.append(VehicleModel.transmission == criteria.transmission)
        if criteria.fuel_type is not None:
            conditions.append(VehicleModel.fuel_type == criteria.fuel_type)
        if criteria.min_price is not None:
            conditions.append(VehicleModel.daily_rate >= criteria.min_price)
        if criteria.max_price is not None:
            conditions.append(VehicleModel.daily_rate <= criteria.max_price)
        if criteria.min_seats is not None:
            conditions.append(VehicleModel.seats >= criteria.min_seats)
        if criteria.search:
            pattern = f"%{criteria.search.strip()}%"
            conditions.append(or_(
                VehicleModel.make.ilike(pattern),
                VehicleModel.model.ilike(pattern),
                VehicleModel.license_plate.ilike(pattern)
            ))
        return conditions

    @staticmethod
    def _copy_to_model(vehicle: Vehicle, model: VehicleModel) -> None:
        model.make = vehicle.make
        model.model = vehicle.model
        model.year = vehicle.year
        model.category = vehicle.category
        model.daily_rate = vehicle.daily_rate
        model.seats = vehicle.seats
        model.transmission = vehicle.transmission
        model.fuel_type = vehicle.fuel_type
        model.mileage = vehicle.mileage
        model.license_plate = vehicle.license_plate
        model.color = vehicle.color
        model.vin = vehicle.vin
        model.location = vehicle.location
        model.description = vehicle.description
        model.status = vehicle.status

    def _model_to_entity(self, model: VehicleModel) -> Vehicle:
        """Convert database model to domain entity."""
        return Vehicle(
            vehicle_id=model.id,
            make=model.make,
            model=model.model,
            year=model.year,
            category=model.category,
            daily_rate=model.daily_rate,
            seats=model.seats,
            transmission=model.transmission,
            fuel_type=model.fuel_type,
            mileage=model.mileage,
            license_plate=model.license_plate,
            status=model.status,
            color=model.color,
            vin=model.vin,
            location=model.location,
            description=model.description,
            created_at=model.created_at,
            updated_at=model.updated_at
        )


class SQLAlchemyMaintenanceRepository(MaintenanceRepository):
    """SQLAlchemy implementation of maintenance schedule repository."""

    def __init__(self, session: AsyncSession):
        self._session = session
        self._logger = get_logger(__name__)

    async def save(self, schedule: MaintenanceSchedule) -> MaintenanceSchedule:
        """Save a maintenance schedule."""
        existing = await self._session.get(MaintenanceModel, schedule.id)

        if existing:
            log_database_operation(self._logger, "UPDATE", "MaintenanceModel", maintenance_id=str(schedule.id))
            existing.status = schedule.status
            existing.notes = schedule.notes
            existing.completed_at = schedule.completed_at
        else:
            log_database_operation(
                self._logger,
                "INSERT",
                "MaintenanceModel",
                maintenance_id=str(schedule.id),
                vehicle_id=str(schedule.vehicle_id)
            )
            self._session.add(MaintenanceModel(
                id=schedule.id,
                vehicle_id=schedule.vehicle_id,
                maintenance_type=schedule.maintenance_type,
                scheduled_date=schedule.scheduled_date,
                notes=schedule.notes,
                status=schedule.status,
                created_at=schedule.created_at,
                completed_at=schedule.completed_at
            ))

        await self._session.flush()
        return schedule

    async def find_open_by_vehicle_id(self, vehicle_id: UUID) -> List[MaintenanceSchedule]:
        """Find scheduled maintenance for a vehicle."""
        stmt = (
            select(MaintenanceModel)
            .where(and_(
                MaintenanceModel.vehicle_id == vehicle_id,
                MaintenanceModel.status == MaintenanceStatus.SCHEDULED
            ))
            .order_by(MaintenanceModel.scheduled_date)
        )
        result = await self._session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def find_by_vehicle_id(self, vehicle_id: UUID) -> List[MaintenanceSchedule]:
        """Find maintenance history for a vehicle, newest first."""
        stmt = (
            select(MaintenanceModel)
            .where(MaintenanceModel.vehicle_id == vehicle_id)
            .order_by(MaintenanceModel.scheduled_date.desc())
        )
        result = await self._session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    def _model_to_entity(self, model: MaintenanceModel) -> MaintenanceSchedule:
        """Convert database model to domain entity."""
        return MaintenanceSchedule(
            schedule_id=model.id,
            vehicle_id=model.vehicle_id,
            maintenance_type=model.maintenance_type,
            scheduled_date=model.scheduled_date,
            notes=model.notes,
            status=model.status,
            completed_at=model.completed_at,
            created_at=model.created_at
        )
