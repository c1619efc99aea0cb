"""Shared fixtures for the rental test suite."""

import os

os.environ.setdefault("LOG_ENABLE_FILE", "false")
os.environ.setdefault("REPOSITORY_BACKEND", "memory")

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from src.vehicle_rental.domain.entities.vehicle import (
    FuelType,
    Transmission,
    Vehicle,
    VehicleCategory,
    VehicleStatus,
)
from src.vehicle_rental.domain.value_objects.customer import CustomerInfo
from src.vehicle_rental.infrastructure.repositories.memory_repositories import (
    InMemoryBookingRepository,
    InMemoryMaintenanceRepository,
    InMemoryVehicleRepository,
)

TODAY = date(2025, 6, 1)


def fixed_today() -> date:
    return TODAY


def make_vehicle(
    daily_rate="50.00",
    status=VehicleStatus.AVAILABLE,
    license_plate=None,
    **overrides
) -> Vehicle:
    """Build a vehicle with sensible catalog defaults."""
    fields = dict(
        make="Toyota",
        model="Corolla",
        year=2023,
        category=VehicleCategory.ECONOMY,
        daily_rate=Decimal(daily_rate),
        seats=5,
        transmission=Transmission.AUTOMATIC,
        fuel_type=FuelType.GASOLINE,
        mileage=12000,
        license_plate=license_plate or f"T{uuid4().hex[:6].upper()}",
        status=status,
    )
    fields.update(overrides)
    return Vehicle(**fields)


def make_customer(**overrides) -> CustomerInfo:
    """Build a customer with every required field filled in."""
    fields = dict(
        customer_id=uuid4(),
        first_name="Ada",
        last_name="Lovelace",
        email="ada@example.com",
        phone="+1 555 0100",
        drivers_license="DL-12345",
    )
    fields.update(overrides)
    return CustomerInfo(**fields)


@pytest.fixture
def booking_repository():
    return InMemoryBookingRepository()


@pytest.fixture
def vehicle_repository():
    return InMemoryVehicleRepository()


@pytest.fixture
def maintenance_repository():
    return InMemoryMaintenanceRepository()


@pytest.fixture(name="make_vehicle")
def make_vehicle_fixture():
    return make_vehicle


@pytest.fixture(name="make_customer")
def make_customer_fixture():
    return make_customer


@pytest.fixture
def today_provider():
    return fixed_today
