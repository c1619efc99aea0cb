"""Script to register a demo fleet for development."""

import asyncio
from decimal import Decimal

from src.vehicle_rental.domain.entities.vehicle import FuelType, Transmission, VehicleCategory
from src.vehicle_rental.infrastructure.logging import setup_logging_from_env
from src.vehicle_rental.infrastructure.services import get_service_factory

DEMO_FLEET = [
    {
        "make": "Toyota", "model": "Corolla", "year": 2023, "category": VehicleCategory.ECONOMY,
        "daily_rate": Decimal("45.00"), "seats": 5, "transmission": Transmission.AUTOMATIC,
        "fuel_type": FuelType.HYBRID, "mileage": 12000, "license_plate": "ECO-101", "color": "White",
    },
    {
        "make": "Volkswagen", "model": "Golf", "year": 2022, "category": VehicleCategory.STANDARD,
        "daily_rate": Decimal("55.00"), "seats": 5, "transmission": Transmission.MANUAL,
        "fuel_type": FuelType.GASOLINE, "mileage": 30500, "license_plate": "STD-202", "color": "Blue",
    },
    {
        "make": "BMW", "model": "5 Series", "year": 2024, "category": VehicleCategory.PREMIUM,
        "daily_rate": Decimal("120.00"), "seats": 5, "transmission": Transmission.AUTOMATIC,
        "fuel_type": FuelType.DIESEL, "mileage": 4000, "license_plate": "PRM-303", "color": "Black",
    },
    {
        "make": "Tesla", "model": "Model Y", "year": 2024, "category": VehicleCategory.SUV,
        "daily_rate": Decimal("95.00"), "seats": 7, "transmission": Transmission.AUTOMATIC,
        "fuel_type": FuelType.ELECTRIC, "mileage": 8000, "license_plate": "SUV-404", "color": "Red",
    },
    {
        "make": "Ford", "model": "Transit", "year": 2021, "category": VehicleCategory.VAN,
        "daily_rate": Decimal("85.00"), "seats": 9, "transmission": Transmission.MANUAL,
        "fuel_type": FuelType.DIESEL, "mileage": 61000, "license_plate": "VAN-505", "color": "Silver",
    },
]


async def seed_fleet():
    """Register demo vehicles, skipping plates that already exist."""
    setup_logging_from_env()
    factory = get_service_factory()
    await factory.initialize()

    created = 0
    try:
        for entry in DEMO_FLEET:
            async with factory.get_vehicle_service() as vehicle_service:
                try:
                    await vehicle_service.register_vehicle(**entry)
                    created += 1
                except ValueError as e:
                    print(f"Skipping {entry['license_plate']}: {e}")
        print(f"Seeded {created} vehicles")
    finally:
        await factory.shutdown()


if __name__ == "__main__":
    asyncio.run(seed_fleet())
