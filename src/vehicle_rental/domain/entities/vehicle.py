"""Vehicle entity for the rental fleet."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4


class VehicleCategory(Enum):
    """Vehicle category enumeration."""
    ECONOMY = "ECONOMY"
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"
    LUXURY = "LUXURY"
    SUV = "SUV"
    VAN = "VAN"


class VehicleStatus(Enum):
    """Administrative fleet status enumeration."""
    AVAILABLE = "AVAILABLE"
    RENTED = "RENTED"
    MAINTENANCE = "MAINTENANCE"
    RETIRED = "RETIRED"


class Transmission(Enum):
    """Transmission enumeration."""
    AUTOMATIC = "AUTOMATIC"
    MANUAL = "MANUAL"


class FuelType(Enum):
    """Fuel type enumeration."""
    GASOLINE = "GASOLINE"
    DIESEL = "DIESEL"
    ELECTRIC = "ELECTRIC"
    HYBRID = "HYBRID"


# Attributes staff may edit through a plain vehicle update
EDITABLE_ATTRIBUTES = frozenset({
    "make", "model", "year", "category", "daily_rate", "seats", "transmission",
    "fuel_type", "mileage", "license_plate", "color", "vin", "location", "description",
})


class Vehicle:
    """Rentable vehicle with its administrative status.

    The administrative status is independent of bookings and only changes
    through staff actions (status override, maintenance, retirement).
    """

    def __init__(
        self,
        make: str,
        model: str,
        year: int,
        category: VehicleCategory,
        daily_rate: Decimal,
        seats: int,
        transmission: Transmission,
        fuel_type: FuelType,
        mileage: int,
        license_plate: str,
        status: VehicleStatus = VehicleStatus.AVAILABLE,
        vehicle_id: Optional[UUID] = None,
        color: Optional[str] = None,
        vin: Optional[str] = None,
        location: Optional[str] = None,
        description: Optional[str] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None
    ):
        daily_rate = Decimal(str(daily_rate))
        if daily_rate <= 0:
            raise ValueError("Daily rate must be positive")
        if seats < 1 or seats > 15:
            raise ValueError("Seats must be between 1 and 15")
        if mileage < 0:
            raise ValueError("Mileage cannot be negative")

        self._id = vehicle_id or uuid4()
        self._make = make
        self._model = model
        self._year = year
        self._category = category
        self._daily_rate = daily_rate
        self._seats = seats
        self._transmission = transmission
        self._fuel_type = fuel_type
        self._mileage = mileage
        self._license_plate = license_plate
        self._status = status
        self._color = color
        self._vin = vin
        self._location = location
        self._description = description
        self._created_at = created_at or datetime.utcnow()
        self._updated_at = updated_at or datetime.utcnow()

    @property
    def id(self) -> UUID:
        """Get vehicle ID."""
        return self._id

    @property
    def make(self) -> str:
        return self._make

    @property
    def model(self) -> str:
        return self._model

    @property
    def year(self) -> int:
        return self._year

    @property
    def category(self) -> VehicleCategory:
        return self._category

    @property
    def daily_rate(self) -> Decimal:
        """Get flat per-day rental rate."""
        return self._daily_rate

    @property
    def seats(self) -> int:
        return self._seats

    @property
    def transmission(self) -> Transmission:
        return self._transmission

    @property
    def fuel_type(self) -> FuelType:
        return self._fuel_type

    @property
    def mileage(self) -> int:
        return self._mileage

    @property
    def license_plate(self) -> str:
        return self._license_plate

    @property
    def status(self) -> VehicleStatus:
        """Get administrative status."""
        return self._status

    @property
    def color(self) -> Optional[str]:
        return self._color

    @property
    def vin(self) -> Optional[str]:
        return self._vin

    @property
    def location(self) -> Optional[str]:
        return self._location

    @property
    def description(self) -> Optional[str]:
        return self._description

    @property
    def created_at(self) -> datetime:
        return self._created_at

    @property
    def updated_at(self) -> datetime:
        return self._updated_at

    @property
    def display_name(self) -> str:
        """Get display name such as '2023 Toyota Corolla'."""
        return f"{self._year} {self._make} {self._model}"

    def is_out_of_service(self) -> bool:
        """Check if the vehicle is in maintenance or retired."""
        return self._status in (VehicleStatus.MAINTENANCE, VehicleStatus.RETIRED)

    def set_status(self, status: VehicleStatus) -> None:
        """Apply a staff status override."""
        self._status = status
        self._touch()

    def start_maintenance(self) -> None:
        """Force the vehicle into maintenance regardless of booking state."""
        self.set_status(VehicleStatus.MAINTENANCE)

    def finish_maintenance(self) -> None:
        """Return the vehicle to the available pool."""
        self.set_status(VehicleStatus.AVAILABLE)

    def toggle_retirement(self) -> VehicleStatus:
        """Flip between AVAILABLE and RETIRED."""
        if self._status == VehicleStatus.RETIRED:
            self.set_status(VehicleStatus.AVAILABLE)
        elif self._status == VehicleStatus.AVAILABLE:
            self.set_status(VehicleStatus.RETIRED)
        else:
            raise ValueError(
                f"Only available or retired vehicles can toggle retirement (status: {self._status.value})"
            )
        return self._status

    def update_details(self, **changes) -> None:
        """Update editable attributes; administrative status is not editable here."""
        unknown = set(changes) - EDITABLE_ATTRIBUTES
        if unknown:
            raise ValueError(f"Cannot update vehicle attributes: {', '.join(sorted(unknown))}")

        if "daily_rate" in changes:
            changes["daily_rate"] = Decimal(str(changes["daily_rate"]))
            if changes["daily_rate"] <= 0:
                raise ValueError("Daily rate must be positive")
        if "seats" in changes and (changes["seats"] < 1 or changes["seats"] > 15):
            raise ValueError("Seats must be between 1 and 15")
        if "mileage" in changes and changes["mileage"] < 0:
            raise ValueError("Mileage cannot be negative")

        for name, value in changes.items():
            setattr(self, f"_{name}", value)
        self._touch()

    def _touch(self) -> None:
        self._updated_at = datetime.utcnow()

    def __eq__(self, other: object) -> bool:
        """Check equality based on vehicle ID."""
        if not isinstance(other, Vehicle):
            return False
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __str__(self) -> str:
        return f"Vehicle({self._id}, {self._license_plate}, {self._status.value})"
