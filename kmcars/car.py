"""Car class for vehicle identification."""

from datetime import date
from typing import Optional


class Car:
    """A vehicle registered by a user."""

    def __init__(
        self,
        brand: str,
        model: str,
        year: int,
        mileage: float = 0,
        license_plate: Optional[str] = None,
        color: Optional[str] = None,
        engine_type: Optional[str] = None,
        id: Optional[str] = None,
        user_id: Optional[str] = None,
        created_at: Optional[str] = None,
    ):
        self.id = id
        self.user_id = user_id
        self.brand = brand
        self.model = model
        self.year = year
        self.mileage = mileage
        self.license_plate = license_plate
        self.color = color
        self.engine_type = engine_type
        self.created_at = created_at

    @property
    def name(self) -> str:
        """Human-readable vehicle name."""
        return f"{self.brand} {self.model} {self.year}"

    def __repr__(self) -> str:
        return f"Car(id={self.id!r}, name={self.name!r}, mileage={self.mileage!r})"


class CarDraft:
    """Form state for a car being added or edited."""

    def __init__(
        self,
        brand: str = "",
        model: str = "",
        year: Optional[int] = None,
        mileage: float = 0,
        license_plate: Optional[str] = None,
        color: Optional[str] = None,
        engine_type: Optional[str] = None,
    ):
        self.brand = brand
        self.model = model
        self.year = year if year is not None else date.today().year
        self.mileage = mileage
        self.license_plate = license_plate
        self.color = color
        self.engine_type = engine_type

    @classmethod
    def from_car(cls, car: Car) -> "CarDraft":
        """Prefill a draft for editing an existing car."""
        return cls(
            brand=car.brand,
            model=car.model,
            year=car.year,
            mileage=car.mileage,
            license_plate=car.license_plate,
            color=car.color,
            engine_type=car.engine_type,
        )
