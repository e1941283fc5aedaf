"""FuelRecord class for fill-ups, plus the fuel form draft."""
from datetime import date
from typing import Optional

DEFAULT_FUEL_TYPE = "gasolina"
FUEL_TYPES = ("gasolina", "etanol", "diesel", "gnv")


class FuelRecord:
    """A single fill-up at a gas station."""

    def __init__(
            self,
            car_id: str,
            date_filled: date,
            mileage: float,
            liters: float,
            cost_per_liter: float = 0,
            total_cost: float = 0,
            fuel_type: str = DEFAULT_FUEL_TYPE,
            gas_station: Optional[str] = None,
            is_full_tank: bool = True,
            notes: Optional[str] = None,
            id: Optional[str] = None,
    ):
        self.id = id
        self.car_id = car_id
        self.date_filled = date_filled
        self.mileage = mileage
        self.fuel_type = fuel_type
        self.liters = liters
        self.cost_per_liter = cost_per_liter
        self.total_cost = total_cost
        self.gas_station = gas_station
        self.is_full_tank = is_full_tank
        self.notes = notes


class FuelDraft:
    """
    Form state for a fill-up being entered.

    liters, cost_per_liter and total_cost form a triangle kept consistent by
    whichever field was edited last:
    - editing liters or cost_per_liter recomputes total_cost
    - editing total_cost recomputes cost_per_liter (0 when liters is 0)
    """

    def __init__(
            self,
            date_filled: Optional[date] = None,
            mileage: float = 0,
            fuel_type: str = DEFAULT_FUEL_TYPE,
            gas_station: Optional[str] = None,
            is_full_tank: bool = True,
            notes: Optional[str] = None,
    ):
        self.date_filled = date_filled or date.today()
        self.mileage = mileage
        self.fuel_type = fuel_type
        self.gas_station = gas_station
        self.is_full_tank = is_full_tank
        self.notes = notes
        self.liters = 0.0
        self.cost_per_liter = 0.0
        self.total_cost = 0.0
        self.last_edited: Optional[str] = None

    @classmethod
    def for_car(cls, car) -> "FuelDraft":
        """Fresh draft starting at the car's current mileage and today."""
        return cls(mileage=car.mileage)

    def set_liters(self, liters: float) -> None:
        self.liters = liters
        self.total_cost = liters * self.cost_per_liter
        self.last_edited = "liters"

    def set_cost_per_liter(self, cost_per_liter: float) -> None:
        self.cost_per_liter = cost_per_liter
        self.total_cost = self.liters * cost_per_liter
        self.last_edited = "cost_per_liter"

    def set_total_cost(self, total_cost: float) -> None:
        self.total_cost = total_cost
        self.cost_per_liter = total_cost / self.liters if self.liters > 0 else 0
        self.last_edited = "total_cost"

    def set_field(self, field: str, value: float) -> None:
        """Dispatch an edit of one triangle field to its handler."""
        handlers = {
            "liters": self.set_liters,
            "cost_per_liter": self.set_cost_per_liter,
            "total_cost": self.set_total_cost,
        }
        if field not in handlers:
            raise KeyError(f"Not a fuel cost field: {field}")
        handlers[field](value)

    def to_record(self, car_id: str) -> FuelRecord:
        return FuelRecord(
            car_id=car_id,
            date_filled=self.date_filled,
            mileage=self.mileage,
            liters=self.liters,
            cost_per_liter=self.cost_per_liter,
            total_cost=self.total_cost,
            fuel_type=self.fuel_type,
            gas_station=self.gas_station,
            is_full_tank=self.is_full_tank,
            notes=self.notes,
        )
